import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.core.config import CORS_ALLOW_ORIGIN_REGEX, CORS_ORIGINS, DATABASE_URL
from storefront.core.database import Base, SessionLocal, engine
from storefront.core.logging_setup import configure_logging
from storefront.core.startup_checks import ensure_migrations_applied, validate_database_environment
from storefront.gateway.feed import ChangeFeed
from storefront.gateway.sql import SqlGateway
from storefront.middleware.observability import ObservabilityMiddleware
import storefront.models  # noqa: F401  models must be registered before create_all

from storefront.routers.dashboard import router as dashboard_router
from storefront.routers.inventory import router as inventory_router
from storefront.routers.menu import router as menu_router
from storefront.routers.orders import router as orders_router
from storefront.routers.public_menu import router as public_menu_router
from storefront.routers.reviews import router as reviews_router
from storefront.routers.settings import router as settings_router
from storefront.routers.tracking import router as tracking_router

configure_logging()

logger = logging.getLogger(__name__)
STARTUP_PREFIX = "[STARTUP]"
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(
    os.getenv("ALEMBIC_CONFIG", str(REPO_ROOT / "alembic.ini"))
)


def _startup_tasks() -> None:
    try:
        validate_database_environment()
        if DATABASE_URL.startswith("sqlite"):
            Base.metadata.create_all(bind=engine)
        ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)
    except Exception:
        logger.exception("%s ERROR startup failed", STARTUP_PREFIX)
        raise


@asynccontextmanager
async def lifespan(_: FastAPI):
    _startup_tasks()
    yield


app = FastAPI(
    title="Storefront Orders API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.state.feed = ChangeFeed()
app.state.gateway = SqlGateway(SessionLocal, app.state.feed)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_origin_regex=CORS_ALLOW_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ObservabilityMiddleware)

# Routers
app.include_router(public_menu_router)
app.include_router(tracking_router)
app.include_router(orders_router)
app.include_router(dashboard_router)
app.include_router(settings_router)
app.include_router(menu_router)
app.include_router(inventory_router)
app.include_router(reviews_router)


@app.get("/")
def root():
    return {"status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
