import os
import re
from dotenv import load_dotenv

# Loads .env from the project root
load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./storefront.db")
ENV = os.getenv("ENV", "dev")
ENV_NORMALIZED = ENV.lower()
IS_DEV = ENV_NORMALIZED in {"dev", "development", "local"}
IS_PROD = ENV_NORMALIZED in {"prod", "production"}
PUBLIC_BASE_DOMAIN = os.getenv("PUBLIC_BASE_DOMAIN", "").strip().lower()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


# CORS
_cors_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS = [origin.strip() for origin in _cors_env.split(",") if origin.strip() and origin.strip() != "*"]

if not CORS_ORIGINS and IS_DEV:
    CORS_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

_cors_origin_regex_env = os.getenv("CORS_ALLOW_ORIGIN_REGEX", "").strip()
if _cors_origin_regex_env:
    CORS_ALLOW_ORIGIN_REGEX = _cors_origin_regex_env
elif PUBLIC_BASE_DOMAIN and not IS_DEV:
    CORS_ALLOW_ORIGIN_REGEX = rf"^https://([a-z0-9-]+\.)?{re.escape(PUBLIC_BASE_DOMAIN)}$"
else:
    CORS_ALLOW_ORIGIN_REGEX = None

# Owner tokens are issued by the hosted auth backend; we only verify them.
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-only-change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "authenticated").strip() or None

# Customer-side "last active order" pointer
ACTIVE_ORDER_COOKIE = os.getenv("ACTIVE_ORDER_COOKIE", "active_order_id").strip() or "active_order_id"
ACTIVE_ORDER_COOKIE_MAX_AGE_SECONDS = int(os.getenv("ACTIVE_ORDER_COOKIE_MAX_AGE_SECONDS", "86400"))
ACTIVE_ORDER_COOKIE_SECURE = _env_flag("ACTIVE_ORDER_COOKIE_SECURE", "0" if IS_DEV else "1")
ACTIVE_ORDER_COOKIE_SAMESITE = os.getenv(
    "ACTIVE_ORDER_COOKIE_SAMESITE",
    "lax",
).strip().lower()
if ACTIVE_ORDER_COOKIE_SAMESITE not in {"lax", "strict", "none"}:
    ACTIVE_ORDER_COOKIE_SAMESITE = "lax"
