from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from storefront.core import startup_checks
from storefront.core.logging_setup import JsonFormatter
from storefront.core.request_context import clear_request_context, set_request_context


def test_request_id_is_returned_in_response_header(monkeypatch):
    from storefront import main

    monkeypatch.setattr(main, "_startup_tasks", lambda: None)

    with TestClient(main.app) as client:
        response = client.get("/health")
        echoed = client.get("/health", headers={"X-Request-ID": "req-42"})

    assert response.status_code == 200
    request_id = response.headers.get("X-Request-ID")
    assert request_id
    UUID(request_id)
    assert echoed.headers.get("X-Request-ID") == "req-42"


def test_cors_allows_known_origin_and_blocks_unknown_origin(monkeypatch):
    from storefront import main
    from storefront.core.config import CORS_ORIGINS

    monkeypatch.setattr(main, "_startup_tasks", lambda: None)

    allowed_origin = CORS_ORIGINS[0]
    blocked_origin = "https://blocked-origin.example"

    with TestClient(main.app) as client:
        allowed_response = client.options(
            "/health",
            headers={
                "origin": allowed_origin,
                "access-control-request-method": "GET",
            },
        )
        blocked_response = client.options(
            "/health",
            headers={
                "origin": blocked_origin,
                "access-control-request-method": "GET",
            },
        )

    assert allowed_response.status_code == 200
    assert allowed_response.headers.get("access-control-allow-origin") == allowed_origin

    assert blocked_response.status_code == 400
    assert blocked_response.headers.get("access-control-allow-origin") is None


def test_production_environment_rejects_sqlite(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setattr(startup_checks, "DATABASE_URL", "sqlite:///./forbidden.db")

    with pytest.raises(RuntimeError, match="SQLite is forbidden"):
        startup_checks.validate_database_environment()


def test_migration_check_fails_when_pending_migration(tmp_path: Path, monkeypatch):
    db_path = tmp_path / "pending.db"
    conn = sqlite3.connect(db_path)
    conn.execute("CREATE TABLE alembic_version (version_num VARCHAR(32) NOT NULL)")
    conn.execute("INSERT INTO alembic_version (version_num) VALUES ('000000000000')")
    conn.commit()
    conn.close()

    from sqlalchemy import create_engine

    monkeypatch.setenv("ENVIRONMENT", "development")
    # The check only runs against server databases.
    monkeypatch.setattr(startup_checks, "DATABASE_URL", "postgresql://storefront@db/storefront")
    engine = create_engine(f"sqlite:///{db_path}")

    with pytest.raises(RuntimeError, match="Pending migrations"):
        startup_checks.ensure_migrations_applied(
            engine=engine,
            alembic_config_path=Path(__file__).resolve().parents[1] / "alembic.ini",
        )


def test_json_logs_carry_request_context_and_mask_secrets():
    set_request_context(request_id="req-7", restaurant_id="rest-1", owner_id="owner-1")
    try:
        record = logging.LogRecord(
            name="storefront.test",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="calling backend Authorization: Bearer abc.def.ghi phone=9876543210",
            args=(),
            exc_info=None,
        )
        record.status_code = 201
        payload = json.loads(JsonFormatter("%(message)s").format(record))
    finally:
        clear_request_context()

    assert payload["request_id"] == "req-7"
    assert payload["restaurant_id"] == "rest-1"
    assert payload["owner_id"] == "owner-1"
    assert payload["status_code"] == 201
    assert "abc.def.ghi" not in payload["message"]
    assert "9876543210" not in payload["message"]
