"""Pytest configuration and fixtures."""

from __future__ import annotations

import uuid
from copy import deepcopy
from typing import Any, AsyncGenerator, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

import weeklypicks.database.connection as db_conn
from weeklypicks.database.orm import Base


def _enable_sqlite_foreign_keys(dbapi_connection, _record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database with the full schema, bound as the app engine."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    db_conn.bind_engine(engine)
    yield engine

    await engine.dispose()
    db_conn._engine = None
    db_conn._session_factory = None


@pytest.fixture
def api_app():
    """API application with a fresh rate limiter."""
    from weeklypicks.api.app import create_api_app

    return create_api_app()


@pytest_asyncio.fixture
async def async_client(db_engine: AsyncEngine, api_app) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client for the API app."""
    transport = ASGITransport(app=api_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def admin_token() -> str:
    """Create an admin JWT token for testing."""
    from weeklypicks.core.security import create_access_token

    return create_access_token(subject="admin-1", is_admin=True)


@pytest.fixture
def user_token() -> str:
    """Create a non-admin JWT token for testing."""
    from weeklypicks.core.security import create_access_token

    return create_access_token(subject="user-1", is_admin=False)


@pytest.fixture
def admin_headers(admin_token: str) -> dict:
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def user_headers(user_token: str) -> dict:
    return {"Authorization": f"Bearer {user_token}"}


SAMPLE_REPORT: dict[str, Any] = {
    "report_id": "6f1f0a4e-3c55-4d55-9d0f-0d7b8f0c1a11",
    "version": "v1",
    "published_at": "2025-11-02T12:00:00Z",
    "title": "Week 44: Semis lead",
    "summary": "Chip names extend their run while staples lag.",
    "picks": [
        {
            "pick_id": "0b8e6a57-2f5e-4e0c-a7f1-2bb6f0e6d7a2",
            "ticker": "NVDA",
            "exchange": "NASDAQ",
            "side": "long",
            "target_change_pct": 12.5,
            "rationale": "Data center demand keeps beating estimates.",
        },
        {
            "pick_id": "5d6b8b0c-8f8e-4c8b-9a55-55d0b1f0e3c4",
            "ticker": "KO",
            "exchange": "NYSE",
            "side": "short",
            "target_change_pct": -4.25,
            "rationale": "Volume softness in North America.",
        },
    ],
}


@pytest.fixture
def make_report() -> Callable[..., dict[str, Any]]:
    """Factory for report documents; keyword arguments override top-level fields."""

    def _make(fresh_ids: bool = False, **overrides: Any) -> dict[str, Any]:
        report = deepcopy(SAMPLE_REPORT)
        if fresh_ids:
            report["report_id"] = str(uuid.uuid4())
            for pick in report["picks"]:
                pick["pick_id"] = str(uuid.uuid4())
        report.update(overrides)
        return report

    return _make
