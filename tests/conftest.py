"""Shared fixtures: test settings, in-memory SQLite engine, entity registry, unit-of-work factory."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret-test-secret-test-secret-0123")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import text  # noqa: E402

from baseline_api.core.context import RequestContext  # noqa: E402
from baseline_api.infrastructure.database.registry import build_entity_registry  # noqa: E402
from baseline_api.infrastructure.database.session import (  # noqa: E402
    Base,
    build_engine,
    build_session_factory,
)
from baseline_api.infrastructure.database.unit_of_work import UnitOfWork  # noqa: E402
from baseline_api.security.actor import FixedActorResolver  # noqa: E402

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_now():
    """Clock value every unit of work from make_uow uses."""
    return FIXED_NOW


@pytest.fixture
async def engine():
    eng = build_engine("sqlite+aiosqlite:///:memory:")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def registry():
    return build_entity_registry()


@pytest.fixture
def request_context():
    return RequestContext(correlation_id="corr-1", tenant_id="t1", principal="user-1")


@pytest.fixture
async def make_uow(session_factory, registry, request_context):
    """Open a unit of work on a fresh session. Sessions are closed at teardown."""
    sessions = []

    def _make(actor: str = "user-1", context=request_context, clock=lambda: FIXED_NOW):
        session = session_factory()
        sessions.append(session)
        return UnitOfWork(session, registry, FixedActorResolver(actor), context, clock=clock)

    yield _make
    for s in sessions:
        await s.close()


@pytest.fixture
def raw_rows(engine):
    """Read rows with plain SQL, bypassing the ORM and its default scope."""

    async def _rows(sql: str, **params):
        async with engine.connect() as conn:
            result = await conn.execute(text(sql), params)
            return [dict(r._mapping) for r in result]

    return _rows
