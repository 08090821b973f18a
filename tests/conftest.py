"""
Pytest fixtures for the ProfitOS backend.

Each test gets its own SQLite file, settings object and session manager.
"""

import pytest
from fastapi.testclient import TestClient

from core.auth_store import AuthStore
from core.auth_utils import JwtSigner
from core.database import create_engine, create_sessionmaker, init_models
from core.sessions import SessionManager
from main import create_app
from settings import Settings

JWT_SECRET = "test-secret-that-is-at-least-32-characters-long"


@pytest.fixture(scope="function")
def settings(tmp_path):
    return Settings(
        app_env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'app.db'}",
        jwt_secret=JWT_SECRET,
        jwt_access_ttl="15m",
        jwt_refresh_ttl="7d",
        telemetry_db=str(tmp_path / "telemetry.sqlite3"),
    )


@pytest.fixture(scope="function")
def signer():
    return JwtSigner(JWT_SECRET)


@pytest.fixture(scope="function")
async def engine(settings):
    engine = create_engine(settings.database_url)
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return create_sessionmaker(engine)


@pytest.fixture(scope="function")
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(scope="function")
def manager(db_session, signer, settings):
    return SessionManager(AuthStore(db_session), signer, settings)


@pytest.fixture(scope="function")
async def make_manager(session_factory, signer, settings):
    """Factory for managers on fresh sessions (one per simulated request)."""
    sessions = []

    def _make(**kwargs):
        session = session_factory()
        sessions.append(session)
        return SessionManager(AuthStore(session), kwargs.pop("signer", signer), settings, **kwargs)

    yield _make
    for session in sessions:
        await session.close()


@pytest.fixture(scope="function")
def client(settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c
