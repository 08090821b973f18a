# core/seed.py
from __future__ import annotations

import asyncio
import os

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.auth_store import AuthStore
from core.auth_utils import hash_password, normalize_email
from core.database import create_engine, create_sessionmaker, init_models
from settings import load_settings
from telemetry.logger import configure_logging, get_logger

logger = get_logger(__name__)

TEST_EMAIL = "test@example.com"
TEST_PASSWORD = "test-password"


async def seed_test_user(
    session_factory: async_sessionmaker[AsyncSession],
    email: str = TEST_EMAIL,
    password: str = TEST_PASSWORD,
) -> bool:
    """Insert a demo user unless one already exists. Returns True when a row was added."""
    email = normalize_email(email)
    async with session_factory() as session:
        store = AuthStore(session)
        async with store.transaction():
            if await store.find_user_by_email(email) is not None:
                logger.info("User %s already exists, skip seed.", email)
                return False
            await store.insert_user(email, hash_password(password))
    logger.info("Seeded user %s.", email)
    return True


async def _main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is required")

    engine = create_engine(settings.database_url)
    try:
        await init_models(engine)
        await seed_test_user(
            create_sessionmaker(engine),
            os.getenv("SEED_EMAIL", TEST_EMAIL),
            os.getenv("SEED_PASSWORD", TEST_PASSWORD),
        )
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(_main())
