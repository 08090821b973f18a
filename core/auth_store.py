# core/auth_store.py
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional

from sqlalchemy import delete, insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.refresh_token import RefreshToken
from models.user import User


class AuthStore:
    """
    User + refresh-token persistence for the session manager.

    Every method runs on the injected AsyncSession. Writes are only committed
    inside `transaction()`; the session manager opens one around each operation.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if self.session.in_transaction():
            # Close the implicit read transaction so begin() owns the commit.
            await self.session.commit()
        async with self.session.begin():
            yield

    # -----------------------
    # Users
    # -----------------------
    async def find_user_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def find_user_by_id(self, user_id: int) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalars().first()

    async def insert_user(self, email: str, password_hash: Optional[str]) -> Optional[User]:
        """Insert and return the new row (id, email, created_at populated) or None."""
        user = User(email=email, password_hash=password_hash)
        self.session.add(user)
        await self.session.flush()
        if user.id is None:
            return None
        return user

    # -----------------------
    # Refresh tokens
    # -----------------------
    async def insert_refresh_token(self, user_id: int, token_hash: str, expires_at: datetime) -> None:
        await self.session.execute(
            insert(RefreshToken).values(user_id=user_id, token_hash=token_hash, expires_at=expires_at)
        )

    async def consume_refresh_token(self, token_hash: str, now: datetime) -> Optional[int]:
        """
        Delete the live token matching `token_hash` and return its owner id.

        One DELETE ... RETURNING statement: of two concurrent callers only one gets a row.
        Expired rows are never matched even though they still exist.
        """
        result = await self.session.execute(
            delete(RefreshToken)
            .where(RefreshToken.token_hash == token_hash, RefreshToken.expires_at > now)
            .returning(RefreshToken.user_id)
            .execution_options(synchronize_session=False)
        )
        row = result.first()
        return None if row is None else int(row[0])

    async def delete_refresh_token(self, token_hash: str) -> int:
        result = await self.session.execute(
            delete(RefreshToken)
            .where(RefreshToken.token_hash == token_hash)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def purge_expired_refresh_tokens(self, now: datetime) -> int:
        result = await self.session.execute(
            delete(RefreshToken)
            .where(RefreshToken.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
