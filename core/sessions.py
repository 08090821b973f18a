# core/sessions.py
"""
Session lifecycle: register, login, refresh-token rotation and revocation.

Access tokens are short-lived signed JWTs and never touch the database.
Refresh tokens are opaque random strings; only their SHA-256 digest is stored,
and each one is consumed exactly once (refresh or logout).
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError

from core.auth_store import AuthStore
from core.auth_utils import (
    JwtSigner,
    hash_password,
    hash_refresh_token,
    new_refresh_token_raw,
    normalize_email,
    ttl_delta,
    utcnow,
    verify_password,
)
from core.errors import (
    EmailAlreadyRegistered,
    InsertFailed,
    InvalidCredentials,
    InvalidOrExpiredRefreshToken,
    PasswordTooShort,
    ServiceNotConfigured,
    UserNotFound,
    is_unique_violation,
)
from settings import Settings
from telemetry.logger import get_logger, log_event

logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 8


@dataclass(frozen=True)
class AuthUser:
    id: int
    email: str
    created_at: datetime


@dataclass(frozen=True)
class AuthResult:
    access_token: str
    refresh_token: str
    user: AuthUser


def _as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_auth_user(row) -> AuthUser:
    return AuthUser(id=int(row.id), email=row.email, created_at=_as_utc(row.created_at))


class SessionManager:
    def __init__(
        self,
        store: AuthStore,
        signer: Optional[JwtSigner],
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.signer = signer
        self.settings = settings
        self.clock = clock

    def _require_signer(self) -> JwtSigner:
        if self.signer is None:
            raise ServiceNotConfigured()
        return self.signer

    def _event(self, event: str, user_id: Optional[int] = None, **payload) -> None:
        log_event(event, payload, user_id=user_id, db_path=self.settings.telemetry_db)

    # -------------------------------
    # Token issuance
    # -------------------------------
    async def _issue_refresh_token(self, user_id: int) -> str:
        raw = new_refresh_token_raw()
        expires_at = self.clock() + ttl_delta(self.settings.jwt_refresh_ttl)
        await self.store.insert_refresh_token(user_id, hash_refresh_token(raw), expires_at)
        return raw

    def _issue_access_token(self, signer: JwtSigner, user: AuthUser) -> str:
        return signer.sign(
            {"sub": str(user.id), "email": user.email},
            self.settings.jwt_access_ttl,
            now=self.clock(),
        )

    # -------------------------------
    # Register
    # -------------------------------
    async def register(self, email: str, password: str) -> AuthResult:
        signer = self._require_signer()
        email = normalize_email(email)
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise PasswordTooShort()

        try:
            async with self.store.transaction():
                # Fast path only; the unique index on users.email is the real guard.
                if await self.store.find_user_by_email(email) is not None:
                    raise EmailAlreadyRegistered()

                password_hash = await asyncio.to_thread(hash_password, password)
                row = await self.store.insert_user(email, password_hash)
                if row is None:
                    raise InsertFailed()
                user = to_auth_user(row)
                refresh = await self._issue_refresh_token(user.id)
        except IntegrityError as e:
            if is_unique_violation(e):
                logger.info("register lost a race on a duplicate email")
                raise EmailAlreadyRegistered() from None
            raise

        self._event("auth.register", user_id=user.id)
        return AuthResult(self._issue_access_token(signer, user), refresh, user)

    # -------------------------------
    # Login
    # -------------------------------
    async def login(self, email: str, password: str) -> AuthResult:
        signer = self._require_signer()
        email = normalize_email(email)

        user: Optional[AuthUser] = None
        async with self.store.transaction():
            row = await self.store.find_user_by_email(email)
            # Unknown email, password-less account and wrong password look identical,
            # and all of them pay for one argon2 verify.
            stored_hash = row.password_hash if row is not None else None
            if await asyncio.to_thread(verify_password, password, stored_hash):
                user = to_auth_user(row)
                refresh = await self._issue_refresh_token(user.id)

        if user is None:
            self._event("auth.login_failed")
            raise InvalidCredentials()

        self._event("auth.login", user_id=user.id)
        return AuthResult(self._issue_access_token(signer, user), refresh, user)

    # -------------------------------
    # Refresh (ROTATION)
    # -------------------------------
    async def refresh(self, refresh_token: str) -> AuthResult:
        signer = self._require_signer()
        token_hash = hash_refresh_token(refresh_token)

        user: Optional[AuthUser] = None
        async with self.store.transaction():
            owner_id = await self.store.consume_refresh_token(token_hash, self.clock())
            if owner_id is None:
                raise InvalidOrExpiredRefreshToken()

            row = await self.store.find_user_by_id(owner_id)
            if row is not None:
                user = to_auth_user(row)
                new_refresh = await self._issue_refresh_token(user.id)

        # The old token stays consumed even when its owner is gone.
        if user is None:
            logger.warning("refresh token for missing user %s consumed", owner_id)
            raise UserNotFound()

        self._event("auth.refresh", user_id=user.id)
        return AuthResult(self._issue_access_token(signer, user), new_refresh, user)

    # -------------------------------
    # Logout (revoke refresh token)
    # -------------------------------
    async def revoke(self, refresh_token: str) -> None:
        async with self.store.transaction():
            deleted = await self.store.delete_refresh_token(hash_refresh_token(refresh_token))
        self._event("auth.logout", revoked=bool(deleted))

    async def current_user(self, user_id: int) -> AuthUser:
        row = await self.store.find_user_by_id(user_id)
        if row is None:
            raise UserNotFound()
        return to_auth_user(row)
