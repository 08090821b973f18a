# core/auth_utils.py
from __future__ import annotations

import hashlib
import re
import secrets
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWTError
from passlib.context import CryptContext

from core.errors import ERRORS, InvalidToken, InvalidTtlFormat, ServiceNotConfigured

ALGORITHM = "HS256"
MIN_SECRET_LENGTH = 32
REFRESH_TOKEN_BYTES = 32

_TTL_RE = re.compile(r"^([0-9]+)([smhd])$")
_TTL_MULTIPLIERS_MS = {
    "s": 1000,
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
}
_LEADING_INT_RE = re.compile(r"^[+-]?[0-9]+")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# -------------------------------------------------------------------
# Input normalisation
# -------------------------------------------------------------------
def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def parse_ttl_ms(ttl: str) -> int:
    """
    Parse a duration like "15m" or "7d" into milliseconds.

    Grammar is <integer><s|m|h|d>, case-insensitive, surrounding whitespace allowed.
    Anything else raises InvalidTtlFormat; there is no fallback default.
    """
    match = _TTL_RE.match((ttl or "").strip().lower())
    if not match:
        raise InvalidTtlFormat(f"{ERRORS['INVALID_TTL_FORMAT']}: {ttl!r}")
    return int(match.group(1)) * _TTL_MULTIPLIERS_MS[match.group(2)]


def ttl_delta(ttl: str) -> timedelta:
    """Duration as a timedelta; values that overflow a datetime from now are rejected too."""
    try:
        delta = timedelta(milliseconds=parse_ttl_ms(ttl))
        utcnow() + delta
    except OverflowError:
        raise InvalidTtlFormat(f"{ERRORS['INVALID_TTL_FORMAT']}: {ttl!r} is out of range")
    return delta


def parse_user_id_from_sub(sub: Any) -> int:
    """Token subject -> user id. Leading digits win ("99x" -> 99); empty or non-numeric is rejected."""
    match = _LEADING_INT_RE.match(str(sub if sub is not None else "").strip())
    if not match:
        raise InvalidToken()
    return int(match.group(0))


# -------------------------------------------------------------------
# Password hashing (Argon2)
# -------------------------------------------------------------------
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


@lru_cache(maxsize=1)
def _dummy_password_hash() -> str:
    return pwd_context.hash(secrets.token_hex(16))


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        # Same argon2 cost as a real check, so a missing account is not faster.
        pwd_context.verify(plain_password or "", _dummy_password_hash())
        return False
    return pwd_context.verify(plain_password, hashed_password)


# -------------------------------------------------------------------
# Refresh token helpers (Random + hashed)
# -------------------------------------------------------------------
def new_refresh_token_raw() -> str:
    # 256 bits, hex for transport. Only the digest is stored server-side.
    return secrets.token_hex(REFRESH_TOKEN_BYTES)


def hash_refresh_token(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


# -------------------------------------------------------------------
# JWT signer (Access token)
# -------------------------------------------------------------------
class JwtSigner:
    """Signs and verifies short-lived access tokens with a server-held secret."""

    def __init__(self, secret: str, algorithm: str = ALGORITHM):
        if not secret or len(secret) < MIN_SECRET_LENGTH:
            raise ValueError(f"JWT secret must be at least {MIN_SECRET_LENGTH} characters")
        self._secret = secret
        self.algorithm = algorithm

    def sign(self, claims: Dict[str, Any], ttl: str, now: Optional[datetime] = None) -> str:
        issued = now or utcnow()
        expire = issued + ttl_delta(ttl)
        payload = dict(claims)
        payload["iat"] = int(issued.timestamp())
        payload["exp"] = int(expire.timestamp())
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise InvalidToken(ERRORS["TOKEN_EXPIRED"])
        except PyJWTError:
            raise InvalidToken()
        if not payload.get("sub"):
            raise InvalidToken()
        return payload


# -------------------------------------------------------------------
# FastAPI dependency
# -------------------------------------------------------------------
bearer_scheme = HTTPBearer(auto_error=False)


def get_signer(request: Request) -> JwtSigner:
    signer = getattr(request.app.state, "signer", None)
    if signer is None:
        raise ServiceNotConfigured()
    return signer


def get_current_user_id(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    signer: JwtSigner = Depends(get_signer),
) -> int:
    """
    Returns authenticated user id (JWT 'sub').

    - No Authorization header -> 401
    - Not Bearer -> 401
    - Invalid/expired -> 401
    """
    if creds is None:
        raise InvalidToken(ERRORS["MISSING_AUTHORIZATION"])
    if creds.scheme.lower() != "bearer":
        raise InvalidToken("Invalid auth scheme")

    payload = signer.verify(creds.credentials)
    return parse_user_id_from_sub(payload["sub"])
