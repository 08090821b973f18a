# api/auth.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth_store import AuthStore
from core.auth_utils import get_current_user_id
from core.database import get_async_session
from core.errors import ERRORS, AppError
from core.sessions import AuthResult, AuthUser, SessionManager

router = APIRouter(prefix="/v1/auth", tags=["auth"])


# -------------------------------
# Schemas
# -------------------------------
class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)

class RefreshTokenBody(BaseModel):
    refreshToken: Optional[str] = Field(default=None, min_length=1, max_length=300)

class AuthUserOut(BaseModel):
    id: int
    email: str
    createdAt: str

class AuthResponse(BaseModel):
    accessToken: str
    refreshToken: str
    user: AuthUserOut

class ErrorResponse(BaseModel):
    error: str
    code: Optional[str] = None


def _user_out(user: AuthUser) -> AuthUserOut:
    return AuthUserOut(id=user.id, email=user.email, createdAt=user.created_at.isoformat())


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        accessToken=result.access_token,
        refreshToken=result.refresh_token,
        user=_user_out(result.user),
    )


def get_session_manager(request: Request, session: AsyncSession = Depends(get_async_session)) -> SessionManager:
    state = request.app.state
    return SessionManager(AuthStore(session), getattr(state, "signer", None), state.settings)


# -------------------------------
# Register
# -------------------------------
@router.post("/register", response_model=AuthResponse, responses={409: {"model": ErrorResponse}})
async def register(req: RegisterRequest, manager: SessionManager = Depends(get_session_manager)):
    return _auth_response(await manager.register(req.email, req.password))


# -------------------------------
# Login
# -------------------------------
@router.post("/login", response_model=AuthResponse, responses={401: {"model": ErrorResponse}})
async def login(req: LoginRequest, manager: SessionManager = Depends(get_session_manager)):
    return _auth_response(await manager.login(req.email, req.password))


# -------------------------------
# Refresh (ROTATION)
# -------------------------------
@router.post(
    "/refresh",
    response_model=AuthResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def refresh(req: RefreshTokenBody, manager: SessionManager = Depends(get_session_manager)):
    if not req.refreshToken:
        raise AppError(ERRORS["REFRESH_TOKEN_REQUIRED"], status_code=400)
    return _auth_response(await manager.refresh(req.refreshToken))


# -------------------------------
# Logout (revoke refresh token)
# -------------------------------
@router.post("/logout", status_code=204, response_class=Response)
async def logout(req: RefreshTokenBody, manager: SessionManager = Depends(get_session_manager)):
    if req.refreshToken:
        await manager.revoke(req.refreshToken)
    return Response(status_code=204)


# -------------------------------
# Current user
# -------------------------------
@router.get("/me", response_model=AuthUserOut, responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}})
async def me(
    user_id: int = Depends(get_current_user_id),
    manager: SessionManager = Depends(get_session_manager),
):
    return _user_out(await manager.current_user(user_id))
