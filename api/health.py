# api/health.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from core.database import ping

router = APIRouter(prefix="/v1/health", tags=["health"])


class HealthResponse(BaseModel):
    status: Literal["ok"]
    timestamp: str

class ReadinessResponse(BaseModel):
    status: Literal["ok", "error"]
    timestamp: str
    db: Literal["ok", "not_checked", "error"]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("", response_model=HealthResponse, summary="Liveness: process is alive")
@router.get("/", response_model=HealthResponse, include_in_schema=False)
async def health():
    return HealthResponse(status="ok", timestamp=_now_iso())


@router.get("/ready", response_model=ReadinessResponse, summary="Readiness: alive and DB reachable")
async def ready(request: Request):
    engine = getattr(request.app.state, "engine", None)
    db = "not_checked"
    if engine is not None:
        db = "ok" if await ping(engine) else "error"

    body = ReadinessResponse(status="error" if db == "error" else "ok", timestamp=_now_iso(), db=db)
    if db == "error":
        return JSONResponse(body.model_dump(), status_code=503)
    return body
