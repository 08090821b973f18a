#main.py
from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine

from api.auth import router as auth_router
from api.health import router as health_router
from api.profit import router as profit_router
from core.auth_utils import JwtSigner
from core.database import create_engine, create_sessionmaker, init_models
from core.errors import install_error_handlers
from settings import Settings, load_settings
from telemetry.logger import configure_logging, get_logger

logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None, engine: Optional[AsyncEngine] = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="ProfitOS API", version="0.1.0")
    app.state.settings = settings
    app.state.signer = JwtSigner(settings.jwt_secret) if settings.jwt_secret else None
    app.state.engine = None
    app.state.session_factory = None

    if engine is None and settings.database_url:
        engine = create_engine(settings.database_url)
    if engine is not None:
        app.state.engine = engine
        app.state.session_factory = create_sessionmaker(engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)

    app.include_router(health_router)

    # Auth and everything behind it only exist when both JWT and DB are configured.
    if settings.jwt_secret and app.state.engine is not None:
        app.include_router(auth_router)
        app.include_router(profit_router)
    else:
        logger.warning("JWT_SECRET or DATABASE_URL missing; auth routes disabled")

    @app.on_event("startup")
    async def startup():
        if app.state.engine is not None:
            await init_models(app.state.engine)

    @app.on_event("shutdown")
    async def shutdown():
        if app.state.engine is not None:
            await app.state.engine.dispose()

    return app


if __name__ == "__main__":
    import uvicorn

    _settings = load_settings()
    uvicorn.run(create_app(_settings), host="0.0.0.0", port=_settings.port)
