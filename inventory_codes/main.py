"""Application factory: the one place where the service is wired together."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from .core.cache import TTLCache
from .core.config import AppSettings, settings as default_settings
from .core.errors import register_exception_handlers
from .core.logging import configure_logging
from .db.session import Base, engine
from .middlewares import RequestIdMiddleware

# Registers the products table on ``Base.metadata``.
from .models import product as _product  # noqa: F401
from .routers import api_auth as api_auth_router
from .routers import api_products as api_products_router


def create_app(settings: AppSettings | None = None, auth_cache: TTLCache | None = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)
    Base.metadata.create_all(bind=engine)

    app = FastAPI(title=settings.APP_NAME)
    # The token cache belongs to this app instance; dependencies reach it
    # through ``request.app.state``.
    app.state.auth_cache = auth_cache or TTLCache(default_ttl=settings.AUTH_CACHE_TTL_SECONDS)

    app.add_middleware(RequestIdMiddleware)
    if settings.ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.ALLOWED_ORIGINS,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    register_exception_handlers(app)

    app.include_router(api_auth_router.router)
    app.include_router(api_products_router.router)

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    Instrumentator().instrument(app).expose(app, include_in_schema=False)
    return app


app = create_app()
