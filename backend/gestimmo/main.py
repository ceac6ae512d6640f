# backend/gestimmo/main.py
from __future__ import annotations

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .config import settings
from .db import Base, engine
from .errors import install_exception_handlers
from .logging_config import configure_logging
from .realtime.event_bus import EventBus

from .middleware.request_id import RequestIDMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware
from .middleware.realtime_mutations import RealtimeMutationMiddleware

from .routers.health import router as health_router
from .routers.auth import router as auth_router
from .routers.cron import router as cron_router
from .routers.realtime import router as realtime_router

from .routers import properties, tenants, contracts, payments, maintenance
from .routers.documents import router as documents_router
from .routers.notifications import router as notifications_router
from .routers.users import router as users_router

from . import models  # noqa: F401  (registers tables on Base.metadata)

API_PREFIX = "/api"
WEB_PREFIX = "/api/web"
MOBILE_PREFIX = "/api/mobile"


def _cors_origins() -> list[str]:
    val = getattr(settings, "cors_allow_origins", ["*"])
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    if settings.auto_create_tables:
        Base.metadata.create_all(bind=engine)
    app.state.event_bus = EventBus()
    try:
        yield
    finally:
        app.state.event_bus.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Gestimmo API",
        version=getattr(settings, "app_version", "dev"),
        lifespan=lifespan,
    )

    # Last added runs first: request id, then logging, then the mutation feed.
    app.add_middleware(RealtimeMutationMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_exception_handlers(app)

    # Core
    app.include_router(health_router)
    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(cron_router, prefix=API_PREFIX)
    app.include_router(realtime_router)

    # Web back office (staff)
    app.include_router(properties.router, prefix=WEB_PREFIX)
    app.include_router(tenants.router, prefix=WEB_PREFIX)
    app.include_router(contracts.router, prefix=WEB_PREFIX)
    app.include_router(payments.router, prefix=WEB_PREFIX)
    app.include_router(maintenance.router, prefix=WEB_PREFIX)
    app.include_router(documents_router, prefix=WEB_PREFIX)
    app.include_router(notifications_router, prefix=WEB_PREFIX)
    app.include_router(users_router, prefix=WEB_PREFIX)

    # Mobile (tenant)
    app.include_router(properties.mobile_router, prefix=MOBILE_PREFIX)
    app.include_router(tenants.mobile_router, prefix=MOBILE_PREFIX)
    app.include_router(contracts.mobile_router, prefix=MOBILE_PREFIX)
    app.include_router(payments.mobile_router, prefix=MOBILE_PREFIX)
    app.include_router(maintenance.mobile_router, prefix=MOBILE_PREFIX)
    app.include_router(documents_router, prefix=MOBILE_PREFIX)
    app.include_router(notifications_router, prefix=MOBILE_PREFIX)

    # Public
    app.include_router(properties.public_router, prefix=f"{API_PREFIX}/public")

    # Legacy unprefixed staff routes
    app.include_router(properties.router, prefix=API_PREFIX)
    app.include_router(tenants.router, prefix=API_PREFIX)
    app.include_router(contracts.router, prefix=API_PREFIX)
    app.include_router(payments.router, prefix=API_PREFIX)
    app.include_router(maintenance.router, prefix=API_PREFIX)

    os.makedirs(settings.storage_dir, exist_ok=True)
    app.mount(settings.storage_public_base_url, StaticFiles(directory=settings.storage_dir), name="storage")

    return app


app = create_app()
