"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import districts, health, users
from .api.routes.users import users_validation_handler
from .config import settings
from .data.gazetteer import load_gazetteer


@asynccontextmanager
async def lifespan(app: FastAPI):
    # A missing or malformed gazetteer aborts startup.
    gazetteer = load_gazetteer()
    logging.getLogger(__name__).info(f"{settings.app_name} ready with {len(gazetteer)} districts")
    yield


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Root endpoint for diagnostics
    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "users": f"{settings.api_prefix}{settings.users_prefix}",
            "health": f"{settings.api_prefix}/health",
            "docs": "/docs",
        }

    app.add_exception_handler(RequestValidationError, users_validation_handler)
    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(districts.router, prefix=settings.api_prefix)
    app.include_router(users.router, prefix=settings.api_prefix)
    return app


app = create_app()
