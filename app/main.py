"""FastAPI application entry point."""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from tortoise.contrib.fastapi import register_tortoise
from tortoise.exceptions import BaseORMException

from app import settings
from app.errors import UpstreamFailure
from app.routers import admin, booking, comedian, gig, notification

TORTOISE_MODULES = {"models": ["app.models"]}


async def store_failure_handler(request: Request, exc: BaseORMException) -> JSONResponse:
    """The store is unreachable or refused the write; keep the cause server-side."""
    logger.opt(exception=exc).error("Store failure on {} {}", request.method, request.url.path)
    err = UpstreamFailure()
    return JSONResponse(status_code=err.status_code, content={"detail": err.detail})


def create_app(with_db: bool = True) -> FastAPI:
    app = FastAPI(title="Gig Bookings", version="1.0.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Admin-Token"],
    )
    app.add_exception_handler(BaseORMException, store_failure_handler)

    for module in (admin, booking, comedian, gig, notification):
        app.include_router(module.router)

    if with_db:
        register_tortoise(
            app,
            db_url=settings.db_url,
            modules=TORTOISE_MODULES,
            generate_schemas=True,
        )
    return app


app = create_app()
