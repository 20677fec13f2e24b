from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import router
from datastore.database import build_default_engine
from logging_config import configure_logging
from services.submission import build_default_submission_service
from services.users import build_default_user_export_service

METHOD_NOT_SUPPORTED_MSG = "Method not supported"


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    engine = build_default_engine()
    try:
        yield
    finally:
        engine.dispose()
        build_default_submission_service.cache_clear()
        build_default_user_export_service.cache_clear()
        build_default_engine.cache_clear()


async def plain_text_http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> Response:
    """Render HTTP errors as plain-text messages; unknown paths keep the default body."""
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return await http_exception_handler(request, exc)
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        return PlainTextResponse(
            METHOD_NOT_SUPPORTED_MSG,
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code)


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="IoT Device Ingest",
        description="Validates, deduplicates and stores IoT device submissions; exports users.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_exception_handler(StarletteHTTPException, plain_text_http_exception_handler)
    app.include_router(router)
    return app

app = create_app()
