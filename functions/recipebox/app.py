"""
FastAPI application entry point for the recipe API.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from recipebox.config import get_settings
from recipebox.errors import ApiError
from recipebox.routes import router

logger = logging.getLogger(__name__)


async def _handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers
    )


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    if not settings.google_client_id:
        logger.warning("GOOGLE_CLIENT_ID is not set; Google tokens will be rejected")

    app = FastAPI(title="Recipe Box API", version="0.1.0")
    app.include_router(router, prefix=settings.api_prefix)
    app.add_exception_handler(ApiError, _handle_api_error)
    return app


app = create_app()
