"""
FastAPI application entry point.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from escool.config import get_settings
from escool.errors import StorageError, ValidationFailure
from escool.routes import router

logger = logging.getLogger(__name__)


async def _validation_failure_handler(request: Request, exc: ValidationFailure):
    return JSONResponse(status_code=400, content={"error": str(exc)})


async def _storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": "Storage operation failed"})


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    app = FastAPI(title="eSchool Backend (FastAPI)", version="0.1.0")
    app.add_exception_handler(ValidationFailure, _validation_failure_handler)
    app.add_exception_handler(StorageError, _storage_error_handler)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
