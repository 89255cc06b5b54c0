from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api import router
from datastore.tables import build_default_readings_table, build_default_thresholds_table
from logging_config import configure_logging
from models.errors import RecordValidationError, StorageError
from services.records import build_default_reading_service, build_default_threshold_service

logger = logging.getLogger(__name__)

_CACHED_FACTORIES = (
    build_default_reading_service,
    build_default_threshold_service,
    build_default_readings_table,
    build_default_thresholds_table,
)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    build_default_reading_service()
    build_default_threshold_service()
    try:
        yield
    finally:
        for factory in _CACHED_FACTORIES:
            factory.cache_clear()


async def _validation_error_handler(_request: Request, exc: RecordValidationError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(exc)})


async def _malformed_body_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


async def _storage_error_handler(_request: Request, exc: StorageError) -> JSONResponse:
    logger.error("Storage failure", extra={"reason": str(exc)})
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": str(exc)},
    )


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Temperature Monitor",
        description="Threshold settings and historical temperature readings.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_exception_handler(RecordValidationError, _validation_error_handler)
    app.add_exception_handler(RequestValidationError, _malformed_body_handler)
    app.add_exception_handler(StorageError, _storage_error_handler)
    app.include_router(router)
    return app

app = create_app()
