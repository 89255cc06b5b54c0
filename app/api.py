"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Body, Depends, Header, Query, status

from app.schemas import Page, Pagination, Reading, Threshold
from services.records import (
    ReadingService,
    RecordService,
    ThresholdService,
    build_default_reading_service,
    build_default_threshold_service,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
_LEADING_INT = re.compile(r"\s*[+-]?\d+", re.ASCII)

router = APIRouter()


def get_reading_service() -> ReadingService:
    return build_default_reading_service()


def get_threshold_service() -> ThresholdService:
    return build_default_threshold_service()


def get_bearer_token(authorization: Optional[str] = Header(default=None)) -> Optional[str]:
    """Extract the bearer token, if any. The token is not verified here."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _parse_positive_int(raw: Optional[str], default: int) -> int:
    """Read the leading integer of ``raw``, so "2.5" is 2 and "3abc" is 3."""
    if raw is None:
        return default
    match = _LEADING_INT.match(raw)
    if match is None:
        return default
    parsed = int(match.group(0))
    return parsed if parsed > 0 else default


def _paginate(service: RecordService, page: Optional[str], limit: Optional[str]) -> Page:
    page_number = _parse_positive_int(page, DEFAULT_PAGE)
    page_size = _parse_positive_int(limit, DEFAULT_LIMIT)
    result = service.list_paginated(page_number, page_size)
    return Page(
        data=result.data,
        pagination=Pagination.build(page_number, page_size, result.total_count),
    )


@router.get(
    "/api/readings",
    response_model=Union[List[Reading], Page[Reading]],
    summary="List the most recent readings, or one page of them with ?paginated.",
)
async def list_readings(
    paginated: Optional[str] = Query(default=None),
    page: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None),
    service: ReadingService = Depends(get_reading_service),
) -> Union[List[Reading], Page[Reading]]:
    if paginated is not None:
        return _paginate(service, page, limit)
    return service.list()


@router.get(
    "/api/readings/paginated",
    response_model=Page[Reading],
    summary="Fetch one page of readings, newest first.",
)
async def list_readings_paginated(
    page: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None),
    service: ReadingService = Depends(get_reading_service),
) -> Page[Reading]:
    return _paginate(service, page, limit)


@router.get(
    "/api/readings/latest",
    response_model=Optional[Reading],
    summary="Fetch the most recent reading, or null when none exist.",
)
async def latest_reading(
    service: ReadingService = Depends(get_reading_service),
) -> Optional[Reading]:
    return service.latest()


@router.post(
    "/api/readings",
    status_code=status.HTTP_201_CREATED,
    response_model=Reading,
    summary="Store a temperature reading.",
)
async def create_reading(
    payload: Any = Body(default=None),
    service: ReadingService = Depends(get_reading_service),
) -> Reading:
    return service.create(payload)


@router.get(
    "/api/thresholds",
    response_model=Union[List[Threshold], Page[Threshold]],
    summary="List the most recent thresholds, or one page of them with ?paginated.",
)
async def list_thresholds(
    paginated: Optional[str] = Query(default=None),
    page: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None),
    service: ThresholdService = Depends(get_threshold_service),
    _token: Optional[str] = Depends(get_bearer_token),
) -> Union[List[Threshold], Page[Threshold]]:
    if paginated is not None:
        return _paginate(service, page, limit)
    return service.list()


@router.get(
    "/api/thresholds/paginated",
    response_model=Page[Threshold],
    summary="Fetch one page of thresholds, newest first.",
)
async def list_thresholds_paginated(
    page: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None),
    service: ThresholdService = Depends(get_threshold_service),
    _token: Optional[str] = Depends(get_bearer_token),
) -> Page[Threshold]:
    return _paginate(service, page, limit)


@router.get(
    "/api/thresholds/latest",
    response_model=Optional[Threshold],
    summary="Fetch the active threshold, or null when none exist.",
)
async def latest_threshold(
    service: ThresholdService = Depends(get_threshold_service),
    _token: Optional[str] = Depends(get_bearer_token),
) -> Optional[Threshold]:
    return service.latest()


@router.post(
    "/api/thresholds",
    status_code=status.HTTP_201_CREATED,
    response_model=Threshold,
    summary="Create a new threshold, which becomes the active one.",
)
async def create_threshold(
    payload: Any = Body(default=None),
    service: ThresholdService = Depends(get_threshold_service),
    token: Optional[str] = Depends(get_bearer_token),
) -> Threshold:
    if token is None:
        # TODO: reject anonymous writes once the session provider's tokens can be verified here.
        logger.info("Anonymous threshold write", extra={"resource": "thresholds"})
    return service.create(payload)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> Dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> Dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
