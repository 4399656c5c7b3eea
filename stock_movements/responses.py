from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from stock_movements.errors import GeneralError, StockMovementError
from stock_movements.schemas import ApiResponse, ErrorBody, ErrorResponse, ResponseMetadata

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def success_response(data: Any) -> ApiResponse:
    return ApiResponse(success=True, data=data, metadata=ResponseMetadata(timestamp=_utcnow()))


def error_response(message: str, details: Optional[Any] = None) -> ErrorResponse:
    return ErrorResponse(
        success=False,
        error=ErrorBody(message=message, details=details),
        timestamp=_utcnow(),
    )


def _render(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body, exclude_none=True),
    )


async def stock_movement_error_handler(request: Request, exc: StockMovementError) -> JSONResponse:
    if exc.status_code >= 500:
        return _render(500, error_response(GeneralError().message))
    return _render(exc.status_code, error_response(exc.message, exc.details))


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]) or "body",
            "message": str(err.get("msg", "Invalid value")),
        }
        for err in exc.errors()
    ]
    return _render(400, error_response("Validation failed", details))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _render(500, error_response(GeneralError().message))
