from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..services.code_sync import CodeConflict, MissingGroundTruth

logger = logging.getLogger(__name__)


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        code="http_error",
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return ErrorEnvelope(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code="validation_error",
        message="Validation failed",
        details={"errors": jsonable_encoder(exc.errors())},
    )


async def missing_code_handler(request: Request, exc: MissingGroundTruth):
    logger.warning("Sync refused for product without code", extra={"extra_data": {"product_id": exc.product_id}})
    return ErrorEnvelope(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code="missing_code",
        message=str(exc),
        details={"product_id": exc.product_id},
    )


async def code_conflict_handler(request: Request, exc: CodeConflict):
    logger.error(
        "Code resolution exhausted",
        extra={"extra_data": {"product_id": exc.product_id, "candidate": exc.candidate, "attempts": exc.attempts}},
    )
    return ErrorEnvelope(
        status_code=status.HTTP_409_CONFLICT,
        code="code_conflict",
        message=str(exc),
        details={"product_id": exc.product_id, "candidate": exc.candidate, "attempts": exc.attempts},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(MissingGroundTruth, missing_code_handler)
    app.add_exception_handler(CodeConflict, code_conflict_handler)
