from __future__ import annotations

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from fxdeals.db.database import StorageUnavailableError
from fxdeals.importer.errors import DealImportError, DealValidationError
from fxdeals.intake.models import field_errors_from

logger = logging.getLogger(__name__)


class ProblemDetail(BaseModel):
    """RFC 7807 Problem Details response."""

    type: str = "about:blank"
    title: str
    status: int
    detail: str
    instance: str | None = None
    errors: list[dict] | None = None


def _problem_response(problem: ProblemDetail) -> JSONResponse:
    return JSONResponse(
        status_code=problem.status, content=problem.model_dump(exclude_none=True)
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    field_errors = field_errors_from(exc.errors())
    logger.warning(
        "Validation error on %s: %d field errors", request.url.path, len(field_errors)
    )
    problem = ProblemDetail(
        type="urn:fxdeals:error:validation",
        title="Validation Failed",
        status=400,
        detail="; ".join(f"{e.field}: {e.message}" for e in field_errors),
        instance=str(request.url),
        errors=[e.model_dump() for e in field_errors],
    )
    return _problem_response(problem)


async def deal_import_exception_handler(
    request: Request, exc: DealImportError
) -> JSONResponse:
    logger.warning("%s: %s", exc.title, exc.message)
    errors = None
    if isinstance(exc, DealValidationError):
        errors = [e.model_dump() for e in exc.errors]
    problem = ProblemDetail(
        type=exc.problem_type,
        title=exc.title,
        status=exc.status_code,
        detail=exc.message,
        instance=str(request.url),
        errors=errors,
    )
    return _problem_response(problem)


async def storage_unavailable_handler(
    request: Request, exc: StorageUnavailableError
) -> JSONResponse:
    logger.error("Deal store unavailable: %s", exc)
    problem = ProblemDetail(
        type="urn:fxdeals:error:storage-unavailable",
        title="Service Unavailable",
        status=503,
        detail="The deal store is temporarily unavailable. Please retry later.",
        instance=str(request.url),
    )
    response = _problem_response(problem)
    response.headers["Retry-After"] = "5"
    return response


async def unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error occurred on %s", request.url.path)
    problem = ProblemDetail(
        type="urn:fxdeals:error:internal",
        title="Internal Server Error",
        status=500,
        detail="An unexpected error occurred. Please contact support.",
        instance=str(request.url),
    )
    return _problem_response(problem)
