"""Translate operation failures into HTTP errors."""

from fastapi import HTTPException

from taskboard.api.models import OperationResult
from taskboard.errors import (
    AuthFailure,
    NetworkFailure,
    NotFoundFailure,
    ServerFailure,
    TaskboardError,
    ValidationFailure,
)


def http_exception_for(error: TaskboardError, message: str | None = None) -> HTTPException:
    """Map an error onto a status code; validation errors keep their field messages.

    Args:
        error: Failure to translate
        message: Detail to report instead of the error's own message
    """
    detail = message or error.message
    if isinstance(error, AuthFailure):
        return HTTPException(status_code=401, detail=detail)
    if isinstance(error, ValidationFailure):
        return HTTPException(
            status_code=422, detail={"message": detail, "errors": error.field_errors}
        )
    if isinstance(error, NotFoundFailure):
        return HTTPException(status_code=404, detail=detail)
    if isinstance(error, (NetworkFailure, ServerFailure)):
        return HTTPException(status_code=502, detail=detail)
    status_code = error.status_code if error.status_code and 400 <= error.status_code < 500 else 400
    return HTTPException(status_code=status_code, detail=detail)


def raise_for_result(result: OperationResult) -> None:
    """Raise HTTPException for an unsuccessful result.

    Raises:
        HTTPException: Mapped from result.error, 400 when there is none
    """
    if result.success:
        return
    if result.error is not None:
        raise http_exception_for(result.error, result.message)
    raise HTTPException(status_code=400, detail=result.message or "Request failed")
