# secureshare/api/errors.py
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from secureshare.api.schemas import ErrorResponse
from secureshare.domain.errors import (
    Expired,
    InvalidCredential,
    LockedOut,
    NotFound,
    SlotShareError,
    StorageFault,
    ValidationError,
)
from secureshare.logger import get_logger

logger = get_logger(__name__)

STATUS_BY_ERROR = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (InvalidCredential, status.HTTP_401_UNAUTHORIZED),
    (LockedOut, status.HTTP_403_FORBIDDEN),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (Expired, status.HTTP_410_GONE),
    (StorageFault, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_for(error: SlotShareError) -> int:
    for error_cls, status_code in STATUS_BY_ERROR:
        if isinstance(error, error_cls):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def to_error_response(error: SlotShareError) -> ErrorResponse:
    if isinstance(error, StorageFault):
        return ErrorResponse(error="Internal server error")
    body = ErrorResponse(error=error.message)
    if isinstance(error, InvalidCredential):
        body.remaining_attempts = error.remaining_attempts
    elif isinstance(error, LockedOut):
        body.remaining_attempts = 0
        body.deleted = True
    return body


async def handle_slot_error(request: Request, exc: SlotShareError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    body = to_error_response(exc)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SlotShareError, handle_slot_error)
