"""Exception handlers rendering service errors as JSON."""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from kapkurtar.errors import RateLimited, ServiceError, ValidationError
from kapkurtar.logging import get_logger

logger = get_logger(__name__)


def error_response(error: ServiceError) -> JSONResponse:
    headers = None
    if isinstance(error, RateLimited):
        headers = {"Retry-After": str(error.retry_after)}
    return JSONResponse(
        status_code=error.http_status,
        content={"error": error.to_dict()},
        headers=headers,
    )


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Map a ServiceError to its HTTP status and error body."""
    log = logger.error if exc.http_status >= 500 else logger.info
    log(
        "request_failed",
        path=request.url.path,
        method=request.method,
        code=exc.code,
        status=exc.http_status,
        error_message=exc.message,
    )
    return error_response(exc)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies and parameters are validation errors too."""
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    logger.info("request_validation_failed", path=request.url.path, errors=errors)
    return error_response(ValidationError("Invalid request", details={"errors": errors}))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
