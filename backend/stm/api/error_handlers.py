"""Error Handlers — every failure leaves the API as the same JSON envelope.

Invariants:
    - TaskManagerError -> its http_status and to_response() body
    - RequestValidationError (malformed body or query) -> 400 VALIDATION_ERROR
      with one entry per offending field
    - Anything else -> 500 INTERNAL_ERROR; the exception stays in the logs
    - 4xx are logged at WARNING, 5xx at ERROR

Design Decisions:
    - Malformed requests share the 400 status of domain validation failures:
      clients see one "invalid input" contract
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from stm.core.errors import ErrorCategory, ErrorSeverity, TaskManagerError

logger = logging.getLogger(__name__)


def _envelope(code: str, message: str, category: ErrorCategory, **fields) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "category": category.value,
            "severity": ErrorSeverity.ERROR.value,
            **fields,
        },
    }


async def handle_task_manager_error(request: Request, exc: TaskManagerError):
    log = logger.error if exc.http_status >= 500 else logger.warning
    log(
        f"{exc.code} on {request.method} {request.url.path}: {exc.message}",
        extra={
            "error_code": exc.code, "path": request.url.path,
            "project_id": exc.context.project_id, "task_id": exc.context.task_id,
            "user": exc.context.user,
        },
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in e["loc"]),
            "message": e["msg"],
            "type": e["type"],
        }
        for e in exc.errors()
    ]
    logger.warning(
        f"Malformed request on {request.url.path}: {details}",
        extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_envelope(
            "VALIDATION_ERROR", "Invalid request data", ErrorCategory.VALIDATION,
            details=details,
        ),
    )


async def handle_unexpected_error(request: Request, exc: Exception):
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.url.path}: {exc}",
        exc_info=exc, extra={"path": request.url.path},
    )
    body = _envelope(
        "INTERNAL_ERROR", "An unexpected error occurred", ErrorCategory.INTERNAL,
    )
    body["error"]["severity"] = ErrorSeverity.CRITICAL.value
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TaskManagerError, handle_task_manager_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
