"""Exception handlers mapping the ordering error taxonomy to HTTP responses.

Customers only ever see an error category and a generic, actionable
message. Administrator routes (``/admin/...``) also receive the specific
reason, e.g. which transition was refused.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError

from ordering.errors import (
    ErrorCategory,
    ForbiddenTransitionError,
    GatewayUnavailableError,
    IllegalTransitionError,
    InvalidOrderError,
    PaymentFailedError,
    ProductUnavailableError,
    customer_message,
)

logger = structlog.get_logger(__name__)

_STATUS_CODES = {
    InvalidOrderError: 400,
    PaymentFailedError: 402,
    ForbiddenTransitionError: 403,
    ObjectNotFoundError: 404,
    IllegalTransitionError: 409,
    ProductUnavailableError: 409,
    GatewayUnavailableError: 503,
}


def _is_admin_request(request: Request) -> bool:
    return request.url.path.startswith("/admin")


def _error_body(request: Request, exc: Exception, category: ErrorCategory) -> dict:
    body = {"error": category.value, "message": customer_message(category)}
    if _is_admin_request(request):
        messages = getattr(exc, "messages", None)
        body["detail"] = messages if messages else str(exc)
    return body


def _handler(status_code: int):
    async def handle(request: Request, exc: Exception) -> JSONResponse:
        category = getattr(exc, "category", ErrorCategory.FIX_REQUEST)
        log = logger.error if status_code >= 500 else logger.warning
        log(
            "request_failed",
            path=request.url.path,
            status_code=status_code,
            error=type(exc).__name__,
            category=category.value,
        )
        return JSONResponse(status_code=status_code, content=_error_body(request, exc, category))

    return handle


async def _not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    body = {"error": "not_found", "message": "Order not found"}
    if _is_admin_request(request):
        body["detail"] = str(exc)
    return JSONResponse(status_code=404, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """Install handlers for the ordering errors.

    Call after Protean's ``register_exception_handlers`` so these more
    specific handlers take over for the ordering error subclasses.
    """
    for exc_class, status_code in _STATUS_CODES.items():
        if exc_class is ObjectNotFoundError:
            app.add_exception_handler(exc_class, _not_found)
        else:
            app.add_exception_handler(exc_class, _handler(status_code))
