"""
Lime Core Backend — Envelope & Error Translation
==================================================

What:  Turns the outcome of one service call into exactly one of two shapes:
           {"status": "success", "data": <result>, "message": <success message>}
           {"status": "error",   "data": null|false, "message": <fault message>}
How:   `respond()` awaits a single service coroutine and maps
           result             → success envelope (HTTP 200/201)
           None (absent)      → "<Resource> not found" error envelope (HTTP 404)
           LimeError          → error envelope with the fault's message/status
           any other fault    → 500 error envelope with str(fault), falling
                                back to the operation's fallback message
       The same classification is used by the global exception handlers in
       `main.py` for faults raised outside a handler body (auth dependencies,
       request validation, middleware).
Who:   Every route handler in `lime_core.routes`.

HTTP status convention:
    Error envelopes are always sent with the matching non-2xx status. The
    envelope's `status` field stays the primary signal; the HTTP status is
    secondary and agrees with it.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, TypeVar, Union

from fastapi.responses import JSONResponse

from lime_core.exceptions import LimeError, RateLimitExceededError
from lime_core.middleware.request_id import request_id_var
from lime_core.schemas.envelope import ApiResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_FALLBACK_MESSAGE = "An unexpected error occurred"

SuccessMessage = Union[str, Callable[[Any], str]]


def success(data: T, message: str) -> ApiResponse[T]:
    """Build a success envelope around an operation's real result."""
    return ApiResponse(status="success", data=data, message=message)


def error_response(
    message: str,
    status_code: int = 500,
    data: Optional[bool] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """
    Build an error envelope response.

    `data` is None for every operation except deletes, whose error envelopes
    carry False.
    """
    envelope = ApiResponse(status="error", data=data, message=message)
    return JSONResponse(
        status_code=status_code,
        content=envelope.model_dump(mode="json"),
        headers=headers,
    )


def classify_fault(
    exc: BaseException,
    fallback_message: str = DEFAULT_FALLBACK_MESSAGE,
) -> Tuple[int, str]:
    """
    Map a fault to (HTTP status, user-facing message).

    Recognized application faults keep their own status and message.
    Anything else is a 500 with the exception text, or the fallback when
    the exception carries no text.
    """
    if isinstance(exc, LimeError):
        return exc.status_code, exc.message or fallback_message
    return 500, str(exc) or fallback_message


def fault_response(
    exc: BaseException,
    fallback_message: str = DEFAULT_FALLBACK_MESSAGE,
    data: Optional[bool] = None,
) -> JSONResponse:
    """Log a fault, then translate it into an error envelope response."""
    status_code, message = classify_fault(exc, fallback_message)
    rid = request_id_var.get("")

    if isinstance(exc, LimeError):
        log_level = logging.ERROR if status_code >= 500 else logging.WARNING
        logger.log(
            log_level,
            "[%s] %s (%d): %s | Context: %s",
            rid,
            exc.code,
            status_code,
            exc.message,
            exc.context,
        )
    else:
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=exc)

    headers = None
    if isinstance(exc, RateLimitExceededError):
        headers = {"Retry-After": str(exc.retry_after)}

    return error_response(message, status_code=status_code, data=data, headers=headers)


async def respond(
    operation: Awaitable[Any],
    *,
    success_message: SuccessMessage,
    fallback_message: str = DEFAULT_FALLBACK_MESSAGE,
    resource: Optional[str] = None,
    error_data: Optional[bool] = None,
) -> Union[ApiResponse[Any], JSONResponse]:
    """
    Await one service call and wrap its outcome in the envelope.

    Args:
        operation:        The un-awaited service coroutine.
        success_message:  Message for the success envelope, or a callable that
                          receives the result (deletes word their message on
                          whether anything was removed).
        fallback_message: Used when an unexpected fault has no text.
        resource:         When set, a None result is an absent lookup and
                          becomes "<resource> not found" (404).
        error_data:       `data` for error envelopes; deletes pass False.

    Returns:
        ApiResponse on success (serialized through the route's
        response_model), JSONResponse for error envelopes.
    """
    try:
        result = await operation
    except Exception as exc:
        return fault_response(exc, fallback_message, data=error_data)

    if result is None and resource is not None:
        logger.info("[%s] %s not found", request_id_var.get(""), resource)
        return error_response(f"{resource} not found", status_code=404, data=error_data)

    message = success_message(result) if callable(success_message) else success_message
    return success(result, message)
