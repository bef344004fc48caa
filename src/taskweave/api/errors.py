"""Error handling for API responses.

Domain errors carry structured details that are safe to show (paths, limits,
rule names) and are returned as-is. Anything else is logged with a short
reference id and surfaced as a generic 500.
"""

import functools
import uuid
from collections.abc import Awaitable, Callable
from typing import Any, NoReturn, ParamSpec, TypeVar

import structlog
from fastapi import HTTPException

from taskweave.errors import (
    CircularDependencyError,
    HierarchyValidationError,
    InvalidTransitionError,
    NotFoundError,
    TaskweaveError,
    ValidationError,
)

log = structlog.get_logger()

P = ParamSpec("P")
R = TypeVar("R")

INTERNAL_ERROR = "An internal error occurred. Please try again later."
VALIDATION_ERROR = "Invalid request data."
CONFLICT_ERROR = "The operation conflicts with the current state."
FORBIDDEN_ERROR = "Your role does not permit this operation."


def _detail(message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    return {"message": message, **(details or {})}


def raise_internal_error(
    exc: Exception,
    *,
    context: str | None = None,
    log_details: dict | None = None,
) -> NoReturn:
    """Raise a 500 error with a safe message while logging full details.

    Args:
        exc: The original exception (logged but not exposed)
        context: Human-readable context for logs (e.g., "creating dependency")
        log_details: Additional details to include in logs
    """
    error_id = str(uuid.uuid4())[:8]

    log.error(
        "internal_error",
        error_id=error_id,
        context=context,
        error_type=type(exc).__name__,
        error_message=str(exc),
        **(log_details or {}),
    )

    raise HTTPException(
        status_code=500,
        detail=f"{INTERNAL_ERROR} (ref: {error_id})",
    ) from exc


def raise_validation_error(
    message: str | None = None,
    *,
    details: dict[str, Any] | None = None,
    exc: Exception | None = None,
    context: str | None = None,
) -> NoReturn:
    """Raise a 400 error carrying the rejection details."""
    if exc:
        log.warning(
            "validation_error",
            context=context,
            error_type=type(exc).__name__,
            error_message=str(exc),
        )

    raise HTTPException(
        status_code=400,
        detail=_detail(message or VALIDATION_ERROR, details),
    ) from exc


def raise_not_found(
    resource: str,
    *,
    resource_id: str | None = None,
) -> NoReturn:
    """Raise a 404 error for a missing resource."""
    log.info("resource_not_found", resource=resource, resource_id=resource_id)

    detail = f"{resource.capitalize()} not found"
    if resource_id:
        detail = f"{resource.capitalize()} not found: {resource_id}"

    raise HTTPException(status_code=404, detail=detail)


def raise_conflict(
    message: str | None = None,
    *,
    details: dict[str, Any] | None = None,
    exc: Exception | None = None,
    context: str | None = None,
) -> NoReturn:
    """Raise a 409 conflict error carrying the rejection details."""
    if exc:
        log.warning(
            "conflict_error",
            context=context,
            error_type=type(exc).__name__,
            error_message=str(exc),
        )

    raise HTTPException(
        status_code=409,
        detail=_detail(message or CONFLICT_ERROR, details),
    ) from exc


def raise_forbidden(
    message: str | None = None,
    *,
    details: dict[str, Any] | None = None,
    exc: Exception | None = None,
    context: str | None = None,
) -> NoReturn:
    """Raise a 403 error when the acting role does not satisfy a rule."""
    if exc:
        log.warning(
            "forbidden_error",
            context=context,
            error_type=type(exc).__name__,
            error_message=str(exc),
        )

    raise HTTPException(
        status_code=403,
        detail=_detail(message or FORBIDDEN_ERROR, details),
    ) from exc


def raise_for_domain_error(exc: TaskweaveError, *, context: str | None = None) -> NoReturn:
    """Translate an engine error into the matching HTTP error."""
    if isinstance(exc, NotFoundError):
        raise_not_found(exc.entity_type, resource_id=exc.identifier)
    if isinstance(exc, CircularDependencyError):
        raise_conflict(exc.message, details=exc.details, exc=exc, context=context)
    if isinstance(exc, InvalidTransitionError):
        if exc.required_role is not None:
            raise_forbidden(exc.message, details=exc.details, exc=exc, context=context)
        raise_conflict(exc.message, details=exc.details, exc=exc, context=context)
    if isinstance(exc, HierarchyValidationError | ValidationError):
        raise_validation_error(exc.message, details=exc.details, exc=exc, context=context)
    raise_internal_error(exc, context=context)


def handle_engine_errors(
    context: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorate a route so engine errors become HTTP errors.

    HTTPExceptions raised by the route pass through untouched.
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return await func(*args, **kwargs)
            except HTTPException:
                raise
            except TaskweaveError as e:
                raise_for_domain_error(e, context=context)
            except Exception as e:
                raise_internal_error(e, context=context)

        return wrapper

    return decorator
