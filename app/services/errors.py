"""
Service Errors

Domain failures raised by the store and GitHub services. The API layer maps
each class to an HTTP status; messages are human-readable and carry the
operation name as a prefix ("Failed to save review: User not found...").
"""

import functools
import inspect
from typing import Any, Callable, Optional, TypeVar

from app.config import ConfigurationError
from app.logging_config import get_logger
from app.storage.base import UniqueConstraintError

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class ServiceError(Exception):
    """Base class for service-layer failures."""
    pass


class NotFoundError(ServiceError):
    """User, review, installation or saved review is absent for the caller."""
    pass


class AccessDeniedError(NotFoundError):
    """The record exists but belongs to another user."""
    pass


class InvalidInputError(ServiceError):
    """A required field is missing, blank or out of range."""
    pass


class ConflictError(ServiceError):
    """A write collided with an existing natural key."""
    pass


class UpstreamError(ServiceError):
    """GitHub returned an error or could not be reached after retries."""

    def __init__(self, message: str, status_code: Optional[int] = None, timed_out: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.timed_out = timed_out


def prefixed(operation: str, error: ServiceError) -> ServiceError:
    """
    Re-create *error* with the operation name in front of its message.

    The class (and upstream status) is preserved so callers can still
    branch on the failure kind.
    """
    message = f"Failed to {operation}: {error}"
    if isinstance(error, UpstreamError):
        return UpstreamError(message, status_code=error.status_code, timed_out=error.timed_out)
    return type(error)(message)


def service_operation(name: str) -> Callable[[F], F]:
    """
    Decorate a service function so every failure surfaces with *name* in it.

    Domain errors keep their class; storage unique violations become
    ConflictError; anything unexpected is logged and wrapped in
    ServiceError. ConfigurationError passes through untouched.
    """
    def decorator(fn: F) -> F:
        def _translate(e: Exception) -> Exception:
            if isinstance(e, ConfigurationError):
                return e
            if isinstance(e, ServiceError):
                logger.warning("Service operation rejected", operation=name, error=str(e))
                return prefixed(name, e)
            if isinstance(e, UniqueConstraintError):
                logger.warning("Service operation conflicted", operation=name, error=str(e))
                return ConflictError(f"Failed to {name}: {e}")
            logger.error(
                "Service operation failed",
                operation=name,
                error=str(e),
                error_type=type(e).__name__
            )
            return ServiceError(f"Failed to {name}: {e}")

        if inspect.iscoroutinefunction(fn):
            @functools.wraps(fn)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                try:
                    return await fn(*args, **kwargs)
                except Exception as e:
                    translated = _translate(e)
                    if translated is e:
                        raise
                    raise translated from e
            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return fn(*args, **kwargs)
            except Exception as e:
                translated = _translate(e)
                if translated is e:
                    raise
                raise translated from e
        return wrapper  # type: ignore[return-value]

    return decorator
