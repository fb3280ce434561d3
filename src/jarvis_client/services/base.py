"""Shared plumbing for the feature services."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from pydantic import ValidationError as PydanticValidationError

from ..core.errors import ApiError, ValidationError
from ..core.executor import AuthenticatedExecutor
from ..core.session import JarvisSession

logger = logging.getLogger(__name__)


def unexpected_response(operation: str, original_error: Optional[Exception] = None) -> ApiError:
    return ApiError(f"Failed to {operation}: unexpected response", original_error=original_error)


class BaseService:
    """A feature service issues all of its calls through one executor."""

    def __init__(self, session: JarvisSession, executor: Optional[AuthenticatedExecutor] = None):
        self.session = session
        self.executor = executor or AuthenticatedExecutor(session)

    @staticmethod
    def require(value: Optional[str], field: str) -> str:
        """Reject empty identifiers before any request is made."""
        if value is None or not value.strip():
            raise ValidationError(f"{field} must not be empty", field=field)
        return value.strip()

    @staticmethod
    def expect_object(data: Any, operation: str) -> Dict[str, Any]:
        """Return a decoded response body that must be a JSON object."""
        if not isinstance(data, dict):
            logger.debug(f"Expected a JSON object from {operation}, got {type(data).__name__}")
            raise unexpected_response(operation)
        return data

    @staticmethod
    @contextmanager
    def parsing(operation: str) -> Iterator[None]:
        """
        Turn payload validation failures into ApiError.

        A 2xx body that does not fit the payload models is a server-side
        problem, so callers see the same error type as for a failed request.
        """
        try:
            yield
        except (PydanticValidationError, TypeError, ValueError) as e:
            logger.debug(f"Could not parse {operation} response: {e}")
            raise unexpected_response(operation, original_error=e) from e
