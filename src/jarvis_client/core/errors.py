"""
Structured error system for the Jarvis API client.

Every failure that leaves the client is one of the exception types below,
so callers can branch on the kind of failure instead of parsing messages.
"""

from typing import Any, Dict, Optional
import logging

import httpx

logger = logging.getLogger(__name__)


class JarvisError(Exception):
    """Base exception for all Jarvis client errors."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        return {
            "message": self.message,
            "status": self.status,
            "code": self.code,
            "details": self.details,
            "type": self.__class__.__name__
        }

    def __str__(self) -> str:
        parts = [self.message]
        if self.status:
            parts.append(f"(Status: {self.status})")
        if self.code:
            parts.append(f"(Code: {self.code})")
        return " ".join(parts)


class AuthenticationError(JarvisError):
    """Credentials are missing, invalid, or could not be refreshed."""

    def __init__(
        self,
        message: str = "Authentication failed",
        status: Optional[int] = None,
        **kwargs
    ):
        super().__init__(message, status=status, code="AUTHENTICATION_ERROR", **kwargs)


class ApiError(JarvisError):
    """Non-2xx response that is not an authentication failure."""

    def __init__(
        self,
        message: str = "API request failed",
        status: Optional[int] = None,
        server_message: Optional[str] = None,
        code: str = "API_ERROR",
        **kwargs
    ):
        super().__init__(message, status=status, code=code, **kwargs)
        self.server_message = server_message
        if server_message:
            self.details["server_message"] = server_message


class RateLimitError(ApiError):
    """The server answered 429. Not retried automatically."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[int] = None,
        **kwargs
    ):
        kwargs.setdefault("status", 429)
        super().__init__(message, code="RATE_LIMITED", **kwargs)
        self.retry_after = retry_after
        if retry_after:
            self.details["retry_after"] = retry_after


class InsufficientTokensError(ApiError):
    """The account has used up its token quota for the period."""

    def __init__(
        self,
        message: str = "You have reached your usage limit for this period",
        **kwargs
    ):
        kwargs.setdefault("status", 422)
        super().__init__(message, code="INSUFFICIENT_TOKENS", **kwargs)


class NetworkError(JarvisError):
    """Transport failure: DNS, connection, TLS or timeout."""

    def __init__(
        self,
        message: str = "Network error",
        **kwargs
    ):
        super().__init__(message, code="NETWORK_ERROR", **kwargs)


class ValidationError(JarvisError):
    """Malformed local input rejected before any request is made."""

    def __init__(
        self,
        message: str = "Invalid input",
        field: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, code="VALIDATION_ERROR", **kwargs)
        if field:
            self.details["field"] = field


class ConfigurationError(JarvisError):
    """Error related to client configuration."""

    def __init__(
        self,
        message: str = "Configuration error",
        config_field: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, code="CONFIGURATION_ERROR", **kwargs)
        if config_field:
            self.details["config_field"] = config_field


def extract_server_message(response: httpx.Response) -> Optional[str]:
    """Return the server's ``message`` field if the body is JSON, else None."""
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        message = data.get("message") or data.get("error")
        if isinstance(message, str) and message:
            return message
    return None


def _parse_retry_after(response: httpx.Response) -> Optional[int]:
    retry_after = response.headers.get("Retry-After")
    if retry_after:
        try:
            return int(retry_after)
        except ValueError:
            return None
    return None


def error_from_response(response: httpx.Response, operation: str = "request") -> ApiError:
    """
    Build the ApiError for a non-2xx, non-auth response.

    Args:
        response: The failed HTTP response
        operation: Short description used in the message, e.g. "delete bot"

    Returns:
        ApiError (or a subclass) carrying status and server message
    """
    status = response.status_code
    server_message = extract_server_message(response)

    if status == 429:
        return RateLimitError(
            server_message or "Rate limit exceeded",
            retry_after=_parse_retry_after(response),
            server_message=server_message,
        )

    if status == 422 and "insufficient" in (server_message or response.text).lower():
        return InsufficientTokensError(
            server_message or "You have reached your usage limit for this period",
            server_message=server_message,
        )

    message = f"Failed to {operation}: {status}"
    if server_message:
        message = f"{message} - {server_message}"
    return ApiError(message, status=status, server_message=server_message)


def classify_error(error: Exception) -> JarvisError:
    """
    Classify a generic exception into a structured JarvisError.

    Args:
        error: The original exception

    Returns:
        Classified JarvisError instance
    """
    if isinstance(error, JarvisError):
        return error

    if isinstance(error, httpx.TimeoutException):
        return NetworkError(f"Request timed out: {error}", original_error=error)
    if isinstance(error, httpx.TransportError):
        return NetworkError(f"Network error: {error}", original_error=error)
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        if status in (401, 403):
            return AuthenticationError(str(error), status=status, original_error=error)
        return error_from_response(error.response)

    return JarvisError(str(error), original_error=error)


def create_user_friendly_message(error: JarvisError) -> str:
    """
    Create a user-friendly error message.

    Args:
        error: The JarvisError to convert

    Returns:
        User-friendly error message
    """
    if isinstance(error, AuthenticationError):
        return "Your session has expired or is invalid. Please log in again."

    elif isinstance(error, RateLimitError):
        if error.retry_after:
            return f"Too many requests. Please try again in {error.retry_after} seconds."
        return "Too many requests. Please try again later."

    elif isinstance(error, InsufficientTokensError):
        return "You have reached your usage limit for this period."

    elif isinstance(error, NetworkError):
        return "Network error occurred. Please check your internet connection and try again."

    elif isinstance(error, ValidationError):
        return error.message

    elif isinstance(error, ConfigurationError):
        return f"Configuration problem: {error.message}"

    elif isinstance(error, ApiError):
        if error.status == 404:
            return "The requested item was not found."
        if error.status and error.status >= 500:
            return "A server error occurred. Please try again later."
        return error.server_message or error.message

    else:
        return f"An error occurred: {error.message}"
