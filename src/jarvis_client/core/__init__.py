"""
Core request machinery for the Jarvis client.

This package contains the error taxonomy, credential storage, the session
context and the authenticated request executor.
"""

from .errors import (
    JarvisError,
    AuthenticationError,
    ApiError,
    RateLimitError,
    InsufficientTokensError,
    NetworkError,
    ValidationError,
    ConfigurationError,
    classify_error,
    create_user_friendly_message,
)
from .credentials import (
    Credential,
    CredentialStore,
    InMemoryCredentialStore,
    JsonFileCredentialStore,
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    USER_ID_KEY,
)
from .session import JarvisSession
from .executor import AuthenticatedExecutor, ExecutionStats, RequestState

__all__ = [
    "JarvisError",
    "AuthenticationError",
    "ApiError",
    "RateLimitError",
    "InsufficientTokensError",
    "NetworkError",
    "ValidationError",
    "ConfigurationError",
    "classify_error",
    "create_user_friendly_message",
    "Credential",
    "CredentialStore",
    "InMemoryCredentialStore",
    "JsonFileCredentialStore",
    "ACCESS_TOKEN_KEY",
    "REFRESH_TOKEN_KEY",
    "USER_ID_KEY",
    "JarvisSession",
    "AuthenticatedExecutor",
    "ExecutionStats",
    "RequestState",
]
