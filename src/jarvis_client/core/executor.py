"""
Authenticated request execution with bounded token refresh.

Every feature call goes through AuthenticatedExecutor.request(), which
attaches the current bearer token and, on 401/403, refreshes the token and
re-issues the request. The number of refresh cycles per logical call is an
explicit bound, so an invalid refresh token can never cause a retry loop.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from .errors import (
    AuthenticationError,
    ApiError,
    classify_error,
    error_from_response,
    extract_server_message,
)
from .session import JarvisSession

logger = logging.getLogger(__name__)

AUTH_FAILURE_STATUSES = frozenset({401, 403})


class RequestState(Enum):
    """States of one logical authenticated call."""
    ATTEMPTING = "attempting"
    REFRESH_AND_RETRY = "refresh_and_retry"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class ExecutionStats:
    """What happened during one logical call."""
    method: str
    url: str
    attempts: int = 0
    refreshes: int = 0
    status_codes: list = field(default_factory=list)
    state: RequestState = RequestState.ATTEMPTING
    start_time: float = field(default_factory=time.monotonic)
    end_time: Optional[float] = None

    def record_response(self, status_code: int) -> None:
        self.attempts += 1
        self.status_codes.append(status_code)

    def finish(self, state: RequestState) -> None:
        self.state = state
        self.end_time = time.monotonic()

    @property
    def duration_ms(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time) * 1000

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method,
            "url": self.url,
            "attempts": self.attempts,
            "refreshes": self.refreshes,
            "status_codes": list(self.status_codes),
            "state": self.state.value,
            "duration_ms": round(self.duration_ms, 1),
        }


class AuthenticatedExecutor:
    """Runs requests against the Jarvis API with refresh-and-retry on 401/403."""

    def __init__(
        self,
        session: JarvisSession,
        max_refresh_attempts: Optional[int] = None,
        on_refresh: Optional[Callable[[ExecutionStats], Awaitable[None]]] = None,
    ):
        """
        Args:
            session: Session providing credentials and the HTTP client
            max_refresh_attempts: Refresh cycles allowed per call; defaults to
                settings.max_refresh_attempts
            on_refresh: Optional coroutine called after each successful refresh
        """
        self.session = session
        self.max_refresh_attempts = (
            session.settings.max_refresh_attempts
            if max_refresh_attempts is None
            else max_refresh_attempts
        )
        if self.max_refresh_attempts < 0:
            raise ValueError("max_refresh_attempts must be >= 0")
        self.on_refresh = on_refresh
        self.last_stats: Optional[ExecutionStats] = None

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        files: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        authenticated: bool = True,
        operation: str = "complete request",
    ) -> Any:
        """
        Issue a request and return the decoded JSON payload.

        Args:
            method: HTTP method
            url: Absolute URL
            json: Optional JSON body
            files: Optional multipart files, passed through to httpx
            params: Optional query parameters
            headers: Extra headers merged over the auth headers
            authenticated: When False no bearer token is sent and 401/403 are
                not treated as an expired token
            operation: Short description used in error messages

        Returns:
            Decoded JSON body, or None for an empty body

        Raises:
            AuthenticationError: 401/403 that could not be recovered
            ApiError: Any other non-2xx response
            NetworkError: Transport failure
        """
        stats = ExecutionStats(method=method.upper(), url=url)
        self.last_stats = stats
        bound = self.max_refresh_attempts if authenticated else 0

        for attempt in range(bound + 1):
            used_token = self.session.credential.access_token
            request_headers = self.session.build_headers(include_auth=authenticated, extra=headers)
            if files:
                # httpx sets the multipart boundary itself.
                request_headers.pop("Content-Type", None)

            try:
                response = await self.session.http.request(
                    stats.method,
                    url,
                    json=json,
                    files=files,
                    params=params,
                    headers=request_headers,
                )
            except httpx.RequestError as e:
                stats.finish(RequestState.FAILED)
                error = classify_error(e)
                logger.error(f"{stats.method} {url} failed: {error}")
                raise error from e

            stats.record_response(response.status_code)

            if response.is_success:
                stats.finish(RequestState.SUCCESS)
                if stats.refreshes:
                    logger.info(f"Succeeded after token refresh: {stats.to_dict()}")
                return self._decode(response, operation)

            if response.status_code not in AUTH_FAILURE_STATUSES:
                stats.finish(RequestState.FAILED)
                error = error_from_response(response, operation)
                logger.error(f"{stats.method} {url}: {error}")
                raise error

            if not authenticated:
                stats.finish(RequestState.FAILED)
                raise self._auth_error(response, "Authentication failed")

            if attempt >= bound:
                stats.finish(RequestState.FAILED)
                logger.warning(f"Max refresh attempts reached for {stats.method} {url}")
                if stats.refreshes:
                    raise self._auth_error(response, "Authentication failed after token refresh")
                raise self._auth_error(response, "Authentication failed")

            stats.state = RequestState.REFRESH_AND_RETRY
            logger.warning(
                f"Authentication error ({response.status_code}) on {stats.method} {url}, "
                "attempting to refresh token"
            )
            refreshed = await self.session.refresh_access_token(stale_token=used_token)
            if not refreshed:
                stats.finish(RequestState.FAILED)
                raise self._auth_error(response, "Authentication expired. Please log in again.")

            stats.refreshes += 1
            stats.state = RequestState.ATTEMPTING
            if self.on_refresh:
                await self.on_refresh(stats)

        # The loop always returns or raises on its last iteration.
        raise AuthenticationError("Authentication failed")

    async def get(self, url: str, **kwargs: Any) -> Any:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> Any:
        return await self.request("POST", url, **kwargs)

    async def patch(self, url: str, **kwargs: Any) -> Any:
        return await self.request("PATCH", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", url, **kwargs)

    @staticmethod
    def _auth_error(response: httpx.Response, message: str) -> AuthenticationError:
        server_message = extract_server_message(response)
        details = {"server_message": server_message} if server_message else None
        return AuthenticationError(message, status=response.status_code, details=details)

    @staticmethod
    def _decode(response: httpx.Response, operation: str) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(
                f"Failed to {operation}: response is not valid JSON",
                status=response.status_code,
                original_error=e,
            )
