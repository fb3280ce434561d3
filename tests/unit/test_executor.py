"""Tests for the authenticated executor and the session's token refresh."""

import asyncio

import httpx
import pytest

from jarvis_client.core.credentials import Credential
from jarvis_client.core.errors import (
    ApiError,
    AuthenticationError,
    InsufficientTokensError,
    NetworkError,
    RateLimitError,
)
from jarvis_client.core.executor import AuthenticatedExecutor, RequestState
from jarvis_client.core.session import JarvisSession

ITEMS_PATH = "/api/v1/things"


def bearer(request: httpx.Request) -> str:
    return request.headers.get("Authorization", "")


class TestRefreshAndRetry:
    """401/403 handling with a bounded number of refreshes."""

    @pytest.mark.asyncio
    async def test_success_without_refresh(self, session, server) -> None:
        """A 200 is returned as decoded JSON with a single request."""
        server.api("GET", ITEMS_PATH, httpx.Response(200, json={"ok": True}))
        executor = AuthenticatedExecutor(session)

        result = await executor.get(session.api_url(ITEMS_PATH))

        assert result == {"ok": True}
        assert len(server.requests) == 1
        assert bearer(server.requests[0]) == "Bearer T1"
        assert executor.last_stats.state == RequestState.SUCCESS

    @pytest.mark.asyncio
    async def test_single_401_refreshes_once_and_retries_once(self, session, server) -> None:
        """One 401 leads to exactly one refresh and one retried request."""
        server.api(
            "GET", ITEMS_PATH,
            httpx.Response(401, json={"message": "expired"}),
            httpx.Response(200, json={"value": 42}),
        )
        server.on_refresh(httpx.Response(200, json={"access_token": "T2"}))
        executor = AuthenticatedExecutor(session)

        result = await executor.get(session.api_url(ITEMS_PATH))

        assert result == {"value": 42}
        assert len(server.refresh_requests) == 1
        calls = server.calls(ITEMS_PATH)
        assert len(calls) == 2
        assert bearer(calls[0]) == "Bearer T1"
        assert bearer(calls[1]) == "Bearer T2"
        assert executor.last_stats.refreshes == 1
        assert executor.last_stats.status_codes == [401, 200]

    @pytest.mark.asyncio
    async def test_refreshed_token_is_persisted(self, session, server) -> None:
        """The new access token is stored and the refresh token kept."""
        server.api("GET", ITEMS_PATH, httpx.Response(403), httpx.Response(200, json={}))
        server.on_refresh(httpx.Response(200, json={"access_token": "T2"}))

        await AuthenticatedExecutor(session).get(session.api_url(ITEMS_PATH))

        assert session.credential.access_token == "T2"
        assert session.credential.refresh_token == "R1"

    @pytest.mark.asyncio
    async def test_refresh_request_shape(self, session, server) -> None:
        """Refresh posts {} with the refresh token header and no bearer."""
        server.api("GET", ITEMS_PATH, httpx.Response(401), httpx.Response(200, json={}))
        server.on_refresh(httpx.Response(200, json={"access_token": "T2"}))

        await AuthenticatedExecutor(session).get(session.api_url(ITEMS_PATH))

        refresh = server.refresh_requests[0]
        assert refresh.headers["X-Stack-Refresh-Token"] == "R1"
        assert refresh.headers["X-Stack-Access-Type"] == "client"
        assert "Authorization" not in refresh.headers
        assert server.body(refresh) == {}

    @pytest.mark.asyncio
    async def test_repeated_401_stops_at_bound(self, session, server) -> None:
        """Persistent 401s raise after the bound instead of looping."""
        server.api("GET", ITEMS_PATH, httpx.Response(401))
        server.on_refresh(httpx.Response(200, json={"access_token": "T2"}))
        executor = AuthenticatedExecutor(session)

        with pytest.raises(AuthenticationError) as exc_info:
            await executor.get(session.api_url(ITEMS_PATH))

        assert exc_info.value.status == 401
        assert "after token refresh" in exc_info.value.message
        assert len(server.refresh_requests) == 1
        assert len(server.calls(ITEMS_PATH)) == 2
        assert executor.last_stats.state == RequestState.FAILED

    @pytest.mark.asyncio
    async def test_configurable_bound(self, session, server) -> None:
        """A bound of 2 allows two refresh cycles and three requests."""
        tokens = iter(["T2", "T3"])
        server.api("GET", ITEMS_PATH, httpx.Response(401))
        server.on_refresh(lambda request: httpx.Response(200, json={"access_token": next(tokens)}))

        with pytest.raises(AuthenticationError):
            await AuthenticatedExecutor(session, max_refresh_attempts=2).get(session.api_url(ITEMS_PATH))

        assert len(server.refresh_requests) == 2
        assert len(server.calls(ITEMS_PATH)) == 3

    @pytest.mark.asyncio
    async def test_zero_bound_never_refreshes(self, session, server) -> None:
        """With a bound of 0 the first 401 is final."""
        server.api("GET", ITEMS_PATH, httpx.Response(401))

        with pytest.raises(AuthenticationError) as exc_info:
            await AuthenticatedExecutor(session, max_refresh_attempts=0).get(session.api_url(ITEMS_PATH))

        assert exc_info.value.message == "Authentication failed"
        assert server.refresh_requests == []

    def test_negative_bound_rejected(self, settings) -> None:
        """A negative bound is a programming error."""
        with pytest.raises(ValueError):
            AuthenticatedExecutor(JarvisSession.in_memory(settings=settings), max_refresh_attempts=-1)

    @pytest.mark.asyncio
    async def test_refresh_failure_raises(self, session, server) -> None:
        """A rejected refresh ends the call with an AuthenticationError."""
        server.api("GET", ITEMS_PATH, httpx.Response(401))
        server.on_refresh(httpx.Response(401, json={"message": "invalid refresh token"}))

        with pytest.raises(AuthenticationError) as exc_info:
            await AuthenticatedExecutor(session).get(session.api_url(ITEMS_PATH))

        assert "log in again" in exc_info.value.message
        assert len(server.calls(ITEMS_PATH)) == 1

    @pytest.mark.asyncio
    async def test_empty_refresh_token_makes_no_refresh_call(self, settings, server) -> None:
        """Without a refresh token the refresh fails locally."""
        server.api("GET", ITEMS_PATH, httpx.Response(401))
        async with JarvisSession.in_memory(
            Credential(access_token="T1", refresh_token=""), settings=settings, transport=server.transport
        ) as session:
            with pytest.raises(AuthenticationError):
                await AuthenticatedExecutor(session).get(session.api_url(ITEMS_PATH))

            assert session.refresh_calls == 0
        assert server.refresh_requests == []
        assert len(server.requests) == 1

    @pytest.mark.asyncio
    async def test_on_refresh_hook_called(self, session, server) -> None:
        """The on_refresh hook sees the stats after each refresh."""
        seen = []

        async def hook(stats) -> None:
            seen.append(stats.refreshes)

        server.api("GET", ITEMS_PATH, httpx.Response(401), httpx.Response(200, json={}))
        server.on_refresh(httpx.Response(200, json={"access_token": "T2"}))

        await AuthenticatedExecutor(session, on_refresh=hook).get(session.api_url(ITEMS_PATH))

        assert seen == [1]


class TestUnauthenticatedRequests:
    """Calls made with authenticated=False."""

    @pytest.mark.asyncio
    async def test_no_bearer_and_no_refresh(self, session, server) -> None:
        """No token is sent and a 401 is not treated as an expired token."""
        server.auth("POST", "/sign-in", httpx.Response(401, json={"message": "Wrong password"}))

        with pytest.raises(AuthenticationError) as exc_info:
            await AuthenticatedExecutor(session).post(
                session.auth_url("/sign-in"), json={}, authenticated=False
            )

        assert "Authorization" not in server.requests[0].headers
        assert server.refresh_requests == []
        assert exc_info.value.details["server_message"] == "Wrong password"


class TestErrorMapping:
    """Non-auth failures become typed errors without retries."""

    @pytest.mark.asyncio
    async def test_server_error(self, session, server) -> None:
        server.api("DELETE", ITEMS_PATH, httpx.Response(500, json={"message": "boom"}))

        with pytest.raises(ApiError) as exc_info:
            await AuthenticatedExecutor(session).delete(session.api_url(ITEMS_PATH), operation="delete thing")

        assert exc_info.value.status == 500
        assert exc_info.value.message == "Failed to delete thing: 500 - boom"
        assert len(server.requests) == 1

    @pytest.mark.asyncio
    async def test_rate_limit_not_retried(self, session, server) -> None:
        server.api("GET", ITEMS_PATH, httpx.Response(429, headers={"Retry-After": "7"}))

        with pytest.raises(RateLimitError) as exc_info:
            await AuthenticatedExecutor(session).get(session.api_url(ITEMS_PATH))

        assert exc_info.value.retry_after == 7
        assert len(server.requests) == 1

    @pytest.mark.asyncio
    async def test_insufficient_tokens(self, session, server) -> None:
        server.api("POST", ITEMS_PATH, httpx.Response(422, json={"message": "Insufficient tokens"}))

        with pytest.raises(InsufficientTokensError):
            await AuthenticatedExecutor(session).post(session.api_url(ITEMS_PATH), json={})

    @pytest.mark.asyncio
    async def test_transport_failure_becomes_network_error(self, settings, credential) -> None:
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with JarvisSession.in_memory(
            credential, settings=settings, transport=httpx.MockTransport(fail)
        ) as session:
            with pytest.raises(NetworkError):
                await AuthenticatedExecutor(session).get(session.api_url(ITEMS_PATH))

    @pytest.mark.asyncio
    async def test_invalid_json_body(self, session, server) -> None:
        server.api("GET", ITEMS_PATH, httpx.Response(200, text="<html>"))

        with pytest.raises(ApiError):
            await AuthenticatedExecutor(session).get(session.api_url(ITEMS_PATH))

    @pytest.mark.asyncio
    async def test_empty_body_returns_none(self, session, server) -> None:
        server.api("DELETE", ITEMS_PATH, httpx.Response(204))

        assert await AuthenticatedExecutor(session).delete(session.api_url(ITEMS_PATH)) is None


class TestConcurrentRefresh:
    """Several requests failing together share one refresh."""

    @pytest.mark.asyncio
    async def test_concurrent_401s_refresh_once(self, session, server) -> None:
        """Three parallel calls with an expired token cause one refresh."""
        refresh_gate = asyncio.Event()

        def items(request: httpx.Request) -> httpx.Response:
            if bearer(request) == "Bearer T2":
                return httpx.Response(200, json={"ok": True})
            return httpx.Response(401)

        server.api("GET", ITEMS_PATH, items)
        server.on_refresh(httpx.Response(200, json={"access_token": "T2"}))

        original_refresh = session._refresh

        async def slow_refresh() -> bool:
            await refresh_gate.wait()
            return await original_refresh()

        session._refresh = slow_refresh
        executor = AuthenticatedExecutor(session)

        tasks = [asyncio.ensure_future(executor.get(session.api_url(ITEMS_PATH))) for _ in range(3)]
        await asyncio.sleep(0.05)
        refresh_gate.set()
        results = await asyncio.gather(*tasks)

        assert results == [{"ok": True}] * 3
        assert len(server.refresh_requests) == 1
        assert session.refresh_calls == 1

    @pytest.mark.asyncio
    async def test_stale_token_skips_refresh(self, session, server) -> None:
        """A caller whose token was already replaced does not refresh again."""
        session.store.save_access_token("T2")

        assert await session.refresh_access_token(stale_token="T1") is True
        assert server.refresh_requests == []


class TestHeaders:
    """Headers are rebuilt from the store for every request."""

    @pytest.fixture
    def session(self, settings, credential) -> JarvisSession:
        return JarvisSession.in_memory(credential, settings=settings)

    def test_project_headers(self, session) -> None:
        headers = session.build_headers()

        assert headers["Authorization"] == "Bearer T1"
        assert headers["X-Stack-Access-Type"] == "client"
        assert headers["X-Stack-Project-Id"] == session.settings.stack_project_id
        assert headers["X-Stack-Publishable-Client-Key"] == session.settings.stack_publishable_client_key
        assert headers["Content-Type"] == "application/json"

    def test_headers_follow_store(self, session) -> None:
        session.store.save_access_token("T9")

        assert session.build_headers()["Authorization"] == "Bearer T9"

    def test_no_authorization_without_token(self, settings) -> None:
        session = JarvisSession.in_memory(settings=settings)

        assert "Authorization" not in session.build_headers()

    def test_extra_headers_merged(self, session) -> None:
        headers = session.build_headers(extra={"x-jarvis-guid": ""})

        assert headers["x-jarvis-guid"] == ""
