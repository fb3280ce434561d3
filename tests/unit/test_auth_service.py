"""Tests for the authentication service."""

import httpx
import pytest

from jarvis_client.core.credentials import Credential
from jarvis_client.core.errors import ApiError, AuthenticationError, ValidationError
from jarvis_client.core.session import JarvisSession
from jarvis_client.services.auth_service import (
    PASSWORD_RESET_PATH,
    SESSION_CURRENT_PATH,
    SIGN_IN_PATH,
    SIGN_UP_PATH,
    VERIFICATION_STATUS_PATH,
    AuthService,
)

TOKENS = {"access_token": "A1", "refresh_token": "R9", "user_id": "u-42"}


class TestSignIn:
    """Password sign-in."""

    @pytest.mark.asyncio
    async def test_stores_tokens(self, settings, server) -> None:
        server.auth("POST", SIGN_IN_PATH, httpx.Response(200, json=TOKENS))
        async with JarvisSession.in_memory(settings=settings, transport=server.transport) as session:
            result = await AuthService(session).sign_in("me@example.com", "secret")

            assert result.user_id == "u-42"
            assert session.credential == Credential("A1", "R9", "u-42")

        request = server.requests[0]
        assert server.body(request) == {"email": "me@example.com", "password": "secret"}
        assert "Authorization" not in request.headers

    @pytest.mark.asyncio
    async def test_wrong_password(self, settings, server) -> None:
        server.auth("POST", SIGN_IN_PATH, httpx.Response(400, json={"message": "Wrong e-mail or password"}))
        async with JarvisSession.in_memory(settings=settings, transport=server.transport) as session:
            with pytest.raises(ApiError) as exc_info:
                await AuthService(session).sign_in("me@example.com", "bad")

            assert exc_info.value.server_message == "Wrong e-mail or password"
            assert not session.is_authenticated()

    @pytest.mark.asyncio
    async def test_missing_token_in_response(self, settings, server) -> None:
        server.auth("POST", SIGN_IN_PATH, httpx.Response(200, json={"user_id": "u"}))
        async with JarvisSession.in_memory(settings=settings, transport=server.transport) as session:
            with pytest.raises(AuthenticationError):
                await AuthService(session).sign_in("me@example.com", "secret")

    @pytest.mark.asyncio
    async def test_empty_email_rejected(self, session, server) -> None:
        with pytest.raises(ValidationError):
            await AuthService(session).sign_in("", "secret")
        assert server.requests == []


class TestSignUp:
    """Account creation."""

    @pytest.mark.asyncio
    async def test_sends_callback_and_name(self, settings, server) -> None:
        server.auth("POST", SIGN_UP_PATH, httpx.Response(200, json=TOKENS))
        async with JarvisSession.in_memory(settings=settings, transport=server.transport) as session:
            await AuthService(session).sign_up("new@example.com", "pw", name="New User")

            assert session.credential.access_token == "A1"

        body = server.body(server.requests[0])
        assert body["name"] == "New User"
        assert body["verification_callback_url"] == settings.verification_callback_url


class TestSignOut:
    """Sign-out clears credentials even when the server call fails."""

    @pytest.mark.asyncio
    async def test_clears_credentials(self, session, server) -> None:
        server.auth("DELETE", SESSION_CURRENT_PATH, httpx.Response(200, json={}))

        await AuthService(session).sign_out()

        assert session.credential == Credential()
        assert server.requests[0].headers["Authorization"] == "Bearer T1"

    @pytest.mark.asyncio
    async def test_server_failure_still_clears(self, session, server) -> None:
        server.auth("DELETE", SESSION_CURRENT_PATH, httpx.Response(500))

        await AuthService(session).sign_out()

        assert not session.is_authenticated()


class TestSessionState:
    """Login state checks."""

    @pytest.mark.asyncio
    async def test_is_logged_in_with_token(self, session, server) -> None:
        assert await AuthService(session).is_logged_in() is True
        assert server.requests == []

    @pytest.mark.asyncio
    async def test_is_logged_in_refreshes_when_only_refresh_token(self, settings, server) -> None:
        server.on_refresh(httpx.Response(200, json={"access_token": "T2"}))
        async with JarvisSession.in_memory(
            Credential(refresh_token="R1"), settings=settings, transport=server.transport
        ) as session:
            assert await AuthService(session).is_logged_in() is True
            assert session.credential.access_token == "T2"

    @pytest.mark.asyncio
    async def test_not_logged_in(self, settings, server) -> None:
        async with JarvisSession.in_memory(settings=settings, transport=server.transport) as session:
            assert await AuthService(session).is_logged_in() is False
        assert server.requests == []

    @pytest.mark.asyncio
    async def test_verify_token_valid(self, session, server) -> None:
        server.api("GET", "/api/v1/status", httpx.Response(200, json={}))
        assert await AuthService(session).verify_token_valid() is True

    @pytest.mark.asyncio
    async def test_verify_token_invalid(self, session, server) -> None:
        server.api("GET", "/api/v1/status", httpx.Response(401))
        server.on_refresh(httpx.Response(401))
        assert await AuthService(session).verify_token_valid() is False


class TestEmailFlows:
    """Password reset and email verification."""

    @pytest.mark.asyncio
    async def test_password_reset_email(self, session, server) -> None:
        server.auth("POST", PASSWORD_RESET_PATH, httpx.Response(200, json={}))

        await AuthService(session).send_password_reset_email("me@example.com")

        assert server.body(server.requests[0])["email"] == "me@example.com"

    @pytest.mark.asyncio
    async def test_verification_status(self, session, server) -> None:
        server.auth("POST", VERIFICATION_STATUS_PATH, httpx.Response(200, json={"is_verified": True}))

        assert await AuthService(session).check_email_verification_status("me@example.com") is True

    @pytest.mark.asyncio
    async def test_verification_status_list_body(self, session, server) -> None:
        server.auth("POST", VERIFICATION_STATUS_PATH, httpx.Response(200, json=[True]))

        with pytest.raises(ApiError):
            await AuthService(session).check_email_verification_status("me@example.com")
