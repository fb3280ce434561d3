"""
Authentication service for the Jarvis API.

Handles password sign-in/sign-up, sign-out, password reset and email
verification. Tokens obtained here are written to the session's
credential store; every other service reads them from there.
"""

import logging
from typing import Optional

from ..core.credentials import Credential
from ..core.errors import AuthenticationError, JarvisError
from ..core.session import STATUS_PATH
from ..models.user import AuthResult
from .base import BaseService

logger = logging.getLogger(__name__)

SIGN_IN_PATH = "/api/v1/auth/password/sign-in"
SIGN_UP_PATH = "/api/v1/auth/password/sign-up"
SESSION_CURRENT_PATH = "/api/v1/auth/sessions/current"
PASSWORD_RESET_PATH = "/api/v1/auth/password/reset"
PASSWORD_RESET_CONFIRM_PATH = "/api/v1/auth/password/reset/confirm"
VERIFICATION_STATUS_PATH = "/api/v1/auth/emails/verification/status"
VERIFICATION_RESEND_PATH = "/api/v1/auth/emails/verification/resend"


class AuthService(BaseService):
    """Sign-in, sign-up and session lifecycle."""

    async def sign_in(self, email: str, password: str) -> AuthResult:
        """
        Sign in with email and password and store the returned tokens.

        Raises:
            AuthenticationError: Wrong credentials
            ApiError: Any other rejection
        """
        email = self.require(email, "email")
        logger.info(f"Signing in with email: {email}")
        data = await self.executor.post(
            self.session.auth_url(SIGN_IN_PATH),
            json={"email": email, "password": password},
            authenticated=False,
            operation="sign in",
        )
        return self._store_tokens(data, "sign in")

    async def sign_up(self, email: str, password: str, name: Optional[str] = None) -> AuthResult:
        """Create an account and store the returned tokens."""
        email = self.require(email, "email")
        logger.info(f"Signing up with email: {email}")
        body = {
            "email": email,
            "password": password,
            "verification_callback_url": self.session.settings.verification_callback_url,
        }
        if name:
            body["name"] = name
        data = await self.executor.post(
            self.session.auth_url(SIGN_UP_PATH),
            json=body,
            authenticated=False,
            operation="sign up",
        )
        return self._store_tokens(data, "sign up")

    async def sign_out(self) -> None:
        """
        End the server session and clear local credentials.

        The server call is best-effort: local credentials are cleared even
        if it fails.
        """
        logger.info("Signing out user")
        if self.session.is_authenticated():
            try:
                await self.executor.delete(
                    self.session.auth_url(SESSION_CURRENT_PATH),
                    operation="sign out",
                )
            except JarvisError as e:
                logger.warning(f"Error calling sign out API: {e}")
        self.session.clear_credential()
        logger.info("User signed out successfully")

    async def refresh_token(self) -> bool:
        """Force a token refresh. Returns False if it could not be done."""
        return await self.session.refresh_access_token()

    def is_authenticated(self) -> bool:
        return self.session.is_authenticated()

    async def is_logged_in(self) -> bool:
        """True if an access token is stored or one can be obtained by refresh."""
        if self.session.is_authenticated():
            return True
        if self.session.credential.has_refresh_token:
            return await self.session.refresh_access_token()
        return False

    async def verify_token_valid(self) -> bool:
        """Check the stored token against the API status endpoint."""
        if not self.session.is_authenticated():
            return False
        try:
            await self.executor.get(self.session.api_url(STATUS_PATH), operation="verify token")
        except JarvisError as e:
            logger.info(f"Token verification failed: {e}")
            return False
        return True

    async def send_password_reset_email(self, email: str) -> None:
        email = self.require(email, "email")
        logger.info(f"Sending password reset email to: {email}")
        await self.executor.post(
            self.session.auth_url(PASSWORD_RESET_PATH),
            json={
                "email": email,
                "reset_password_url": self.session.settings.verification_callback_url,
            },
            authenticated=False,
            operation="send password reset email",
        )

    async def confirm_password_reset(self, code: str, new_password: str) -> None:
        code = self.require(code, "code")
        logger.info("Confirming password reset")
        await self.executor.post(
            self.session.auth_url(PASSWORD_RESET_CONFIRM_PATH),
            json={"code": code, "new_password": new_password},
            authenticated=False,
            operation="confirm password reset",
        )

    async def check_email_verification_status(self, email: str) -> bool:
        email = self.require(email, "email")
        data = await self.executor.post(
            self.session.auth_url(VERIFICATION_STATUS_PATH),
            json={"email": email},
            operation="check email verification status",
        )
        return bool(self.expect_object(data or {}, "check email verification status").get("is_verified"))

    async def resend_verification_email(self, email: str) -> None:
        email = self.require(email, "email")
        logger.info(f"Resending verification email to: {email}")
        await self.executor.post(
            self.session.auth_url(VERIFICATION_RESEND_PATH),
            json={
                "email": email,
                "verification_callback_url": self.session.settings.verification_callback_url,
            },
            operation="resend verification email",
        )

    def _store_tokens(self, data: object, operation: str) -> AuthResult:
        if not isinstance(data, dict) or not data.get("access_token"):
            raise AuthenticationError(f"No access token in {operation} response")
        result = AuthResult(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or "",
            user_id=data.get("user_id") or "",
        )
        self.session.set_credential(Credential(
            access_token=result.access_token,
            refresh_token=result.refresh_token,
            user_id=result.user_id,
        ))
        logger.info(f"{operation.capitalize()} successful for user {result.user_id!r}")
        return result
