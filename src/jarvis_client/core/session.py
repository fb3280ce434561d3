"""
Session context for the Jarvis API.

A JarvisSession bundles the settings, the credential store and the shared
HTTP client. It is created once and handed to every service; there is no
module-level session.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from .. import USER_AGENT
from ..config.settings import JarvisSettings
from .credentials import Credential, CredentialStore, InMemoryCredentialStore, JsonFileCredentialStore

logger = logging.getLogger(__name__)

REFRESH_PATH = "/api/v1/auth/sessions/current/refresh"
STATUS_PATH = "/api/v1/status"


class JarvisSession:
    """
    Explicit session context passed to each request-issuing service.

    Owns the credential store and one httpx.AsyncClient. Concurrent callers
    that need a token refresh share a single in-flight refresh.
    """

    def __init__(
        self,
        settings: Optional[JarvisSettings] = None,
        store: Optional[CredentialStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Create a session.

        Args:
            settings: Client settings (loaded from the environment if omitted)
            store: Credential store (a JSON file under config_dir if omitted)
            transport: Optional httpx transport, e.g. httpx.MockTransport in tests
        """
        self.settings = settings or JarvisSettings()
        self.store = store if store is not None else JsonFileCredentialStore(self.settings.credentials_path)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._refresh_task: Optional["asyncio.Task[bool]"] = None
        self.refresh_calls = 0

    @classmethod
    def in_memory(
        cls,
        credential: Optional[Credential] = None,
        settings: Optional[JarvisSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "JarvisSession":
        """Session whose credentials live only in this process."""
        return cls(settings=settings, store=InMemoryCredentialStore(credential), transport=transport)

    async def __aenter__(self) -> "JarvisSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    @property
    def http(self) -> httpx.AsyncClient:
        """The shared HTTP client, created on first use."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.timeout),
                headers={"User-Agent": USER_AGENT},
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # Credential access

    @property
    def credential(self) -> Credential:
        return self.store.load()

    def is_authenticated(self) -> bool:
        return self.credential.has_access_token

    def set_credential(self, credential: Credential) -> None:
        """Replace the stored credential with a new one."""
        self.store.replace(credential)
        logger.debug(f"Stored credential for user {credential.user_id!r}")

    def clear_credential(self) -> None:
        self.store.clear()
        logger.debug("Cleared stored credential")

    # URLs and headers

    def auth_url(self, path: str) -> str:
        return f"{self.settings.auth_api_url}{path}"

    def api_url(self, path: str) -> str:
        return f"{self.settings.jarvis_api_url}{path}"

    def knowledge_url(self, path: str) -> str:
        return f"{self.settings.knowledge_api_url}{path}"

    def project_headers(self) -> Dict[str, str]:
        """Fixed client identification headers sent on every call."""
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "X-Stack-Access-Type": "client",
            "X-Stack-Project-Id": self.settings.stack_project_id,
            "X-Stack-Publishable-Client-Key": self.settings.stack_publishable_client_key,
        }

    def build_headers(
        self,
        include_auth: bool = True,
        extra: Optional[Dict[str, str]] = None,
    ) -> Dict[str, str]:
        """
        Build request headers from the current credential.

        Built fresh for every request so that a retried request always
        carries the latest access token.
        """
        headers = self.project_headers()
        if include_auth:
            access_token = self.credential.access_token
            if access_token:
                headers["Authorization"] = f"Bearer {access_token}"
        if extra:
            headers.update(extra)
        return headers

    # Token refresh

    async def refresh_access_token(self, stale_token: Optional[str] = None) -> bool:
        """
        Exchange the stored refresh token for a new access token.

        If a refresh is already in flight, wait for it instead of starting
        another one. If stale_token is given and the stored access token has
        already moved on, the caller's token was replaced by someone else's
        refresh and no call is made.

        Returns:
            True if a usable access token is now stored
        """
        if self._refresh_task is not None and not self._refresh_task.done():
            logger.debug("Joining in-flight token refresh")
            return await asyncio.shield(self._refresh_task)

        if stale_token is not None:
            current = self.credential.access_token
            if current and current != stale_token:
                logger.debug("Access token already refreshed by another request")
                return True

        self._refresh_task = asyncio.ensure_future(self._refresh())
        try:
            return await asyncio.shield(self._refresh_task)
        finally:
            if self._refresh_task is not None and self._refresh_task.done():
                self._refresh_task = None

    async def _refresh(self) -> bool:
        refresh_token = self.credential.refresh_token
        if not refresh_token:
            logger.warning("No refresh token available")
            return False

        headers = self.project_headers()
        headers["X-Stack-Refresh-Token"] = refresh_token

        logger.info("Refreshing authentication token")
        self.refresh_calls += 1
        try:
            response = await self.http.post(
                self.auth_url(REFRESH_PATH),
                headers=headers,
                json={},
            )
        except httpx.RequestError as e:
            logger.error(f"Error refreshing token: {e}")
            return False

        if not response.is_success:
            logger.error(f"Token refresh failed: {response.status_code}")
            return False

        try:
            data: Any = response.json()
        except ValueError:
            logger.error("Token refresh returned a non-JSON body")
            return False

        new_access_token = data.get("access_token") if isinstance(data, dict) else None
        if not new_access_token:
            logger.warning("No access token in refresh response")
            return False

        self.store.save_access_token(new_access_token)
        logger.info("Token refreshed successfully")
        return True

    # Diagnostics

    async def probe(self, url: str, include_auth: bool = False) -> bool:
        """
        Connectivity check with a short timeout.

        Not routed through the refresh-retry loop; any failure is reported
        as False.
        """
        headers = self.build_headers(include_auth=include_auth)
        try:
            response = await self.http.get(
                url,
                headers=headers,
                timeout=self.settings.status_probe_timeout,
            )
        except httpx.RequestError as e:
            logger.debug(f"Probe of {url} failed: {e}")
            return False
        return response.status_code == 200
