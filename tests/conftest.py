"""Shared fixtures: settings isolated from the environment and a fake API server."""

import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest
import pytest_asyncio

from jarvis_client.config.settings import JarvisSettings
from jarvis_client.core.credentials import Credential
from jarvis_client.core.session import REFRESH_PATH, JarvisSession

AUTH_HOST = "auth.test"
API_HOST = "api.test"
KNOWLEDGE_HOST = "kb.test"

Reply = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


def json_response(status: int = 200, body: Any = None) -> httpx.Response:
    """A JSON response, or an empty one if body is None."""
    if body is None:
        return httpx.Response(status)
    return httpx.Response(status, json=body)


class FakeJarvisServer:
    """
    Routes requests by (method, host, path) to queued replies and records them.

    Each route holds a list of replies; the last one repeats once the
    others are used up. Unrouted requests get a 404.
    """

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str, str], List[Reply]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, host: str, path: str, *replies: Reply) -> None:
        self.routes.setdefault((method.upper(), host, path), []).extend(replies)

    def auth(self, method: str, path: str, *replies: Reply) -> None:
        self.add(method, AUTH_HOST, path, *replies)

    def api(self, method: str, path: str, *replies: Reply) -> None:
        self.add(method, API_HOST, path, *replies)

    def kb(self, method: str, path: str, *replies: Reply) -> None:
        self.add(method, KNOWLEDGE_HOST, path, *replies)

    def on_refresh(self, *replies: Reply) -> None:
        self.add("POST", AUTH_HOST, REFRESH_PATH, *replies)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        replies = self.routes.get((request.method, request.url.host, request.url.path))
        if not replies:
            return json_response(404, {"message": f"no route for {request.method} {request.url.path}"})
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        if callable(reply):
            return reply(request)
        # A response object is consumed by the client, so hand out a copy.
        return httpx.Response(reply.status_code, headers=reply.headers, content=reply.content)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def calls(self, path: str, method: Optional[str] = None) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if r.url.path == path and (method is None or r.method == method.upper())
        ]

    @property
    def refresh_requests(self) -> List[httpx.Request]:
        return self.calls(REFRESH_PATH, "POST")

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content or b"null")


@pytest.fixture
def settings(tmp_path) -> JarvisSettings:
    """Settings pointing at fake hosts, ignoring any .env file."""
    return JarvisSettings(
        _env_file=None,
        auth_api_url=f"https://{AUTH_HOST}",
        jarvis_api_url=f"https://{API_HOST}",
        knowledge_api_url=f"https://{KNOWLEDGE_HOST}",
        config_dir=tmp_path / "config",
    )


@pytest.fixture
def server() -> FakeJarvisServer:
    return FakeJarvisServer()


@pytest.fixture
def credential() -> Credential:
    return Credential(access_token="T1", refresh_token="R1", user_id="user-1")


@pytest_asyncio.fixture
async def session(settings, server, credential):
    """Signed-in session talking to the fake server."""
    async with JarvisSession.in_memory(credential, settings=settings, transport=server.transport) as s:
        yield s
