"""
AI chat service: conversations and messages.

Conversation endpoints require the ``assistantModel`` query parameter and
an (empty) ``x-jarvis-guid`` header on every call.
"""

import logging
import time
from typing import Any, Dict, List, Optional

from ..config.settings import MODEL_NAMES
from ..core.errors import ApiError, JarvisError, ValidationError
from ..core.executor import AuthenticatedExecutor
from ..core.session import STATUS_PATH, JarvisSession
from ..models.chat import ChatMessage, ChatSession, SendMessageResult
from .base import BaseService

logger = logging.getLogger(__name__)

CONVERSATIONS_PATH = "/api/v1/ai-chat/conversations"
MESSAGES_PATH = "/api/v1/ai-chat/messages"

ASSISTANT_MODEL = "dify"
JARVIS_GUID_HEADER = {"x-jarvis-guid": ""}

# A conversation can only be created by sending a first message.
BOOTSTRAP_MESSAGE = "start_conversation"
DEFAULT_TITLE = "New Chat"
MAX_TITLE_LENGTH = 50


def conversation_messages_path(conversation_id: str) -> str:
    return f"{CONVERSATIONS_PATH}/{conversation_id.strip()}/messages"


def title_from_message(message: str) -> str:
    """Conversation title derived from the first user message."""
    if len(message) > MAX_TITLE_LENGTH:
        return message[:MAX_TITLE_LENGTH - 3] + "..."
    return message


class ChatService(BaseService):
    """Lists, creates, reads and deletes conversations; sends messages."""

    def __init__(
        self,
        session: JarvisSession,
        executor: Optional[AuthenticatedExecutor] = None,
        model: Optional[str] = None,
    ):
        super().__init__(session, executor)
        self._sessions_cache: List[ChatSession] = []
        self._cache_time: Optional[float] = None
        self._selected_model = session.settings.model
        if model is not None:
            self.set_selected_model(model)

    # Model selection

    @property
    def selected_model(self) -> str:
        return self._selected_model

    def set_selected_model(self, model: str) -> None:
        if model not in MODEL_NAMES:
            raise ValidationError(
                f"Unknown model '{model}'. Valid models: {', '.join(sorted(MODEL_NAMES))}",
                field="model",
            )
        self._selected_model = model
        self.invalidate_cache()

    @staticmethod
    def available_models() -> Dict[str, str]:
        return dict(MODEL_NAMES)

    def _assistant(self) -> Dict[str, str]:
        return {
            "id": self._selected_model,
            "model": ASSISTANT_MODEL,
            "name": MODEL_NAMES.get(self._selected_model, "AI Assistant"),
        }

    def _query_params(self, limit: Optional[int] = None) -> Dict[str, str]:
        params = {"assistantModel": ASSISTANT_MODEL, "assistantId": self._selected_model}
        if limit is not None:
            params["limit"] = str(limit)
        return params

    # Conversations

    def invalidate_cache(self) -> None:
        self._cache_time = None

    async def list_conversations(self, limit: int = 100, use_cache: bool = True) -> List[ChatSession]:
        """Return the user's conversations, served from a short-lived cache."""
        ttl = self.session.settings.conversation_cache_seconds
        if (
            use_cache
            and self._cache_time is not None
            and self._sessions_cache
            and time.monotonic() - self._cache_time < ttl
        ):
            logger.debug(f"Returning cached chat sessions ({len(self._sessions_cache)})")
            return list(self._sessions_cache)

        logger.info("Getting user chat sessions")
        data = await self.executor.get(
            self.session.api_url(CONVERSATIONS_PATH),
            params=self._query_params(limit),
            headers=JARVIS_GUID_HEADER,
            operation="get chat sessions",
        )
        data = self.expect_object(data or {}, "get chat sessions")
        if data.get("has_more") and data.get("cursor"):
            logger.debug(f"More conversations available after cursor {data['cursor']}")

        with self.parsing("get chat sessions"):
            self._sessions_cache = [ChatSession.from_item(item) for item in _items(data)]
        self._cache_time = time.monotonic()
        return list(self._sessions_cache)

    async def create_conversation(self) -> ChatSession:
        """
        Start a new conversation.

        The API has no endpoint for an empty conversation, so a bootstrap
        message is sent and the assistant's answer becomes the welcome
        message.
        """
        logger.info(f"Creating new chat session with model {self._selected_model}")
        data = await self.executor.post(
            self.session.api_url(MESSAGES_PATH),
            json={
                "content": BOOTSTRAP_MESSAGE,
                "files": [],
                "metadata": {"conversation": {"title": DEFAULT_TITLE, "messages": []}},
                "assistant": self._assistant(),
            },
            headers=JARVIS_GUID_HEADER,
            operation="create chat session",
        )
        data = self.expect_object(data or {}, "create chat session")
        conversation_id = data.get("conversationId")
        if not conversation_id:
            raise ApiError("Failed to get conversation ID from response")

        self.invalidate_cache()
        with self.parsing("create chat session"):
            welcome = ChatMessage(
                id=f"{conversation_id}:welcome",
                text=data.get("message") or "Hello, how can I help you today?",
                is_user=False,
            )
            return ChatSession(id=conversation_id, title=DEFAULT_TITLE, messages=[welcome])

    async def get_messages(self, conversation_id: str, limit: int = 100) -> List[ChatMessage]:
        """Return the message history of a conversation, oldest first."""
        conversation_id = self.require(conversation_id, "conversation_id")
        logger.info(f"Getting messages for conversation: {conversation_id}")
        data = await self.executor.get(
            self.session.api_url(conversation_messages_path(conversation_id)),
            params=self._query_params(limit),
            headers=JARVIS_GUID_HEADER,
            operation="get messages",
        )
        data = self.expect_object(data or {}, "get messages")
        messages: List[ChatMessage] = []
        with self.parsing("get messages"):
            for item in _items(data):
                messages.extend(ChatMessage.from_history_item(item))
        return messages

    async def send_message(self, conversation_id: str, message: str) -> SendMessageResult:
        """
        Send a user message and return the assistant's reply.

        The previous history is sent along with the new message. The first
        real user message also becomes the conversation title.
        """
        conversation_id = self.require(conversation_id, "conversation_id")
        if not message or not message.strip():
            raise ValidationError("message must not be empty", field="message")

        history = await self.get_messages(conversation_id)
        is_first_user_message = not any(
            m.is_user and m.text != BOOTSTRAP_MESSAGE for m in history
        )
        title = title_from_message(message) if is_first_user_message else DEFAULT_TITLE
        assistant = self._assistant()

        logger.info(f"Sending message to conversation: {conversation_id}")
        data = await self.executor.post(
            self.session.api_url(MESSAGES_PATH),
            json={
                "content": message,
                "files": [],
                "metadata": {
                    "conversation": {
                        "id": conversation_id,
                        "title": title,
                        "messages": [m.to_history_entry(assistant) for m in history],
                    }
                },
                "assistant": assistant,
            },
            headers=JARVIS_GUID_HEADER,
            operation="send message",
        )
        data = self.expect_object(data or {}, "send message")
        self.invalidate_cache()

        if is_first_user_message:
            try:
                await self.update_conversation_title(conversation_id, title)
            except JarvisError as e:
                logger.warning(f"Error updating conversation title: {e}")

        with self.parsing("send message"):
            return SendMessageResult(
                message=data.get("message") or "",
                conversation_id=data.get("conversationId") or conversation_id,
                remaining_usage=data.get("remainingUsage"),
                user_message=message,
                title=title if is_first_user_message else None,
            )

    async def update_conversation_title(self, conversation_id: str, title: str) -> None:
        conversation_id = self.require(conversation_id, "conversation_id")
        logger.info(f'Updating conversation title: {conversation_id} to "{title}"')
        await self.executor.patch(
            self.session.api_url(f"{CONVERSATIONS_PATH}/{conversation_id}"),
            json={"title": title},
            headers=JARVIS_GUID_HEADER,
            operation="update conversation title",
        )

    async def delete_conversation(self, conversation_id: str) -> None:
        """
        Delete a conversation.

        Raises:
            ValidationError: Empty conversation id (no request is made)
            AuthenticationError: Token expired and could not be refreshed
        """
        conversation_id = self.require(conversation_id, "conversation_id")
        logger.info(f"Deleting chat session: {conversation_id}")
        try:
            await self.executor.delete(
                self.session.api_url(f"{CONVERSATIONS_PATH}/{conversation_id}"),
                params=self._query_params(),
                headers=JARVIS_GUID_HEADER,
                operation="delete chat session",
            )
        finally:
            self.invalidate_cache()
        logger.info("Chat session deleted successfully")

    # Diagnostics

    async def check_api_connections(self) -> Dict[str, bool]:
        """Probe the auth API, the chat API and the chat API with credentials."""
        return {
            "auth_api": await self.session.probe(self.session.auth_url(STATUS_PATH)),
            "jarvis_api": await self.session.probe(self.session.api_url(STATUS_PATH)),
            "authenticated": await self.session.probe(
                self.session.api_url(STATUS_PATH), include_auth=True
            ),
        }

    async def get_diagnostic_info(self) -> Dict[str, Any]:
        return {
            "selected_model": self._selected_model,
            "is_authenticated": self.session.is_authenticated(),
            "api_connections": await self.check_api_connections(),
        }


def _items(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    if isinstance(data.get("items"), list):
        return [item for item in data["items"] if isinstance(item, dict)]
    logger.warning("No items found in response or invalid format")
    return []
