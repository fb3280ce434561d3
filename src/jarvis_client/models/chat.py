"""Conversation and message payloads of the AI chat endpoints."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


def _from_epoch(value: Any) -> datetime:
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return datetime.now(timezone.utc)


class ChatMessage(BaseModel):
    """One message shown in a conversation."""
    id: str
    text: str
    is_user: bool
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def from_history_item(cls, item: Dict[str, Any]) -> List["ChatMessage"]:
        """
        Split a history item into its user and assistant messages.

        A history item carries the user's ``query`` and the assistant's
        ``answer``; either may be missing.
        """
        item_id = str(item.get("id") or int(datetime.now().timestamp() * 1000))
        timestamp = _from_epoch(item.get("createdAt"))
        messages = []
        if "query" in item:
            messages.append(cls(
                id=f"{item_id}:query",
                text=item.get("query") or "",
                is_user=True,
                timestamp=timestamp,
                metadata=item,
            ))
        if "answer" in item:
            messages.append(cls(
                id=f"{item_id}:answer",
                text=item.get("answer") or "",
                is_user=False,
                timestamp=timestamp,
                metadata=item,
            ))
        return messages

    def to_history_entry(self, assistant: Dict[str, str]) -> Dict[str, Any]:
        """Format for the ``metadata.conversation.messages`` request field."""
        return {
            "role": "user" if self.is_user else "model",
            "content": self.text,
            "files": [],
            "assistant": assistant,
        }


class ChatSession(BaseModel):
    """A conversation in the user's chat list."""
    id: str
    title: str = "New Chat"
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    messages: List[ChatMessage] = Field(default_factory=list)

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "ChatSession":
        return cls(
            id=item.get("id") or "",
            title=item.get("title") or "New Chat",
            created_at=_from_epoch(item.get("createdAt")),
        )


class SendMessageResult(BaseModel):
    """Outcome of sending a message to a conversation."""
    message: str
    conversation_id: str
    user_message: str
    remaining_usage: Optional[int] = None
    title: Optional[str] = None
