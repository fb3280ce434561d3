"""
Payload models for the Jarvis API.
"""

from .chat import ChatMessage, ChatSession, SendMessageResult
from .prompt import Prompt, PromptPage, PROMPT_CATEGORIES
from .bot import Bot, KnowledgeBase, PUBLISH_PLATFORMS, bot_request_body
from .user import AuthResult, UserProfile, TokenUsage

__all__ = [
    "ChatMessage",
    "ChatSession",
    "SendMessageResult",
    "Prompt",
    "PromptPage",
    "PROMPT_CATEGORIES",
    "Bot",
    "KnowledgeBase",
    "PUBLISH_PLATFORMS",
    "bot_request_body",
    "AuthResult",
    "UserProfile",
    "TokenUsage",
]
