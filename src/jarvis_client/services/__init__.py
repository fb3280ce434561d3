"""
Feature services for the Jarvis API.

Each service takes a JarvisSession and routes all calls through an
AuthenticatedExecutor.
"""

from .base import BaseService
from .auth_service import AuthService
from .chat_service import ChatService
from .prompt_service import PromptService
from .bot_service import BotService
from .user_service import UserService

__all__ = [
    "BaseService",
    "AuthService",
    "ChatService",
    "PromptService",
    "BotService",
    "UserService",
]
