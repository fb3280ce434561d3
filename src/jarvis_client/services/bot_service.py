"""
AI bot management service.

Bots are user-defined assistants with their own instructions. They can be
given knowledge bases, asked questions directly, and published to chat
platforms.
"""

import logging
import mimetypes
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.errors import ApiError, ValidationError
from ..models.bot import PUBLISH_PLATFORMS, Bot, KnowledgeBase, bot_request_body
from .base import BaseService

logger = logging.getLogger(__name__)

BOTS_PATH = "/api/v1/ai-assistants"
KNOWLEDGE_PATH = "/kb-core/v1/knowledge"
KNOWLEDGE_UPLOAD_PATH = "/kb-core/v1/knowledge/local-file"


class BotService(BaseService):
    """CRUD, knowledge and publishing operations on AI bots."""

    def _bot_url(self, bot_id: str, suffix: str = "") -> str:
        bot_id = self.require(bot_id, "bot_id")
        return self.session.api_url(f"{BOTS_PATH}/{bot_id}{suffix}")

    async def create_bot(self, name: str, instructions: str, description: str = "", model: Optional[str] = None) -> Bot:
        name = self.require(name, "name")
        logger.info(f"Creating AI Bot: {name}")
        data = await self.executor.post(
            self.session.api_url(BOTS_PATH),
            json=bot_request_body(
                name=name,
                description=description,
                model=model or self.session.settings.model,
                instructions=instructions,
            ),
            operation="create bot",
        )
        bot = self._parse_bot(data, "create bot")
        logger.info(f"Bot created successfully, ID: {bot.id}")
        return bot

    async def list_bots(self, query: Optional[str] = None) -> List[Bot]:
        params = {"query": query} if query else None
        data = await self.executor.get(
            self.session.api_url(BOTS_PATH),
            params=params,
            operation="fetch bots",
        )
        items = _list_field(data, "fetch bots", "assistants", "data", "items")
        with self.parsing("fetch bots"):
            return [Bot.model_validate(item) for item in items]

    async def get_bot(self, bot_id: str) -> Bot:
        data = await self.executor.get(self._bot_url(bot_id), operation="fetch bot")
        return self._parse_bot(data, "fetch bot")

    async def update_bot(
        self,
        bot_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        model: Optional[str] = None,
        instructions: Optional[str] = None,
    ) -> Bot:
        """Update only the fields that are given."""
        body = bot_request_body(name=name, description=description, model=model, instructions=instructions)
        if not body:
            raise ValidationError("Nothing to update", field="bot")
        logger.info(f"Updating AI Bot with ID: {bot_id}")
        data = await self.executor.patch(self._bot_url(bot_id), json=body, operation="update bot")
        return self._parse_bot(data, "update bot")

    async def delete_bot(self, bot_id: str) -> None:
        logger.info(f"Deleting AI Bot with ID: {bot_id}")
        await self.executor.delete(self._bot_url(bot_id), operation="delete bot")

    # Knowledge

    async def list_knowledge_bases(self) -> List[KnowledgeBase]:
        data = await self.executor.get(
            self.session.knowledge_url(KNOWLEDGE_PATH),
            operation="fetch knowledge bases",
        )
        items = _list_field(data, "fetch knowledge bases", "items", "data")
        with self.parsing("fetch knowledge bases"):
            return [KnowledgeBase.model_validate(item) for item in items]

    async def import_knowledge(self, bot_id: str, knowledge_base_ids: List[str]) -> None:
        if not knowledge_base_ids:
            raise ValidationError("At least one knowledge base id is required", field="knowledge_base_ids")
        logger.info(f"Importing knowledge to bot {bot_id}")
        await self.executor.post(
            self._bot_url(bot_id, "/knowledges"),
            json={"knowledgeBaseIds": knowledge_base_ids},
            operation="import knowledge",
        )

    async def remove_knowledge(self, bot_id: str, knowledge_base_id: str) -> None:
        knowledge_base_id = self.require(knowledge_base_id, "knowledge_base_id")
        logger.info(f"Removing knowledge {knowledge_base_id} from bot {bot_id}")
        await self.executor.delete(
            self._bot_url(bot_id, f"/knowledges/{knowledge_base_id}"),
            operation="remove knowledge",
        )

    async def upload_knowledge_file(self, path: Path) -> str:
        """Upload a local file as knowledge and return the new file id."""
        path = Path(path)
        if not path.is_file():
            raise ValidationError(f"File not found: {path}", field="path")
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        logger.info(f"Uploading knowledge file: {path}")
        data = await self.executor.post(
            self.session.knowledge_url(KNOWLEDGE_UPLOAD_PATH),
            files={"file": (path.name, path.read_bytes(), content_type)},
            operation="upload file",
        )
        file_id = self.expect_object(data or {}, "upload file").get("id")
        if not file_id:
            raise ApiError("Failed to upload file: no id in response")
        return file_id

    # Conversation and publishing

    async def ask_bot(self, bot_id: str, message: str) -> str:
        if not message or not message.strip():
            raise ValidationError("message must not be empty", field="message")
        logger.info(f"Asking bot {bot_id}")
        data = await self.executor.post(
            self._bot_url(bot_id, "/ask"),
            json={"query": message},
            operation="ask bot",
        )
        answer = self.expect_object(data or {}, "ask bot").get("answer")
        return str(answer) if answer else "No response received"

    async def get_publishing_configurations(self, bot_id: str) -> Dict[str, Any]:
        bot_id = self.require(bot_id, "bot_id")
        data = await self.executor.get(
            self._bot_url(bot_id, "/configurations"),
            operation="fetch publishing configurations",
        )
        return self.expect_object(data or {}, "fetch publishing configurations")

    async def publish_bot(self, bot_id: str, platform: str, config: Dict[str, Any]) -> None:
        bot_id = self.require(bot_id, "bot_id")
        _validate_platform(platform)
        logger.info(f"Publishing bot {bot_id} to {platform}")
        await self.executor.post(
            self._bot_url(bot_id, "/publish"),
            json={"platform": platform, "configuration": config},
            operation="publish bot",
        )

    async def unpublish_bot(self, bot_id: str, platform: str) -> None:
        bot_id = self.require(bot_id, "bot_id")
        _validate_platform(platform)
        logger.info(f"Unpublishing bot {bot_id} from {platform}")
        await self.executor.delete(
            self._bot_url(bot_id, f"/publish/{platform}"),
            operation="unpublish bot",
        )

    def _parse_bot(self, data: Any, operation: str) -> Bot:
        data = self.expect_object(data, operation)
        with self.parsing(operation):
            return Bot.model_validate(data)


def _validate_platform(platform: str) -> None:
    if platform not in PUBLISH_PLATFORMS:
        raise ValidationError(
            f"Invalid platform '{platform}'. Valid platforms: {', '.join(PUBLISH_PLATFORMS)}",
            field="platform",
        )


def _list_field(data: Any, operation: str, *keys: str) -> List[Any]:
    """Find the item list in a body that is either a list or an object wrapping one."""
    if data is None:
        return []
    if isinstance(data, list):
        return data
    data = BaseService.expect_object(data, operation)
    for key in keys:
        if isinstance(data.get(key), list):
            return data[key]
    return []
