"""Prompt library service."""

import logging
from typing import Any, Dict, Optional

from ..core.errors import ValidationError
from ..models.prompt import PROMPT_CATEGORIES, Prompt, PromptPage
from .base import BaseService
from .chat_service import JARVIS_GUID_HEADER

logger = logging.getLogger(__name__)

PROMPTS_PATH = "/api/v1/prompts"


def _validate_category(category: Optional[str]) -> None:
    if category is not None and category not in PROMPT_CATEGORIES:
        raise ValidationError(
            f"Invalid category '{category}'. Valid categories: {', '.join(PROMPT_CATEGORIES)}",
            field="category",
        )


class PromptService(BaseService):
    """Create, search, update and favorite prompts."""

    async def create_prompt(self, prompt: Prompt) -> Prompt:
        if not prompt.title.strip() or not prompt.content.strip():
            raise ValidationError("A prompt needs a title and content", field="title")
        _validate_category(prompt.category)
        logger.info(f"Creating new prompt: {prompt.title}")
        data = await self.executor.post(
            self.session.api_url(PROMPTS_PATH),
            json=prompt.to_create_body(),
            headers=JARVIS_GUID_HEADER,
            operation="create prompt",
        )
        created = self._parse(data, "create prompt")
        logger.info(f"Prompt created successfully: {created.id}")
        return created

    async def list_prompts(
        self,
        query: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
        category: Optional[str] = None,
        is_favorite: Optional[bool] = None,
        is_public: Optional[bool] = None,
        only_mine: bool = False,
    ) -> PromptPage:
        """
        Search prompts with filters and pagination.

        Args:
            query: Optional search keyword
            offset: Pagination offset
            limit: Number of items per page
            category: One of PROMPT_CATEGORIES
            is_favorite: Filter by favorite status
            is_public: Filter by public status
            only_mine: Show only the user's own prompts
        """
        _validate_category(category)
        if offset < 0 or limit <= 0:
            raise ValidationError("offset must be >= 0 and limit > 0", field="limit")

        params: Dict[str, Any] = {"offset": str(offset), "limit": str(limit)}
        if query:
            params["query"] = query
        if category:
            params["category"] = category
        if is_favorite is not None:
            params["isFavorite"] = str(is_favorite).lower()
        if is_public is not None:
            params["isPublic"] = str(is_public).lower()
        if only_mine:
            params["owner"] = "me"

        data = await self.executor.get(
            self.session.api_url(PROMPTS_PATH),
            params=params,
            headers=JARVIS_GUID_HEADER,
            operation="get prompts",
        )
        data = self.expect_object(data or {}, "get prompts")
        with self.parsing("get prompts"):
            return PromptPage.from_api(data)

    async def get_prompt(self, prompt_id: str) -> Prompt:
        prompt_id = self.require(prompt_id, "prompt_id")
        data = await self.executor.get(
            self.session.api_url(f"{PROMPTS_PATH}/{prompt_id}"),
            headers=JARVIS_GUID_HEADER,
            operation="get prompt",
        )
        return self._parse(data, "get prompt")

    async def update_prompt(
        self,
        prompt_id: str,
        prompt: Prompt,
        update_title: bool = True,
        update_content: bool = True,
    ) -> Prompt:
        prompt_id = self.require(prompt_id, "prompt_id")
        if not prompt.description.strip():
            raise ValidationError("description is required", field="description")
        _validate_category(prompt.category)
        logger.info(f"Updating prompt: {prompt_id}")
        data = await self.executor.patch(
            self.session.api_url(f"{PROMPTS_PATH}/{prompt_id}"),
            json=prompt.to_update_body(include_title=update_title, include_content=update_content),
            headers=JARVIS_GUID_HEADER,
            operation="update prompt",
        )
        return self._parse(data, "update prompt")

    async def delete_prompt(self, prompt_id: str) -> None:
        prompt_id = self.require(prompt_id, "prompt_id")
        logger.info(f"Deleting prompt: {prompt_id}")
        await self.executor.delete(
            self.session.api_url(f"{PROMPTS_PATH}/{prompt_id}"),
            headers=JARVIS_GUID_HEADER,
            operation="delete prompt",
        )

    async def add_favorite(self, prompt_id: str) -> None:
        prompt_id = self.require(prompt_id, "prompt_id")
        await self.executor.post(
            self.session.api_url(f"{PROMPTS_PATH}/{prompt_id}/favorite"),
            headers=JARVIS_GUID_HEADER,
            operation="add prompt to favorites",
        )

    async def remove_favorite(self, prompt_id: str) -> None:
        prompt_id = self.require(prompt_id, "prompt_id")
        await self.executor.delete(
            self.session.api_url(f"{PROMPTS_PATH}/{prompt_id}/favorite"),
            headers=JARVIS_GUID_HEADER,
            operation="remove prompt from favorites",
        )

    def _parse(self, data: Any, operation: str) -> Prompt:
        data = self.expect_object(data, operation)
        with self.parsing(operation):
            return Prompt.from_api(data)
