"""Prompt library payloads."""

import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PROMPT_CATEGORIES = (
    "business", "career", "chatbot", "coding", "education",
    "fun", "marketing", "productivity", "seo", "writing", "other",
)


class Prompt(BaseModel):
    """A saved prompt, private or public."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(default=None, alias="_id")
    title: str = ""
    content: str = ""
    description: str = ""
    category: str = "other"
    language: str = "English"
    is_public: bool = Field(default=False, alias="isPublic")
    is_favorite: bool = Field(default=False, alias="isFavorite")
    user_id: Optional[str] = Field(default=None, alias="userId")
    user_name: Optional[str] = Field(default=None, alias="userName")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, v: Any) -> str:
        return v or "other"

    @field_validator("language", mode="before")
    @classmethod
    def default_language(cls, v: Any) -> str:
        return v or "English"

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Prompt":
        data = dict(data)
        if "_id" not in data and "id" in data:
            data["_id"] = data.pop("id")
        return cls.model_validate(data)

    def to_create_body(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "content": self.content,
            "description": self.description,
            "isPublic": self.is_public,
            "category": self.category,
            "language": self.language,
        }

    def to_update_body(self, include_title: bool = True, include_content: bool = True) -> Dict[str, Any]:
        body = {
            "description": self.description,
            "isPublic": self.is_public,
            "category": self.category,
            "language": self.language,
        }
        if include_title and self.title:
            body["title"] = self.title
        if include_content and self.content:
            body["content"] = self.content
        return body


class PromptPage(BaseModel):
    """One page of a prompt listing."""
    has_next: bool = False
    offset: int = 0
    limit: int = 20
    total: int = 0
    items: List[Prompt] = Field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "PromptPage":
        return cls(
            has_next=data.get("hasNext", False),
            offset=data.get("offset", 0),
            limit=data.get("limit", 20),
            total=data.get("total", 0),
            items=[Prompt.from_api(item) for item in data.get("items") or []],
        )

    @property
    def next_offset(self) -> int:
        return self.offset + self.limit

    @property
    def current_page(self) -> int:
        if self.limit <= 0:
            return 1
        return self.offset // self.limit + 1

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return math.ceil(self.total / self.limit)
