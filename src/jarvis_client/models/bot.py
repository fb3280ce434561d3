"""AI bot (assistant) and knowledge base payloads."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

PUBLISH_PLATFORMS = ("slack", "telegram", "messenger")


class Bot(BaseModel):
    """A user-defined assistant with its own instructions."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    name: str = Field(default="", validation_alias=AliasChoices("name", "assistantName"))
    description: str = ""
    model: Optional[str] = None
    instructions: str = ""
    created_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("createdAt", "created_at")
    )
    updated_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("updatedAt", "updated_at")
    )


class KnowledgeBase(BaseModel):
    """A knowledge base that can be attached to a bot."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    name: str = Field(default="", validation_alias=AliasChoices("name", "knowledgeName"))
    description: str = ""


def bot_request_body(
    name: Optional[str] = None,
    description: Optional[str] = None,
    model: Optional[str] = None,
    instructions: Optional[str] = None,
) -> Dict[str, Any]:
    """Body for create/update; fields left as None are omitted."""
    body: Dict[str, Any] = {}
    if name is not None:
        body["name"] = name
    if description is not None:
        body["description"] = description
    if model is not None:
        body["model"] = model
    if instructions is not None:
        body["instructions"] = instructions
    return body
