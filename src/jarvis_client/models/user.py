"""User, auth and usage payloads."""

from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class AuthResult(BaseModel):
    """Tokens returned by sign-in and sign-up."""
    access_token: str
    refresh_token: str = ""
    user_id: str = ""


class UserProfile(BaseModel):
    """The signed-in user's profile."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(default="", validation_alias=AliasChoices("id", "user_id"))
    email: str = ""
    name: Optional[str] = Field(default=None, validation_alias=AliasChoices("name", "username"))
    email_verified: bool = True
    client_metadata: Optional[Dict[str, Any]] = None
    client_read_only_metadata: Optional[Dict[str, Any]] = None
    server_metadata: Optional[Dict[str, Any]] = None


class TokenUsage(BaseModel):
    """Remaining and total token allowance for the current period."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    available_tokens: int = Field(default=0, validation_alias=AliasChoices("availableTokens", "available_tokens"))
    total_tokens: int = Field(default=0, validation_alias=AliasChoices("totalTokens", "total_tokens"))
    unlimited: bool = False
