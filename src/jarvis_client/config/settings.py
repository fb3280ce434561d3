"""
Configuration settings for the Jarvis client.

This module provides configuration management using Pydantic settings
with support for environment variables and .env files.
"""

from typing import Optional, Dict, Any
from pathlib import Path
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Models the Jarvis assistant endpoint accepts, keyed by id.
MODEL_NAMES: Dict[str, str] = {
    "claude-3-5-sonnet-20240620": "Claude 3.5 Sonnet",
    "gpt-4o": "GPT-4o",
    "gpt-4o-mini": "GPT-4o Mini",
    "gemini-1.5-flash-latest": "Gemini 1.5 Flash",
    "gemini-1.5-pro-latest": "Gemini 1.5 Pro",
    "claude-3-haiku-20240307": "Claude 3 Haiku",
}


class JarvisSettings(BaseSettings):
    """
    Main configuration settings for the Jarvis client.

    Settings are loaded from multiple sources in order of preference:
    1. Environment variables (prefixed with JARVIS_)
    2. .env file
    3. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="JARVIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API endpoints
    auth_api_url: str = Field(
        default="https://auth-api.dev.jarvis.cx",
        description="Base URL of the authentication API"
    )

    jarvis_api_url: str = Field(
        default="https://api.dev.jarvis.cx",
        description="Base URL of the conversation/prompt API"
    )

    knowledge_api_url: str = Field(
        default="https://knowledge-api.dev.jarvis.cx",
        description="Base URL of the bot/knowledge API"
    )

    verification_callback_url: str = Field(
        default=(
            "https://auth.dev.jarvis.cx/handler/email-verification"
            "?after_auth_return_to=%2Fauth%2Fsignin%3Fclient_id%3Djarvis_chat"
            "%26redirect%3Dhttps%253A%252F%252Fchat.dev.jarvis.cx%252Fauth%252Foauth%252Fsuccess"
        ),
        description="Callback sent with sign-up for the email verification link"
    )

    # Client identification
    stack_project_id: str = Field(
        default="a914f06b-5e46-4966-8693-80e4b9f4f409",
        description="Project id sent in X-Stack-Project-Id"
    )

    stack_publishable_client_key: str = Field(
        default="pck_tqsy29b64a585km2g4wnpc57ypjprzzdch8xzpq0xhayr",
        description="Publishable client key sent in X-Stack-Publishable-Client-Key"
    )

    # Request behaviour
    max_refresh_attempts: int = Field(
        default=1,
        description="Refresh-and-retry cycles allowed per logical request",
        ge=0,
        le=5
    )

    timeout: float = Field(
        default=30.0,
        description="Request timeout in seconds",
        gt=0
    )

    status_probe_timeout: float = Field(
        default=5.0,
        description="Timeout for the connectivity diagnostic probe",
        gt=0
    )

    conversation_cache_seconds: int = Field(
        default=30,
        description="How long the conversation list is served from cache",
        ge=0
    )

    # Chat defaults
    model: str = Field(
        default="gpt-4o-mini",
        description="Default assistant model"
    )

    # Directory Configuration
    config_dir: Path = Field(
        default_factory=lambda: Path.home() / ".config" / "jarvis-client",
        description="Configuration directory path"
    )

    credentials_file: Optional[Path] = Field(
        default=None,
        description="Credential store file; defaults to <config_dir>/credentials.json"
    )

    # Logging Configuration
    log_level: str = Field(
        default="WARNING",
        description="Logging level"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    @field_validator("auth_api_url", "jarvis_api_url", "knowledge_api_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate and normalise a base URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid base URL '{v}': must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str) -> str:
        """Validate model name."""
        if v not in MODEL_NAMES:
            raise ValueError(f"Invalid model '{v}'. Valid models: {', '.join(sorted(MODEL_NAMES))}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level '{v}'. Valid levels: {', '.join(sorted(valid_levels))}")
        return v_upper

    @property
    def credentials_path(self) -> Path:
        """Path to the persisted credential store."""
        return self.credentials_file or self.config_dir / "credentials.json"

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary, masking the client key."""
        data = self.model_dump()
        if data.get("stack_publishable_client_key"):
            data["stack_publishable_client_key"] = "***masked***"
        return data


def get_settings(**overrides: Any) -> JarvisSettings:
    """Get the current Jarvis client settings."""
    return JarvisSettings(**overrides)
