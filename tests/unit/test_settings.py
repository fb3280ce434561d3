"""Tests for configuration settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from jarvis_client.config.settings import MODEL_NAMES, JarvisSettings, get_settings


class TestJarvisSettings:
    """Test cases for JarvisSettings."""

    def test_default_values(self) -> None:
        """Test that default values are set correctly."""
        settings = JarvisSettings(_env_file=None)

        assert settings.auth_api_url == "https://auth-api.dev.jarvis.cx"
        assert settings.jarvis_api_url == "https://api.dev.jarvis.cx"
        assert settings.max_refresh_attempts == 1
        assert settings.timeout == 30.0
        assert settings.status_probe_timeout == 5.0
        assert settings.conversation_cache_seconds == 30
        assert settings.model in MODEL_NAMES
        assert settings.log_level == "WARNING"

    def test_values_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test loading from JARVIS_ environment variables."""
        monkeypatch.setenv("JARVIS_MAX_REFRESH_ATTEMPTS", "3")
        monkeypatch.setenv("JARVIS_JARVIS_API_URL", "http://localhost:8080/")
        settings = JarvisSettings(_env_file=None)

        assert settings.max_refresh_attempts == 3
        assert settings.jarvis_api_url == "http://localhost:8080"

    def test_invalid_url(self) -> None:
        """Test validation of base URLs."""
        with pytest.raises(ValidationError):
            JarvisSettings(_env_file=None, auth_api_url="ftp://example.com")

    def test_refresh_bound_limits(self) -> None:
        """Test validation of the refresh bound."""
        JarvisSettings(_env_file=None, max_refresh_attempts=0)
        JarvisSettings(_env_file=None, max_refresh_attempts=5)
        with pytest.raises(ValidationError):
            JarvisSettings(_env_file=None, max_refresh_attempts=-1)
        with pytest.raises(ValidationError):
            JarvisSettings(_env_file=None, max_refresh_attempts=6)

    def test_invalid_model(self) -> None:
        """Test validation of the default model."""
        with pytest.raises(ValidationError):
            JarvisSettings(_env_file=None, model="gpt-99")

    def test_log_level_normalised(self) -> None:
        """Test log level validation and upper-casing."""
        assert JarvisSettings(_env_file=None, log_level="debug").log_level == "DEBUG"
        with pytest.raises(ValidationError):
            JarvisSettings(_env_file=None, log_level="INVALID")

    def test_debug_overrides_log_level(self) -> None:
        """Test that debug mode forces DEBUG logging."""
        settings = JarvisSettings(_env_file=None, debug=True, log_level="ERROR")
        assert settings.effective_log_level == "DEBUG"

    def test_credentials_path(self, tmp_path: Path) -> None:
        """Test the default and explicit credential store location."""
        settings = JarvisSettings(_env_file=None, config_dir=tmp_path)
        assert settings.credentials_path == tmp_path / "credentials.json"

        explicit = JarvisSettings(_env_file=None, credentials_file=tmp_path / "c.json")
        assert explicit.credentials_path == tmp_path / "c.json"

    def test_to_dict_masks_client_key(self) -> None:
        """Test that the publishable key is masked."""
        data = JarvisSettings(_env_file=None).to_dict()
        assert data["stack_publishable_client_key"] == "***masked***"
        assert data["stack_project_id"]

    def test_get_settings_overrides(self) -> None:
        """Test the get_settings helper."""
        assert get_settings(_env_file=None, timeout=5).timeout == 5.0
