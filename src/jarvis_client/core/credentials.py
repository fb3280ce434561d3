"""
Credential model and key-value credential stores.

Credentials are persisted as three string values under fixed keys, so any
key-value backend can hold them.
"""

import dataclasses
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "jarvis_access_token"
REFRESH_TOKEN_KEY = "jarvis_refresh_token"
USER_ID_KEY = "jarvis_user_id"

CREDENTIAL_KEYS = (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_ID_KEY)


@dataclass(frozen=True)
class Credential:
    """Tokens identifying the signed-in user."""
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    user_id: Optional[str] = None

    @property
    def has_access_token(self) -> bool:
        return bool(self.access_token)

    @property
    def has_refresh_token(self) -> bool:
        return bool(self.refresh_token)

    def with_access_token(self, access_token: str) -> "Credential":
        return dataclasses.replace(self, access_token=access_token)

    def __repr__(self) -> str:
        # Never print token values.
        return (
            f"Credential(access_token={'set' if self.access_token else None}, "
            f"refresh_token={'set' if self.refresh_token else None}, "
            f"user_id={self.user_id!r})"
        )


def _credential_values(credential: Credential) -> Dict[str, str]:
    values = {
        ACCESS_TOKEN_KEY: credential.access_token,
        REFRESH_TOKEN_KEY: credential.refresh_token,
        USER_ID_KEY: credential.user_id,
    }
    return {key: value for key, value in values.items() if value is not None}


class CredentialStore(ABC):
    """Key-value storage for the credential fields."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value for key, or None."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete key if present."""

    def load(self) -> Credential:
        """Read the full credential from storage."""
        return Credential(
            access_token=self.get(ACCESS_TOKEN_KEY),
            refresh_token=self.get(REFRESH_TOKEN_KEY),
            user_id=self.get(USER_ID_KEY),
        )

    def save(self, credential: Credential) -> None:
        """Write every non-None field of credential."""
        for key, value in _credential_values(credential).items():
            self.set(key, value)

    def replace(self, credential: Credential) -> None:
        """Make credential the only stored credential; None fields end up removed."""
        self.clear()
        self.save(credential)

    def save_access_token(self, access_token: str) -> None:
        self.set(ACCESS_TOKEN_KEY, access_token)

    def clear(self) -> None:
        """Remove all credential fields."""
        for key in CREDENTIAL_KEYS:
            self.remove(key)


class InMemoryCredentialStore(CredentialStore):
    """Process-local store, used by tests and one-shot scripts."""

    def __init__(self, initial: Optional[Credential] = None):
        self._values: Dict[str, str] = {}
        if initial is not None:
            self.save(initial)

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


class JsonFileCredentialStore(CredentialStore):
    """
    Credential store backed by a JSON object on disk.

    Every operation, including saving a whole credential, is one
    read-modify-write of the file through a temporary file in the same
    directory, so a reader never sees a partial file or half a
    credential. The file is created with owner-only permissions.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def save(self, credential: Credential) -> None:
        data = self._read()
        data.update(_credential_values(credential))
        self._write(data)

    def replace(self, credential: Credential) -> None:
        data = self._read()
        for key in CREDENTIAL_KEYS:
            data.pop(key, None)
        data.update(_credential_values(credential))
        self._write(data)

    def clear(self) -> None:
        data = self._read()
        for key in CREDENTIAL_KEYS:
            data.pop(key, None)
        self._write(data)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Cannot read credential store {self.path}: {e}",
                config_field="credentials_file",
                original_error=e,
            )
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Credential store {self.path} does not contain a JSON object",
                config_field="credentials_file",
            )
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".credentials-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.debug(f"Credential store written: {self.path}")
