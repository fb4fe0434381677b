"""Persistence for the session bearer token."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import yaml

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    """Protocol for storing the opaque session token."""

    def get(self) -> str | None:
        """Return the stored token, if any."""
        ...

    def set(self, token: str) -> None:
        """Persist a token, replacing any previous one."""
        ...

    def clear(self) -> None:
        """Forget the stored token."""
        ...


class MemoryCredentialStore:
    """Process-local token store."""

    def __init__(self, token: str | None = None) -> None:
        self._token = token

    def get(self) -> str | None:
        return self._token

    def set(self, token: str) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None


class FileCredentialStore:
    """Token store backed by a small YAML file, survives restarts."""

    def __init__(self, path: Path) -> None:
        """Initialize store.

        Args:
            path: YAML file holding `token` and `saved_at`
        """
        self._path = path

    def get(self) -> str | None:
        """Read the token; unreadable or malformed files count as no token."""
        if not self._path.exists():
            return None

        try:
            data = yaml.safe_load(self._path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"[CredentialStore] Failed to read {self._path}: {e}")
            return None

        if not isinstance(data, dict):
            return None
        token = data.get("token")
        return token if isinstance(token, str) and token else None

    def set(self, token: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = {"token": token, "saved_at": datetime.now(timezone.utc).isoformat()}
        self._path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        # Owner-only, the file holds a bearer credential
        self._path.chmod(0o600)

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)
