"""Key/value stores used to persist the access token."""

import json
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Protocol

import keyring
from keyring.errors import KeyringError

logger = logging.getLogger(__name__)

TOKEN_STORAGE_KEY = "gh-token"
STORAGE_FILE_ENV = "GHAPI_STORAGE_FILE"


class StoragePlan(str, Enum):
    """Where, besides memory, a token is kept."""

    NONE = "none"
    SESSION = "session"
    LOCAL = "local"


class KeyValueStore(Protocol):
    """Minimal store interface: never enumerated, only get/set/remove."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    """Store that lives as long as the process."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove(self, key: str) -> None:
        self._items.pop(key, None)


def default_storage_path() -> Path:
    """Return the file store path ($GHAPI_STORAGE_FILE or ~/.config/ghapi)."""
    env_path = os.environ.get(STORAGE_FILE_ENV)
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".config" / "ghapi" / "storage.json"


class KeyringStore:
    """
    Store backed by the system keyring (the default local store).

    Entries are kept under one keyring service, one username per key. A
    machine without a usable keyring backend reads as an empty store.
    """

    SERVICE = "ghapi"

    def __init__(self, service: str | None = None):
        self.service = service or self.SERVICE

    def get(self, key: str) -> str | None:
        try:
            return keyring.get_password(self.service, key)
        except KeyringError as e:
            logger.debug("Keyring not available: %s", e)
            return None

    def set(self, key: str, value: str) -> None:
        keyring.set_password(self.service, key, value)
        logger.debug("Stored %s in keyring service %s", key, self.service)

    def remove(self, key: str) -> None:
        try:
            keyring.delete_password(self.service, key)
            logger.debug("Removed %s from keyring service %s", key, self.service)
        except KeyringError:
            logger.debug("Nothing to remove for %s in keyring service %s", key, self.service)


class FileStore:
    """
    Store backed by a JSON object on disk, readable only by its owner.

    Values survive process restarts. A missing or corrupt file reads as an
    empty store.
    """

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path else default_storage_path()

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning("Ignoring corrupt store file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed store file: %s", self.path)
            return {}
        return data

    def _save(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        # The mode above only applies on creation
        os.chmod(self.path, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)
        logger.debug("Stored %s in %s", key, self.path)

    def remove(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)
            logger.debug("Removed %s from %s", key, self.path)


def default_local_store() -> KeyValueStore:
    """The keyring, or a FileStore when $GHAPI_STORAGE_FILE is set."""
    if os.environ.get(STORAGE_FILE_ENV):
        return FileStore()
    return KeyringStore()
