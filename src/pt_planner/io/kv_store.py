"""
Key-value storage backends.

Every persistence function takes its store explicitly; nothing reads a
global.  Values are JSON strings keyed by plain strings.  Backends wrap
their own failures in StoreError so callers handle one exception type.

Backends:
- MemoryStore: dict-backed, for tests and throwaway sessions
- JsonFileStore: one JSON object in a file (default ~/.pt-planner/store.json)
- RedisStore: redis-py client, selected when PT_PLANNER_REDIS_URL is set
"""

import json
import logging
import os
from pathlib import Path
from typing import Protocol, Sequence

import redis

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when a storage backend cannot be read or written."""

    pass


class KeyValueStore(Protocol):
    """Minimal interface the storage layer relies on."""

    def get(self, key: str) -> str | None: ...

    def mget(self, keys: Sequence[str]) -> list[str | None]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """In-process store; contents vanish with the object."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def mget(self, keys: Sequence[str]) -> list[str | None]:
        return [self._data.get(k) for k in keys]

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStore:
    """
    Stores all keys in a single JSON object on disk.

    The file is re-read on every access so several CLI invocations see each
    other's writes.  A missing file is an empty store.
    """

    def __init__(self, path: str | Path):
        """
        Initialize the file store.

        Args:
            path: Path to the JSON file (created on first write)
        """
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Cannot read store {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"Store {self.path} does not contain a JSON object")
        return data

    def get(self, key: str) -> str | None:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def mget(self, keys: Sequence[str]) -> list[str | None]:
        data = self._read()
        return [v if isinstance(v, str) else None for v in (data.get(k) for k in keys)]

    def set(self, key: str, value: str) -> None:
        try:
            data = self._read()
        except StoreError:
            logger.warning("Store %s is unreadable; starting a new one", self.path)
            data = {}
        data[key] = value
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
        except OSError as e:
            raise StoreError(f"Cannot write store {self.path}: {e}") from e


class RedisStore:
    """Redis-backed store (string values, decoded responses)."""

    def __init__(self, client: "redis.Redis"):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisStore":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> str | None:
        try:
            return self.client.get(key)
        except redis.RedisError as e:
            raise StoreError(f"Redis GET {key} failed: {e}") from e

    def mget(self, keys: Sequence[str]) -> list[str | None]:
        if not keys:
            return []
        try:
            return list(self.client.mget(list(keys)))
        except redis.RedisError as e:
            raise StoreError(f"Redis MGET failed: {e}") from e

    def set(self, key: str, value: str) -> None:
        try:
            self.client.set(key, value)
        except redis.RedisError as e:
            raise StoreError(f"Redis SET {key} failed: {e}") from e


def get_default_store_path() -> Path:
    """
    Get the default JSON store path.

    ``PT_PLANNER_STORE`` overrides the default ``~/.pt-planner/store.json``.
    """
    override = os.getenv("PT_PLANNER_STORE")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".pt-planner" / "store.json"


def get_default_store() -> KeyValueStore:
    """
    Get the store selected by the environment.

    Redis when ``PT_PLANNER_REDIS_URL`` is set, else the JSON file store.
    """
    redis_url = os.getenv("PT_PLANNER_REDIS_URL")
    if redis_url:
        logger.debug("Using Redis store at %s", redis_url)
        return RedisStore.from_url(redis_url)
    return JsonFileStore(get_default_store_path())
