"""
Key/value backends for persisted per-user state.
Values are opaque strings; callers do their own JSON encoding.
"""
import json
import os
from typing import Dict, Optional

# Import external dependencies at module level for easier testing
import redis.asyncio as redis

from priceglass.config import config
from priceglass.errors import StorageError
from priceglass.logger import logger


class BaseStorage:
    """Base interface for storage."""
    def __init__(self):
        self.is_available = False

    async def initialize(self):
        pass

    async def close(self):
        pass

    async def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def set_item(self, key: str, value: str):
        raise NotImplementedError

    async def remove_item(self, key: str):
        raise NotImplementedError


class MemoryStorage(BaseStorage):
    """Dict-backed storage, lives as long as the process."""
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__()
        self.items: Dict[str, str] = dict(initial or {})
        self.is_available = True

    async def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    async def set_item(self, key: str, value: str):
        self.items[key] = value

    async def remove_item(self, key: str):
        self.items.pop(key, None)


class FileStorage(BaseStorage):
    """Single JSON document on disk holding every key, one file per user profile."""
    def __init__(self, path: Optional[str] = None):
        super().__init__()
        self.path = path or config.STORAGE_PATH

    async def initialize(self):
        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            self.is_available = True
            logger.info(f"File storage initialized at {self.path}")
        except OSError as e:
            logger.warning(f"File storage init failed: {e}")
            self.is_available = False

    def _load(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read storage file {self.path}: {e}")
            return {}

    def _dump(self, data: Dict[str, str]):
        tmp_path = f"{self.path}.tmp"
        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Failed to write storage file {self.path}: {e}") from e

    async def get_item(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    async def set_item(self, key: str, value: str):
        data = self._load()
        data[key] = value
        self._dump(data)

    async def remove_item(self, key: str):
        data = self._load()
        if key in data:
            del data[key]
            self._dump(data)


class RedisStorage(BaseStorage):
    """Redis-backed storage, keys namespaced per profile."""
    def __init__(self, url: Optional[str] = None, namespace: Optional[str] = None):
        super().__init__()
        self.url = url or config.REDIS_URL
        self.namespace = namespace or config.STORAGE_NAMESPACE
        self.redis = None

    async def initialize(self):
        try:
            self.redis = redis.from_url(self.url, decode_responses=True)
            await self.redis.ping()
            self.is_available = True
            logger.info("Redis storage initialized")
        except Exception as e:
            logger.warning(f"Redis storage init failed: {e}")
            self.is_available = False

    async def close(self):
        if self.redis:
            await self.redis.aclose()

    def _make_key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get_item(self, key: str) -> Optional[str]:
        if not self.is_available:
            return None
        try:
            return await self.redis.get(self._make_key(key))
        except Exception as e:
            logger.error(f"Failed to read {key} from redis: {e}")
            return None

    async def set_item(self, key: str, value: str):
        if not self.is_available:
            raise StorageError("Redis storage not available")
        try:
            await self.redis.set(self._make_key(key), value)
        except Exception as e:
            raise StorageError(f"Failed to write {key} to redis: {e}") from e

    async def remove_item(self, key: str):
        if not self.is_available:
            return
        try:
            await self.redis.delete(self._make_key(key))
        except Exception as e:
            logger.error(f"Failed to delete {key} from redis: {e}")


def create_storage(backend: Optional[str] = None) -> BaseStorage:
    backend = (backend or config.STORAGE_BACKEND).lower()
    if backend == "redis":
        return RedisStorage()
    if backend == "memory":
        return MemoryStorage()
    return FileStorage()
