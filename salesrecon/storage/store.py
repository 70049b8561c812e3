"""
Persisted Store

Key -> JSON value storage for the engine state:
- MemoryStore for tests and throwaway sessions
- JsonFileStore: one JSON document on disk, replaced atomically
- RedisStore: one JSON value per key under a namespace

Writes are last-writer-wins for the whole value of a key.
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import structlog
from redis import Redis

from salesrecon.config import Settings

logger = structlog.get_logger(__name__)

CATALOG_KEY = "catalog"
PRICE_LOGS_KEY = "priceLogs"
REFUND_LOGS_KEY = "refundLogs"
SHIPMENT_LOGS_KEY = "shipmentLogs"
LEARNED_ALIASES_KEY = "learnedAliases"
CONFIGURATION_KEY = "configuration"

STATE_KEYS = (
    CATALOG_KEY,
    PRICE_LOGS_KEY,
    REFUND_LOGS_KEY,
    SHIPMENT_LOGS_KEY,
    LEARNED_ALIASES_KEY,
    CONFIGURATION_KEY,
)


class StateStore(ABC):
    """Load/save of JSON-serialisable values by key"""
    
    @abstractmethod
    def load(self, key: str) -> Optional[Any]:
        """Stored value, or None when the key was never written"""
    
    @abstractmethod
    def save_many(self, values: Mapping[str, Any]) -> None:
        """Write several keys in one step"""
    
    def save(self, key: str, value: Any) -> None:
        self.save_many({key: value})
    
    def load_all(self) -> Dict[str, Any]:
        return {key: self.load(key) for key in STATE_KEYS}


class MemoryStore(StateStore):
    
    def __init__(self, initial: Optional[Mapping[str, Any]] = None):
        self._data: Dict[str, str] = {}
        if initial:
            self.save_many(initial)
    
    def load(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return None if raw is None else json.loads(raw)
    
    def save_many(self, values: Mapping[str, Any]) -> None:
        # Round-trip through JSON so callers never share mutable state with the store
        for key, value in values.items():
            self._data[key] = json.dumps(value, default=str)


class JsonFileStore(StateStore):
    """
    Whole state in one JSON document.
    
    Each save rewrites the document through a temp file and ``os.replace``
    so a crash never leaves a half-written file behind.
    """
    
    def __init__(self, path: str):
        self.path = Path(path)
        self._cache: Optional[Dict[str, Any]] = None
    
    def _read(self) -> Dict[str, Any]:
        if self._cache is None:
            if self.path.exists():
                with open(self.path, "r", encoding="utf-8") as f:
                    self._cache = json.load(f)
            else:
                self._cache = {}
        return self._cache
    
    def load(self, key: str) -> Optional[Any]:
        return self._read().get(key)
    
    def save_many(self, values: Mapping[str, Any]) -> None:
        document = dict(self._read())
        document.update(values)
        
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, default=str)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        
        self._cache = json.loads(json.dumps(document, default=str))
        logger.debug("State written", path=str(self.path), keys=list(values))


class RedisStore(StateStore):
    """
    One JSON value per key, namespaced.
    
    Example:
        store = RedisStore(Redis.from_url("redis://localhost:6379/0"), namespace="salesrecon")
        store.save("catalog", [...])
    """
    
    def __init__(self, client: Redis, namespace: str = "salesrecon"):
        self.client = client
        self.namespace = namespace
    
    def _key(self, key: str) -> str:
        """Generate namespaced key"""
        return f"{self.namespace}:{key}"
    
    def load(self, key: str) -> Optional[Any]:
        value = self.client.get(self._key(key))
        if value is None:
            return None
        return json.loads(value)
    
    def save_many(self, values: Mapping[str, Any]) -> None:
        pipe = self.client.pipeline(transaction=True)
        for key, value in values.items():
            pipe.set(self._key(key), json.dumps(value, default=str))
        pipe.execute()


def create_store(settings: Settings) -> StateStore:
    """Store backend selected by ``settings.storage.backend``"""
    backend = settings.storage.backend
    if backend == "memory":
        store: StateStore = MemoryStore()
    elif backend == "redis":
        client = Redis.from_url(
            settings.redis.get_url(),
            socket_timeout=settings.redis.socket_timeout,
            decode_responses=True,
        )
        store = RedisStore(client, namespace=settings.storage.key_prefix)
    else:
        store = JsonFileStore(settings.storage.path)
    
    logger.info("State store created", backend=backend)
    return store
