"""
Layered key-value cache for session state
An in-process LRU mapping in front of a durable store (Redis or memory)
"""
import logging
import threading
import time
from collections import OrderedDict
from typing import Dict, Optional, Protocol

import redis
from redis import Redis

from kwikpass.core import keys
from kwikpass.core.exceptions import ErrorCode, PersistenceError

logger = logging.getLogger(__name__)

SNOWPLOW_USER_ID_TTL_SECONDS = 24 * 60 * 60


class DurableStore(Protocol):
    """Flat string-keyed persistent map"""

    def read(self, key: str) -> Optional[str]: ...

    def write(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def items(self) -> Dict[str, str]: ...


class MemoryDurableStore:
    """Process-local durable store, for tests and ephemeral sessions"""

    def __init__(self):
        self.data: Dict[str, str] = {}

    def read(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def write(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    def items(self) -> Dict[str, str]:
        return dict(self.data)


def _decode(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


class RedisDurableStore:
    """
    Redis-backed durable store

    All entries live in a single Redis hash named after the storage
    namespace, so one SDK installation maps to one hash.
    """

    def __init__(self, redis_client: Redis, namespace: str = "gk_kwikpass_prefs"):
        """Initialize store with Redis client.

        Args:
            redis_client: Redis client instance
            namespace: Name of the Redis hash holding the entries
        """
        self.redis_client = redis_client
        self.namespace = namespace

    @classmethod
    def from_url(cls, url: str, namespace: str = "gk_kwikpass_prefs") -> "RedisDurableStore":
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2
        )
        return cls(client, namespace)

    def read(self, key: str) -> Optional[str]:
        return _decode(self.redis_client.hget(self.namespace, key))

    def write(self, key: str, value: str) -> None:
        self.redis_client.hset(self.namespace, key, value)

    def delete(self, key: str) -> None:
        self.redis_client.hdel(self.namespace, key)

    def items(self) -> Dict[str, str]:
        raw = self.redis_client.hgetall(self.namespace) or {}
        return {_decode(k): _decode(v) for k, v in raw.items()}


class KeyValueStore:
    """
    Two-layer cache for tokens, merchant and device state

    Reads hit the in-process mapping first and fall through to the durable
    store. Writes land in memory synchronously and are then persisted on a
    best-effort basis: durable failures are logged and never raised.
    """

    def __init__(self, durable: Optional[DurableStore] = None, max_entries: int = 100):
        """Initialize the store.

        Args:
            durable: Durable layer (defaults to a process-local store)
            max_entries: Maximum number of entries kept in memory
        """
        self.durable = durable if durable is not None else MemoryDurableStore()
        self.max_entries = max_entries
        self._memory: "OrderedDict[str, str]" = OrderedDict()
        self._lock = threading.RLock()
        # Bumped on every set/remove of a key
        self._versions: Dict[str, int] = {}
        self._key_locks: Dict[str, threading.Lock] = {}

    def _key_lock(self, key: str) -> threading.Lock:
        with self._lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = self._key_locks[key] = threading.Lock()
            return lock

    def _remember(self, key: str, value: str) -> None:
        with self._lock:
            self._memory[key] = value
            self._memory.move_to_end(key)
            while len(self._memory) > self.max_entries:
                self._memory.popitem(last=False)

    def _bump(self, key: str) -> None:
        self._versions[key] = self._versions.get(key, 0) + 1

    def get(self, key: str) -> Optional[str]:
        """Return the value for key, or None if absent in both layers"""
        while True:
            with self._lock:
                if key in self._memory:
                    self._memory.move_to_end(key)
                    return self._memory[key]
                version = self._versions.get(key, 0)

            try:
                value = self.durable.read(key)
            except Exception as e:
                error = PersistenceError(
                    key, "read", f"{type(e).__name__}: {e}", ErrorCode.STORAGE_READ_FAILED
                )
                logger.warning("Durable read failed: %s", error.internal_message)
                return None

            with self._lock:
                if key in self._memory:
                    self._memory.move_to_end(key)
                    return self._memory[key]
                # A set or remove landed during the read; the value may be stale
                retry = self._versions.get(key, 0) != version
                if not retry:
                    if value is not None:
                        self._remember(key, value)
                    return value

            # Wait for the in-flight writer before reading again
            with self._key_lock(key):
                pass

    def set(self, key: str, value: str) -> None:
        """Store value in memory, then persist it"""
        with self._key_lock(key):
            with self._lock:
                self._bump(key)
                self._remember(key, value)
            try:
                self.durable.write(key, value)
            except Exception as e:
                error = PersistenceError(key, "write", f"{type(e).__name__}: {e}")
                logger.warning("Durable write failed, keeping value in memory only: %s",
                               error.internal_message)

    def remove(self, key: str) -> None:
        """Remove key from both layers"""
        with self._key_lock(key):
            with self._lock:
                self._bump(key)
                self._memory.pop(key, None)
            try:
                self.durable.delete(key)
            except Exception as e:
                error = PersistenceError(key, "delete", f"{type(e).__name__}: {e}")
                logger.warning("Durable delete failed: %s", error.internal_message)

    def clear_volatile_cache(self) -> None:
        """Drop the in-process layer; durable entries are kept"""
        with self._lock:
            self._memory.clear()
        logger.debug("Volatile cache cleared")

    def warm(self) -> int:
        """
        Load durable entries into memory

        Keys written in memory meanwhile keep their newer value.

        Returns:
            Number of entries loaded
        """
        with self._lock:
            versions = dict(self._versions)
        try:
            entries = self.durable.items()
        except Exception as e:
            logger.warning("Could not load durable entries: %s: %s", type(e).__name__, e)
            return 0

        loaded = 0
        with self._lock:
            for key, value in entries.items():
                if value is None or key in self._memory:
                    continue
                if self._versions.get(key, 0) != versions.get(key, 0):
                    continue
                self._remember(key, value)
                loaded += 1
        return loaded

    def get_bool(self, key: str) -> bool:
        return self.get(key) == "true"

    def set_bool(self, key: str, value: bool) -> None:
        self.set(key, "true" if value else "false")

    def set_snowplow_user_id(self, user_id: str, now: Optional[float] = None) -> None:
        """Store the analytics user id with its creation time in milliseconds"""
        now = time.time() if now is None else now
        self.set(keys.GK_SNOWPLOW_USER_ID, user_id)
        self.set(keys.GK_SNOWPLOW_USER_ID_TIMESTAMP, str(int(now * 1000)))

    def get_snowplow_user_id(self, now: Optional[float] = None) -> Optional[str]:
        """Return the analytics user id if it is less than 24 hours old"""
        user_id = self.get(keys.GK_SNOWPLOW_USER_ID)
        stamp = self.get(keys.GK_SNOWPLOW_USER_ID_TIMESTAMP)
        if user_id is None or stamp is None:
            return None

        try:
            stored_at = int(stamp) / 1000
        except ValueError:
            logger.warning("Invalid analytics user id timestamp: %r", stamp)
            return None

        now = time.time() if now is None else now
        if now - stored_at > SNOWPLOW_USER_ID_TTL_SECONDS:
            return None
        return user_id
