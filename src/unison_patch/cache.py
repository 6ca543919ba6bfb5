"""
Decision cache backends.

Resolved accessor decisions are stored as plain dicts so they survive a trip
through any JSON-capable store. A miss is always safe: the resolver recomputes.
"""

import json
import logging
import time
from typing import Any, Dict, Optional, Protocol, Tuple

from .config import PatchConfig

logger = logging.getLogger(__name__)


class DecisionCache(Protocol):
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    def put(self, key: str, decision: Dict[str, Any]) -> None:
        ...


class MemoryDecisionCache:
    """In-memory store for resolved decisions"""

    def __init__(self, config: Optional[PatchConfig] = None):
        self.config = config or PatchConfig()
        self._entries: Dict[str, Tuple[float, Dict[str, Any]]] = {}
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None
        self._hits += 1
        return dict(entry[1])

    def put(self, key: str, decision: Dict[str, Any]) -> None:
        if key not in self._entries and len(self._entries) >= self.config.max_cache_entries:
            self._cleanup_oldest()
        self._entries[key] = (time.time(), dict(decision))

    def _cleanup_oldest(self):
        """Drop the oldest 10% of entries when at capacity"""
        if not self._entries:
            return
        ordered = sorted(self._entries.items(), key=lambda x: x[1][0])
        to_remove = max(1, len(ordered) // 10)
        for key, _ in ordered[:to_remove]:
            del self._entries[key]

    def clear(self):
        self._entries.clear()

    def size(self) -> int:
        return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        total = self._hits + self._misses
        return {
            "size": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / total if total else 0.0,
        }


class RedisDecisionCache:
    """Redis-based store for resolved decisions"""

    def __init__(self, config: Optional[PatchConfig] = None, redis_client=None):
        self.config = config or PatchConfig()
        self.redis_client = redis_client
        self.key_prefix = self.config.cache_prefix

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        if not self.redis_client:
            return None

        try:
            data = self.redis_client.get(f"{self.key_prefix}{key}")
            if data:
                return json.loads(data)
        except Exception as e:
            logger.error(f"Error reading access decision from Redis: {e}")

        return None

    def put(self, key: str, decision: Dict[str, Any]) -> None:
        if not self.redis_client:
            logger.warning("Redis client not available, cannot store access decision")
            return

        try:
            data = json.dumps(decision)
            if self.config.cache_ttl_seconds > 0:
                self.redis_client.setex(f"{self.key_prefix}{key}", self.config.cache_ttl_seconds, data)
            else:
                self.redis_client.set(f"{self.key_prefix}{key}", data)
        except Exception as e:
            logger.error(f"Error storing access decision in Redis: {e}")

    def clear(self):
        """Clear all cached decisions under the configured prefix"""
        if not self.redis_client:
            return

        try:
            keys = self.redis_client.keys(f"{self.key_prefix}*")
            if keys:
                self.redis_client.delete(*keys)
        except Exception as e:
            logger.error(f"Error clearing access decisions from Redis: {e}")
