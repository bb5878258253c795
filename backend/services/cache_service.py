"""
cache_service.py — Read-through topic cache
In-memory cache shared process-wide. Entries live under a logical topic
("sprint:4:goals", "user:7:promise-logs") and are dropped a whole topic at a
time, since one write can touch many keys under it.
Supports TTL-based expiry and hit-rate statistics.
"""

import sys
import threading
import time
from typing import Any, Callable, Hashable

from config import CACHE_TTL_SECONDS


def sprint_goals_topic(sprint_id) -> str:
    return f"sprint:{sprint_id}:goals"


def sprint_logs_topic(sprint_id) -> str:
    return f"sprint:{sprint_id}:promise-logs"


def promise_logs_topic(promise_id) -> str:
    return f"promise:{promise_id}:logs"


def user_promise_logs_topic(user_id) -> str:
    return f"user:{user_id}:promise-logs"


def user_daily_logs_topic(user_id) -> str:
    return f"user:{user_id}:daily-logs"


class TopicCache:
    """In-memory read-through cache with TTL, topic invalidation and hit tracking."""

    def __init__(self, ttl_seconds: int = CACHE_TTL_SECONDS):
        # topic → {key → {value, timestamp}}
        self._topics: dict[str, dict[Hashable, dict]] = {}
        # bumped on every invalidation; a load started under an older
        # generation is returned but not stored
        self._generations: dict[str, int] = {}
        self._epoch: int = 0
        self._ttl = ttl_seconds
        self._lock = threading.RLock()
        self._hits: int = 0
        self._misses: int = 0

    def _generation(self, topic: str) -> tuple[int, int]:
        return self._epoch, self._generations.get(topic, 0)

    # ------------------------------------------------------------------
    def get(self, topic: str, loader: Callable[[], Any], key: Hashable = None) -> Any:
        """Return the cached value for (topic, key), calling `loader` on miss / expiry."""
        with self._lock:
            entry = self._topics.get(topic, {}).get(key)
            if entry is not None and time.time() - entry["timestamp"] <= self._ttl:
                self._hits += 1
                return entry["value"]
            self._misses += 1
            started = self._generation(topic)

        value = loader()
        if self._ttl > 0:
            with self._lock:
                if self._generation(topic) == started:
                    self._topics.setdefault(topic, {})[key] = {
                        "value": value,
                        "timestamp": time.time(),
                    }
        return value

    # ------------------------------------------------------------------
    def invalidate(self, *topics: str):
        """Drop every key under each topic."""
        with self._lock:
            for topic in topics:
                self._topics.pop(topic, None)
                self._generations[topic] = self._generations.get(topic, 0) + 1

    # ------------------------------------------------------------------
    def clear(self):
        with self._lock:
            self._topics.clear()
            self._generations.clear()
            self._epoch += 1

    # ------------------------------------------------------------------
    def clear_expired(self):
        """Evict all entries past their TTL."""
        now = time.time()
        with self._lock:
            for topic in list(self._topics):
                entries = self._topics[topic]
                for key in [k for k, v in entries.items() if now - v["timestamp"] > self._ttl]:
                    del entries[key]
                if not entries:
                    del self._topics[topic]

    # ------------------------------------------------------------------
    def get_stats(self) -> dict:
        """Cache statistics: topics, entries, hit rate, estimated memory."""
        total_lookups = self._hits + self._misses
        return {
            "total_topics": len(self._topics),
            "total_entries": sum(len(v) for v in self._topics.values()),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total_lookups, 4) if total_lookups else 0.0,
            "estimated_memory_bytes": sys.getsizeof(self._topics),
        }


class NullCache:
    """Same interface as TopicCache; every read goes to the loader."""

    def get(self, topic: str, loader: Callable[[], Any], key: Hashable = None) -> Any:
        return loader()

    def invalidate(self, *topics: str):
        pass

    def clear(self):
        pass


topic_cache = TopicCache()
