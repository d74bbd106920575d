"""
坐标转换缓存 - 以 (源, 目标, x, y) 为键的有界记忆表

约束：
- 满容量时按插入顺序批量淘汰最旧的一半
- 并发写入后写覆盖先写
"""

from __future__ import annotations

import threading
from itertools import islice

CacheKey = tuple[str, str, float, float]


class TransformCache:
    """有界转换缓存"""

    def __init__(self, max_size: int = 10000):
        if max_size < 1:
            raise ValueError(f"max_size 必须为正数: {max_size}")
        self.max_size = max_size
        self._data: dict[CacheKey, tuple[float, float]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: CacheKey) -> tuple[float, float] | None:
        value = self._data.get(key)
        if value is None:
            self.misses += 1
        else:
            self.hits += 1
        return value

    def set(self, key: CacheKey, value: tuple[float, float]) -> None:
        with self._lock:
            if key not in self._data and len(self._data) >= self.max_size:
                self._evict_oldest_half()
            self._data[key] = value

    def _evict_oldest_half(self) -> None:
        count = max(1, len(self._data) // 2)
        for key in list(islice(self._data, count)):
            del self._data[key]
        self.evictions += count

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self.hits = self.misses = self.evictions = 0

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._data

    def stats(self) -> dict[str, int]:
        return {
            "size": len(self._data),
            "max_size": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
        }
