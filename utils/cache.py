"""
Cache utilities for the quote client.
Provides an in-memory response cache with TTL checks at read time.
"""

import json
import time
from typing import Any, Callable, Dict, Optional
from dataclasses import dataclass, field

from utils import cache_logger, cache_metrics


@dataclass
class CacheEntry:
    """缓存条目"""
    data: Any
    timestamp: float = field(default_factory=time.time)

    def is_expired(self, ttl: float, now: float) -> bool:
        """检查是否过期（now - timestamp >= ttl 即视为过期）"""
        return now - self.timestamp >= ttl

    def get_age(self, now: float) -> float:
        """获取缓存年龄（秒）"""
        return now - self.timestamp


def make_fingerprint(operation: str, *args: Any) -> str:
    """生成请求指纹：操作名 + 有序参数列表的稳定 JSON 字符串"""
    return json.dumps([operation, list(args)], default=str, separators=(',', ':'))


class TTLCache:
    """简单内存缓存

    所有方法都是同步的、内部没有挂起点，在单个事件循环内调用时天然互斥，因此不加锁。
    """

    def __init__(self, default_ttl: float = 300, max_size: int = 1000,
                 clock: Callable[[], float] = time.time):
        """
        初始化缓存

        Args:
            default_ttl: 默认生存时间（秒）
            max_size: 最大缓存条目数
            clock: 时间来源，测试中可替换
        """
        self.default_ttl = default_ttl
        self.max_size = max_size
        self._clock = clock
        self._cache: Dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: str) -> bool:
        return key in self._cache

    def get(self, key: str, ttl: Optional[float] = None) -> Optional[Any]:
        """获取缓存值，过期条目在此处删除"""
        entry = self._cache.get(key)
        if entry is None:
            self._record_miss()
            return None

        if entry.is_expired(self.default_ttl if ttl is None else ttl, self._clock()):
            del self._cache[key]
            cache_logger.debug(f"[Cache] Expired: {key}")
            self._record_miss()
            return None

        cache_logger.debug(f"[Cache] Hit: {key}")
        self._hits += 1
        cache_metrics.increment("hits")
        return entry.data

    def set(self, key: str, data: Any, max_size: Optional[int] = None, ttl: Optional[float] = None) -> None:
        """设置缓存值；空间不足时先按 ttl 清理过期条目，再驱逐最老的条目"""
        limit = self.max_size if max_size is None else max_size

        # 检查是否需要清理空间
        if key not in self._cache and len(self._cache) >= limit:
            self.cleanup_expired(ttl)
            while self._cache and len(self._cache) >= limit:
                self._evict_oldest()

        self._cache[key] = CacheEntry(data=data, timestamp=self._clock())
        cache_logger.debug(f"[Cache] Set: {key}")

    def delete(self, key: str) -> bool:
        """删除缓存值"""
        if self._cache.pop(key, None) is not None:
            cache_logger.debug(f"[Cache] Delete: {key}")
            return True
        return False

    def clear(self) -> None:
        """清空缓存"""
        self._cache.clear()
        cache_logger.info("[Cache] Cleared all entries")

    def cleanup_expired(self, ttl: Optional[float] = None) -> int:
        """清理过期条目"""
        now = self._clock()
        limit = self.default_ttl if ttl is None else ttl
        expired_keys = [key for key, entry in self._cache.items() if entry.is_expired(limit, now)]
        for key in expired_keys:
            del self._cache[key]
        if expired_keys:
            cache_logger.debug(f"[Cache] Cleaned up {len(expired_keys)} expired entries")
        return len(expired_keys)

    def get_stats(self, ttl: Optional[float] = None) -> Dict[str, Any]:
        """获取缓存统计信息"""
        now = self._clock()
        limit = self.default_ttl if ttl is None else ttl
        total_entries = len(self._cache)
        expired_entries = sum(1 for entry in self._cache.values()
                              if entry.is_expired(limit, now))
        lookups = self._hits + self._misses

        return {
            'total_entries': total_entries,
            'expired_entries': expired_entries,
            'active_entries': total_entries - expired_entries,
            'max_size': self.max_size,
            'hits': self._hits,
            'misses': self._misses,
            'hit_rate': self._hits / lookups if lookups else 0.0,
        }

    def _record_miss(self):
        self._misses += 1
        cache_metrics.increment("misses")

    def _evict_oldest(self):
        """驱逐最老的条目"""
        oldest_key = min(self._cache, key=lambda k: self._cache[k].timestamp)
        del self._cache[oldest_key]
        cache_logger.debug(f"[Cache] Evicted oldest entry: {oldest_key}")
