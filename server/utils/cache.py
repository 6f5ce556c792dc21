# 进程内缓存
# 餐厅/菜单/邮箱域名的读穿透缓存，写操作提交后按key失效

import copy
import logging
import threading
import time
from typing import Any, Callable, Dict, Iterable, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300


class CacheKeys:
    """缓存key约定"""
    CANTEENS_LIST = 'canteens:list'
    ALLOWED_EMAIL_DOMAINS = 'allowed_email_domains'

    @staticmethod
    def canteen(canteen_id: str) -> str:
        return f'canteen:{canteen_id}'

    @staticmethod
    def menu_items(canteen_id: str) -> str:
        return f'menu:{canteen_id}'

    @classmethod
    def for_canteen(cls, canteen_id: str) -> list:
        """餐厅或其菜单变更时需要失效的全部key"""
        return [cls.menu_items(canteen_id), cls.canteen(canteen_id), cls.CANTEENS_LIST]


class CacheEntry:
    """带过期时间的缓存条目"""

    def __init__(self, value: Any, ttl: int):
        self.value = value
        self.expires_at = time.monotonic() + ttl

    def is_expired(self) -> bool:
        return time.monotonic() >= self.expires_at


class CacheService:
    """
    简单的TTL缓存

    get/set 均做深拷贝，调用方修改返回值不会污染缓存
    """

    def __init__(self, default_ttl: int = DEFAULT_TTL_SECONDS):
        self.default_ttl = default_ttl
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None

            if entry.is_expired():
                del self._entries[key]
                self.misses += 1
                return None

            self.hits += 1
            return copy.deepcopy(entry.value)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = CacheEntry(copy.deepcopy(value), ttl)
        logger.debug(f"缓存写入: {key} (ttl={ttl}s)")

    def delete_keys(self, keys: Union[str, Iterable[str]]) -> int:
        """删除一个或多个key，返回实际删除的数量"""
        if isinstance(keys, str):
            keys = [keys]

        deleted = 0
        with self._lock:
            for key in keys:
                if self._entries.pop(key, None) is not None:
                    deleted += 1

        if deleted:
            logger.debug(f"缓存失效: {deleted} 个key")
        return deleted

    def delete_by_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [k for k in self._entries if k.startswith(prefix)]
        return self.delete_keys(keys)

    def get_or_set(self, key: str, factory: Callable[[], Any], ttl: Optional[int] = None) -> Any:
        """
        命中则返回缓存值，否则调用factory并写入缓存

        factory 抛出的异常原样传播，且不会写入缓存
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        value = factory()
        self.set(key, value, ttl)
        return value

    def get_stats(self) -> Dict[str, Any]:
        total = self.hits + self.misses
        return {
            "size": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hits / max(1, total), 4)
        }
