# 缓存与金额工具测试

import pytest
from decimal import Decimal

from utils.cache import CacheKeys, CacheService
from utils.money import format_amount, from_cents, to_cents


class TestCacheService:

    def test_get_or_set_calls_factory_once(self):
        cache = CacheService()
        calls = []

        def factory():
            calls.append(1)
            return {"value": 42}

        assert cache.get_or_set("k", factory) == {"value": 42}
        assert cache.get_or_set("k", factory) == {"value": 42}
        assert len(calls) == 1

    def test_returns_copies(self):
        """修改返回值不影响缓存内容"""
        cache = CacheService()
        cache.set("k", {"items": [1, 2]})

        cache.get("k")["items"].append(3)

        assert cache.get("k") == {"items": [1, 2]}

    def test_expired_entry(self):
        cache = CacheService()
        cache.set("k", "v", ttl=0)
        assert cache.get("k") is None

    def test_factory_error_not_cached(self):
        cache = CacheService()

        def failing():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            cache.get_or_set("k", failing)
        assert cache.get_or_set("k", lambda: "ok") == "ok"

    def test_delete_keys_and_prefix(self):
        cache = CacheService()
        for key in ("canteen:1", "canteen:2", "menu:1"):
            cache.set(key, key)

        assert cache.delete_keys("menu:1") == 1
        assert cache.delete_by_prefix("canteen:") == 2
        assert cache.get_stats()["size"] == 0

    def test_keys_for_canteen(self):
        assert CacheKeys.for_canteen("c1") == ["menu:c1", "canteen:c1", "canteens:list"]


class TestMoney:

    def test_cents_conversion(self):
        assert to_cents("10.99") == 1099
        assert to_cents(Decimal("0.1")) == 10
        assert to_cents(0.1) == 10
        assert from_cents(1099) == Decimal("10.99")
        assert format_amount(from_cents(500)) == "5.00"

    def test_sub_cent_amount_rejected(self):
        with pytest.raises(ValueError):
            to_cents("1.999")
