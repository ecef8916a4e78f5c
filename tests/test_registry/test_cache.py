"""Unit tests for registry caches (startforge.registry.cache).

Tests cover:
- cache_key sanitisation
- FileCache put/get, expiry via injected clock, corrupt entries, clear
- MemoryCache put/get, expiry, clear
"""

from __future__ import annotations

from pathlib import Path

import pytest

from startforge.registry.cache import FileCache, MemoryCache, cache_key


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestCacheKey:
    @pytest.mark.unit
    def test_unsafe_characters_replaced(self):
        assert cache_key("manifest", "https://x.io/a") == "manifest_https___x_io_a"

    @pytest.mark.unit
    def test_safe_characters_kept(self):
        assert cache_key("integration_info", "tanstack-query") == "integration_info_tanstack-query"


class TestFileCache:
    @pytest.mark.unit
    def test_put_then_get(self, tmp_path: Path):
        cache = FileCache(tmp_path / "cache")
        cache.put("manifest", {"version": "1"}, ttl=60)
        assert cache.get("manifest") == {"version": "1"}
        assert (tmp_path / "cache" / "manifest.json").is_file()

    @pytest.mark.unit
    def test_miss(self, tmp_path: Path):
        assert FileCache(tmp_path).get("absent") is None

    @pytest.mark.unit
    def test_expiry(self, tmp_path: Path):
        clock = FakeClock()
        cache = FileCache(tmp_path, clock=clock)
        cache.put("k", [1, 2], ttl=10)
        clock.now += 10
        assert cache.get("k") == [1, 2]
        clock.now += 1
        assert cache.get("k") is None

    @pytest.mark.unit
    def test_corrupt_entry_is_miss(self, tmp_path: Path):
        cache = FileCache(tmp_path)
        (tmp_path / "bad.json").write_text("not json", encoding="utf-8")
        (tmp_path / "partial.json").write_text('{"data": 1}', encoding="utf-8")
        assert cache.get("bad") is None
        assert cache.get("partial") is None

    @pytest.mark.unit
    def test_clear(self, tmp_path: Path):
        cache = FileCache(tmp_path / "cache")
        cache.put("k", "v")
        cache.clear()
        assert not (tmp_path / "cache").exists()
        assert cache.get("k") is None


class TestMemoryCache:
    @pytest.mark.unit
    def test_put_then_get(self):
        cache = MemoryCache()
        cache.put("k", {"a": 1})
        assert cache.get("k") == {"a": 1}

    @pytest.mark.unit
    def test_expiry(self):
        clock = FakeClock()
        cache = MemoryCache(clock=clock)
        cache.put("k", "v", ttl=5)
        clock.now += 6
        assert cache.get("k") is None

    @pytest.mark.unit
    def test_clear(self):
        cache = MemoryCache()
        cache.put("k", "v")
        cache.clear()
        assert cache.get("k") is None
