"""Unit tests for the persistent deployment cache."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from chaindeck.deploy.cache import PersistentCache, cache_path_for, open_cache
from chaindeck.lib.errors import CacheUnavailableError


class TestPersistentCacheIO:
    """Tests for reading and writing the cache document."""

    @pytest.mark.asyncio
    async def test_get_missing_file_returns_default(self, tmp_path: Path) -> None:
        """A cache without a file behaves as empty."""
        cache = PersistentCache(tmp_path / ".cache-1.json")

        assert await cache.get("token.address") is None
        assert await cache.get("token.address", "fallback") == "fallback"
        assert await cache.snapshot() == {}

    @pytest.mark.asyncio
    async def test_set_writes_nested_document(self, tmp_path: Path) -> None:
        """Dotted keys are stored under the deployment name."""
        path = tmp_path / ".cache-1.json"
        cache = PersistentCache(path)

        await cache.set("token.txHash", "0xabc")
        await cache.set("token.address", "0x123")

        assert json.loads(path.read_text(encoding="utf-8")) == {
            "token": {"address": "0x123", "txHash": "0xabc"}
        }

    @pytest.mark.asyncio
    async def test_set_survives_new_instance(self, tmp_path: Path) -> None:
        """An acknowledged write is visible to a fresh cache on the same path."""
        path = tmp_path / ".cache-1.json"
        await PersistentCache(path).set("token.address", "0x123")

        reopened = PersistentCache(path)

        assert await reopened.get("token.address") == "0x123"
        assert await reopened.has("token.address")

    @pytest.mark.asyncio
    async def test_set_last_write_wins(self, tmp_path: Path) -> None:
        """Repeated writes to one key keep the latest value."""
        cache = PersistentCache(tmp_path / ".cache-1.json")

        await cache.set("token.address", "0x1")
        await cache.set("token.address", "0x2")

        assert await cache.get("token.address") == "0x2"

    @pytest.mark.asyncio
    async def test_set_replaces_scalar_parent(self, tmp_path: Path) -> None:
        """Writing below a scalar entry turns it into an object."""
        cache = PersistentCache(tmp_path / ".cache-1.json")
        await cache.set("token", "0xlegacy")

        await cache.set("token.address", "0x1")

        assert await cache.get("token") == {"address": "0x1"}

    @pytest.mark.asyncio
    async def test_write_leaves_no_temp_files(self, tmp_path: Path) -> None:
        """Atomic writes clean up after themselves."""
        cache = PersistentCache(tmp_path / ".cache-1.json")

        await cache.set("a.address", "0x1")
        await cache.set("b.address", "0x2")

        assert sorted(p.name for p in tmp_path.iterdir()) == [".cache-1.json"]

    @pytest.mark.asyncio
    async def test_get_returns_copy(self, tmp_path: Path) -> None:
        """Mutating a returned value does not touch the cache."""
        cache = PersistentCache(tmp_path / ".cache-1.json")
        await cache.set("token.address", "0x1")

        entry = await cache.get("token")
        entry["address"] = "0xmutated"

        assert await cache.get("token.address") == "0x1"

    @pytest.mark.asyncio
    async def test_invalid_key_raises(self, tmp_path: Path) -> None:
        """Empty key segments are rejected."""
        cache = PersistentCache(tmp_path / ".cache-1.json")

        with pytest.raises(ValueError, match="Invalid cache key"):
            await cache.get("token..address")


class TestPersistentCacheDelete:
    """Tests for removing cache entries."""

    @pytest.mark.asyncio
    async def test_delete_existing_returns_true(self, tmp_path: Path) -> None:
        """Deleting a stored value reports success."""
        cache = PersistentCache(tmp_path / ".cache-1.json")
        await cache.set("token.address", "0x1")
        await cache.set("token.txHash", "0xabc")

        assert await cache.delete("token.address") is True
        assert await cache.get("token.address") is None
        assert await cache.get("token.txHash") == "0xabc"

    @pytest.mark.asyncio
    async def test_delete_missing_returns_false(self, tmp_path: Path) -> None:
        """Deleting an absent key reports nothing removed."""
        cache = PersistentCache(tmp_path / ".cache-1.json")

        assert await cache.delete("token.address") is False
        assert not (tmp_path / ".cache-1.json").exists()

    @pytest.mark.asyncio
    async def test_delete_prunes_empty_parent(self, tmp_path: Path) -> None:
        """Removing the last field of a deployment removes its entry."""
        cache = PersistentCache(tmp_path / ".cache-1.json")
        await cache.set("token.address", "0x1")
        await cache.set("other.address", "0x2")

        await cache.delete("token.address")

        assert await cache.snapshot() == {"other": {"address": "0x2"}}


class TestPersistentCacheErrors:
    """Tests for unusable cache documents."""

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self, tmp_path: Path) -> None:
        """Invalid JSON raises CacheUnavailableError."""
        path = tmp_path / ".cache-1.json"
        path.write_text("{invalid}", encoding="utf-8")

        with pytest.raises(CacheUnavailableError, match="Invalid deployment cache"):
            await PersistentCache(path).get("token.address")

    @pytest.mark.asyncio
    async def test_non_object_document_raises(self, tmp_path: Path) -> None:
        """A top-level JSON array is not a cache document."""
        path = tmp_path / ".cache-1.json"
        path.write_text("[]", encoding="utf-8")

        with pytest.raises(CacheUnavailableError, match="must be an object"):
            await PersistentCache(path).snapshot()

    @pytest.mark.asyncio
    async def test_empty_file_is_empty_document(self, tmp_path: Path) -> None:
        """A blank file behaves like a missing one."""
        path = tmp_path / ".cache-1.json"
        path.write_text("  \n", encoding="utf-8")

        assert await PersistentCache(path).snapshot() == {}

    @pytest.mark.asyncio
    async def test_unserializable_value_raises(self, tmp_path: Path) -> None:
        """Values that JSON cannot encode are rejected without a partial write."""
        path = tmp_path / ".cache-1.json"
        cache = PersistentCache(path)

        with pytest.raises(CacheUnavailableError, match="Failed to write"):
            await cache.set("token.address", object())
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_unwritable_location_raises(self, tmp_path: Path) -> None:
        """A cache directory that is actually a file cannot be written."""
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        cache = PersistentCache(blocker / ".cache-1.json")

        with pytest.raises(CacheUnavailableError):
            await cache.set("token.address", "0x1")


class TestOpenCache:
    """Tests for per-network cache locations."""

    def test_cache_path_is_scoped_by_chain_id(self, tmp_path: Path) -> None:
        """Different chain ids map to different documents."""
        assert cache_path_for(tmp_path, 1) == tmp_path / ".cache-1.json"
        assert cache_path_for(tmp_path, 1) != cache_path_for(tmp_path, 5)

    @pytest.mark.asyncio
    async def test_open_cache_creates_directory(self, tmp_path: Path) -> None:
        """Opening a cache creates its directory."""
        cache_dir = tmp_path / "nested" / "cache"

        cache = await open_cache(cache_dir, 11155111)

        assert cache_dir.is_dir()
        assert cache.path == cache_dir / ".cache-11155111.json"

    @pytest.mark.asyncio
    async def test_open_cache_fails_fast_on_corrupt_document(
        self, tmp_path: Path
    ) -> None:
        """A corrupt document is reported when the cache is opened."""
        cache_path_for(tmp_path, 1).write_text("not json", encoding="utf-8")

        with pytest.raises(CacheUnavailableError):
            await open_cache(tmp_path, 1)
