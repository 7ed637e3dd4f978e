"""Tests for the persistent variant cache."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from custom_components.ariston_velis.models import Variant
from custom_components.ariston_velis.storage import VariantCache


class TestVariantCacheLoad:
    """Tests for loading the cache from disk."""

    def test_missing_file_gives_empty_cache(self, tmp_path: Path) -> None:
        """Test that a missing file is not an error."""
        cache = VariantCache.load(tmp_path / "missing.json")
        assert cache.as_dict() == {"variants": {}}

    def test_corrupt_file_gives_empty_cache(self, tmp_path: Path) -> None:
        """Test that unparseable JSON is ignored."""
        path = tmp_path / "cache.json"
        path.write_text("{not json", encoding="utf-8")
        cache = VariantCache.load(path)
        assert cache.get("P1") is None

    def test_unexpected_shape_gives_empty_cache(self, tmp_path: Path) -> None:
        """Test that a document without a variants map is ignored."""
        path = tmp_path / "cache.json"
        path.write_text(json.dumps(["P1"]), encoding="utf-8")
        assert VariantCache.load(path).as_dict() == {"variants": {}}

    def test_loads_entries_and_skips_malformed(self, tmp_path: Path) -> None:
        """Test that well-formed entries survive next to broken ones."""
        path = tmp_path / "cache.json"
        path.write_text(
            json.dumps(
                {
                    "variants": {
                        "P1": {
                            "variant": "medPlantData",
                            "updatedAt": "2024-01-01T00:00:00+00:00",
                        },
                        "P2": {"variant": 5},
                        "P3": "sePlantData",
                    }
                }
            ),
            encoding="utf-8",
        )
        cache = VariantCache.load(path)

        entry = cache.get("P1")
        assert entry is not None
        assert entry.variant == "medPlantData"
        assert entry.updated_at == "2024-01-01T00:00:00+00:00"
        assert cache.get("P2") is None
        assert cache.get("P3") is None


class TestVariantCachePut:
    """Tests for updating and persisting the cache."""

    def test_put_persists_document(self, tmp_path: Path) -> None:
        """Test that put writes the whole cache to disk."""
        path = tmp_path / "storage" / "cache.json"
        cache = VariantCache.load(path)
        cache.put("P1", Variant.SE)

        document = json.loads(path.read_text(encoding="utf-8"))
        assert document["variants"]["P1"]["variant"] == "sePlantData"
        assert "updatedAt" in document["variants"]["P1"]

        reloaded = VariantCache.load(path)
        assert reloaded.get("P1").variant == "sePlantData"

    def test_repeated_put_keeps_one_entry(self, tmp_path: Path) -> None:
        """Test that storing the same variant twice is idempotent."""
        path = tmp_path / "cache.json"
        cache = VariantCache.load(path)
        first = cache.put("P1", Variant.MED)
        second = cache.put("P1", Variant.MED)

        document = json.loads(path.read_text(encoding="utf-8"))
        assert list(document["variants"]) == ["P1"]
        assert document["variants"]["P1"]["variant"] == "medPlantData"
        assert second.updated_at >= first.updated_at

    def test_put_replaces_variant(self, tmp_path: Path) -> None:
        """Test that a new winner overwrites the old one."""
        cache = VariantCache.load(tmp_path / "cache.json")
        cache.put("P1", Variant.MED)
        cache.put("P1", Variant.EVO)
        assert cache.get("P1").variant == "evoPlantData"

    def test_write_failure_is_not_raised(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test that an unwritable location keeps the in-memory entry."""
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        cache = VariantCache.load(blocker / "cache.json")

        entry = cache.put("P1", Variant.SLP)

        assert entry.variant == "slpPlantData"
        assert cache.get("P1") == entry
        assert "Failed to save variant cache" in caplog.text


class TestVariantCacheAsyncPut:
    """Tests for persisting the cache from the event loop."""

    @pytest.mark.asyncio
    async def test_async_put_writes_in_executor(self, tmp_path: Path) -> None:
        """Test that the file is written through the executor."""
        hass = Mock()
        hass.async_add_executor_job = AsyncMock(
            side_effect=lambda func, *args: func(*args)
        )
        path = tmp_path / "cache.json"
        cache = VariantCache.load(path, hass)

        entry = await cache.async_put("P1", Variant.ONE)

        assert entry.variant == "onePlantData"
        hass.async_add_executor_job.assert_awaited_once()
        document = json.loads(path.read_text(encoding="utf-8"))
        assert document["variants"]["P1"]["variant"] == "onePlantData"

    @pytest.mark.asyncio
    async def test_async_put_without_hass_writes_directly(
        self, tmp_path: Path
    ) -> None:
        """Test that a cache outside Home Assistant writes in place."""
        path = tmp_path / "cache.json"
        cache = VariantCache.load(path)

        await cache.async_put("P1", Variant.SE)

        assert VariantCache.load(path).get("P1").variant == "sePlantData"

    @pytest.mark.asyncio
    async def test_async_put_keeps_other_plants(self, tmp_path: Path) -> None:
        """Test that every plant stored in one cache survives a reload."""
        path = tmp_path / "cache.json"
        cache = VariantCache.load(path)

        await cache.async_put("PLANT_A", Variant.MED)
        await cache.async_put("PLANT_B", Variant.EVO)

        reloaded = VariantCache.load(path)
        assert reloaded.get("PLANT_A").variant == "medPlantData"
        assert reloaded.get("PLANT_B").variant == "evoPlantData"
