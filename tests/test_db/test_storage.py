"""Tests for the key-value store and deal repository."""

from pathlib import Path

import pytest

from mortgage_crm.core.exceptions import StorageError
from mortgage_crm.db.models import Deal
from mortgage_crm.db.storage import DealRepository, KeyValueStore


class TestKeyValueStore:
    """Test get/set contract."""

    def test_get_missing_returns_none(self, kv_store: KeyValueStore):
        """Absent keys read as None."""
        assert kv_store.get("nothing") is None

    def test_set_then_get(self, kv_store: KeyValueStore):
        """Stored value reads back."""
        kv_store.set("k", "v1")
        assert kv_store.get("k") == "v1"

    def test_set_overwrites(self, kv_store: KeyValueStore):
        """Second set replaces the value."""
        kv_store.set("k", "v1")
        kv_store.set("k", "v2")
        assert kv_store.get("k") == "v2"

    def test_delete(self, kv_store: KeyValueStore):
        """Delete reports whether the key existed."""
        kv_store.set("k", "v")
        assert kv_store.delete("k") is True
        assert kv_store.delete("k") is False
        assert kv_store.get("k") is None

    @pytest.mark.database
    def test_persists_across_connections(self, tmp_path: Path):
        """File-backed store survives reopen."""
        path = tmp_path / "data" / "store.db"
        first = KeyValueStore(str(path))
        first.initialize()
        first.set("k", "saved")
        first.close()

        second = KeyValueStore(str(path))
        second.initialize()
        assert second.get("k") == "saved"
        second.close()

    def test_defaults_to_config_path(self, tmp_path: Path):
        """No path means the configured db_path."""
        store = KeyValueStore()
        assert store.db_path == str((tmp_path / "store.db").resolve())

    def test_query_before_initialize_raises(self):
        """Missing table surfaces as StorageError."""
        store = KeyValueStore(":memory:")
        with pytest.raises(StorageError):
            store.get("k")
        store.close()


class TestDealRepository:
    """Test snapshot load/save."""

    def test_load_nothing_saved(self, repository: DealRepository):
        """Empty store loads as None."""
        assert repository.load() is None

    def test_save_then_load(self, repository: DealRepository, sample_deal: Deal, sample_active_deal: Deal):
        """Full collection is recoverable."""
        repository.save([sample_deal, sample_active_deal])
        assert repository.load() == [sample_deal, sample_active_deal]

    def test_save_empty_collection(self, repository: DealRepository, sample_deal: Deal):
        """Saving an empty list is distinct from never saving."""
        repository.save([sample_deal])
        repository.save([])
        assert repository.load() == []

    def test_uses_key(self, kv_store: KeyValueStore, sample_deal: Deal):
        """Snapshot lives under the repository key."""
        DealRepository(kv_store, key="custom").save([sample_deal])
        assert kv_store.get("custom") is not None

    def test_default_key_from_config(self, kv_store: KeyValueStore):
        """Key defaults to the configured storage key."""
        assert DealRepository(kv_store).key == "mortgage_crm_v2"

    def test_corrupt_snapshot_raises(self, kv_store: KeyValueStore):
        """Bad JSON surfaces as StorageError."""
        kv_store.set("test_deals", "not json")
        with pytest.raises(StorageError):
            DealRepository(kv_store, key="test_deals").load()
