"""
Tests for storage backends.
"""

import base64
import json
import os
import sys
import tempfile
import threading

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest

from encryption import ENCRYPTED_PREFIX, SALT_SIZE, _derive_key, is_encrypted
from storage import StorageError, get_storage_backend
from storage.base import StorageReadError, StorageWriteError
from storage.json_file import JSONFileStorage
from storage.memory import MemoryStorage

TEST_KEY = "storage-test-passphrase"

# Snapshot as the API host writes it
SAMPLE_SNAPSHOT = {
    "state": {
        "version": 1,
        "administration": {
            "admin": "deployer",
            "min_reputation": 50,
            "claim_types": ["CONDITION", "VALUATION"],
        },
        "identities": {
            "alice": {
                "name": "Alice",
                "email": "alice@example.com",
                "verified": True,
                "registration_time": 1,
                "reputation_score": 75,
            }
        },
        "identity_attributes": [],
        "assets": {
            "0": {
                "title": "Villa",
                "description": "3-bedroom villa",
                "asset_type": "RESIDENTIAL",
                "owner": "alice",
                "registration_time": 3,
                "last_update_time": 3,
                "metadata": "{}",
            }
        },
        "ownership_history": [
            {"asset_id": 0, "index": 0, "owner": "alice", "start_time": 3, "end_time": 0}
        ],
        "attestations": [],
        "next_asset_id": 1,
        "history_counters": {"0": 1},
    },
    "clock": 3,
}


class TestMemoryStorage:
    """Tests for MemoryStorage backend."""

    def test_init_empty(self):
        storage = MemoryStorage()
        assert storage.load_state() is None
        assert storage.is_available() is True

    def test_save_and_load(self):
        storage = MemoryStorage()
        storage.save_state(SAMPLE_SNAPSHOT)

        loaded = storage.load_state()
        assert loaded == SAMPLE_SNAPSHOT
        assert storage.save_count == 1

    def test_deep_copy_isolation(self):
        """Neither the saved input nor a loaded copy aliases stored data."""
        storage = MemoryStorage()
        data = json.loads(json.dumps(SAMPLE_SNAPSHOT))
        storage.save_state(data)

        data["clock"] = 999
        loaded = storage.load_state()
        assert loaded["clock"] == 3

        loaded["state"]["identities"].clear()
        assert storage.load_state()["state"]["identities"]

    def test_clear(self):
        storage = MemoryStorage()
        storage.save_state(SAMPLE_SNAPSHOT)
        storage.clear()
        assert storage.load_state() is None

    def test_get_info(self):
        storage = MemoryStorage()
        info = storage.get_info()
        assert info["backend_type"] == "MemoryStorage"
        assert info["has_data"] is False

        storage.save_state(SAMPLE_SNAPSHOT)
        info = storage.get_info()
        assert info["has_data"] is True
        assert info["identity_count"] == 1
        assert info["asset_count"] == 1

    def test_thread_safety(self):
        storage = MemoryStorage()
        errors = []

        def writer(n):
            try:
                for i in range(50):
                    storage.save_state({"state": {}, "clock": n * 100 + i})
                    storage.load_state()
            except Exception as e:  # pragma: no cover - surfaced via errors
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert storage.save_count == 250


class TestJSONFileStorage:
    """Tests for JSONFileStorage backend."""

    def test_init_nonexistent_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            storage = JSONFileStorage(os.path.join(tmpdir, "nonexistent.json"))
            assert storage.load_state() is None

    def test_save_and_load(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            storage = JSONFileStorage(os.path.join(tmpdir, "registry.json"))
            storage.save_state(SAMPLE_SNAPSHOT)
            assert storage.load_state() == SAMPLE_SNAPSHOT

    def test_file_persistence(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            filepath = os.path.join(tmpdir, "registry.json")
            JSONFileStorage(filepath).save_state(SAMPLE_SNAPSHOT)

            loaded = JSONFileStorage(filepath).load_state()
            assert loaded["clock"] == 3

    def test_json_format(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            filepath = os.path.join(tmpdir, "registry.json")
            JSONFileStorage(filepath).save_state(SAMPLE_SNAPSHOT)

            with open(filepath) as f:
                data = json.load(f)
            assert data["state"]["next_asset_id"] == 1

    def test_empty_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            filepath = os.path.join(tmpdir, "empty.json")
            with open(filepath, "w") as f:
                f.write("")
            assert JSONFileStorage(filepath).load_state() is None

    def test_invalid_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            filepath = os.path.join(tmpdir, "invalid.json")
            with open(filepath, "w") as f:
                f.write("not valid json {{{")

            with pytest.raises(StorageReadError):
                JSONFileStorage(filepath).load_state()

    def test_unserializable_snapshot(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            storage = JSONFileStorage(os.path.join(tmpdir, "registry.json"))
            with pytest.raises(StorageWriteError):
                storage.save_state({"state": object()})

    def test_write_into_missing_directory(self):
        storage = JSONFileStorage("/nonexistent/path/registry.json")
        with pytest.raises(StorageWriteError):
            storage.save_state(SAMPLE_SNAPSHOT)

    def test_is_available(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            assert JSONFileStorage(os.path.join(tmpdir, "registry.json")).is_available() is True
        assert JSONFileStorage("/nonexistent/path/registry.json").is_available() is False

    def test_get_info(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            storage = JSONFileStorage(os.path.join(tmpdir, "registry.json"))

            info = storage.get_info()
            assert info["backend_type"] == "JSONFileStorage"
            assert info["file_exists"] is False
            assert info["encryption_enabled"] is False

            storage.save_state(SAMPLE_SNAPSHOT)
            info = storage.get_info()
            assert info["file_exists"] is True
            assert "file_size_bytes" in info

    def test_backup(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            storage = JSONFileStorage(os.path.join(tmpdir, "registry.json"))
            storage.save_state(SAMPLE_SNAPSHOT)

            backup_path = os.path.join(tmpdir, "backup.json")
            assert storage.backup(backup_path) == backup_path

            with open(backup_path) as f:
                assert json.load(f)["clock"] == 3

    def test_backup_without_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            storage = JSONFileStorage(os.path.join(tmpdir, "registry.json"))
            with pytest.raises(StorageError):
                storage.backup()

    def test_atomic_write_leaves_no_temp_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            filepath = os.path.join(tmpdir, "registry.json")
            JSONFileStorage(filepath).save_state(SAMPLE_SNAPSHOT)
            assert not os.path.exists(f"{filepath}.tmp")

    def test_unicode_content(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            storage = JSONFileStorage(os.path.join(tmpdir, "registry.json"))
            data = json.loads(json.dumps(SAMPLE_SNAPSHOT))
            data["state"]["identities"]["alice"]["name"] = "Zoë 中文 \U0001f3e0"

            storage.save_state(data)
            loaded = storage.load_state()

            assert loaded["state"]["identities"]["alice"]["name"] == "Zoë 中文 \U0001f3e0"


class TestEncryptedJSONFileStorage:
    """Snapshots encrypted at rest."""

    def test_encrypted_round_trip(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            filepath = os.path.join(tmpdir, "registry.json")
            storage = JSONFileStorage(filepath, encryption_enabled=True, encryption_key=TEST_KEY)
            storage.save_state(SAMPLE_SNAPSHOT)

            with open(filepath) as f:
                raw = f.read()
            assert is_encrypted(raw)
            assert "alice@example.com" not in raw

            assert storage.load_state() == SAMPLE_SNAPSHOT

    def test_encrypted_file_readable_with_encryption_off(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            filepath = os.path.join(tmpdir, "registry.json")
            JSONFileStorage(filepath, encryption_enabled=True, encryption_key=TEST_KEY).save_state(
                SAMPLE_SNAPSHOT
            )

            reader = JSONFileStorage(filepath, encryption_key=TEST_KEY)
            assert reader.load_state()["clock"] == 3

    def test_wrong_key_raises_read_error(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            filepath = os.path.join(tmpdir, "registry.json")
            JSONFileStorage(filepath, encryption_enabled=True, encryption_key=TEST_KEY).save_state(
                SAMPLE_SNAPSHOT
            )

            with pytest.raises(StorageReadError):
                JSONFileStorage(filepath, encryption_key="wrong-key").load_state()

    def test_repeated_saves_derive_key_once(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            filepath = os.path.join(tmpdir, "registry.json")
            storage = JSONFileStorage(filepath, encryption_enabled=True, encryption_key=TEST_KEY)

            salts = []
            storage.save_state(SAMPLE_SNAPSHOT)
            misses = _derive_key.cache_info().misses
            for clock in range(4, 8):
                storage.save_state({**SAMPLE_SNAPSHOT, "clock": clock})
                with open(filepath) as f:
                    blob = base64.b64decode(f.read()[len(ENCRYPTED_PREFIX):])
                salts.append(blob[:SALT_SIZE])

            assert _derive_key.cache_info().misses == misses
            assert len(set(salts)) == 1
            assert storage.load_state()["clock"] == 7


class TestStorageBackendInterface:
    def test_context_manager(self):
        with MemoryStorage() as storage:
            storage.save_state(SAMPLE_SNAPSHOT)
            assert storage.load_state() is not None


class TestGetStorageBackend:
    """Tests for get_storage_backend factory."""

    def test_default_json(self, monkeypatch):
        monkeypatch.delenv("STORAGE_BACKEND", raising=False)
        monkeypatch.delenv("REGISTRY_DATA_FILE", raising=False)
        monkeypatch.delenv("PROPERTY_REGISTRY_ENCRYPTION_KEY", raising=False)

        storage = get_storage_backend()
        assert isinstance(storage, JSONFileStorage)
        assert storage.file_path == "registry_data.json"
        assert storage.encryption_enabled is False

    def test_explicit_json_path(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "json")
        monkeypatch.setenv("REGISTRY_DATA_FILE", "/tmp/custom_registry.json")

        storage = get_storage_backend()
        assert storage.file_path == "/tmp/custom_registry.json"

    def test_encryption_enabled_by_key(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "json")
        monkeypatch.setenv("PROPERTY_REGISTRY_ENCRYPTION_KEY", TEST_KEY)
        monkeypatch.delenv("PROPERTY_REGISTRY_ENCRYPTION_ENABLED", raising=False)

        assert get_storage_backend().encryption_enabled is True

    def test_encryption_switched_off(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "json")
        monkeypatch.setenv("PROPERTY_REGISTRY_ENCRYPTION_KEY", TEST_KEY)
        monkeypatch.setenv("PROPERTY_REGISTRY_ENCRYPTION_ENABLED", "false")

        assert get_storage_backend().encryption_enabled is False

    def test_memory_backend(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        assert isinstance(get_storage_backend(), MemoryStorage)

    def test_unknown_backend(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "postgresql")
        with pytest.raises(StorageError):
            get_storage_backend()
