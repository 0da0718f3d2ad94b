"""
Tests for snapshot encryption.

These tests verify that:
1. Key generation produces valid keys
2. Encryption and decryption work correctly
3. Registry snapshots survive an encrypt/decrypt cycle
4. Error cases are handled properly
"""

import base64
import os
import sys

import pytest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from encryption import (
    ENCRYPTED_PREFIX,
    SALT_SIZE,
    _derive_key,
    EncryptionError,
    decrypt_data,
    decrypt_state_data,
    encrypt_data,
    encrypt_state_data,
    generate_encryption_key,
    is_encrypted,
    is_encryption_enabled,
)

TEST_KEY = "encryption-test-passphrase"


class TestKeyGeneration:
    """Tests for encryption key generation."""

    def test_generate_key_is_base64_256_bits(self):
        key = generate_encryption_key()
        assert isinstance(key, str)
        assert len(base64.b64decode(key)) == 32

    def test_generate_key_unique(self):
        keys = [generate_encryption_key() for _ in range(10)]
        assert len(set(keys)) == 10


class TestEncryptDecrypt:
    """Tests for basic encryption and decryption."""

    def test_string_round_trip(self):
        encrypted = encrypt_data("Villa, 3 bedrooms", TEST_KEY)
        assert encrypted.startswith(ENCRYPTED_PREFIX)
        assert "Villa" not in encrypted
        assert decrypt_data(encrypted, TEST_KEY, return_type="str") == "Villa, 3 bedrooms"

    def test_dict_round_trip(self):
        data = {"owner": "alice", "asset_id": 0}
        assert decrypt_data(encrypt_data(data, TEST_KEY), TEST_KEY) == data

    def test_unicode(self):
        text = "Zoë 中文 \U0001f3e0"
        encrypted = encrypt_data(text, TEST_KEY)
        assert decrypt_data(encrypted, TEST_KEY, return_type="str") == text

    def test_same_plaintext_encrypts_differently(self):
        assert encrypt_data("same", TEST_KEY) != encrypt_data("same", TEST_KEY)

    def test_wrong_key_fails(self):
        encrypted = encrypt_data("secret", TEST_KEY)
        with pytest.raises(EncryptionError):
            decrypt_data(encrypted, "another-key")

    def test_corrupted_data_fails(self):
        encrypted = encrypt_data("secret", TEST_KEY)
        payload = bytearray(base64.b64decode(encrypted[len(ENCRYPTED_PREFIX):]))
        payload[-1] ^= 0xFF
        corrupted = ENCRYPTED_PREFIX + base64.b64encode(bytes(payload)).decode()

        with pytest.raises(EncryptionError):
            decrypt_data(corrupted, TEST_KEY)


class TestIsEncrypted:
    def test_encrypted_data_detected(self):
        assert is_encrypted(encrypt_data("x", TEST_KEY))

    @pytest.mark.parametrize("value", ["plain", '{"state": {}}', "", None])
    def test_other_values_not_detected(self, value):
        assert not is_encrypted(value)


class TestStateDataEncryption:
    """Whole-snapshot encryption."""

    def test_snapshot_round_trip(self):
        snapshot = {
            "state": {"identities": {"alice": {"email": "alice@example.com"}}},
            "clock": 12,
        }
        encrypted = encrypt_state_data(snapshot, TEST_KEY)
        assert "alice@example.com" not in encrypted
        assert decrypt_state_data(encrypted, TEST_KEY) == snapshot


class TestKeyDerivationCache:
    """A fixed salt lets repeated snapshot writes reuse one derived key."""

    def test_fixed_salt_reused_with_fresh_iv(self):
        salt = bytes(range(SALT_SIZE))
        first = base64.b64decode(encrypt_state_data({"clock": 1}, TEST_KEY, salt)[len(ENCRYPTED_PREFIX):])
        second = base64.b64decode(encrypt_state_data({"clock": 1}, TEST_KEY, salt)[len(ENCRYPTED_PREFIX):])

        assert first[:SALT_SIZE] == second[:SALT_SIZE] == salt
        assert first[SALT_SIZE:] != second[SALT_SIZE:]

    def test_derivation_cached(self):
        salt = b"cache-test-salt!"
        encrypted = encrypt_data("first", TEST_KEY, salt)
        hits = _derive_key.cache_info().hits

        encrypt_data("second", TEST_KEY, salt)
        assert decrypt_data(encrypted, TEST_KEY) == "first"
        assert _derive_key.cache_info().hits == hits + 2

    def test_wrong_salt_size_rejected(self):
        with pytest.raises(EncryptionError):
            encrypt_data("x", TEST_KEY, b"short")


class TestConfiguration:
    def test_enabled_requires_key(self, monkeypatch):
        monkeypatch.delenv("PROPERTY_REGISTRY_ENCRYPTION_KEY", raising=False)
        assert is_encryption_enabled() is False

        monkeypatch.setenv("PROPERTY_REGISTRY_ENCRYPTION_KEY", TEST_KEY)
        assert is_encryption_enabled() is True

    def test_can_be_switched_off(self, monkeypatch):
        monkeypatch.setenv("PROPERTY_REGISTRY_ENCRYPTION_KEY", TEST_KEY)
        monkeypatch.setenv("PROPERTY_REGISTRY_ENCRYPTION_ENABLED", "off")
        assert is_encryption_enabled() is False

    def test_environment_key_used_by_default(self, monkeypatch):
        monkeypatch.setenv("PROPERTY_REGISTRY_ENCRYPTION_KEY", TEST_KEY)
        encrypted = encrypt_data("from env")
        assert decrypt_data(encrypted, TEST_KEY, return_type="str") == "from env"


class TestErrorHandling:
    def test_encrypt_without_key(self, monkeypatch):
        monkeypatch.delenv("PROPERTY_REGISTRY_ENCRYPTION_KEY", raising=False)
        with pytest.raises(EncryptionError):
            encrypt_data("x")

    def test_decrypt_invalid_format(self):
        with pytest.raises(EncryptionError):
            decrypt_data("not encrypted", TEST_KEY)

    def test_decrypt_truncated_data(self):
        with pytest.raises(EncryptionError):
            decrypt_data(ENCRYPTED_PREFIX + base64.b64encode(b"short").decode(), TEST_KEY)
