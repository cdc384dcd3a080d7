"""Unit tests for auth module."""

from unittest.mock import MagicMock

import pytest

from src.shell.auth import (
    API_KEY_PREFIX,
    MIN_API_KEY_LENGTH,
    AuthClient,
    bearer_token,
    generate_api_key,
    hash_api_key,
)


class TestGenerateApiKey:
    """Tests for generate_api_key."""

    def test_starts_with_prefix(self):
        """Generated key starts with ftk_ prefix."""
        key = generate_api_key()
        assert key.startswith(API_KEY_PREFIX)

    def test_sufficient_length(self):
        """Generated key has sufficient length for security."""
        key = generate_api_key()
        assert len(key) >= MIN_API_KEY_LENGTH

    def test_unique_keys(self):
        keys = [generate_api_key() for _ in range(100)]
        assert len(set(keys)) == 100


class TestHashApiKey:
    """Tests for hash_api_key."""

    def test_returns_32_char_hex(self):
        hashed = hash_api_key("ftk_test_key_12345678901234567890")
        assert len(hashed) == 32
        assert all(c in "0123456789abcdef" for c in hashed)

    def test_deterministic(self):
        key = "ftk_test_key_12345678901234567890"
        assert hash_api_key(key) == hash_api_key(key)

    def test_different_keys_different_hashes(self):
        assert hash_api_key("ftk_key1_1234567890123456789012345") != hash_api_key("ftk_key2_1234567890123456789012345")


class TestBearerToken:
    """Tests for bearer_token."""

    def test_extracts_token(self):
        assert bearer_token("Bearer ftk_abc") == "ftk_abc"

    def test_other_scheme(self):
        assert bearer_token("Basic dXNlcjpwYXNz") is None

    def test_empty(self):
        assert bearer_token("") is None
        assert bearer_token("Bearer   ") is None


class TestAuthClient:
    """Tests for AuthClient against a mocked Firestore client."""

    def _db_with_user(self, data):
        db = MagicMock()
        doc = MagicMock()
        doc.exists = data is not None
        doc.to_dict.return_value = data
        db.user_ref.return_value.get.return_value = doc
        return db

    def test_register_stores_hash_only(self):
        db = MagicMock()
        api_key, user_id = AuthClient(db).register_user("test@example.com")

        assert user_id == hash_api_key(api_key)
        db.user_ref.assert_called_once_with(user_id)
        stored = db.user_ref.return_value.set.call_args[0][0]
        assert stored["email"] == "test@example.com"
        assert stored["role"] == "user"
        assert api_key not in stored.values()

    def test_authenticate_registered_user(self):
        api_key = generate_api_key()
        db = self._db_with_user({
            "email": "admin@example.com",
            "api_key_hash": hash_api_key(api_key),
            "role": "admin",
            "created_at": "2024-01-01T00:00:00Z",
        })

        principal = AuthClient(db).authenticate(api_key)
        assert principal.id == hash_api_key(api_key)

    def test_authenticate_unknown_key(self):
        assert AuthClient(self._db_with_user(None)).authenticate(generate_api_key()) is None

    @pytest.mark.parametrize("api_key", [
        None,
        "",
        "ftk_short",
        "flr_" + "x" * 40,
    ])
    def test_malformed_key_skips_lookup(self, api_key):
        """Missing, short or foreign-prefix keys never reach Firestore."""
        db = MagicMock()
        assert AuthClient(db).authenticate(api_key) is None
        db.user_ref.assert_not_called()
