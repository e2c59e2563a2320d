"""Tests for the bcrypt credential hasher."""

import bcrypt
import pytest

from credential_policy.config import AppConfig, SecurityConfig, set_config
from credential_policy.exceptions import ErrorCode, ValidationError
from credential_policy.utils.hashing import (
    BCRYPT_MAX_PASSWORD_BYTES,
    BcryptCredentialHasher,
    CredentialHasher,
)


class TestBcryptCredentialHasher:
    """Test hashing and verification."""

    def test_satisfies_protocol(self, hasher):
        assert isinstance(hasher, CredentialHasher)

    def test_hash_is_fixed_length_bcrypt(self, hasher):
        hashed = hasher.hash("correct horse")

        assert len(hashed) == 60
        assert hashed.startswith("$2b$04$")

    def test_hash_is_salted(self, hasher):
        assert hasher.hash("same") != hasher.hash("same")

    def test_matches(self, hasher):
        hashed = hasher.hash("correct horse")

        assert hasher.matches("correct horse", hashed) is True
        assert hasher.matches("wrong horse", hashed) is False

    def test_interoperates_with_bcrypt(self, hasher):
        hashed = bcrypt.hashpw(b"legacy", bcrypt.gensalt(rounds=4)).decode()
        assert hasher.matches("legacy", hashed) is True

    @pytest.mark.parametrize("plain,stored", [(None, "x" * 60), ("secret", None), ("secret", "")])
    def test_matches_missing_input(self, hasher, plain, stored):
        assert hasher.matches(plain, stored) is False

    def test_matches_malformed_hash(self, hasher):
        assert hasher.matches("secret", "not-a-bcrypt-hash") is False

    def test_matches_overlong_candidate(self, hasher):
        hashed = hasher.hash("a" * BCRYPT_MAX_PASSWORD_BYTES)
        assert hasher.matches("a" * (BCRYPT_MAX_PASSWORD_BYTES + 1), hashed) is False

    def test_hash_rejects_empty(self, hasher):
        with pytest.raises(ValidationError) as exc_info:
            hasher.hash("")
        assert exc_info.value.error_code == ErrorCode.MISSING_REQUIRED

    def test_hash_rejects_overlong(self, hasher):
        with pytest.raises(ValidationError) as exc_info:
            hasher.hash("é" * 40)
        assert exc_info.value.error_code == ErrorCode.CONSTRAINT_VIOLATION
        assert exc_info.value.context["field"] == "credential"

    def test_rounds_default_from_config(self):
        set_config(AppConfig(security=SecurityConfig(bcrypt_rounds=5)))

        hashed = BcryptCredentialHasher().hash("secret")
        assert hashed.startswith("$2b$05$")
