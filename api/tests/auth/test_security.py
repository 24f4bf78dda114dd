"""Tests for auth security functions."""

from datetime import timedelta
from uuid import uuid4

import pytest
from jose import JWTError, jwt

from skillwise.auth.permissions import UserRole
from skillwise.auth.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


class TestPasswordHashing:
    """Tests for Argon2id hashing (account and Childlock passwords)."""

    def test_hash_password_creates_hash(self) -> None:
        """Hash should be different from plain password."""
        password = "SecureP@ssword123"
        hashed = hash_password(password)
        assert hashed != password
        assert hashed.startswith("$argon2id$")

    def test_hash_password_unique_hashes(self) -> None:
        """Same password should produce different hashes (due to salt)."""
        assert hash_password("lock-1234") != hash_password("lock-1234")

    def test_verify_password_correct(self) -> None:
        hashed = hash_password("lock-1234")
        assert verify_password("lock-1234", hashed) is True

    def test_verify_password_incorrect(self) -> None:
        hashed = hash_password("lock-1234")
        assert verify_password("lock-9999", hashed) is False

    def test_verify_password_empty(self) -> None:
        hashed = hash_password("lock-1234")
        assert verify_password("", hashed) is False

    @pytest.mark.parametrize("stored", [None, "", "not-a-hash"])
    def test_missing_or_malformed_hash_never_verifies(self, stored) -> None:
        assert verify_password("lock-1234", stored) is False


class TestAccessToken:
    """Tests for JWT access tokens."""

    def test_round_trip_claims(self) -> None:
        user_id = str(uuid4())
        token = create_access_token(
            {"sub": user_id, "email": "a@test.com", "role": UserRole.PARENT.value}
        )
        payload = decode_access_token(token)
        assert payload["sub"] == user_id
        assert payload["role"] == "Parent"
        assert payload["type"] == "access"

    def test_expired_token_rejected(self) -> None:
        token = create_access_token(
            {"sub": str(uuid4())}, expires_delta=timedelta(seconds=-1)
        )
        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_token_without_subject_rejected(self) -> None:
        token = create_access_token({"email": "a@test.com"})
        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_foreign_signature_rejected(self) -> None:
        token = jwt.encode(
            {"sub": str(uuid4()), "type": "access"}, "not-the-secret", algorithm="HS256"
        )
        with pytest.raises(JWTError):
            decode_access_token(token)
