"""Unit tests for password hashing."""

from __future__ import annotations

import pytest

from talentgate.web.auth.passwords import hash_password, verify_password


@pytest.mark.unit
class TestPasswords:
    def test_verify(self) -> None:
        encoded = hash_password("s3cret-pass", iterations=1_000)
        assert verify_password("s3cret-pass", encoded)
        assert not verify_password("wrong-pass", encoded)

    def test_salted(self) -> None:
        assert hash_password("same", iterations=1_000) != hash_password("same", iterations=1_000)

    def test_malformed_hash(self) -> None:
        assert not verify_password("x", "")
        assert not verify_password("x", "md5$1$salt$abc")
        assert not verify_password("x", "pbkdf2_sha256$notanint$salt$abc")
