"""Tests for password hashing."""

import pytest

from itinera.app.auth.passwords import hash_password, verify_password


def test_hash_verifies() -> None:
    encoded = hash_password("correct horse battery", iterations=1000)

    assert verify_password("correct horse battery", encoded)
    assert not verify_password("wrong horse", encoded)


def test_hash_is_salted() -> None:
    """Same password hashes differently each time."""
    assert hash_password("pw-123456", iterations=1000) != hash_password("pw-123456", iterations=1000)


def test_hash_format() -> None:
    algorithm, iterations, salt, digest = hash_password("pw-123456", iterations=1000).split("$")

    assert algorithm == "pbkdf2_sha256"
    assert iterations == "1000"
    assert len(salt) == 32
    assert len(digest) == 64


@pytest.mark.parametrize(
    "encoded",
    ["", "plain", "md5$1$salt$abc", "pbkdf2_sha256$notanint$salt$abc", "a$b$c"],
)
def test_malformed_hash_never_matches(encoded: str) -> None:
    assert not verify_password("anything", encoded)
