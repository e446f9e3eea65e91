"""
API key material: generation, hashing and display.

Public and secret keys are drawn independently (128 random bits each), so
neither can be derived from the other. Secrets are stored only as a salted
SHA-256 digest; the salt is a fixed, shared value so verification can
recompute the digest and compare it with the stored one.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass

PUBLIC_KEY_PREFIX = "pk"
SECRET_KEY_PREFIX = "sk"
KEY_ENTROPY_BYTES = 16
DISPLAY_PREFIX_LENGTH = 8
DISPLAY_SUFFIX = "..."
DEFAULT_SALT = "salt"


@dataclass(frozen=True)
class KeyPair:
    public_key: str
    secret_key: str


def generate_api_key(prefix: str) -> str:
    """``<prefix>_<32 hex chars>``."""
    return f"{prefix}_{secrets.token_hex(KEY_ENTROPY_BYTES)}"


def new_key_pair() -> KeyPair:
    return KeyPair(
        public_key=generate_api_key(PUBLIC_KEY_PREFIX),
        secret_key=generate_api_key(SECRET_KEY_PREFIX),
    )


def hash_secret(secret_key: str, salt: str = DEFAULT_SALT) -> str:
    """Deterministic hex SHA-256 of ``salt + secret_key``."""
    return hashlib.sha256(f"{salt}{secret_key}".encode()).hexdigest()


def secrets_match(secret_key: str, stored_hash: str, salt: str = DEFAULT_SALT) -> bool:
    return hmac.compare_digest(hash_secret(secret_key, salt).encode(), stored_hash.encode())


def display_fragment(secret_key: str) -> str:
    """First characters of the secret followed by an ellipsis, for listings."""
    return secret_key[:DISPLAY_PREFIX_LENGTH] + DISPLAY_SUFFIX
