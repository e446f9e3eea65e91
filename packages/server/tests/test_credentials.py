"""
Unit tests for identifier generation and API key material.
"""

from __future__ import annotations

import hashlib
import re

import pytest

from app.core.auth import hash_password, verify_password
from app.core.credentials import (
    display_fragment,
    generate_api_key,
    hash_secret,
    new_key_pair,
    secrets_match,
)
from app.core.ids import generate_id

HEX32 = re.compile(r"^[0-9a-f]{32}$")


class TestIdentifiers:
    def test_bare_ids_for_orgs_and_projects(self):
        for kind in ("org", "prj"):
            value = generate_id(kind)
            assert "_" not in value
            assert len(value) == 26
            assert value == value.lower()

    def test_prefixed_ids_for_other_entities(self):
        value = generate_id("key")
        assert value.startswith("key_")
        assert len(value) == len("key_") + 26

    def test_ids_are_unique(self):
        ids = {generate_id("om") for _ in range(500)}
        assert len(ids) == 500


class TestKeyMaterial:
    def test_key_format(self):
        key = generate_api_key("pk")
        prefix, body = key.split("_", 1)
        assert prefix == "pk"
        assert HEX32.match(body)

    def test_pair_is_independent(self):
        pair = new_key_pair()
        assert pair.public_key.startswith("pk_")
        assert pair.secret_key.startswith("sk_")
        assert pair.public_key[3:] != pair.secret_key[3:]

    def test_hash_is_salted_sha256(self):
        expected = hashlib.sha256(b"saltsk_abc").hexdigest()
        assert hash_secret("sk_abc", "salt") == expected
        assert hash_secret("sk_abc", "other") != expected

    def test_hash_is_deterministic(self):
        assert hash_secret("sk_abc", "s") == hash_secret("sk_abc", "s")

    def test_secrets_match(self):
        pair = new_key_pair()
        stored = hash_secret(pair.secret_key, "s")
        assert secrets_match(pair.secret_key, stored, "s")
        assert not secrets_match(pair.secret_key + "x", stored, "s")
        assert not secrets_match(pair.secret_key, stored, "wrong-salt")

    def test_display_fragment(self):
        assert display_fragment("sk_0123456789abcdef") == "sk_01234..."


class TestPasswords:
    @pytest.mark.parametrize("password", ["correct horse battery", "p@ssw0rd!"])
    def test_hash_and_verify(self, password):
        hashed = hash_password(password)
        assert hashed != password
        assert verify_password(password, hashed)
        assert not verify_password(password + "x", hashed)
