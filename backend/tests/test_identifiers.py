"""Tests for owner row keys (dimiplan.crypto.identifiers)."""

import hmac

import pytest

from dimiplan.crypto.identifiers import IdentifierHasher, looks_like_owner_hash

U1_HASH = "ab1583476e7dcdff916ee83020df9c51effb04ac7b1068d68bdf0a8377370328"
U2_HASH = "31b047bbc836b98c33480a6926e832ce358281d6fa312c5e9b8aa3e2de9fa3f0"


@pytest.fixture
def hasher() -> IdentifierHasher:
    return IdentifierHasher(b"s")


class TestHashId:
    def test_known_digest(self, hasher):
        assert hasher.hash_id("u1") == U1_HASH
        assert hasher.hash_id("u2") == U2_HASH

    def test_shape_is_64_lowercase_hex(self, hasher):
        digest = hasher.hash_id("110248495921238986420")
        assert looks_like_owner_hash(digest)

    def test_stable_across_instances(self):
        assert IdentifierHasher(b"s").hash_id("u1") == IdentifierHasher(b"s").hash_id("u1")

    def test_salt_changes_digest(self, hasher):
        assert IdentifierHasher(b"other").hash_id("u1") != hasher.hash_id("u1")

    def test_unicode_identifier(self, hasher):
        assert looks_like_owner_hash(hasher.hash_id("사용자"))


class TestVerifyId:
    def test_accepts_matching_hash(self, hasher):
        assert hasher.verify_id("u1", U1_HASH)

    def test_rejects_other_user(self, hasher):
        assert not hasher.verify_id("u1", U2_HASH)

    @pytest.mark.parametrize("candidate", ["", "not-hex", U1_HASH[:-2], U1_HASH + "00"])
    def test_rejects_malformed(self, hasher, candidate):
        assert not hasher.verify_id("u1", candidate)

    def test_uses_constant_time_compare(self, hasher, monkeypatch):
        calls = []
        original = hmac.compare_digest

        def spy(a, b):
            calls.append((a, b))
            return original(a, b)

        monkeypatch.setattr("dimiplan.crypto.identifiers.hmac.compare_digest", spy)
        assert hasher.verify_id("u1", U1_HASH)
        assert len(calls) == 1


class TestLooksLikeOwnerHash:
    @pytest.mark.parametrize("value", [U1_HASH, "0" * 64])
    def test_positive(self, value):
        assert looks_like_owner_hash(value)

    @pytest.mark.parametrize("value", [None, 42, "u1", U1_HASH.upper(), U1_HASH[:63], "g" * 64])
    def test_negative(self, value):
        assert not looks_like_owner_hash(value)
