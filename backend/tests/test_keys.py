"""Tests for per-user key derivation (dimiplan.crypto.keys)."""

import pytest

from dimiplan.crypto.keys import KeyDeriver, derive_keys
from dimiplan.crypto.secret_loader import CryptoSecrets, KeyMaterial

CURRENT = KeyMaterial(version=0, master_key=b"k", master_iv_seed=b"i")


@pytest.fixture
def deriver() -> KeyDeriver:
    return KeyDeriver(CryptoSecrets(uid_salt=b"s", current=CURRENT), cache_size=2)


def test_known_key_and_iv():
    keys = derive_keys(CURRENT, "u1")
    assert keys.key.hex() == "731757b19387f029ed2b9879ee82a5384d99f3d717476fd935e43d11f4a1f2e3"
    assert keys.iv.hex() == "b413ce114eccc07322fc4181279bd956"


def test_sizes(deriver):
    key, iv = deriver.derive_user_keys("u1")
    assert len(key) == 32
    assert len(iv) == 16


def test_users_get_different_keys(deriver):
    assert deriver.derive_user_keys("u1") != deriver.derive_user_keys("u2")


def test_memoized_and_bounded(deriver):
    deriver.derive_user_keys("u1")
    deriver.derive_user_keys("u1")
    info = deriver.cache_info()
    assert info.hits == 1
    assert info.misses == 1

    deriver.derive_user_keys("u2")
    deriver.derive_user_keys("u3")
    assert deriver.cache_info().currsize == 2


def test_unknown_version_raises_key_error(deriver):
    with pytest.raises(KeyError):
        deriver.derive_user_keys("u1", version=7)


def test_retired_version_is_known():
    retired = KeyMaterial(version=0, master_key=b"old", master_iv_seed=b"old-iv")
    current = KeyMaterial(version=1, master_key=b"k", master_iv_seed=b"i")
    deriver = KeyDeriver(CryptoSecrets(uid_salt=b"s", current=current, retired=(retired,)))

    assert deriver.current_version == 1
    assert deriver.known_versions == (1, 0)
    assert deriver.derive_user_keys("u1", version=0) == derive_keys(retired, "u1")
