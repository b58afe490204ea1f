"""Per-user key derivation from the master secrets."""

import hashlib
import hmac
from functools import lru_cache
from typing import NamedTuple

from dimiplan.crypto.secret_loader import CryptoSecrets, KeyMaterial

KEY_SIZE = 32
IV_SIZE = 16


class DerivedKeys(NamedTuple):
    key: bytes
    iv: bytes


def derive_keys(material: KeyMaterial, external_id: str) -> DerivedKeys:
    """key = HMAC-SHA256(MASTER_KEY, id); iv = HMAC-SHA256(MASTER_IV_SEED, id)[:16]."""
    message = external_id.encode("utf-8")
    key = hmac.new(material.master_key, message, hashlib.sha256).digest()[:KEY_SIZE]
    iv = hmac.new(material.master_iv_seed, message, hashlib.sha256).digest()[:IV_SIZE]
    return DerivedKeys(key=key, iv=iv)


class KeyDeriver:
    """
    Derives (key, iv) pairs for every configured key version.

    Derivations are pure, so results are memoized in a bounded LRU keyed by
    (version, external_id). Nothing derived here is ever persisted.
    """

    def __init__(self, secrets: CryptoSecrets, cache_size: int = 1024):
        self._secrets = secrets
        self._cached = lru_cache(maxsize=cache_size)(self._derive)

    @property
    def current_version(self) -> int:
        return self._secrets.current.version

    @property
    def known_versions(self) -> tuple[int, ...]:
        return (self._secrets.current.version,) + tuple(m.version for m in self._secrets.retired)

    def derive_user_keys(self, external_id: str, version: int | None = None) -> DerivedKeys:
        if version is None:
            version = self._secrets.current.version
        return self._cached(version, external_id)

    def cache_info(self):
        return self._cached.cache_info()

    def _derive(self, version: int, external_id: str) -> DerivedKeys:
        material = self._secrets.material_for(version)
        if material is None:
            raise KeyError(f"Unknown key version {version}")
        return derive_keys(material, external_id)
