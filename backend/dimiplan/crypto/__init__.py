"""Per-user deterministic envelope encryption."""

from functools import lru_cache

from dimiplan.config import Settings, get_settings
from dimiplan.crypto.codec import FieldCodec, looks_encrypted
from dimiplan.crypto.envelope import RecordEnvelope
from dimiplan.crypto.identifiers import IdentifierHasher, looks_like_owner_hash
from dimiplan.crypto.keys import DerivedKeys, KeyDeriver
from dimiplan.crypto.secret_loader import CryptoSecrets, load_crypto_secrets


def build_envelope(settings: Settings) -> RecordEnvelope:
    """Load the secrets and wire hasher, key deriver and codec into an envelope."""
    secrets = load_crypto_secrets(settings)
    deriver = KeyDeriver(secrets, cache_size=settings.key_cache_size)
    return RecordEnvelope(IdentifierHasher(secrets.uid_salt), FieldCodec(deriver))


@lru_cache
def get_envelope() -> RecordEnvelope:
    """Process-wide envelope built from the cached settings."""
    return build_envelope(get_settings())


__all__ = [
    "CryptoSecrets",
    "DerivedKeys",
    "FieldCodec",
    "IdentifierHasher",
    "KeyDeriver",
    "RecordEnvelope",
    "build_envelope",
    "get_envelope",
    "load_crypto_secrets",
    "looks_encrypted",
    "looks_like_owner_hash",
]
