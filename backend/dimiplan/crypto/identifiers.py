"""
Opaque row keys for external user identifiers.

The database only ever stores SHA3-256(external_id || UID_SALT). This is a row key
that keeps backups from being trivially correlated with OAuth accounts, not a
password hash: the salt is process-wide so equality lookups stay O(1).
"""

import hashlib
import hmac
import re

OWNER_HASH_LENGTH = 64

_OWNER_HASH_RE = re.compile(r"^[0-9a-f]{64}$")


class IdentifierHasher:
    """Hashes external identifiers with the process-wide salt."""

    def __init__(self, uid_salt: bytes):
        self._salt = uid_salt

    def hash_id(self, external_id: str) -> str:
        return hashlib.sha3_256(external_id.encode("utf-8") + self._salt).hexdigest()

    def verify_id(self, external_id: str, candidate_hex: str) -> bool:
        """Constant-time check that candidate_hex is the row key of external_id."""
        try:
            candidate = bytes.fromhex(candidate_hex)
        except (TypeError, ValueError):
            return False
        expected = bytes.fromhex(self.hash_id(external_id))
        if len(candidate) != len(expected):
            return False
        return hmac.compare_digest(expected, candidate)


def looks_like_owner_hash(value: object) -> bool:
    """True for 64 lowercase hex characters, the shape of a migrated owner column."""
    return isinstance(value, str) and bool(_OWNER_HASH_RE.match(value))
