"""
Field-level encryption for user content at rest.

AES-256-CBC with PKCS#7 padding under a per-user (key, iv) pair, output as
lowercase hex. There is no authentication tag and the IV is derived, not stored.

Threat model: the IV is fixed per user, so encryption is deterministic. Two equal
plaintexts of the same user produce equal ciphertexts, which is what allows
equality lookups (planner and folder name uniqueness) directly on the encrypted
column. The flip side is that ciphertext equality reveals plaintext equality
within one user. This protects content against exfiltration of the database
alone; it is not a general-purpose encryption layer and gives no integrity.

Ciphertexts made with key version 0 are bare hex. Later versions are stored as
``vNN:<hex>`` so the decrypt path can select the derivation.
"""

import json
import logging
import re
from typing import Any

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from dimiplan.crypto.keys import KeyDeriver
from dimiplan.errors import DecryptionError, EncryptionError

logger = logging.getLogger(__name__)

BLOCK_BITS = 128
MIN_CIPHERTEXT_HEX = 32

_VERSIONED_RE = re.compile(r"^v(\d{2}):(.*)$", re.DOTALL)
_HEX_RE = re.compile(r"^[0-9a-f]+$")


def serialize_value(value: Any) -> str:
    """Strings pass through; structured values become compact, key-sorted JSON; the rest str()."""
    if isinstance(value, str):
        return value
    if value is None or isinstance(value, (dict, list, tuple, bool)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"), sort_keys=True)
    return str(value)


def split_version(ciphertext: str) -> tuple[int, str]:
    """Return (key_version, hex_body). Unprefixed ciphertexts are version 0."""
    match = _VERSIONED_RE.match(ciphertext)
    if match:
        return int(match.group(1)), match.group(2)
    return 0, ciphertext


def looks_encrypted(value: object) -> bool:
    """
    Best-effort classifier for lazy migration of legacy rows.

    Only used to decide whether a stored value still needs encrypting, never to
    decide whether to encrypt on write (writes always encrypt).
    """
    if not isinstance(value, str):
        return False
    _, body = split_version(value)
    return (
        len(body) >= MIN_CIPHERTEXT_HEX
        and len(body) % 2 == 0
        and bool(_HEX_RE.match(body))
    )


class FieldCodec:
    """Encrypts and decrypts single field values for a given external identifier."""

    def __init__(self, deriver: KeyDeriver):
        self.deriver = deriver

    def encrypt_field(self, external_id: str, value: Any, version: int | None = None) -> str:
        if version is None:
            version = self.deriver.current_version
        try:
            key, iv = self.deriver.derive_user_keys(external_id, version)
            padder = padding.PKCS7(BLOCK_BITS).padder()
            data = padder.update(serialize_value(value).encode("utf-8")) + padder.finalize()
            encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
            body = (encryptor.update(data) + encryptor.finalize()).hex()
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Field encryption failed: %s", type(e).__name__)
            raise EncryptionError("Field encryption failed") from e
        if version == 0:
            return body
        return f"v{version:02d}:{body}"

    def decrypt_field(self, external_id: str, ciphertext: str, parse_structured: bool = False) -> Any:
        if not isinstance(ciphertext, str):
            raise DecryptionError("Ciphertext must be a hex string")
        version, body = split_version(ciphertext)
        try:
            raw = bytes.fromhex(body)
            key, iv = self.deriver.derive_user_keys(external_id, version)
            decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(raw) + decryptor.finalize()
            unpadder = padding.PKCS7(BLOCK_BITS).unpadder()
            text = (unpadder.update(padded) + unpadder.finalize()).decode("utf-8")
            if parse_structured:
                return json.loads(text)
            return text
        except (KeyError, ValueError) as e:
            # UnicodeDecodeError and JSONDecodeError are ValueErrors too
            logger.warning("Field decryption failed: %s", type(e).__name__)
            raise DecryptionError("Field decryption failed") from e

    def is_current_version(self, ciphertext: str) -> bool:
        version, _ = split_version(ciphertext)
        return version == self.deriver.current_version

    def self_test(self) -> None:
        """Round-trip a sample value; raises EncryptionError if the primitive is broken."""
        sample = {"check": "dimiplan self-test", "n": 1}
        try:
            ciphertext = self.encrypt_field("__self_test__", sample)
            restored = self.decrypt_field("__self_test__", ciphertext, parse_structured=True)
        except DecryptionError as e:
            raise EncryptionError("Encryption self-test failed to decrypt") from e
        if restored != sample or not looks_encrypted(ciphertext):
            raise EncryptionError("Encryption self-test produced a mismatching round trip")
