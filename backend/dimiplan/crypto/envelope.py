"""
Record envelope: applies the field codec to a model's declared encrypted fields.

Records are plain dicts keyed by attribute name. On the way in the owner field
gets the opaque row key and declared fields are encrypted; on the way out they
are decrypted and the owner field gets the external identifier back, so callers
never see the row key.
"""

import logging
from collections.abc import Mapping
from typing import Any

from dimiplan.crypto.codec import FieldCodec, looks_encrypted
from dimiplan.crypto.identifiers import IdentifierHasher
from dimiplan.dates import now_timestamp

logger = logging.getLogger(__name__)

NEEDS_UPGRADE = "needs_upgrade"


def encrypted_fields(model: type) -> tuple[str, ...]:
    return getattr(model, "__encrypted_fields__", ())


def owner_field(model: type) -> str:
    return getattr(model, "__owner_field__", "owner")


class RecordEnvelope:
    """Wrap/unwrap records for storage under one external identifier's keys."""

    def __init__(self, hasher: IdentifierHasher, codec: FieldCodec):
        self.hasher = hasher
        self.codec = codec

    def owner_hash(self, external_id: str) -> str:
        return self.hasher.hash_id(external_id)

    def wrap_for_insert(self, external_id: str, model: type, record: Mapping[str, Any]) -> dict:
        row = dict(record)
        for field in encrypted_fields(model):
            if row.get(field) is not None:
                row[field] = self.codec.encrypt_field(external_id, row[field])
        row[owner_field(model)] = self.hasher.hash_id(external_id)
        timestamp = now_timestamp()
        if row.get("created_at") is None:
            row["created_at"] = timestamp
        if row.get("updated_at") is None:
            row["updated_at"] = timestamp
        return row

    def wrap_for_update(self, external_id: str, model: type, changes: Mapping[str, Any]) -> dict:
        row = dict(changes)
        for field in encrypted_fields(model):
            if row.get(field) is not None:
                row[field] = self.codec.encrypt_field(external_id, row[field])
        row.pop(owner_field(model), None)
        row["updated_at"] = now_timestamp()
        return row

    def unwrap_for_read(self, external_id: str, model: type, row: Mapping[str, Any] | None) -> dict | None:
        """
        Decrypt a stored row. Returns None for a missing row.

        A declared field holding something that does not look like ciphertext is a
        legacy plaintext value: it is returned as-is and the record is flagged
        ``needs_upgrade``. Ciphertexts under a retired key version are flagged too.
        """
        if row is None:
            return None
        record = dict(row)
        needs_upgrade = False
        for field in encrypted_fields(model):
            value = record.get(field)
            if value is None:
                continue
            if not looks_encrypted(value):
                needs_upgrade = True
                continue
            record[field] = self.codec.decrypt_field(external_id, value)
            if not self.codec.is_current_version(value):
                needs_upgrade = True
        record[owner_field(model)] = external_id
        record[NEEDS_UPGRADE] = needs_upgrade
        return record

    def upgrade_changes(self, external_id: str, model: type, record: Mapping[str, Any]) -> dict:
        """Fresh ciphertexts for every declared field of an unwrapped record."""
        changes = {
            field: record[field]
            for field in encrypted_fields(model)
            if record.get(field) is not None
        }
        return self.wrap_for_update(external_id, model, changes)

    def wrap_for_equality_search(self, external_id: str, model: type, field: str, plaintext: Any) -> str:
        self._require_searchable(model, field)
        return self.codec.encrypt_field(external_id, plaintext)

    def equality_candidates(self, external_id: str, model: type, field: str, plaintext: Any) -> list[str]:
        """Ciphertexts of plaintext under every known key version, for IN (...) lookups."""
        self._require_searchable(model, field)
        return [
            self.codec.encrypt_field(external_id, plaintext, version=version)
            for version in self.codec.deriver.known_versions
        ]

    @staticmethod
    def _require_searchable(model: type, field: str) -> None:
        if field not in encrypted_fields(model):
            raise ValueError(f"{model.__name__}.{field} is not a deterministic encrypted field")


def strip_envelope_flags(record: Mapping[str, Any]) -> dict:
    return {key: value for key, value in record.items() if key != NEEDS_UPGRADE}
