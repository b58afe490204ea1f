"""Process-start resolution of the master secrets used by the crypto core."""

import logging
from dataclasses import dataclass

from dimiplan.config import Settings
from dimiplan.errors import ConfigMissingError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyMaterial:
    """One generation of master secrets. Version 0 ciphertexts carry no prefix."""

    version: int
    master_key: bytes
    master_iv_seed: bytes


@dataclass(frozen=True)
class CryptoSecrets:
    """Everything the hasher and key deriver need. Loaded once, never mutated."""

    uid_salt: bytes
    current: KeyMaterial
    retired: tuple[KeyMaterial, ...] = ()

    def material_for(self, version: int) -> KeyMaterial | None:
        if version == self.current.version:
            return self.current
        for material in self.retired:
            if material.version == version:
                return material
        return None


def load_crypto_secrets(settings: Settings) -> CryptoSecrets:
    """
    Validate and encode the master secrets.

    Raises ConfigMissingError listing every missing or empty variable, so a
    misconfigured deployment fails on the first start instead of on the first
    encrypted write.
    """
    required = {
        "MASTER_KEY": settings.master_key,
        "MASTER_IV_SEED": settings.master_iv_seed,
        "UID_SALT": settings.uid_salt,
    }
    missing = [name for name, value in required.items() if not value]
    if missing:
        raise ConfigMissingError(missing)

    retired: tuple[KeyMaterial, ...] = ()
    if settings.previous_master_key or settings.previous_master_iv_seed:
        previous_missing = [
            name
            for name, value in (
                ("PREVIOUS_MASTER_KEY", settings.previous_master_key),
                ("PREVIOUS_MASTER_IV_SEED", settings.previous_master_iv_seed),
                ("PREVIOUS_MASTER_KEY_VERSION", settings.previous_master_key_version),
            )
            if value in (None, "")
        ]
        if previous_missing:
            raise ConfigMissingError(previous_missing)
        if settings.previous_master_key_version == settings.master_key_version:
            raise ConfigMissingError(["PREVIOUS_MASTER_KEY_VERSION (must differ from MASTER_KEY_VERSION)"])
        retired = (
            KeyMaterial(
                version=settings.previous_master_key_version,
                master_key=settings.previous_master_key.encode("utf-8"),
                master_iv_seed=settings.previous_master_iv_seed.encode("utf-8"),
            ),
        )

    secrets = CryptoSecrets(
        uid_salt=settings.uid_salt.encode("utf-8"),
        current=KeyMaterial(
            version=settings.master_key_version,
            master_key=settings.master_key.encode("utf-8"),
            master_iv_seed=settings.master_iv_seed.encode("utf-8"),
        ),
        retired=retired,
    )
    logger.info(
        "Crypto secrets loaded (key version %d, %d retired)",
        secrets.current.version,
        len(secrets.retired),
    )
    return secrets
