"""Exception hierarchy shared by the crypto core and the data access services."""


class DimiplanError(Exception):
    """Base class for all application errors."""


class ConfigMissingError(DimiplanError):
    """A required secret or setting is missing or empty at startup."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing required configuration: {', '.join(missing)}")


class EncryptionError(DimiplanError):
    """The cipher primitive failed while encrypting a field."""


class DecryptionError(DimiplanError):
    """A stored ciphertext could not be decoded, decrypted, unpadded or parsed."""


class OwnerNotInitializedError(DimiplanError):
    """No counter row exists for the owner, so no ids can be minted."""

    def __init__(self, owner_hash: str):
        self.owner_hash = owner_hash
        super().__init__(f"Owner {owner_hash[:8]}... has no counter row")


class UniqueViolationError(DimiplanError):
    """A record with the same deterministic value already exists for this owner."""


class ResourceNotFoundError(DimiplanError):
    """A mutation targeted a record that does not exist for this owner."""


class InvalidInputError(DimiplanError):
    """Input rejected by a domain rule (reserved folder name, bad parent, ...)."""


class TransactionAbortedError(DimiplanError):
    """The database aborted the transaction (deadlock, lock timeout). Safe to retry once."""

    retryable = True
