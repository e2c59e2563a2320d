"""
One-way credential hashing and verification.

The policy engine only ever compares candidates against stored hashes through
a CredentialHasher; it never compares plaintext.
"""

from typing import Optional, Protocol, runtime_checkable

import bcrypt

from ..config import get_config
from ..exceptions import ErrorCode, ValidationError
from .logger import get_logger

# bcrypt ignores (or, in recent releases, rejects) input past this length
BCRYPT_MAX_PASSWORD_BYTES = 72


@runtime_checkable
class CredentialHasher(Protocol):
    """Secure verifier collaborator used by the policy engine."""

    def hash(self, plain: str) -> str:
        """Hash a plaintext credential."""
        ...

    def matches(self, plain: Optional[str], stored_hash: Optional[str]) -> bool:
        """Check a plaintext credential against a stored hash."""
        ...


class BcryptCredentialHasher:
    """
    bcrypt-backed hasher.

    Each hash carries its own salt and work factor in the 60 character
    modular crypt string, and ``checkpw`` compares in constant time.
    """

    def __init__(self, rounds: Optional[int] = None):
        self.rounds = rounds if rounds is not None else get_config().security.bcrypt_rounds
        self.logger = get_logger()

    def hash(self, plain: str) -> str:
        """
        Hash a plaintext credential with a fresh salt.

        Raises:
            ValidationError: If the credential is empty or too long for bcrypt
        """
        if not plain:
            raise ValidationError(
                "Credential must be a non-empty string",
                field="credential",
                error_code=ErrorCode.MISSING_REQUIRED,
            )

        encoded = plain.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValidationError(
                f"Credential exceeds {BCRYPT_MAX_PASSWORD_BYTES} bytes",
                field="credential",
                error_code=ErrorCode.CONSTRAINT_VIOLATION,
            )

        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def matches(self, plain: Optional[str], stored_hash: Optional[str]) -> bool:
        """
        Verify a plaintext credential against a stored bcrypt hash.

        Returns False for missing input or a stored value that is not a
        bcrypt hash.
        """
        if plain is None or not stored_hash:
            return False

        encoded = plain.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
            return False

        try:
            return bcrypt.checkpw(encoded, stored_hash.encode("utf-8"))
        except ValueError:
            self.logger.warning("Stored credential hash is not a valid bcrypt hash")
            return False
