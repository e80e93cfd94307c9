"""
Migration error taxonomy.

Every message names the file and/or a truncated wallet address so the
operator can act on it. Messages never contain key material, ciphertexts
or signatures.
"""

from typing import Optional


def short_address(address) -> str:
    """Truncate an address for logs and error messages."""
    if not address:
        return "<no address>"
    address = str(address)
    if len(address) <= 14:
        return address
    return f"{address[:8]}...{address[-4:]}"


class MigrationError(Exception):
    """Base class for everything the migration pipeline raises."""


class PreconditionError(MigrationError):
    """A passphrase or the uploaded files are missing. Nothing was migrated."""


class SigningError(MigrationError):
    """The signing capability returned no usable signature or address."""


class ParseError(MigrationError):
    def __init__(self, filename: str, reason: str):
        self.filename = filename
        self.reason = reason
        super().__init__(f"Invalid wallet file {filename}: {reason}")


class MissingKeyError(MigrationError):
    def __init__(self, address=None):
        self.address = address
        super().__init__(f"Wallet {short_address(address)} missing encrypted private key")


class DecryptionError(MigrationError):
    def __init__(self, message: str = "Failed to decrypt", address=None):
        self.address = address
        if address is not None:
            message = f"{message} (wallet {short_address(address)})"
        super().__init__(message)


class EncryptionError(MigrationError):
    def __init__(self, message: str = "Failed to encrypt", address=None):
        self.address = address
        if address is not None:
            message = f"{message} (wallet {short_address(address)})"
        super().__init__(message)


class FileMigrationError(MigrationError):
    """A record failed, so the whole file was left unmigrated."""

    def __init__(self, filename: str, cause: Optional[Exception] = None):
        self.filename = filename
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to migrate file {filename}{detail}")


class ExportError(MigrationError):
    def __init__(self, filename: str, reason: str):
        self.filename = filename
        self.reason = reason
        super().__init__(f"Could not export {filename}: {reason}")
