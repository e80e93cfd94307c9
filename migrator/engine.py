"""
Wallet Migration Engine

Moves every private key in a batch of wallet files from the old wallet's
signature to the new wallet's signature:
- Decrypt each key with the old passphrase, re-encrypt with the new one
- Every other record field is copied unmodified
- All-or-nothing per file: one bad record leaves its whole file unmigrated,
  other files still migrate
- Output keeps the source container shape (object vs array)

Security requirements:
- Plaintext keys live only inside migrate_record()
- Keys, ciphertexts and signatures are never logged or put in error messages
"""

import json
import logging
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from migrator.cipher import SignatureCipher
from migrator.errors import (
    DecryptionError, EncryptionError, FileMigrationError, MigrationError,
    PreconditionError, short_address,
)
from migrator.filenames import generate_filename
from migrator.records import CANONICAL_KEY_FIELD, WalletFile, resolve_key_field

logger = logging.getLogger("migration_engine")


class RunStatus(Enum):
    SUCCEEDED = "succeeded"
    PARTIALLY_FAILED = "partially_failed"
    FAILED = "failed"


@dataclass(frozen=True)
class MigratedFile:
    filename: str
    text: str


@dataclass
class FileOutcome:
    source: str
    migrated: Optional[MigratedFile] = None
    error: Optional[MigrationError] = None

    @property
    def ok(self) -> bool:
        return self.migrated is not None

    def to_dict(self, include_content: bool = False) -> dict:
        result = {"source": self.source, "success": self.ok}
        if self.migrated:
            result["filename"] = self.migrated.filename
            if include_content:
                result["content"] = self.migrated.text
        if self.error:
            result["error"] = str(self.error)
        return result


@dataclass
class MigrationReport:
    outcomes: list = field(default_factory=list)

    @property
    def migrated_files(self) -> list[MigratedFile]:
        return [o.migrated for o in self.outcomes if o.ok]

    @property
    def failures(self) -> list[FileOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def status(self) -> RunStatus:
        succeeded = len(self.migrated_files)
        if succeeded == len(self.outcomes):
            return RunStatus.SUCCEEDED
        if succeeded == 0:
            return RunStatus.FAILED
        return RunStatus.PARTIALLY_FAILED

    def to_dict(self, include_content: bool = False) -> dict:
        return {
            "status": self.status.value,
            "migrated": len(self.migrated_files),
            "failed": len(self.failures),
            "files": [o.to_dict(include_content) for o in self.outcomes],
        }


@dataclass(frozen=True)
class RecordCheck:
    """Result of a dry-run decrypt of one record."""
    address: Optional[str]
    ok: bool
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {"address": self.address, "ok": self.ok, "error": self.error}


class MigrationEngine:
    """
    One migration run. Passphrases are snapshotted at construction and the
    engine holds no other state between calls.
    """

    def __init__(
        self,
        cipher: SignatureCipher,
        old_passphrase: str,
        new_passphrase: str,
        new_address: Optional[str] = None,
        fail_fast: bool = False,
    ):
        self.cipher = cipher
        self._old_passphrase = old_passphrase
        self._new_passphrase = new_passphrase
        self.new_address = new_address
        self.fail_fast = fail_fast

    # ── Per-record ──────────────────────────────────────────────────

    def migrate_record(self, record: dict) -> dict:
        """Return a copy of record with privateKey re-encrypted under the new passphrase."""
        address = record.get("address")
        _, encrypted_key = resolve_key_field(record)

        try:
            private_key = self.cipher.decrypt(encrypted_key, self._old_passphrase)
        except DecryptionError as e:
            raise DecryptionError(str(e), address=address) from e

        try:
            new_encrypted_key = self.cipher.encrypt(private_key, self._new_passphrase)
        except EncryptionError as e:
            raise EncryptionError(str(e), address=address) from e
        finally:
            del private_key

        migrated = dict(record)
        migrated[CANONICAL_KEY_FIELD] = new_encrypted_key
        return migrated

    # ── Per-file ────────────────────────────────────────────────────

    def migrate_file(
        self,
        wallet_file: WalletFile,
        now: Optional[datetime] = None,
        taken: Optional[set] = None,
    ) -> MigratedFile:
        """
        Migrate every record of a file or raise FileMigrationError.

        taken holds output names already used in this run; the new name is
        numbered until it is not one of them.
        """
        migrated_records = []
        for record in wallet_file.records:
            try:
                migrated_records.append(self.migrate_record(record))
            except MigrationError as e:
                logger.error(
                    f"Failed to migrate wallet {short_address(record.get('address'))} "
                    f"in {wallet_file.name}: {type(e).__name__}"
                )
                raise FileMigrationError(wallet_file.name, e) from e

        output = migrated_records[0] if wallet_file.single else migrated_records
        try:
            text = json.dumps(output, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise FileMigrationError(wallet_file.name, EncryptionError("Could not serialize output")) from e

        now = now or datetime.now()
        taken = taken or set()
        copy = 1
        filename = generate_filename(wallet_file.name, len(migrated_records), self.new_address, now=now)
        while filename in taken:
            copy += 1
            filename = generate_filename(
                wallet_file.name, len(migrated_records), self.new_address, now=now, copy=copy,
            )
        return MigratedFile(filename=filename, text=text)

    # ── Per-run ─────────────────────────────────────────────────────

    def check_preconditions(self, files: list):
        if not self._old_passphrase or not self._new_passphrase or not files:
            raise PreconditionError(
                "Please ensure both wallets are connected and signed, "
                "and wallet file(s) are uploaded"
            )

    def run(self, files: list[WalletFile], now: Optional[datetime] = None) -> MigrationReport:
        """
        Migrate all files. Each file gets an outcome in the report; with
        fail_fast the first failing file is raised instead.
        """
        self.check_preconditions(files)

        report = MigrationReport()
        taken = set()
        for wallet_file in files:
            try:
                migrated = self.migrate_file(wallet_file, now=now, taken=taken)
            except FileMigrationError as e:
                if self.fail_fast:
                    raise
                report.outcomes.append(FileOutcome(source=wallet_file.name, error=e))
                continue

            logger.info(
                f"Migrated {wallet_file.wallet_count} wallet(s) from {wallet_file.name} "
                f"-> {migrated.filename}"
            )
            taken.add(migrated.filename)
            report.outcomes.append(FileOutcome(source=wallet_file.name, migrated=migrated))

        logger.info(
            f"Migration finished: {report.status.value} "
            f"({len(report.migrated_files)}/{len(files)} file(s) migrated)"
        )
        return report


def verify_file(wallet_file: WalletFile, cipher: SignatureCipher, passphrase: str) -> list[RecordCheck]:
    """Check which records of a file decrypt under passphrase. Nothing is kept."""
    checks = []
    for record in wallet_file.records:
        address = record.get("address")
        try:
            _, encrypted_key = resolve_key_field(record)
            cipher.decrypt(encrypted_key, passphrase)
        except MigrationError as e:
            checks.append(RecordCheck(address=address, ok=False, error=str(e)))
            continue
        checks.append(RecordCheck(address=address, ok=True))
    return checks
