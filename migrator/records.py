"""
Wallet file loading and record normalization.

A wallet file's JSON root is either one wallet record or an array of them.
Both shapes are normalized to a list of records plus a flag, so the output
can be written back in the shape it came in.
"""

import json
import asyncio
import logging
from pathlib import Path
from dataclasses import dataclass
from typing import Any, Iterable

from migrator.errors import MissingKeyError, ParseError

logger = logging.getLogger("records")

# Checked in this order; output is always written to the first
KEY_FIELDS = ("privateKey", "encryptedPrivateKey")
CANONICAL_KEY_FIELD = KEY_FIELDS[0]


@dataclass(frozen=True)
class WalletFile:
    """One uploaded file. Records are never mutated; migration copies them."""
    name: str
    records: tuple
    single: bool = False

    @property
    def wallet_count(self) -> int:
        return len(self.records)


def normalize(raw: Any) -> tuple[list, bool]:
    """Return (records, single) where single means the root was not an array."""
    if isinstance(raw, list):
        return list(raw), False
    return [raw], True


def resolve_key_field(record: dict) -> tuple[str, str]:
    """
    Find the encrypted private key in a record.

    Returns (field name, ciphertext). privateKey wins over the legacy
    encryptedPrivateKey when both are set.
    """
    for field_name in KEY_FIELDS:
        value = record.get(field_name)
        if isinstance(value, str) and value:
            return field_name, value
    raise MissingKeyError(record.get("address"))


def parse_wallet_json(name: str, text: str) -> WalletFile:
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(name, f"not valid JSON ({e.msg} at line {e.lineno})") from e

    if not isinstance(raw, (dict, list)):
        raise ParseError(name, "root must be a wallet object or an array of wallet objects")

    records, single = normalize(raw)
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            raise ParseError(name, f"entry {index} is not a wallet object")

    return WalletFile(name=name, records=tuple(records), single=single)


def load_wallet_file(path) -> WalletFile:
    """Read and parse one file from disk. Any failure is a ParseError."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(path.name, f"could not read file ({type(e).__name__})") from e
    return parse_wallet_json(path.name, text)


async def _load_all(paths: list) -> list:
    return await asyncio.gather(
        *(asyncio.to_thread(load_wallet_file, p) for p in paths),
        return_exceptions=True,
    )


def load_wallet_files(paths: Iterable) -> tuple[list[WalletFile], list[ParseError]]:
    """
    Read every path concurrently and wait for all of them.

    Returns (files, errors) in input order. A bad file is reported in
    errors and never prevents the others from loading.
    """
    paths = list(paths)
    if not paths:
        return [], []

    files, errors = [], []
    for result in asyncio.run(_load_all(paths)):
        if isinstance(result, ParseError):
            logger.warning(str(result))
            errors.append(result)
        elif isinstance(result, BaseException):
            raise result
        else:
            files.append(result)

    logger.info(f"Loaded {len(files)} file(s) with {count_wallets(files)} wallet(s) total")
    return files, errors


def count_wallets(files: Iterable[WalletFile]) -> int:
    return sum(f.wallet_count for f in files)
