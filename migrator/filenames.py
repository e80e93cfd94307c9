"""
Wallet export filename convention.

    <YYYYMMDDHHmmss>-<account count>-<network>-<0x wallet address>-accounts.json

The network name may itself contain hyphens; the address is the last
hyphen-delimited 0x token before the literal "-accounts.json" suffix.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import PurePath
from typing import Optional

FILENAME_PATTERN = re.compile(r"^(\d{14})-(\d+)-(.+?)-(0x[0-9a-fA-F]+)-accounts\.json$")
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
FALLBACK_ADDRESS = "migrated"


@dataclass(frozen=True)
class ParsedFilename:
    timestamp: str
    account_count: int
    network: str
    wallet_address: str


def _basename(filename: str) -> str:
    # Browsers hand over bare names; CLI callers may pass paths (either separator).
    return PurePath(filename.replace("\\", "/")).name


def parse_filename(filename: str) -> Optional[ParsedFilename]:
    """Split a conventional filename into its parts, or None if it doesn't match."""
    match = FILENAME_PATTERN.match(_basename(filename))
    if not match:
        return None
    return ParsedFilename(
        timestamp=match.group(1),
        account_count=int(match.group(2)),
        network=match.group(3),
        wallet_address=match.group(4),
    )


def generate_filename(
    original_filename: str,
    wallet_count: int,
    new_address: Optional[str],
    now: Optional[datetime] = None,
    copy: int = 1,
) -> str:
    """
    Name an output file after its source.

    The network segment is carried over from a conventional source name;
    otherwise the source name without ".json" takes its place. The timestamp
    is always the current local time, never the source's. A copy number
    above 1 is appended to the network segment so that names stay distinct
    within one run and still match the convention.
    """
    base = _basename(original_filename)
    parsed = parse_filename(base)
    timestamp = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)

    if parsed:
        network = parsed.network
    else:
        network = base[:-len(".json")] if base.endswith(".json") else base
    if copy > 1:
        network = f"{network}-{copy}"

    address = new_address.lower() if new_address else FALLBACK_ADDRESS
    return f"{timestamp}-{wallet_count}-{network}-{address}-accounts.json"
