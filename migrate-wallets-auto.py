#!/usr/bin/env python3
"""
Non-interactive wallet file migration

Usage:
    python migrate-wallets-auto.py <old_signature> <new_signature> <new_address> <file.json> [...]

Or set environment variables and pass only files:
    OLD_SIGNATURE=0x.. NEW_SIGNATURE=0x.. NEW_ADDRESS=0x.. python migrate-wallets-auto.py <file.json> [...]
"""

import os
import sys
from pathlib import Path
from dotenv import load_dotenv

# Load .env
env_path = Path(__file__).parent / ".env"
load_dotenv(env_path)

sys.path.insert(0, str(Path(__file__).parent))

from migrator.config import configure_logging, settings
from migrator.errors import MigrationError
from migrator.runner import migrate_paths, print_summary
from migrator.signing import StaticSigner, capture_side

USAGE = (
    "Usage: python migrate-wallets-auto.py <old_signature> <new_signature> <new_address> <file.json> [...]\n"
    "   Or: OLD_SIGNATURE=.. NEW_SIGNATURE=.. NEW_ADDRESS=.. python migrate-wallets-auto.py <file.json> [...]"
)


def main():
    old_signature = os.getenv("OLD_SIGNATURE")
    new_signature = os.getenv("NEW_SIGNATURE")
    new_address = os.getenv("NEW_ADDRESS")
    old_address = os.getenv("OLD_ADDRESS", "old-wallet")
    args = sys.argv[1:]

    if not (old_signature and new_signature and new_address):
        if len(args) < 4:
            print(USAGE)
            return 1
        old_signature, new_signature, new_address, args = args[0], args[1], args[2], args[3:]

    if not args:
        print(USAGE)
        return 1

    configure_logging()

    print("=" * 70)
    print("Wallet Migration (Auto)")
    print("=" * 70)
    print()

    try:
        old_side = capture_side(StaticSigner(old_signature, old_address), settings.signing_message)
        new_side = capture_side(StaticSigner(new_signature, new_address), settings.signing_message)
        result = migrate_paths(args, old_side, new_side)
    except MigrationError as e:
        print(f"[ERROR] Migration failed: {e}")
        return 1

    print_summary(result, settings.output_dir)
    return 0 if result.ok else 1


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n\nMigration cancelled by user.")
        sys.exit(1)
