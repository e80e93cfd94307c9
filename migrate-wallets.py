#!/usr/bin/env python3
"""
Migrate wallet files from the old wallet's signature to the new wallet's

This script:
1. Asks for the old wallet's signature and address
2. Asks for the new wallet's signature and address
3. Decrypts every private key in the given files with the old signature
4. Re-encrypts them with the new signature and writes renamed copies

SECURITY WARNING:
- Signatures are entered hidden and never printed
- Input files are never modified; outputs go to MIGRATOR_OUTPUT_DIR
- Never commit migrated wallet files to git

Usage:
    python migrate-wallets.py <wallet-file.json> [<wallet-file.json> ...]
"""

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
from migrator.signing import PromptSigner, capture_side


def main():
    if len(sys.argv) < 2:
        print("Usage: python migrate-wallets.py <wallet-file.json> [<wallet-file.json> ...]")
        return 1

    paths = sys.argv[1:]
    configure_logging()

    print("=" * 70)
    print("Wallet Migration Tool")
    print("=" * 70)
    print()
    print("Sign the message with the OLD wallet first, then with the NEW wallet.")
    print(f"Files to migrate: {len(paths)}")
    print()

    message = input(f"Signing message [{settings.signing_message}]: ").strip() or settings.signing_message

    try:
        old_side = capture_side(PromptSigner("Old Wallet"), message)
        print(f"[OK] Old wallet: {old_side.address}")
        print()
        new_side = capture_side(PromptSigner("New Wallet"), message)
        print(f"[OK] New wallet: {new_side.address}")
        print()
    except MigrationError as e:
        print(f"[ERROR] {e}")
        return 1

    if old_side.signature == new_side.signature:
        print("Both signatures are the same. No migration needed.")
        return 0

    confirm = input(f"Migrate {len(paths)} file(s) into {settings.output_dir}/? (y/n): ").lower().strip()
    if confirm != "y":
        print("Cancelled.")
        return 0

    try:
        result = migrate_paths(paths, old_side, new_side)
    except MigrationError as e:
        print(f"\n[ERROR] Migration failed: {e}")
        return 1

    print_summary(result, settings.output_dir)
    return 0 if result.ok else 1


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n\nMigration cancelled by user.")
        sys.exit(1)
