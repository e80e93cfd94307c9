#!/usr/bin/env python3
"""Check that a wallet signature decrypts every key in one or more wallet files"""

import os
import sys
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

sys.path.insert(0, str(Path(__file__).parent))

import getpass

from migrator.cipher import SignatureCipher
from migrator.config import settings
from migrator.engine import verify_file
from migrator.errors import short_address
from migrator.records import load_wallet_files


def main():
    if len(sys.argv) < 2:
        print("Usage: python verify-wallet-file.py <wallet-file.json> [...]")
        print("   Signature is read from WALLET_SIGNATURE or prompted (hidden).")
        return 1

    print("=" * 70)
    print("Wallet File Verification")
    print("=" * 70)
    print()

    signature = os.getenv("WALLET_SIGNATURE") or getpass.getpass("Wallet signature (input hidden): ").strip()
    if not signature:
        print("No signature provided. Exiting.")
        return 1

    files, errors = load_wallet_files(sys.argv[1:])
    for error in errors:
        print(f"[ERROR] {error}")

    cipher = SignatureCipher.from_settings(settings)
    failed = len(errors)
    for wallet_file in files:
        print(f"Testing file: {wallet_file.name} ({wallet_file.wallet_count} wallet(s))")
        for check in verify_file(wallet_file, cipher, signature):
            if check.ok:
                print(f"  [OK] {short_address(check.address)} - Can decrypt private key")
            else:
                print(f"  [FAIL] {short_address(check.address)} - {check.error}")
                failed += 1
        print()

    print("=" * 70)
    if failed:
        print(f"[WARNING] {failed} problem(s) found. This signature cannot migrate these files.")
        return 1
    print("[OK] Every wallet decrypts with this signature.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
