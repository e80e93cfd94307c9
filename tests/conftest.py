"""Shared fixtures for migrator tests."""

import json

import pytest

from migrator.cipher import SignatureCipher
from migrator.engine import MigrationEngine

# PBKDF2 at production strength makes every test take seconds
TEST_ITERATIONS = 1000

OLD_SIGNATURE = "0x" + "a1" * 65
NEW_SIGNATURE = "0x" + "b2" * 65
NEW_ADDRESS = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"


@pytest.fixture
def cipher():
    return SignatureCipher(iterations=TEST_ITERATIONS)


@pytest.fixture
def cryptojs_cipher():
    return SignatureCipher(output_format="cryptojs", iterations=TEST_ITERATIONS)


@pytest.fixture
def engine(cipher):
    return MigrationEngine(cipher, OLD_SIGNATURE, NEW_SIGNATURE, new_address=NEW_ADDRESS)


@pytest.fixture
def make_record(cryptojs_cipher):
    """Build a wallet record the way the dApp stores it (CryptoJS under the old signature)."""
    def _make(address, private_key="0x" + "11" * 32, field="privateKey", **extra):
        record = {"address": address}
        if field:
            record[field] = cryptojs_cipher.encrypt(private_key, OLD_SIGNATURE)
        record.update(extra)
        return record
    return _make


@pytest.fixture
def write_json(tmp_path):
    def _write(name, data):
        path = tmp_path / name
        text = data if isinstance(data, str) else json.dumps(data)
        path.write_text(text, encoding="utf-8")
        return path
    return _write
