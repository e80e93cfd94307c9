"""
Tests for the signature-derived cipher

Run with: pytest tests/test_cipher.py -v
"""

import base64
import hashlib

import pytest
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from migrator.cipher import MAX_ITERATIONS, SignatureCipher, evp_bytes_to_key
from migrator.errors import DecryptionError, EncryptionError

PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"


def openssl_envelope(plaintext: str, passphrase: str, salt: bytes) -> str:
    """What CryptoJS.AES.encrypt(plaintext, passphrase).toString() produces."""
    password = passphrase.encode()
    derived, block = b"", b""
    while len(derived) < 48:
        block = hashlib.md5(block + password + salt).digest()
        derived += block
    key, iv = derived[:32], derived[32:48]
    padder = padding.PKCS7(128).padder()
    padded = padder.update(plaintext.encode()) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    data = encryptor.update(padded) + encryptor.finalize()
    return base64.b64encode(b"Salted__" + salt + data).decode()


class TestRoundTrip:
    """decrypt(encrypt(P, S), S) == P"""

    @pytest.mark.parametrize("plaintext", [PRIVATE_KEY, "short", "ключ-🔑", "x" * 500])
    def test_fernet(self, cipher, plaintext):
        assert cipher.decrypt(cipher.encrypt(plaintext, "sig"), "sig") == plaintext

    @pytest.mark.parametrize("plaintext", [PRIVATE_KEY, "short", "ключ-🔑", "x" * 500])
    def test_cryptojs(self, cryptojs_cipher, plaintext):
        assert cryptojs_cipher.decrypt(cryptojs_cipher.encrypt(plaintext, "sig"), "sig") == plaintext

    def test_encryption_is_randomized(self, cipher):
        assert cipher.encrypt(PRIVATE_KEY, "sig") != cipher.encrypt(PRIVATE_KEY, "sig")

    def test_other_instance_can_decrypt(self, cipher):
        """Everything needed to decrypt travels inside the ciphertext."""
        ciphertext = cipher.encrypt(PRIVATE_KEY, "sig")
        fresh = SignatureCipher(output_format="cryptojs", iterations=5)
        assert fresh.decrypt(ciphertext, "sig") == PRIVATE_KEY


class TestPassphraseIsolation:

    def test_fernet_wrong_passphrase(self, cipher):
        ciphertext = cipher.encrypt(PRIVATE_KEY, "old-signature")
        with pytest.raises(DecryptionError):
            cipher.decrypt(ciphertext, "new-signature")

    def test_cryptojs_wrong_passphrase(self, cryptojs_cipher):
        ciphertext = cryptojs_cipher.encrypt(PRIVATE_KEY, "old-signature")
        with pytest.raises(DecryptionError):
            cryptojs_cipher.decrypt(ciphertext, "new-signature")

    def test_error_message_has_no_secret(self, cipher):
        ciphertext = cipher.encrypt(PRIVATE_KEY, "old-signature")
        with pytest.raises(DecryptionError) as exc:
            cipher.decrypt(ciphertext, "new-signature")
        assert PRIVATE_KEY not in str(exc.value)
        assert "signature" in str(exc.value)
        assert "new-signature" not in str(exc.value)


class TestFormats:

    def test_fernet_format_is_tagged(self, cipher):
        ciphertext = cipher.encrypt(PRIVATE_KEY, "sig")
        tag, iterations, salt, token = ciphertext.split("$")
        assert tag == "fernet"
        assert iterations == "1000"
        assert SignatureCipher.detect_format(ciphertext) == "fernet"

    def test_cryptojs_format_is_openssl_envelope(self, cryptojs_cipher):
        ciphertext = cryptojs_cipher.encrypt(PRIVATE_KEY, "sig")
        assert ciphertext.startswith("U2FsdGVkX1")  # base64 of "Salted__"
        assert SignatureCipher.detect_format(ciphertext) == "cryptojs"

    def test_reads_envelope_built_independently(self, cipher):
        ciphertext = openssl_envelope(PRIVATE_KEY, "0xsignature", b"\x01\x02\x03\x04\x05\x06\x07\x08")
        assert cipher.decrypt(ciphertext, "0xsignature") == PRIVATE_KEY

    def test_evp_bytes_to_key_lengths(self):
        key, iv = evp_bytes_to_key(b"pass", b"saltsalt")
        assert len(key) == 32
        assert len(iv) == 16

    def test_unknown_format_rejected(self):
        with pytest.raises(ValueError):
            SignatureCipher(output_format="rot13")

    def test_detect_format_unknown(self):
        assert SignatureCipher.detect_format("not base64!") is None
        assert SignatureCipher.detect_format(base64.b64encode(b"plain bytes").decode()) is None


class TestMalformedInput:

    @pytest.mark.parametrize("ciphertext", [
        "",
        "not base64 at all!",
        base64.b64encode(b"no openssl header here").decode(),
        base64.b64encode(b"Salted__12345678").decode(),           # header, no data
        base64.b64encode(b"Salted__12345678" + b"x" * 15).decode(),  # not block aligned
        "fernet$1000$c2FsdA==",                                    # missing token
        "fernet$abc$c2FsdA==$token",                               # bad iterations
        "fernet$1000$c2FsdA==$not-a-token",
        "fernet$1000$c2FsdA==$\ud800",                             # lone surrogate
        "fernet$99999999999999999999999$c2FsdA==$token",           # overflows PBKDF2
        f"fernet${MAX_ITERATIONS + 1}$c2FsdA==$token",             # above the cap
        "fernet$0$c2FsdA==$token",
    ])
    def test_raises_decryption_error(self, cipher, ciphertext):
        with pytest.raises(DecryptionError):
            cipher.decrypt(ciphertext, "sig")

    def test_unencodable_passphrase(self, cipher, cryptojs_cipher):
        with pytest.raises(DecryptionError):
            cipher.decrypt(cryptojs_cipher.encrypt(PRIVATE_KEY, "sig"), "\ud800")
        with pytest.raises(DecryptionError):
            cipher.decrypt(cipher.encrypt(PRIVATE_KEY, "sig"), "\ud800")

    def test_iterations_out_of_range(self):
        with pytest.raises(ValueError):
            SignatureCipher(iterations=MAX_ITERATIONS + 1)

    def test_non_string_ciphertext(self, cipher):
        with pytest.raises(DecryptionError):
            cipher.decrypt(12345, "sig")

    def test_non_string_plaintext(self, cipher):
        with pytest.raises(EncryptionError):
            cipher.encrypt(None, "sig")

    def test_empty_plaintext_is_not_a_key(self, cryptojs_cipher):
        ciphertext = cryptojs_cipher.encrypt("", "sig")
        with pytest.raises(DecryptionError):
            cryptojs_cipher.decrypt(ciphertext, "sig")


class TestModuleFunctions:

    def test_default_cipher_round_trip(self):
        from migrator.cipher import decrypt, encrypt, get_cipher

        ciphertext = encrypt(PRIVATE_KEY, "sig")
        assert SignatureCipher.detect_format(ciphertext) == get_cipher().output_format
        assert decrypt(ciphertext, "sig") == PRIVATE_KEY
