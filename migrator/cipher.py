"""
Signature-Derived Symmetric Cipher

Encrypts wallet private keys with a passphrase taken from a wallet signature.

Two self-describing ciphertext formats:
- fernet$<iterations>$<salt>$<token>: Fernet (AES-128-CBC + HMAC-SHA256),
  key derived from the passphrase via PBKDF2. Authenticated, so a wrong
  passphrase is always detected. Default for new ciphertext.
- CryptoJS / OpenSSL "Salted__" envelope: base64(b"Salted__" + salt + data),
  AES-256-CBC with key and IV from EVP_BytesToKey(MD5). This is what the
  wallet dApp writes with CryptoJS.AES.encrypt(text, passphrase), so it is
  always readable, and can be written when the dApp must read the output.
  Not authenticated: a wrong passphrase is only caught by padding and
  UTF-8 checks.

Plaintext never leaves this module except as the return value of decrypt().
"""

import os
import base64
import binascii
import hashlib
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from migrator.errors import DecryptionError, EncryptionError

logger = logging.getLogger("cipher")

FERNET_PREFIX = "fernet"
OPENSSL_MAGIC = b"Salted__"
FORMATS = ("fernet", "cryptojs")

DEFAULT_ITERATIONS = 480000
# Iteration counts are read back from ciphertext, so they are bounded
MAX_ITERATIONS = 10 * DEFAULT_ITERATIONS
_FERNET_SALT_BYTES = 16
_OPENSSL_SALT_BYTES = 8
_AES_BLOCK_BYTES = 16


def evp_bytes_to_key(password: bytes, salt: bytes, key_len: int = 32, iv_len: int = 16) -> tuple[bytes, bytes]:
    """OpenSSL EVP_BytesToKey with MD5 and one iteration (CryptoJS default)."""
    derived = b""
    block = b""
    while len(derived) < key_len + iv_len:
        block = hashlib.md5(block + password + salt).digest()
        derived += block
    return derived[:key_len], derived[key_len:key_len + iv_len]


class SignatureCipher:
    """
    Passphrase-based encrypt/decrypt of short strings.

    Fernet keys are cached per (passphrase, salt, iterations) for the life of
    the instance, and one salt is reused per passphrase for everything this
    instance encrypts, so a batch costs one PBKDF2 run per passphrase rather
    than one per record. Each Fernet token still gets a fresh random IV.
    """

    def __init__(self, output_format: str = "fernet", iterations: int = DEFAULT_ITERATIONS):
        if output_format not in FORMATS:
            raise ValueError(f"Unknown cipher format: {output_format}")
        if not 1 <= iterations <= MAX_ITERATIONS:
            raise ValueError(f"PBKDF2 iterations must be between 1 and {MAX_ITERATIONS}")
        self.output_format = output_format
        self.iterations = iterations
        self._keys: dict = {}
        self._salts: dict = {}

    @classmethod
    def from_settings(cls, config) -> "SignatureCipher":
        return cls(output_format=config.output_format, iterations=config.kdf_iterations)

    # ── Public API ──────────────────────────────────────────────────

    def encrypt(self, plaintext: str, passphrase: str) -> str:
        if not isinstance(plaintext, str) or not isinstance(passphrase, str):
            raise EncryptionError("Plaintext and passphrase must be strings")
        try:
            if self.output_format == "cryptojs":
                return self._encrypt_openssl(plaintext, passphrase)
            return self._encrypt_fernet(plaintext, passphrase)
        except ValueError as e:
            logger.error(f"Encryption failed: {type(e).__name__}")
            raise EncryptionError() from e

    def decrypt(self, ciphertext: str, passphrase: str) -> str:
        if not isinstance(ciphertext, str) or not ciphertext:
            raise DecryptionError("Malformed ciphertext")
        if not isinstance(passphrase, str):
            raise DecryptionError("Passphrase must be a string")

        if ciphertext.startswith(FERNET_PREFIX + "$"):
            plaintext_bytes = self._decrypt_fernet(ciphertext, passphrase)
        else:
            plaintext_bytes = self._decrypt_openssl(ciphertext, passphrase)

        try:
            plaintext = plaintext_bytes.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError("Decrypted data is not valid UTF-8; wrong signature?") from e
        if not plaintext:
            raise DecryptionError("Decrypted private key is empty; wrong signature?")
        return plaintext

    @staticmethod
    def detect_format(ciphertext: str) -> Optional[str]:
        """Return "fernet", "cryptojs" or None for an unrecognised string."""
        if not isinstance(ciphertext, str):
            return None
        if ciphertext.startswith(FERNET_PREFIX + "$"):
            return "fernet"
        try:
            raw = base64.b64decode(ciphertext, validate=True)
        except (binascii.Error, ValueError):
            return None
        return "cryptojs" if raw.startswith(OPENSSL_MAGIC) else None

    # ── Fernet ──────────────────────────────────────────────────────

    def _fernet(self, passphrase: str, salt: bytes, iterations: int) -> Fernet:
        cache_key = (passphrase, salt, iterations)
        fernet = self._keys.get(cache_key)
        if fernet is None:
            kdf = PBKDF2HMAC(
                algorithm=hashes.SHA256(),
                length=32,
                salt=salt,
                iterations=iterations,
            )
            key = base64.urlsafe_b64encode(kdf.derive(passphrase.encode()))
            fernet = Fernet(key)
            self._keys[cache_key] = fernet
        return fernet

    def _encrypt_fernet(self, plaintext: str, passphrase: str) -> str:
        salt = self._salts.get(passphrase)
        if salt is None:
            salt = os.urandom(_FERNET_SALT_BYTES)
            self._salts[passphrase] = salt
        token = self._fernet(passphrase, salt, self.iterations).encrypt(plaintext.encode("utf-8"))
        salt_b64 = base64.urlsafe_b64encode(salt).decode()
        return f"{FERNET_PREFIX}${self.iterations}${salt_b64}${token.decode()}"

    def _decrypt_fernet(self, ciphertext: str, passphrase: str) -> bytes:
        parts = ciphertext.split("$")
        if len(parts) != 4:
            raise DecryptionError("Malformed ciphertext")
        _, iterations_str, salt_b64, token = parts
        try:
            iterations = int(iterations_str)
            salt = base64.urlsafe_b64decode(salt_b64.encode())
        except (ValueError, binascii.Error) as e:
            raise DecryptionError("Malformed ciphertext") from e
        if not 1 <= iterations <= MAX_ITERATIONS or not salt:
            raise DecryptionError("Malformed ciphertext")

        try:
            return self._fernet(passphrase, salt, iterations).decrypt(token.encode())
        except InvalidToken as e:
            raise DecryptionError("Failed to decrypt. Please check if the old wallet signature is correct.") from e
        except (ValueError, OverflowError) as e:
            raise DecryptionError("Malformed ciphertext") from e

    # ── CryptoJS / OpenSSL envelope ─────────────────────────────────

    def _encrypt_openssl(self, plaintext: str, passphrase: str) -> str:
        salt = os.urandom(_OPENSSL_SALT_BYTES)
        key, iv = evp_bytes_to_key(passphrase.encode("utf-8"), salt)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        data = encryptor.update(padded) + encryptor.finalize()
        return base64.b64encode(OPENSSL_MAGIC + salt + data).decode("ascii")

    def _decrypt_openssl(self, ciphertext: str, passphrase: str) -> bytes:
        try:
            raw = base64.b64decode(ciphertext, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecryptionError("Malformed ciphertext") from e

        header = len(OPENSSL_MAGIC) + _OPENSSL_SALT_BYTES
        data = raw[header:]
        if not raw.startswith(OPENSSL_MAGIC) or not data or len(data) % _AES_BLOCK_BYTES:
            raise DecryptionError("Malformed ciphertext")

        salt = raw[len(OPENSSL_MAGIC):header]
        try:
            key, iv = evp_bytes_to_key(passphrase.encode("utf-8"), salt)
        except ValueError as e:
            raise DecryptionError("Passphrase is not valid UTF-8") from e
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(data) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        try:
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError as e:
            raise DecryptionError("Failed to decrypt. Please check if the old wallet signature is correct.") from e


_default_cipher: Optional[SignatureCipher] = None


def get_cipher() -> SignatureCipher:
    """Process-wide cipher built from settings."""
    global _default_cipher
    if _default_cipher is None:
        from migrator.config import settings
        _default_cipher = SignatureCipher.from_settings(settings)
    return _default_cipher


def encrypt(plaintext: str, passphrase: str) -> str:
    return get_cipher().encrypt(plaintext, passphrase)


def decrypt(ciphertext: str, passphrase: str) -> str:
    return get_cipher().decrypt(ciphertext, passphrase)
