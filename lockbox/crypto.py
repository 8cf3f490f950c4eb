"""
Cryptographic operations for the password manager.

SECURITY NOTICE:
The vault format has no salt, no key stretching and a fixed all-zero nonce for
every cipher. Existing vault files can only be opened if these are reproduced
exactly, so they are kept here as-is. Key derivation is isolated in
derive_key() so a stretched KDF can replace it without touching the ciphers.
"""

import os
import struct
import logging
from enum import Enum
from typing import Callable, Dict, Tuple, Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.exceptions import InvalidTag
from Crypto.Cipher import Salsa20

from . import config
from .errors import AuthenticationError, UnknownCipherError

logger = logging.getLogger(__name__)


class CipherSuite(Enum):
    """The symmetric algorithms a vault can be written with."""

    AES256GCM = "aes256"
    SALSA20 = "salsa20"
    CHACHA20 = "chacha20"

    @property
    def label(self) -> str:
        return config.CIPHER_LABELS[self.value]

    @classmethod
    def from_name(cls, name: str) -> 'CipherSuite':
        """
        Resolve a cipher from its command line name or its display label.

        Matching is case-insensitive. The labels used by older shells
        ("AES256 GCM", "Chacha20-Poly1305") are accepted as well.

        Raises:
            UnknownCipherError: If the name matches no suite
        """
        normalized = name.strip().lower()
        for suite in cls:
            if normalized in (suite.value, suite.label.lower()):
                return suite
        if normalized == "chacha20-poly1305":
            return cls.CHACHA20
        raise UnknownCipherError(name)


class LoginType(Enum):
    """Where the master secret comes from."""

    PASSWORD = "password"
    FILE = "file"


def derive_key(secret: Union[bytes, str]) -> bytes:
    """
    Derive the vault key from a master secret.

    The key is a single SHA-256 digest of the raw secret bytes. Text secrets
    are UTF-8 encoded first, so a password and a keyfile holding the same
    bytes unlock the same vault.

    Args:
        secret: Password text or keyfile contents

    Returns:
        32-byte encryption key
    """
    if isinstance(secret, str):
        secret = secret.encode('utf-8')
    digest = hashes.Hash(hashes.SHA256())
    digest.update(secret)
    return digest.finalize()


def generate_keyfile_secret(size: int = config.KEYFILE_DEFAULT_SIZE) -> bytes:
    """Generate random keyfile contents of the given size in bytes."""
    if size <= 0:
        raise ValueError(f"Keyfile size must be positive, got {size}")
    return os.urandom(size)


def _check_key(key: bytes) -> None:
    if len(key) != config.KEY_SIZE:
        raise ValueError(f"Key must be {config.KEY_SIZE} bytes, got {len(key)}")


def _aes_gcm_encrypt(plaintext: bytes, key: bytes) -> bytes:
    cipher = Cipher(algorithms.AES(key), modes.GCM(config.AES_GCM_NONCE))
    encryptor = cipher.encryptor()
    ciphertext = encryptor.update(plaintext) + encryptor.finalize()
    # Tag goes last, same layout as AEAD "seal"
    return ciphertext + encryptor.tag


def _aes_gcm_decrypt(envelope: bytes, key: bytes) -> bytes:
    if len(envelope) < config.AES_GCM_TAG_SIZE:
        raise AuthenticationError("Ciphertext is shorter than the authentication tag")
    ciphertext = envelope[:-config.AES_GCM_TAG_SIZE]
    tag = envelope[-config.AES_GCM_TAG_SIZE:]
    cipher = Cipher(algorithms.AES(key), modes.GCM(config.AES_GCM_NONCE, tag))
    decryptor = cipher.decryptor()
    try:
        return decryptor.update(ciphertext) + decryptor.finalize()
    except InvalidTag as e:
        raise AuthenticationError("Authentication tag mismatch") from e


def _salsa20_apply(data: bytes, key: bytes) -> bytes:
    # A fresh cipher object always starts at keystream offset 0
    cipher = Salsa20.new(key=key, nonce=config.SALSA20_NONCE)
    return cipher.encrypt(data)


def _chacha20_apply(data: bytes, key: bytes) -> bytes:
    # cryptography takes the 32-bit little-endian block counter and the
    # 96-bit IETF nonce as one 16-byte value
    counter_nonce = struct.pack('<I', config.CHACHA20_INITIAL_COUNTER) + config.CHACHA20_NONCE
    cipher = Cipher(algorithms.ChaCha20(key, counter_nonce), mode=None)
    encryptor = cipher.encryptor()
    return encryptor.update(data) + encryptor.finalize()


_Transform = Callable[[bytes, bytes], bytes]

_BACKENDS: Dict[CipherSuite, Tuple[_Transform, _Transform]] = {
    CipherSuite.AES256GCM: (_aes_gcm_encrypt, _aes_gcm_decrypt),
    CipherSuite.SALSA20: (_salsa20_apply, _salsa20_apply),
    CipherSuite.CHACHA20: (_chacha20_apply, _chacha20_apply),
}


class CryptoManager:
    """Encrypts and decrypts vault blobs with one cipher suite."""

    def __init__(self, suite: CipherSuite):
        """
        Initialize the crypto manager.

        The suite's backend is looked up once here; encrypt() and decrypt()
        do not dispatch again.

        Args:
            suite: Cipher suite the vault is written with
        """
        self.suite = suite
        self._encrypt, self._decrypt = _BACKENDS[suite]

    def encrypt(self, plaintext: bytes, key: bytes) -> bytes:
        """
        Encrypt data with the session's cipher suite.

        Args:
            plaintext: Data to encrypt
            key: 32-byte encryption key

        Returns:
            The envelope written to disk (ciphertext, plus the tag for AES-GCM)
        """
        _check_key(key)
        return self._encrypt(plaintext, key)

    def decrypt(self, ciphertext: bytes, key: bytes) -> bytes:
        """
        Decrypt data with the session's cipher suite.

        The stream ciphers cannot tell a wrong key from a right one and return
        garbage instead of failing; callers detect that when parsing.

        Raises:
            AuthenticationError: If AES-GCM authentication fails
        """
        _check_key(key)
        return self._decrypt(ciphertext, key)
