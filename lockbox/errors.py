"""
Exceptions raised by the Lockbox core.

Every failure surfaced to the shell derives from VaultError. Wrong-password
conditions come in two flavours that the shell reports identically: an
authentication tag mismatch (AES-256-GCM only) and a plaintext that is not a
valid vault encoding (the only signal the stream ciphers give).
"""


class VaultError(Exception):
    """Base class for all Lockbox errors."""


class VaultIOError(VaultError):
    """A vault or keyfile could not be read or written."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path


class WrongSecretError(VaultError):
    """The master secret (or cipher suite) does not match the vault."""


class AuthenticationError(WrongSecretError):
    """Authenticated decryption rejected the ciphertext."""


class DecodeError(WrongSecretError):
    """Decrypted bytes are not a UTF-8 JSON list of entries."""


class EncodeError(VaultError, ValueError):
    """Entries hold text that cannot be written as UTF-8."""


class IndexOutOfRangeError(VaultError, IndexError):
    """No entry exists at the requested position."""

    def __init__(self, index: int, length: int):
        super().__init__(f"Entry {index} does not exist (vault has {length} entries)")
        self.index = index
        self.length = length


class VaultStateError(VaultError):
    """The session has already been abandoned."""


class UnknownCipherError(VaultError, ValueError):
    """A cipher name did not match any supported suite."""

    def __init__(self, name: str):
        super().__init__(f"Unknown cipher '{name}'")
        self.name = name
