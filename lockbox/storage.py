"""
Storage management for the password manager.

A vault file is the cipher envelope of the UTF-8 JSON array of entries and
nothing else: no magic bytes, no version, no cipher identifier. The cipher
suite has to be supplied by the caller every time the file is opened.
"""

import os
import json
import shutil
import logging
from dataclasses import dataclass, asdict
from typing import List, Dict, Any

from lockbox.crypto import CipherSuite, CryptoManager
from lockbox.errors import DecodeError, EncodeError, VaultIOError, WrongSecretError
from lockbox.utils import restrict_to_owner

logger = logging.getLogger(__name__)

# Serialization order of the entry fields
ENTRY_FIELDS = ('title', 'username', 'password', 'notes')


@dataclass
class PasswordEntry:
    """Represents a single password entry."""
    title: str
    username: str
    password: str
    notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PasswordEntry':
        """
        Create from a decoded JSON object.

        Unknown keys are ignored. Every known field must be present and be a
        string.

        Raises:
            DecodeError: If a field is missing or has the wrong type
        """
        values = {}
        for field in ENTRY_FIELDS:
            value = data.get(field)
            if not isinstance(value, str):
                raise DecodeError(f"Entry field '{field}' is missing or not a string")
            try:
                value.encode('utf-8')
            except UnicodeEncodeError as e:
                raise DecodeError(f"Entry field '{field}' is not valid UTF-8 text") from e
            values[field] = value
        return cls(**values)


def serialize_entries(entries: List[PasswordEntry]) -> bytes:
    """
    Serialize entries to compact UTF-8 JSON, the vault plaintext.

    Raises:
        EncodeError: If a field holds text with no UTF-8 form (lone surrogates)
    """
    data = [e.to_dict() for e in entries]
    try:
        return json.dumps(data, ensure_ascii=False, separators=(',', ':')).encode('utf-8')
    except UnicodeEncodeError as e:
        raise EncodeError("Vault entries contain text that cannot be stored as UTF-8") from e


def deserialize_entries(plaintext: bytes) -> List[PasswordEntry]:
    """
    Parse vault plaintext back into entries.

    With a stream cipher a wrong password produces random bytes rather than
    an error, so any failure here is reported as a wrong secret.

    Raises:
        DecodeError: If the bytes are not a UTF-8 JSON array of entries
    """
    try:
        text = plaintext.decode('utf-8')
    except UnicodeDecodeError as e:
        raise DecodeError("Decrypted vault is not valid UTF-8") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError("Decrypted vault is not valid JSON") from e

    if not isinstance(data, list):
        raise DecodeError("Decrypted vault is not a list of entries")

    entries = []
    for item in data:
        if not isinstance(item, dict):
            raise DecodeError("Vault entry is not an object")
        entries.append(PasswordEntry.from_dict(item))
    return entries


def encode(entries: List[PasswordEntry], key: bytes, suite: CipherSuite) -> bytes:
    """Serialize and encrypt entries into an on-disk blob."""
    return CryptoManager(suite).encrypt(serialize_entries(entries), key)


def decode(blob: bytes, key: bytes, suite: CipherSuite) -> List[PasswordEntry]:
    """
    Decrypt and parse an on-disk blob.

    Raises:
        AuthenticationError: If AES-GCM rejects the blob; parsing is skipped
        DecodeError: If the plaintext is not a valid entry list
    """
    return deserialize_entries(CryptoManager(suite).decrypt(blob, key))


def read_keyfile(path: str) -> bytes:
    """
    Read the full contents of a keyfile.

    Raises:
        VaultIOError: If the keyfile is missing, unreadable or empty
    """
    try:
        with open(path, 'rb') as f:
            secret = f.read()
    except FileNotFoundError as e:
        raise VaultIOError(path, "Keyfile not found") from e
    except OSError as e:
        raise VaultIOError(path, f"Cannot read keyfile: {e.strerror or e}") from e

    if not secret:
        raise VaultIOError(path, "Keyfile is empty")
    return secret


def write_keyfile(path: str, secret: bytes) -> None:
    """
    Write a new keyfile. An existing file is never overwritten.

    Raises:
        VaultIOError: If the file exists or cannot be written
    """
    try:
        with open(path, 'xb') as f:
            f.write(secret)
    except FileExistsError as e:
        raise VaultIOError(path, "Keyfile already exists") from e
    except OSError as e:
        raise VaultIOError(path, f"Cannot write keyfile: {e.strerror or e}") from e

    if not restrict_to_owner(path):
        logger.warning(f"Failed to set secure file permissions for keyfile: {path}")
    logger.info(f"Wrote {len(secret)}-byte keyfile {path}")


class StorageManager:
    """Reads and writes one vault file with one cipher suite."""

    def __init__(self, filepath: str, suite: CipherSuite):
        """
        Initialize storage manager.
        Args:
            filepath: Path to the encrypted vault file
            suite: Cipher suite the vault is (or will be) written with
        """
        self.filepath = filepath
        self.suite = suite

    def read_blob(self) -> bytes:
        """
        Read the raw vault file.

        Raises:
            VaultIOError: If the file is missing or unreadable
        """
        try:
            with open(self.filepath, 'rb') as f:
                return f.read()
        except FileNotFoundError as e:
            raise VaultIOError(self.filepath, "File not found") from e
        except OSError as e:
            raise VaultIOError(self.filepath, f"Cannot read vault: {e.strerror or e}") from e

    def load(self, key: bytes) -> List[PasswordEntry]:
        """
        Read, decrypt and parse the vault.

        Raises:
            VaultIOError: If the file cannot be read
            AuthenticationError: If AES-GCM rejects the key
            DecodeError: If the plaintext is not a valid entry list
        """
        blob = self.read_blob()
        try:
            entries = decode(blob, key, self.suite)
        except WrongSecretError:
            logger.warning(f"Load: {self.filepath} did not decode with {self.suite.label}")
            raise
        logger.info(f"Loaded {len(entries)} entries from {self.filepath} ({self.suite.label})")
        return entries

    def create_new_vault(self, key: bytes) -> None:
        """Write a vault holding no entries."""
        self.save([], key)

    def save(self, entries: List[PasswordEntry], key: bytes) -> None:
        """
        Encrypt entries and replace the vault file.

        The blob is written next to the vault and moved over it, so a failed
        write leaves the previous file intact.

        Raises:
            VaultIOError: If the file cannot be written
            EncodeError: If an entry has no UTF-8 form; the file is untouched
        """
        blob = encode(entries, key, self.suite)
        tmp_path = self.filepath + '.tmp'

        try:
            with open(tmp_path, 'wb') as f:
                f.write(blob)
            shutil.move(tmp_path, self.filepath)
        except OSError as e:
            logger.error(f"Error saving vault file {self.filepath}: {e}", exc_info=True)
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise VaultIOError(self.filepath, f"Cannot write vault: {e.strerror or e}") from e

        if not restrict_to_owner(self.filepath):
            logger.warning(f"Failed to set secure file permissions for vault: {self.filepath}")
        logger.info(f"Saved {len(entries)} entries to {self.filepath} ({self.suite.label})")
