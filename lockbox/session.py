"""
In-memory vault session.

A session is created locked and only becomes unlocked through a successful
decode of its vault file. From there the shell drives it through add, remove,
modify, reveal/copy and save until it is abandoned. Nothing is saved unless
save() is called.
"""

import os
import logging
from dataclasses import replace
from enum import Enum
from typing import List, Optional, Tuple, Union

from lockbox import config
from lockbox.crypto import derive_key, generate_keyfile_secret
from lockbox.errors import IndexOutOfRangeError, VaultError, VaultStateError
from lockbox.storage import PasswordEntry, StorageManager, write_keyfile

logger = logging.getLogger(__name__)


class SessionState(Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    SAVED = "saved"
    ABANDONED = "abandoned"


def _pick(current: str, supplied: Optional[str]) -> str:
    """Return the supplied value unless it is missing or blank."""
    if supplied is not None and supplied.strip():
        return supplied
    return current


class VaultSession:
    """Holds the decrypted entries of one vault for the life of a session."""

    def __init__(self, storage: StorageManager, key: bytes):
        self.storage = storage
        self._key = key
        self._entries: List[PasswordEntry] = []
        self.state = SessionState.LOCKED
        self.is_dirty = False

    @classmethod
    def open(cls, storage: StorageManager, secret: Union[bytes, str]) -> 'VaultSession':
        """
        Unlock an existing vault.

        Args:
            storage: Storage for the vault file and its cipher suite
            secret: Master password or keyfile contents

        Raises:
            VaultIOError: If the vault cannot be read
            WrongSecretError: If the secret or the suite does not match
        """
        session = cls(storage, derive_key(secret))
        session._unlock(storage.load(session._key))
        return session

    @classmethod
    def create(cls, storage: StorageManager, secret: Union[bytes, str]) -> 'VaultSession':
        """Write a new empty vault and return an unlocked session for it."""
        session = cls(storage, derive_key(secret))
        storage.create_new_vault(session._key)
        session._unlock([])
        session.state = SessionState.SAVED
        return session

    @classmethod
    def create_with_keyfile(cls, storage: StorageManager, keyfile_path: str,
                            size: int = config.KEYFILE_DEFAULT_SIZE) -> 'VaultSession':
        """
        Generate a keyfile and write a new empty vault unlocked by it.

        The keyfile is written first and removed again if the vault cannot be
        written, so a failed attempt can be retried with the same path.

        Raises:
            VaultIOError: If the keyfile exists, or either file cannot be written
        """
        secret = generate_keyfile_secret(size)
        write_keyfile(keyfile_path, secret)
        try:
            return cls.create(storage, secret)
        except VaultError:
            logger.warning(f"Vault {storage.filepath} was not created, removing keyfile {keyfile_path}")
            os.remove(keyfile_path)
            raise

    def _unlock(self, entries: List[PasswordEntry]) -> None:
        self._entries = entries
        self.state = SessionState.UNLOCKED

    def _require_unlocked(self) -> None:
        if self.state in (SessionState.LOCKED, SessionState.ABANDONED):
            raise VaultStateError(f"Vault session is {self.state.value}")

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= len(self._entries):
            raise IndexOutOfRangeError(index, len(self._entries))

    def _touch(self) -> None:
        self.state = SessionState.UNLOCKED
        self.is_dirty = True

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> List[PasswordEntry]:
        """Copies of the current entries, in order. Changes go through modify()."""
        self._require_unlocked()
        return [replace(e) for e in self._entries]

    def get(self, index: int) -> PasswordEntry:
        self._require_unlocked()
        self._check_index(index)
        return replace(self._entries[index])

    def add(self, title: str, username: str, password: str, notes: str = "") -> PasswordEntry:
        """Append a new entry. Values are stored exactly as given."""
        self._require_unlocked()
        entry = PasswordEntry(title=title, username=username, password=password, notes=notes)
        self._entries.append(entry)
        self._touch()
        logger.debug(f"Added entry {len(self._entries) - 1}")
        return replace(entry)

    def remove(self, index: int) -> PasswordEntry:
        """Delete the entry at index; later entries move up by one."""
        self._require_unlocked()
        self._check_index(index)
        entry = self._entries.pop(index)
        self._touch()
        logger.debug(f"Removed entry {index}")
        return entry

    def modify(self, index: int, title: Optional[str] = None, username: Optional[str] = None,
               password: Optional[str] = None, notes: Optional[str] = None) -> PasswordEntry:
        """
        Update an entry in place.

        A field is replaced only when the new value is non-blank after
        stripping whitespace; blank or missing values leave it unchanged.
        Replacement values are stored unstripped.
        """
        self._require_unlocked()
        self._check_index(index)
        entry = self._entries[index]
        entry.title = _pick(entry.title, title)
        entry.username = _pick(entry.username, username)
        entry.password = _pick(entry.password, password)
        entry.notes = _pick(entry.notes, notes)
        self._touch()
        logger.debug(f"Modified entry {index}")
        return replace(entry)

    def reveal_password(self, index: int) -> str:
        return self.get(index).password

    def copy_password(self, index: int) -> str:
        """Return the password to hand to the clipboard. Does not mutate."""
        password = self.get(index).password
        logger.debug(f"Password of entry {index} requested for clipboard")
        return password

    def masked_rows(self) -> List[Tuple[int, str, str, str, str]]:
        """Rows for display: index, title, username, masked password, notes."""
        self._require_unlocked()
        return [
            (i, e.title, e.username, config.TABLE_PASSWORD_MASK_CHAR * len(e.password), e.notes)
            for i, e in enumerate(self._entries)
        ]

    def save(self) -> None:
        """
        Write all entries back to the vault file under the session's key.

        Raises:
            VaultIOError: If the file cannot be written; the session stays
                unlocked with its changes
            EncodeError: If an entry holds text with no UTF-8 form
        """
        self._require_unlocked()
        self.storage.save(self._entries, self._key)
        self.state = SessionState.SAVED
        self.is_dirty = False

    def abandon(self) -> None:
        """End the session. Unsaved changes are dropped without warning."""
        if self.is_dirty:
            logger.info(f"Discarding unsaved changes to {self.storage.filepath}")
        self._entries = []
        self._key = b""
        self.is_dirty = False
        self.state = SessionState.ABANDONED
