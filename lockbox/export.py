"""
Plain text export of decrypted entries.
"""

import csv
import logging
from typing import List

from lockbox.errors import VaultIOError
from lockbox.storage import PasswordEntry

logger = logging.getLogger(__name__)


def export_csv(entries: List[PasswordEntry], filename: str) -> int:
    """
    Write one row per entry as index,title,username,password,notes.

    There is no header row. The file is NOT encrypted.

    Returns:
        Number of rows written

    Raises:
        VaultIOError: If the file cannot be written
    """
    try:
        with open(filename, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            for i, entry in enumerate(entries):
                writer.writerow([i, entry.title, entry.username, entry.password, entry.notes])
    except OSError as e:
        raise VaultIOError(filename, f"Cannot write export: {e.strerror or e}") from e

    logger.info(f"Exported {len(entries)} entries to {filename}")
    return len(entries)
