import os
import logging
from typing import List, Optional, Tuple

from . import config
from .crypto import CipherSuite
from .errors import UnknownCipherError

logger = logging.getLogger(__name__)


def _recent_file() -> str:
    return os.path.join(os.path.expanduser("~"), config.CONFIG_DIR_NAME, config.RECENT_VAULTS_FILE)


def get_recent_vaults() -> List[Tuple[str, Optional[CipherSuite]]]:
    """
    Loads recent vaults as (path, cipher suite) pairs, newest first.

    Each line of the file is "<cipher>\\t<path>". The vault file does not
    record its cipher, so this is the only place it is remembered. Paths that
    no longer exist are skipped; an unreadable cipher name yields None.
    """
    recent_file = _recent_file()

    recent = []
    if os.path.exists(recent_file):
        with open(recent_file, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.rstrip('\n')
                if not line:
                    continue
                name, sep, path = line.partition('\t')
                if not sep:
                    name, path = "", name
                if not os.path.exists(path):
                    continue
                try:
                    suite = CipherSuite.from_name(name) if name else None
                except UnknownCipherError:
                    logger.warning(f"Ignoring unknown cipher '{name}' recorded for {path}")
                    suite = None
                recent.append((path, suite))
    return recent


def get_recent_suite(path: str) -> Optional[CipherSuite]:
    """Cipher suite last used with the given vault path, if known."""
    path = os.path.abspath(path)
    for recent_path, suite in get_recent_vaults():
        if recent_path == path:
            return suite
    return None


def save_recent_vault(path: str, suite: CipherSuite):
    """
    Records a vault path and its cipher at the top of the recent list.
    Ensures uniqueness and keeps the list limited to MAX_RECENT_VAULTS.
    """
    recent_file = _recent_file()
    os.makedirs(os.path.dirname(recent_file), exist_ok=True)

    path = os.path.abspath(path)
    recent = [(p, s) for p, s in get_recent_vaults() if p != path]
    recent.insert(0, (path, suite))
    recent = recent[:config.MAX_RECENT_VAULTS]

    with open(recent_file, 'w', encoding='utf-8') as f:
        for p, s in recent:
            f.write(f"{s.value if s else ''}\t{p}\n")
