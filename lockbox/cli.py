"""
Command line parsing and the commands that run without a window.
"""

import os
import sys
import argparse
import logging
from getpass import getpass
from typing import List, Optional

from . import config
from .crypto import CipherSuite
from .errors import UnknownCipherError, VaultIOError, WrongSecretError
from .export import export_csv
from .session import VaultSession
from .storage import StorageManager, read_keyfile

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lockbox", description=config.APP_NAME)
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=config.APP_TITLE_PREFIX)
    subparsers = parser.add_subparsers(dest="command")

    init_parser = subparsers.add_parser("init", help="Create a new vault in the desktop window")
    init_parser.add_argument("filename", help="Vault file to create")
    init_parser.add_argument("-e", "--encryption", help=f"Cipher: {', '.join(config.CIPHER_NAMES)}")
    init_parser.add_argument("--file", action="store_true", help="Protect the vault with a generated keyfile")

    open_parser = subparsers.add_parser("open", help="Open a vault in the desktop window")
    open_parser.add_argument("filename", nargs="?", help="Vault file to open")
    open_parser.add_argument("-e", "--encryption", help=f"Cipher: {', '.join(config.CIPHER_NAMES)}")
    open_parser.add_argument("--file", action="store_true", help="Unlock with a keyfile instead of a password")

    list_parser = subparsers.add_parser("list", help="List supported ciphers or export formats")
    group = list_parser.add_mutually_exclusive_group(required=True)
    group.add_argument("-e", "--encryption", action="store_true", help="List ciphers")
    group.add_argument("-f", "--formatexport", action="store_true", help="List export formats")

    export_parser = subparsers.add_parser("export", help="Decrypt a vault and write it as plain text")
    export_parser.add_argument("input", help="Vault file")
    export_parser.add_argument("output", help="File to write")
    export_parser.add_argument("-f", "--format", required=True, help="Export format")
    export_parser.add_argument("-e", "--encryption", required=True, help="Cipher the vault was written with")
    export_parser.add_argument("-k", "--keyfile", help="Keyfile to unlock with instead of a password")

    return parser


def format_tree(title: str, items: List[str]) -> str:
    """Render items as a small tree under a title."""
    spaces = " " * 3
    lines = ["", f"{spaces}{title}", f"{spaces}|"]
    for i, item in enumerate(items):
        if i == len(items) - 1:
            lines.append(f"{spaces}└── [ {item} ]")
        else:
            lines.append(f"{spaces}├── [ {item} ]")
            lines.append(f"{spaces}|")
    lines.append("")
    return "\n".join(lines)


def new_vault_error(path: str) -> Optional[str]:
    """Reason a new vault cannot be created at path, or None."""
    if os.path.exists(path):
        return f"'{path}' already exists"
    directory = os.path.dirname(os.path.abspath(path))
    if not os.path.isdir(directory):
        return f"Directory '{directory}' does not exist"
    return None


def list_command(args: argparse.Namespace) -> int:
    if args.encryption:
        print(format_tree("Encryption list", config.CIPHER_NAMES))
    if args.formatexport:
        print(format_tree("Export format list", config.EXPORT_FORMATS))
    return 0


def _ask_password() -> Optional[bytes]:
    try:
        return getpass("Password: ").encode('utf-8')
    except (EOFError, KeyboardInterrupt):
        return None


def export_command(args: argparse.Namespace) -> int:
    """Unlock a vault and export it. Returns the process exit status."""
    if args.format.lower() not in config.EXPORT_FORMATS:
        print(f"Unknown export format '{args.format}'", file=sys.stderr)
        return 1

    try:
        suite = CipherSuite.from_name(args.encryption)
    except UnknownCipherError as e:
        print(e, file=sys.stderr)
        return 1

    try:
        if args.keyfile:
            secret = read_keyfile(args.keyfile)
        else:
            secret = _ask_password()
            if secret is None:
                return 1
        session = VaultSession.open(StorageManager(args.input, suite), secret)
        count = export_csv(session.entries, args.output)
    except WrongSecretError:
        print("Password invalid", file=sys.stderr)
        return 1
    except VaultIOError as e:
        print(e, file=sys.stderr)
        return 1

    session.abandon()
    print(f"Exported {count} entries to {args.output}")
    return 0
