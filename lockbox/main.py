"""
Main entry point for the Lockbox Password Manager.
"""

import sys
import os
import signal
import logging
from typing import Optional

from PyQt5.QtWidgets import QApplication, QMessageBox
from PyQt5.QtCore import Qt

from lockbox.ui import MainWindow, LoginDialog, StartupDialog
from lockbox.crypto import CipherSuite, LoginType
from lockbox.errors import UnknownCipherError
from lockbox.session import VaultSession
from lockbox import cli
from lockbox import config

logger = logging.getLogger(__name__)


class PasswordManagerApp:
    """Main application class for the password manager."""

    def __init__(self, vault_path: Optional[str] = None, suite: Optional[CipherSuite] = None,
                 login_type: LoginType = LoginType.PASSWORD, create_new: bool = False):
        """Initialize the application, optionally skipping straight to login or vault creation."""
        self.app = QApplication(sys.argv)
        self.app.setApplicationName(config.APP_NAME)
        self.app.setOrganizationName(config.APP_NAME)
        self.app.setStyle(config.APP_STYLE)

        self.default_path = self._get_default_vault_path()
        self.vault_path = vault_path
        self.suite = suite
        self.login_type = login_type
        self.create_new = create_new
        self.session: Optional[VaultSession] = None
        self.running = False

        # Handle Ctrl+C gracefully
        signal.signal(signal.SIGINT, signal.SIG_DFL)

    def _get_default_vault_path(self) -> str:
        """Suggested location for a new vault."""
        app_dir = os.path.join(os.path.expanduser("~"), config.CONFIG_DIR_NAME)
        os.makedirs(app_dir, exist_ok=True)
        return os.path.join(app_dir, config.DEFAULT_VAULT_FILE)

    def _handle_main_window_closed(self, should_exit_app: bool):
        self.running = not should_exit_app

    def run(self) -> int:
        """Run the application."""
        logger.info(f"Starting {config.APP_TITLE_PREFIX}")
        current_state = config.STATE_LOGIN if self.vault_path else config.STATE_STARTUP

        while current_state != config.STATE_EXIT:
            if current_state == config.STATE_STARTUP:
                startup_dialog = StartupDialog(self.default_path)
                if startup_dialog.exec_() and startup_dialog.selected_path:
                    self.vault_path = startup_dialog.selected_path
                    self.suite = startup_dialog.selected_suite
                    self.create_new = startup_dialog.create_new
                    current_state = config.STATE_LOGIN
                else:
                    current_state = config.STATE_EXIT

            elif current_state == config.STATE_LOGIN:
                login_dialog = LoginDialog(
                    self.vault_path, self.suite, self.login_type,
                    is_new_vault=True if self.create_new else None
                )
                if login_dialog.exec_():
                    self.session = login_dialog.session
                    current_state = config.STATE_MAIN_WINDOW
                elif login_dialog.returned_to_start:
                    current_state = config.STATE_STARTUP
                else:
                    current_state = config.STATE_EXIT

            elif current_state == config.STATE_MAIN_WINDOW:
                main_window = MainWindow(self.session)
                main_window.return_to_start_screen.connect(lambda: self._handle_main_window_closed(False))
                main_window.exit_application.connect(lambda: self._handle_main_window_closed(True))
                self.running = False
                main_window.show()
                self.app.exec_()

                # return_to_start_screen sets running; exit or closing the window does not
                current_state = config.STATE_STARTUP if self.running else config.STATE_EXIT
                self.session = None
                self.create_new = False

        return 0

    def cleanup(self):
        """Clean up resources."""
        if self.session is not None:
            self.session.abandon()


def run_gui(args, create_new: bool = False) -> int:
    suite = None
    if getattr(args, "encryption", None):
        try:
            suite = CipherSuite.from_name(args.encryption)
        except UnknownCipherError as e:
            print(e, file=sys.stderr)
            return 1
    login_type = LoginType.FILE if getattr(args, "file", False) else LoginType.PASSWORD

    if hasattr(Qt, 'AA_EnableHighDpiScaling'):
        QApplication.setAttribute(Qt.AA_EnableHighDpiScaling, True)
    if hasattr(Qt, 'AA_UseHighDpiPixmaps'):
        QApplication.setAttribute(Qt.AA_UseHighDpiPixmaps, True)

    vault_path = getattr(args, "filename", None)
    if create_new:
        error = cli.new_vault_error(vault_path)
        if error:
            print(error, file=sys.stderr)
            return 1

    app = PasswordManagerApp(vault_path, suite, login_type, create_new)
    if app.vault_path and not create_new and not os.path.exists(app.vault_path):
        QMessageBox.critical(None, "Vault Not Found", f"The vault file '{app.vault_path}' does not exist.")
        return 1

    try:
        return app.run()
    finally:
        app.cleanup()


def main(argv=None) -> int:
    """Main entry point."""
    args = cli.build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=config.LOG_FORMAT)

    if args.command == "list":
        return cli.list_command(args)
    if args.command == "init":
        return run_gui(args, create_new=True)
    if args.command == "export":
        return cli.export_command(args)
    return run_gui(args)


if __name__ == "__main__":
    sys.exit(main())
