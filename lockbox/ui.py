"""
User interface for the Lockbox Password Manager.

The widgets here only collect input and display results. Every vault
operation goes through VaultSession.
"""

import os
from typing import Optional, Dict

from PyQt5.QtWidgets import (
    QMainWindow, QDialog, QWidget, QVBoxLayout, QHBoxLayout,
    QLabel, QLineEdit, QPushButton, QTableWidget, QTableWidgetItem,
    QMessageBox, QFileDialog, QGroupBox, QTextEdit, QDialogButtonBox,
    QComboBox, QFormLayout, QApplication, QAbstractItemView
)
from PyQt5.QtCore import Qt, QTimer, pyqtSignal

from . import config
from . import vault_manager
from .crypto import CipherSuite, LoginType
from .errors import IndexOutOfRangeError, VaultError, VaultIOError, WrongSecretError
from .export import export_csv
from .session import VaultSession
from .storage import PasswordEntry, StorageManager, read_keyfile


def _cipher_combo(selected: Optional[CipherSuite] = None) -> QComboBox:
    """Combo box listing every cipher suite, with its name as item data."""
    combo = QComboBox()
    for suite in CipherSuite:
        combo.addItem(suite.label, suite.value)
    if selected is None:
        selected = CipherSuite.from_name(config.DEFAULT_CIPHER)
    combo.setCurrentIndex(combo.findData(selected.value))
    return combo


class StartupDialog(QDialog):
    """Dialog for selecting or creating a vault."""

    def __init__(self, default_path: str, parent=None):
        super().__init__(parent)
        self.default_path = default_path
        self.selected_path = None
        self.selected_suite: Optional[CipherSuite] = None
        self.create_new = False
        self.init_ui()

    def init_ui(self):
        """Initialize the user interface."""
        self.setWindowTitle(f"{config.APP_TITLE_PREFIX} - Welcome")
        self.setModal(True)
        self.setMinimumWidth(500)

        layout = QVBoxLayout()

        title_label = QLabel(config.APP_NAME)
        title_label.setAlignment(Qt.AlignCenter)
        font = title_label.font()
        font.setPointSize(16)
        font.setBold(True)
        title_label.setFont(font)
        layout.addWidget(title_label)

        options_group = QGroupBox("Vault Options")
        options_layout = QVBoxLayout()

        recent_layout = QHBoxLayout()
        recent_layout.addWidget(QLabel("Recent Vaults:"))
        self.recent_combo = QComboBox()
        self.load_recent_vaults()
        recent_layout.addWidget(self.recent_combo)

        self.open_recent_button = QPushButton("Open Selected")
        self.open_recent_button.clicked.connect(self.open_recent_vault)
        self.open_recent_button.setEnabled(self.recent_combo.count() > 0)
        recent_layout.addWidget(self.open_recent_button)
        options_layout.addLayout(recent_layout)

        self.open_button = QPushButton("Browse for Existing Vault")
        self.open_button.clicked.connect(self.open_existing_vault)
        options_layout.addWidget(self.open_button)

        self.create_button = QPushButton("Create New Vault")
        self.create_button.clicked.connect(self.create_new_vault)
        options_layout.addWidget(self.create_button)

        options_group.setLayout(options_layout)
        layout.addWidget(options_group)

        buttons = QDialogButtonBox(QDialogButtonBox.Close)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

        self.setLayout(layout)

    def load_recent_vaults(self):
        """Load list of recent vaults, remembering the cipher each was opened with."""
        self.recent_combo.clear()
        self.recent_vaults = vault_manager.get_recent_vaults()
        for path, suite in self.recent_vaults:
            label = f"{path}  [{suite.label}]" if suite else path
            self.recent_combo.addItem(label)

    def open_existing_vault(self):
        """Open an existing vault file."""
        filename, _ = QFileDialog.getOpenFileName(
            self, "Open Vault", os.path.dirname(self.default_path), config.VAULT_FILE_FILTER
        )
        if filename:
            self.selected_path = filename
            self.selected_suite = vault_manager.get_recent_suite(filename)
            self.accept()

    def create_new_vault(self):
        """Choose where a new vault file will be written."""
        filename, _ = QFileDialog.getSaveFileName(
            self, "Create New Vault", self.default_path, config.VAULT_FILE_FILTER
        )
        if filename:
            if os.path.exists(filename):
                reply = QMessageBox.question(
                    self, "Overwrite Vault",
                    f"'{os.path.basename(filename)}' already exists. Replace it with an empty vault?",
                    QMessageBox.Yes | QMessageBox.No, QMessageBox.No
                )
                if reply != QMessageBox.Yes:
                    return
            self.selected_path = filename
            self.create_new = True
            self.accept()

    def open_recent_vault(self):
        """Open a recent vault."""
        index = self.recent_combo.currentIndex()
        if index < 0:
            return
        path, suite = self.recent_vaults[index]
        if os.path.exists(path):
            self.selected_path = path
            self.selected_suite = suite
            self.accept()
        else:
            QMessageBox.warning(self, "Vault Not Found", f"The vault file '{path}' does not exist.")


class LoginDialog(QDialog):
    """Asks for the cipher and master secret, then opens or creates the vault."""

    def __init__(self, vault_path: str, suite: Optional[CipherSuite] = None,
                 login_type: LoginType = LoginType.PASSWORD, is_new_vault: Optional[bool] = None, parent=None):
        super().__init__(parent)
        self.vault_path = vault_path
        self.initial_suite = suite
        self.initial_login_type = login_type
        self.session: Optional[VaultSession] = None
        self.attempts = 0
        self.max_attempts = config.MAX_LOGIN_ATTEMPTS
        self.returned_to_start = False
        if is_new_vault is None:
            is_new_vault = not os.path.exists(vault_path)
        self.is_new_vault = is_new_vault
        self.init_ui()

    def init_ui(self):
        """Initialize the user interface."""
        self.setWindowTitle(f"{config.APP_TITLE_PREFIX} - {'Create' if self.is_new_vault else 'Unlock'}")
        self.setMinimumWidth(450)
        self.setModal(True)

        layout = QVBoxLayout()

        vault_label = QLabel(f"Vault: {os.path.basename(self.vault_path)}")
        vault_label.setAlignment(Qt.AlignCenter)
        layout.addWidget(vault_label)

        form = QFormLayout()

        self.cipher_combo = _cipher_combo(self.initial_suite)
        form.addRow("Encryption:", self.cipher_combo)

        self.login_type_combo = QComboBox()
        self.login_type_combo.addItem("Password", LoginType.PASSWORD.value)
        self.login_type_combo.addItem("Keyfile", LoginType.FILE.value)
        self.login_type_combo.setCurrentIndex(self.login_type_combo.findData(self.initial_login_type.value))
        self.login_type_combo.currentIndexChanged.connect(self.update_login_fields)
        form.addRow("Login type:", self.login_type_combo)

        self.password_input = QLineEdit()
        self.password_input.setEchoMode(QLineEdit.Password)
        self.password_input.returnPressed.connect(self.login)
        form.addRow("Master password:", self.password_input)

        self.confirm_input = QLineEdit()
        self.confirm_input.setEchoMode(QLineEdit.Password)
        self.confirm_label = QLabel("Confirm password:")
        form.addRow(self.confirm_label, self.confirm_input)

        keyfile_layout = QHBoxLayout()
        self.keyfile_input = QLineEdit()
        keyfile_layout.addWidget(self.keyfile_input)
        self.keyfile_browse_button = QPushButton("Browse")
        self.keyfile_browse_button.clicked.connect(self.browse_keyfile)
        keyfile_layout.addWidget(self.keyfile_browse_button)
        self.keyfile_label = QLabel("Keyfile:")
        form.addRow(self.keyfile_label, keyfile_layout)

        self.keyfile_size_combo = QComboBox()
        for size in config.KEYFILE_SIZES:
            self.keyfile_size_combo.addItem(f"{size} bytes", size)
        self.keyfile_size_combo.setCurrentIndex(self.keyfile_size_combo.findData(config.KEYFILE_DEFAULT_SIZE))
        self.keyfile_size_label = QLabel("Keyfile size:")
        form.addRow(self.keyfile_size_label, self.keyfile_size_combo)

        layout.addLayout(form)

        button_layout = QHBoxLayout()
        self.back_button = QPushButton("Back to Start")
        self.back_button.clicked.connect(self.go_to_start_screen)
        button_layout.addWidget(self.back_button)

        self.login_button = QPushButton("Create Vault" if self.is_new_vault else "Unlock")
        self.login_button.clicked.connect(self.login)
        button_layout.addWidget(self.login_button)
        layout.addLayout(button_layout)

        self.status_label = QLabel("")
        self.status_label.setStyleSheet("color: red")
        layout.addWidget(self.status_label)

        self.setLayout(layout)
        self.update_login_fields()

    def _login_type(self) -> LoginType:
        return LoginType(self.login_type_combo.currentData())

    def update_login_fields(self):
        """Show the inputs relevant to the chosen login type."""
        use_file = self._login_type() is LoginType.FILE
        self.password_input.setEnabled(not use_file)
        self.confirm_label.setVisible(self.is_new_vault and not use_file)
        self.confirm_input.setVisible(self.is_new_vault and not use_file)
        self.keyfile_label.setVisible(use_file)
        self.keyfile_input.setVisible(use_file)
        self.keyfile_browse_button.setVisible(use_file)
        self.keyfile_size_label.setVisible(self.is_new_vault and use_file)
        self.keyfile_size_combo.setVisible(self.is_new_vault and use_file)
        if use_file:
            self.keyfile_input.setFocus()
        else:
            self.password_input.setFocus()

    def browse_keyfile(self):
        if self.is_new_vault:
            default = os.path.splitext(self.vault_path)[0] + config.KEYFILE_EXTENSION
            filename, _ = QFileDialog.getSaveFileName(self, "New Keyfile", default)
        else:
            filename, _ = QFileDialog.getOpenFileName(self, "Select Keyfile", os.path.dirname(self.vault_path))
        if filename:
            self.keyfile_input.setText(filename)

    def go_to_start_screen(self):
        """Handle returning to the start screen."""
        self.returned_to_start = True
        self.reject()

    def _create_vault(self, storage: StorageManager) -> Optional[VaultSession]:
        """Create a new vault from a confirmed password, or with a freshly written keyfile."""
        if self._login_type() is LoginType.FILE:
            keyfile_path = self.keyfile_input.text().strip()
            if not keyfile_path:
                QMessageBox.warning(self, "Error", "Choose where to write the keyfile")
                return None
            return VaultSession.create_with_keyfile(storage, keyfile_path, self.keyfile_size_combo.currentData())

        password = self.password_input.text()
        if not password:
            QMessageBox.warning(self, "Error", "Enter a master password")
            return None
        if password != self.confirm_input.text():
            QMessageBox.warning(self, "Error", "Passwords do not match")
            return None
        return VaultSession.create(storage, password.encode('utf-8'))

    def _existing_vault_secret(self) -> Optional[bytes]:
        if self._login_type() is LoginType.PASSWORD:
            return self.password_input.text().encode('utf-8')
        keyfile_path = self.keyfile_input.text().strip()
        if not keyfile_path:
            QMessageBox.warning(self, "Error", "Select the keyfile for this vault")
            return None
        return read_keyfile(keyfile_path)

    def login(self):
        """Create the vault, or unlock it with the given cipher and secret."""
        suite = CipherSuite(self.cipher_combo.currentData())
        storage = StorageManager(self.vault_path, suite)

        try:
            if self.is_new_vault:
                self.session = self._create_vault(storage)
                if self.session is None:
                    return
                QMessageBox.information(
                    self, "Vault Created",
                    f"Vault created with {suite.label}.\n\n"
                    "The vault file does not record its encryption. "
                    f"Choose {suite.label} again every time you open it."
                )
            else:
                secret = self._existing_vault_secret()
                if secret is None:
                    return
                self.session = VaultSession.open(storage, secret)
        except WrongSecretError:
            self.attempts += 1
            if self.attempts < self.max_attempts:
                self.status_label.setText(
                    f"Invalid password, keyfile or encryption. Attempts left: {self.max_attempts - self.attempts}"
                )
                QMessageBox.warning(self, "Login Failed", "Invalid password, keyfile or encryption.")
            else:
                QMessageBox.critical(self, "Login Failed", "Maximum login attempts reached. Returning to start screen.")
                self.go_to_start_screen()
            return
        except VaultIOError as e:
            QMessageBox.critical(self, "Error", str(e))
            return

        vault_manager.save_recent_vault(self.vault_path, suite)
        self.accept()


class PasswordEntryDialog(QDialog):
    """
    Dialog for adding or modifying an entry.

    When modifying, inputs start empty and show the current value as a
    placeholder; anything left blank keeps its current value.
    """

    def __init__(self, entry: Optional[PasswordEntry] = None, parent=None):
        super().__init__(parent)
        self.entry = entry
        self.init_ui()

    def init_ui(self):
        """Initialize the user interface."""
        self.setWindowTitle("Modify Entry" if self.entry else "Add Entry")
        self.setModal(True)
        self.setMinimumWidth(500)

        layout = QFormLayout()

        self.title_input = QLineEdit()
        layout.addRow("Title:", self.title_input)

        self.username_input = QLineEdit()
        layout.addRow("Username:", self.username_input)

        password_layout = QHBoxLayout()
        self.password_input = QLineEdit()
        self.password_input.setEchoMode(QLineEdit.Password)
        password_layout.addWidget(self.password_input)
        self.show_password_button = QPushButton("Show")
        self.show_password_button.setCheckable(True)
        self.show_password_button.toggled.connect(self.toggle_password_visibility)
        password_layout.addWidget(self.show_password_button)
        layout.addRow("Password:", password_layout)

        self.notes_input = QTextEdit()
        self.notes_input.setMaximumHeight(100)
        layout.addRow("Notes:", self.notes_input)

        if self.entry:
            self.title_input.setPlaceholderText(self.entry.title)
            self.username_input.setPlaceholderText(self.entry.username)
            self.password_input.setPlaceholderText("(unchanged)")
            self.notes_input.setPlaceholderText(self.entry.notes)
            layout.addRow(QLabel("Leave a field blank to keep its current value."))

        buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        layout.addRow(buttons)

        self.setLayout(layout)

    def toggle_password_visibility(self, checked: bool):
        """Toggle password visibility."""
        if checked:
            self.password_input.setEchoMode(QLineEdit.Normal)
            self.show_password_button.setText("Hide")
        else:
            self.password_input.setEchoMode(QLineEdit.Password)
            self.show_password_button.setText("Show")

    def get_values(self) -> Dict[str, str]:
        """Field values as typed, keyed by entry field name."""
        return {
            'title': self.title_input.text(),
            'username': self.username_input.text(),
            'password': self.password_input.text(),
            'notes': self.notes_input.toPlainText(),
        }


class MainWindow(QMainWindow):
    """Main application window."""
    return_to_start_screen = pyqtSignal()
    exit_application = pyqtSignal()

    def __init__(self, session: VaultSession):
        super().__init__()
        self.session = session
        self.clipboard_timer = QTimer()
        self.clipboard_timer.setSingleShot(True)
        self.clipboard_timer.timeout.connect(self.clear_clipboard)
        self.init_ui()
        self.load_entries()

    def init_ui(self):
        """Initialize the user interface."""
        filepath = self.session.storage.filepath
        self.setWindowTitle(
            f"{config.APP_TITLE_PREFIX} - {os.path.basename(filepath)} ({self.session.storage.suite.label})"
        )
        self.setGeometry(100, 100, 900, 500)

        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        layout = QVBoxLayout()
        central_widget.setLayout(layout)

        toolbar_layout = QHBoxLayout()
        actions = [
            ("Add", self.add_entry),
            ("Remove", self.remove_entry),
            ("Modify", self.modify_entry),
            ("Show Password", self.show_password),
            ("Copy Password", self.copy_password),
            ("Save", self.save_vault),
            ("Export CSV", self.export_csv),
            ("Close Vault", self.close_vault),
            ("Exit", self._handle_exit_action),
        ]
        for label, handler in actions:
            button = QPushButton(label)
            button.clicked.connect(handler)
            toolbar_layout.addWidget(button)
        layout.addLayout(toolbar_layout)

        self.table = QTableWidget()
        self.table.setColumnCount(5)
        self.table.setHorizontalHeaderLabels(["ID", "Title", "Username", "Password", "Notes"])
        self.table.setAlternatingRowColors(True)
        self.table.setSelectionBehavior(QAbstractItemView.SelectRows)
        self.table.setSelectionMode(QAbstractItemView.SingleSelection)
        self.table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.table.verticalHeader().setVisible(False)
        self.table.horizontalHeader().setStretchLastSection(True)
        self.table.setColumnWidth(0, 50)
        self.table.setColumnWidth(1, 200)
        self.table.setColumnWidth(2, 200)
        self.table.setColumnWidth(3, 150)
        self.table.doubleClicked.connect(self.modify_entry)
        layout.addWidget(self.table)

        self.count_label = QLabel("Total Passwords: 0")
        self.count_label.setStyleSheet("padding-right: 10px;")
        self.statusBar().addPermanentWidget(self.count_label)
        self.statusBar().showMessage("Vault unlocked")

    def load_entries(self):
        """Redraw the table from the session."""
        self.table.setRowCount(0)
        for index, title, username, masked, notes in self.session.masked_rows():
            row = self.table.rowCount()
            self.table.insertRow(row)
            self.table.setItem(row, 0, QTableWidgetItem(str(index)))
            self.table.setItem(row, 1, QTableWidgetItem(title))
            self.table.setItem(row, 2, QTableWidgetItem(username))
            self.table.setItem(row, 3, QTableWidgetItem(masked))
            preview = notes[:config.NOTES_PREVIEW_LENGTH] + "..." if len(notes) > config.NOTES_PREVIEW_LENGTH else notes
            self.table.setItem(row, 4, QTableWidgetItem(preview))
        self.count_label.setText(f"Total Passwords: {len(self.session)}")
        self.update_title_marker()

    def update_title_marker(self):
        title = self.windowTitle().rstrip(" *")
        self.setWindowTitle(f"{title} *" if self.session.is_dirty else title)

    def _selected_index(self) -> Optional[int]:
        row = self.table.currentRow()
        if row < 0:
            QMessageBox.information(self, "No Selection", "Select an entry first.")
            return None
        return row

    def add_entry(self):
        """Add a new password entry."""
        dialog = PasswordEntryDialog(parent=self)
        if dialog.exec_():
            self.session.add(**dialog.get_values())
            self.load_entries()
            self.statusBar().showMessage("Entry added", 2000)

    def remove_entry(self):
        index = self._selected_index()
        if index is None:
            return
        reply = QMessageBox.question(
            self, "Confirm Remove",
            "Are you sure you want to remove this entry?",
            QMessageBox.Yes | QMessageBox.No
        )
        if reply != QMessageBox.Yes:
            return
        try:
            self.session.remove(index)
        except IndexOutOfRangeError as e:
            QMessageBox.warning(self, "Error", str(e))
            return
        self.load_entries()
        self.statusBar().showMessage("Entry removed", 2000)

    def modify_entry(self):
        index = self._selected_index()
        if index is None:
            return
        try:
            entry = self.session.get(index)
        except IndexOutOfRangeError as e:
            QMessageBox.warning(self, "Error", str(e))
            return
        dialog = PasswordEntryDialog(entry, parent=self)
        if dialog.exec_():
            self.session.modify(index, **dialog.get_values())
            self.load_entries()
            self.statusBar().showMessage("Entry modified", 2000)

    def show_password(self):
        index = self._selected_index()
        if index is None:
            return
        try:
            password = self.session.reveal_password(index)
        except IndexOutOfRangeError as e:
            QMessageBox.warning(self, "Error", str(e))
            return
        box = QMessageBox(QMessageBox.Information, "Password", password, QMessageBox.Ok, self)
        box.setTextInteractionFlags(Qt.TextSelectableByMouse)
        box.exec_()

    def copy_password(self):
        """Copy password to clipboard with auto-clear."""
        index = self._selected_index()
        if index is None:
            return
        try:
            password = self.session.copy_password(index)
        except IndexOutOfRangeError as e:
            QMessageBox.warning(self, "Error", str(e))
            return
        QApplication.clipboard().setText(password)
        self.clipboard_timer.start(config.CLIPBOARD_CLEAR_TIMEOUT_DEFAULT)
        self.statusBar().showMessage(
            f"Password copied to clipboard (auto-clear in {config.CLIPBOARD_CLEAR_TIMEOUT_DEFAULT_SECONDS}s)", 2000
        )

    def clear_clipboard(self):
        """Clear the clipboard."""
        QApplication.clipboard().clear()
        self.statusBar().showMessage("Clipboard cleared", 2000)

    def save_vault(self):
        try:
            self.session.save()
        except VaultError as e:
            QMessageBox.critical(self, "Save Failed", str(e))
            return
        self.update_title_marker()
        self.statusBar().showMessage("Vault saved", 2000)

    def export_csv(self):
        """Export passwords to CSV file."""
        reply = QMessageBox.warning(
            self, "Export Warning",
            "This will export all passwords in PLAIN TEXT.\n\n"
            "The exported file will NOT be encrypted.\n"
            "Anyone with access to this file can see all passwords.\n\n"
            "Are you sure you want to continue?",
            QMessageBox.Yes | QMessageBox.No,
            QMessageBox.No
        )
        if reply != QMessageBox.Yes:
            return

        filename, _ = QFileDialog.getSaveFileName(self, "Export to CSV", "passwords.csv", "CSV Files (*.csv)")
        if not filename:
            return
        try:
            count = export_csv(self.session.entries, filename)
        except VaultIOError as e:
            QMessageBox.critical(self, "Export Error", f"Failed to export CSV: {e}")
            return
        QMessageBox.information(
            self, "Export Complete",
            f"Exported {count} entries to {filename}\n\n"
            "Remember to delete this file after use!"
        )

    def close_vault(self):
        """Abandon the session and go back to the start screen."""
        self.return_to_start_screen.emit()
        self.close()

    def _handle_exit_action(self):
        """Handle the exit action, emitting a signal to terminate the application."""
        self.exit_application.emit()
        self.close()

    def closeEvent(self, event):
        """Drop the session; unsaved changes are discarded."""
        self.clipboard_timer.stop()
        clipboard = QApplication.clipboard()
        if clipboard.text():
            clipboard.clear()
        self.session.abandon()
        event.accept()
