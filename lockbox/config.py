"""
Configuration constants for the Lockbox application.
"""

from lockbox import __version__

# Application Metadata
APP_VERSION = __version__  # Use: Current version of the application. Type: str. Range: Semantic versioning string.
APP_NAME = "Lockbox Password Manager"  # Use: Full name of the application. Type: str. Range: Any valid string.
APP_TITLE_PREFIX = f"{APP_NAME} v{APP_VERSION}"  # Use: Prefix for window titles. Type: str (f-string). Range: Derived from APP_NAME and APP_VERSION.

# Security Settings
KEY_SIZE = 32  # Use: Size of the derived encryption key in bytes (SHA-256 digest length). Type: int. Range: Fixed at 32.
AES_GCM_NONCE = bytes(12)  # Use: Nonce for every AES-256-GCM operation. Type: bytes. Range: Fixed 12 zero bytes, required to read existing vaults.
AES_GCM_TAG_SIZE = 16  # Use: Length of the GCM authentication tag appended to the ciphertext. Type: int. Range: Fixed at 16.
SALSA20_NONCE = bytes(8)  # Use: Nonce for every Salsa20 operation. Type: bytes. Range: Fixed 8 zero bytes.
CHACHA20_NONCE = bytes(12)  # Use: IETF ChaCha20 nonce for every operation. Type: bytes. Range: Fixed 12 zero bytes.
CHACHA20_INITIAL_COUNTER = 0  # Use: Block counter the ChaCha20 keystream starts at. Type: int. Range: Fixed at 0.
MAX_LOGIN_ATTEMPTS = 5  # Use: Failed unlock attempts allowed before the login dialog returns to the start screen. Type: int. Range: Positive integer.

# Keyfile Settings
KEYFILE_SIZES = [1024, 2048, 4096]  # Use: Keyfile sizes in bytes offered when creating a keyfile vault. Type: list[int]. Range: Positive integers.
KEYFILE_DEFAULT_SIZE = 2048  # Use: Preselected keyfile size. Type: int. Range: One of KEYFILE_SIZES.
KEYFILE_EXTENSION = ".key"  # Use: Default extension suggested for new keyfiles. Type: str. Range: Any file extension.

# Cipher Settings
CIPHER_NAMES = ["aes256", "salsa20", "chacha20"]  # Use: Canonical cipher names accepted on the command line. Type: list[str]. Range: Fixed.
CIPHER_LABELS = {  # Use: Human readable labels shown in cipher selectors. Type: dict[str, str]. Range: One entry per CIPHER_NAMES item.
    "aes256": "AES256 GCM",
    "salsa20": "Salsa20",
    "chacha20": "ChaCha20",
}
DEFAULT_CIPHER = "aes256"  # Use: Cipher preselected when creating a vault. Type: str. Range: One of CIPHER_NAMES.

# Export Settings
EXPORT_FORMATS = ["csv"]  # Use: Supported plain text export formats. Type: list[str]. Range: Fixed.

# UI Settings
CLIPBOARD_CLEAR_TIMEOUT_DEFAULT_SECONDS = 30  # Use: Seconds after which a copied password is cleared from the clipboard. Type: int. Range: Positive integer.
CLIPBOARD_CLEAR_TIMEOUT_DEFAULT = CLIPBOARD_CLEAR_TIMEOUT_DEFAULT_SECONDS * 1000  # Use: Same timeout in milliseconds for QTimer. Type: int. Range: Derived value.
TABLE_PASSWORD_MASK_CHAR = "*"  # Use: Character repeated once per password character in the entry table. Type: str. Range: Single character.
NOTES_PREVIEW_LENGTH = 50  # Use: Number of note characters shown in the entry table before truncation. Type: int. Range: Positive integer.
APP_STYLE = 'Fusion'  # Use: PyQt5 application style. Type: str. Range: Valid PyQt5 style names.

# Vault Management Settings
MAX_RECENT_VAULTS = 10  # Use: Maximum number of recently opened vault paths to remember. Type: int. Range: Positive integer.

# Application State Machine States
STATE_STARTUP = "STARTUP"  # Use: Vault selection dialog is shown. Type: str.
STATE_LOGIN = "LOGIN"  # Use: Master secret prompt is shown. Type: str.
STATE_MAIN_WINDOW = "MAIN_WINDOW"  # Use: Vault is unlocked and the main window is shown. Type: str.
STATE_EXIT = "EXIT"  # Use: Application is terminating. Type: str.

# File and Directory Names
CONFIG_DIR_NAME = ".lockbox"  # Use: Directory within the user's home holding Lockbox state. Type: str. Range: Any valid directory name.
RECENT_VAULTS_FILE = "recent_vaults.txt"  # Use: File listing recently opened vaults and their cipher. Type: str. Range: Any valid filename.
DEFAULT_VAULT_FILE = "vault.kmh"  # Use: Default filename suggested for a new vault. Type: str. Range: Any valid filename.
VAULT_FILE_FILTER = "Lockbox Vault Files (*.kmh);;All Files (*)"  # Use: QFileDialog filter for vault files. Type: str.

# Logging
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'  # Use: Format passed to logging.basicConfig. Type: str.
