import platform
import os
import stat
import logging

logger = logging.getLogger(__name__)

if platform.system() == "Windows":
    try:
        import win32security
        import win32api
        import win32con
        import win32file
        WINDOWS_SECURITY_AVAILABLE = True
    except ImportError:
        logger.warning("pywin32 not installed, vault and keyfile permissions will not be restricted.")
        WINDOWS_SECURITY_AVAILABLE = False
else:
    WINDOWS_SECURITY_AVAILABLE = False


def restrict_to_owner(filepath: str) -> bool:
    """
    Make a file readable and writable by its owner only.

    Returns:
        True if the permissions were applied, False otherwise
    """
    if platform.system() == "Windows":
        return _set_windows_owner_acl(filepath)
    try:
        os.chmod(filepath, stat.S_IRUSR | stat.S_IWUSR)  # 600
    except OSError as e:
        logger.warning(f"Could not chmod {filepath} to 600: {e}")
        return False
    return True


def _set_windows_owner_acl(filepath: str) -> bool:
    """Replace the file's DACL with a single ACE for the current user."""
    if not WINDOWS_SECURITY_AVAILABLE:
        logger.warning(f"Skipping ACL hardening for {filepath}: pywin32 not available.")
        return False

    try:
        user_sid, _, _ = win32security.LookupAccountName(None, win32api.GetUserName())

        dacl = win32security.ACL()
        dacl.AddAccessAllowedAce(
            win32security.ACL_REVISION,
            win32con.GENERIC_READ | win32con.GENERIC_WRITE,
            user_sid
        )

        handle = win32file.CreateFile(
            filepath,
            win32con.WRITE_DAC,
            win32file.FILE_SHARE_READ | win32file.FILE_SHARE_WRITE,
            None,
            win32con.OPEN_EXISTING,
            win32con.FILE_ATTRIBUTE_NORMAL,
            None
        )
        try:
            win32security.SetSecurityInfo(
                handle,
                win32security.SE_FILE_OBJECT,
                win32security.DACL_SECURITY_INFORMATION | win32security.PROTECTED_DACL_SECURITY_INFORMATION,
                None,
                None,
                dacl,
                None
            )
        finally:
            win32file.CloseHandle(handle)
    except win32api.error as e:
        logger.warning(f"Failed to restrict Windows ACL on {filepath}: {e}")
        return False

    logger.debug(f"Restricted {filepath} to the current user.")
    return True
