"""
Lockbox Password Manager

A local, single-file encrypted credential vault. The vault file holds no
header: the cipher suite used to write it must be supplied again on every
open, together with the master password or keyfile.

SECURITY NOTICE:
Vault files are encrypted under a key derived by a single unsalted SHA-256
pass and a fixed all-zero nonce. These choices are kept for compatibility with
existing vault files; do not rely on this tool against a motivated attacker
with access to the vault file.
"""

__version__ = "0.4.0"
