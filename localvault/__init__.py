"""
LocalVault - Single-User Local Credential Vault

A master passphrase unlocks a symmetric key that protects a list of titled
secrets stored in one JSON file.

Key Features:
- Local only: the key never leaves the process, nothing touches the network
- Strong crypto: scrypt + AES-256-GCM with per-entry associated data
- Portable: backups have the same shape as the vault and can be imported
  into another vault (entries are re-encrypted, never copied)

Components:
- crypto.py: Key derivation, entry encryption, password generation
- records.py: Vault record model and validation
- store.py: JSON persistence with atomic replace
- vault.py: Vault session (setup/unlock/lock, entry CRUD, export)
- importer.py: Cross-vault import
- config.py: Paths and logging setup

Usage:
    localvault          # interactive menu (see localvault_main.py)
"""

from .errors import (
    AuthenticationFailure,
    EntryNotFoundError,
    InvalidFileError,
    KdfFailure,
    UnlockRequiredError,
    VaultError,
    WeakPassphraseError,
    WrongPassphraseError,
)
from .importer import ImportResult, import_vault, import_vault_file
from .vault import Vault, VaultState, VaultStatus

__version__ = "1.0.0"

__all__ = [
    "Vault",
    "VaultState",
    "VaultStatus",
    "ImportResult",
    "import_vault",
    "import_vault_file",
    "VaultError",
    "WeakPassphraseError",
    "UnlockRequiredError",
    "WrongPassphraseError",
    "InvalidFileError",
    "EntryNotFoundError",
    "KdfFailure",
    "AuthenticationFailure",
]
