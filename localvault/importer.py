"""
LocalVault - Cross-Vault Import

Merges another vault file (an exported backup, or a vault from another
machine) into the unlocked local vault:

    1. Strictly validate the foreign record (before any key derivation)
    2. Derive the foreign key and verify it against the foreign master hash
    3. Decrypt every foreign secret under the foreign key
    4. Re-encrypt each secret under the local key with a NEW entry id
    5. Append everything and save once

The merge is all-or-nothing: if any foreign secret fails to decrypt, no
entries are added. Imported copies never depend on the foreign key, and
foreign ids never reach the local file.
"""

import logging
from dataclasses import dataclass
from typing import Any, List

from . import crypto
from .errors import (
    AuthenticationFailure,
    InvalidFileError,
    KdfFailure,
    UnlockRequiredError,
    WrongPassphraseError,
)
from .records import Invalid, VaultRecord, parse_vault_record
from .store import FileBackend, decode_json
from .vault import Vault

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportResult:
    imported_count: int


@dataclass(frozen=True)
class DecryptedEntry:
    """A foreign entry after decryption, before re-encryption."""

    title: str
    note: str
    created_at: str
    updated_at: str
    secret: str


def _verified_foreign_key(foreign: VaultRecord, passphrase: str) -> bytes:
    master = foreign.master
    try:
        key = crypto.derive_key(passphrase, master.salt, master.params)
    except KdfFailure as exc:
        raise InvalidFileError(f"foreign vault has unusable KDF parameters: {exc}") from exc

    if not crypto.verify_master_hash(master.hash, key):
        raise WrongPassphraseError("passphrase does not unlock the imported vault")
    return key


def _decrypt_all(foreign: VaultRecord, key: bytes) -> List[DecryptedEntry]:
    decrypted = []
    for entry in foreign.entries:
        if entry.envelope.associated_data != entry.id:
            raise InvalidFileError("imported vault contains an envelope bound to another entry")
        try:
            secret = crypto.decrypt_secret(key, entry.envelope)
        except AuthenticationFailure as exc:
            raise InvalidFileError("imported vault contains an entry that failed authentication") from exc
        decrypted.append(DecryptedEntry(
            title=entry.title,
            note=entry.note,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
            secret=secret,
        ))
    return decrypted


def import_vault(vault: Vault, foreign: Any, passphrase: str) -> ImportResult:
    """
    Import every entry of a foreign vault document into an unlocked vault.

    Args:
        vault: Local vault, must be unlocked
        foreign: Decoded JSON of the foreign vault file
        passphrase: Master passphrase of the foreign vault

    Returns:
        ImportResult with the number of entries added

    Raises:
        UnlockRequiredError: local vault is locked
        InvalidFileError: malformed foreign file, or a foreign entry failed
            to decrypt (nothing is imported)
        WrongPassphraseError: passphrase does not match the foreign hash
    """
    if not vault.is_unlocked:
        raise UnlockRequiredError("Vault is locked. Call unlock() first.")

    parsed = parse_vault_record(foreign, strict=True)
    if isinstance(parsed, Invalid):
        logger.warning("Import rejected: %s", parsed.reason)
        raise InvalidFileError(parsed.reason)

    if not isinstance(passphrase, str) or not passphrase:
        raise WrongPassphraseError("passphrase does not unlock the imported vault")

    foreign_record = parsed.record
    foreign_key = _verified_foreign_key(foreign_record, passphrase)
    decrypted = _decrypt_all(foreign_record, foreign_key)

    appended = vault.append_entries(decrypted)
    logger.info("Imported %d entries into %s", len(appended), vault.path)
    return ImportResult(imported_count=len(appended))


def import_vault_file(vault: Vault, location: str, passphrase: str, backend=None) -> ImportResult:
    """
    Read a vault file from `location` and import it (see import_vault).

    Raises:
        InvalidFileError: file missing, unreadable or not JSON
    """
    source = backend if backend is not None else FileBackend()
    try:
        data = source.read(location)
    except OSError as exc:
        raise InvalidFileError(f"cannot read {location}: {exc}") from exc
    if data is None:
        raise InvalidFileError(f"no vault file at {location}")
    return import_vault(vault, decode_json(data), passphrase)
