"""
LocalVault - Vault Session

This file handles:
- The master credential lifecycle (setup, unlock, lock)
- Adding/updating/removing/revealing entries
- Exporting a backup copy of the vault record

State machine:

    NO_MASTER --setup--> UNLOCKED --lock--> LOCKED --unlock--> UNLOCKED

The unlocked key lives only on the Vault instance. Two Vault objects never
share a key, even when they point at the same file.

Every mutation is read-whole-record -> change in memory -> write-whole-record.
Callers must not run two mutations against the same file at once (last
writer wins).
"""

import enum
import logging
from dataclasses import dataclass
from typing import List, Optional

from . import crypto
from .config import MIN_PASSPHRASE_LENGTH
from .crypto import DEFAULT_KDF_PARAMS, KdfParams
from .errors import (
    AuthenticationFailure,
    EntryNotFoundError,
    InvalidFileError,
    UnlockRequiredError,
    WeakPassphraseError,
)
from .records import (
    EntryMeta,
    EntryRecord,
    MasterCredential,
    VaultRecord,
    now_iso,
)
from .store import VaultStore

logger = logging.getLogger(__name__)


class VaultState(enum.Enum):
    NO_MASTER = "no-master"
    LOCKED = "locked"
    UNLOCKED = "unlocked"


@dataclass(frozen=True)
class VaultStatus:
    has_master: bool
    unlocked: bool
    entry_count: int


# =============================================================================
# VAULT CLASS
# =============================================================================

class Vault:
    """
    Main vault class - handles all credential operations.

    Usage:
        # First run
        vault = Vault("vault.json")
        vault.setup("correct horse battery")

        # Later: unlock
        vault = Vault("vault.json")
        if not vault.unlock("correct horse battery"):
            ...

        # Add and read back
        meta = vault.add_entry("bank", "p@ss", note="checking")
        secret = vault.reveal_entry(meta.id)

        # Lock when done
        vault.lock()
    """

    def __init__(self, path: str, backend=None, kdf_params: Optional[KdfParams] = None):
        """
        Args:
            path: Location of the vault record
            backend: Byte backend (defaults to the local filesystem)
            kdf_params: scrypt parameters for setup(); unlock always uses
                the parameters stored with the credential
        """
        self.store = VaultStore(path, backend)
        self.kdf_params = kdf_params or DEFAULT_KDF_PARAMS

        # Key (only present when unlocked)
        self._key: Optional[bytearray] = None

    @property
    def path(self) -> str:
        return self.store.location

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def state(self) -> VaultState:
        if self._key is not None:
            return VaultState.UNLOCKED
        record = self.store.load()
        if record is None or record.master is None:
            return VaultState.NO_MASTER
        return VaultState.LOCKED

    @property
    def is_unlocked(self) -> bool:
        return self._key is not None

    def status(self) -> VaultStatus:
        """Summary for callers that render a lock screen or header."""
        record = self.store.load()
        return VaultStatus(
            has_master=record is not None and record.master is not None,
            unlocked=self.is_unlocked,
            entry_count=len(record.entries) if record else 0,
        )

    # =========================================================================
    # MASTER CREDENTIAL
    # =========================================================================

    def setup(self, passphrase: str) -> bool:
        """
        Create the master credential and unlock the vault.

        Only works once: if a credential already exists nothing is written
        and False is returned.

        Args:
            passphrase: New master passphrase (at least 8 characters)

        Returns:
            True if the credential was created

        Raises:
            WeakPassphraseError: passphrase too short
            KdfFailure: configured kdf_params are unusable
        """
        if not isinstance(passphrase, str) or len(passphrase) < MIN_PASSPHRASE_LENGTH:
            raise WeakPassphraseError(
                f"master passphrase must be at least {MIN_PASSPHRASE_LENGTH} characters"
            )

        existing = self.store.load()
        if existing is not None and existing.master is not None:
            logger.warning("Setup refused: %s already has a master credential", self.path)
            return False

        salt = crypto.create_salt()
        derived = crypto.derive_key(passphrase, salt, self.kdf_params)

        record = VaultRecord(
            updated_at=now_iso(),
            master=MasterCredential(salt=salt, hash=derived, params=self.kdf_params),
            entries=[],
        )
        self.store.save(record)

        self._key = bytearray(derived)
        logger.info("Master credential created for %s", self.path)
        return True

    def unlock(self, passphrase: str) -> bool:
        """
        Unlock with the master passphrase.

        Derives a key with the stored salt and parameters and compares it to
        the stored hash in constant time. On mismatch the vault stays as it
        was (locked, or unlocked with the previous key).

        Returns:
            True on success, False for a wrong passphrase or missing credential

        Raises:
            InvalidFileError: the vault record is unreadable
            KdfFailure: stored parameters are unusable
        """
        if not isinstance(passphrase, str) or not passphrase:
            return False

        record = self.store.load()
        if record is None or record.master is None:
            logger.warning("Unlock refused: no master credential at %s", self.path)
            return False

        master = record.master
        derived = crypto.derive_key(passphrase, master.salt, master.params)
        if not crypto.verify_master_hash(master.hash, derived):
            logger.warning("Unlock failed for %s", self.path)
            return False

        self._wipe_key()
        self._key = bytearray(derived)
        logger.info("Vault unlocked: %s", self.path)
        return True

    def lock(self) -> None:
        """Lock vault and clear the key from memory."""
        was_unlocked = self._key is not None
        self._wipe_key()
        if was_unlocked:
            logger.info("Vault locked: %s", self.path)

    # =========================================================================
    # ENTRIES
    # =========================================================================

    def list_entries(self) -> List[EntryMeta]:
        """List entries (metadata only), newest first."""
        self._require_unlocked()
        record = self._load_existing()
        return [EntryMeta.from_record(entry) for entry in record.entries]

    def add_entry(self, title: str, secret: str, note: str = "") -> EntryMeta:
        """
        Add an entry.

        The secret is encrypted under the vault key with the new entry's id
        as associated data, then the entry is put at the front of the list.

        Raises:
            UnlockRequiredError: vault is locked
            ValueError: empty title or empty secret
        """
        key = self._require_unlocked()
        title = (title or "").strip()
        if not title:
            raise ValueError("Title is required")
        if not secret:
            raise ValueError("Secret is required")

        record = self._load_existing()
        now = now_iso()
        entry_id = crypto.new_entry_id()
        entry = EntryRecord(
            id=entry_id,
            title=title,
            note=(note or "").strip(),
            created_at=now,
            updated_at=now,
            envelope=crypto.encrypt_secret(key, secret, entry_id),
        )

        record.entries.insert(0, entry)
        record.updated_at = now
        self.store.save(record)
        logger.info("Entry added (%d total)", len(record.entries))
        return EntryMeta.from_record(entry)

    def update_entry(self, entry_id: str, title: str, note: str = "",
                     secret: Optional[str] = None) -> EntryMeta:
        """
        Update title/note and optionally the secret.

        An empty or missing secret keeps the existing envelope.

        Raises:
            UnlockRequiredError: vault is locked
            EntryNotFoundError: no entry with this id
            ValueError: empty title
        """
        key = self._require_unlocked()
        title = (title or "").strip()
        if not title:
            raise ValueError("Title is required")

        record = self._load_existing()
        entry = record.find(entry_id)
        if entry is None:
            raise EntryNotFoundError(f"Entry {entry_id} not found")

        now = now_iso()
        entry.title = title
        entry.note = (note or "").strip()
        entry.updated_at = now
        if secret:
            entry.envelope = crypto.encrypt_secret(key, secret, entry.id)

        record.updated_at = now
        self.store.save(record)
        return EntryMeta.from_record(entry)

    def remove_entry(self, entry_id: str) -> bool:
        """
        Delete an entry.

        Returns:
            True if it was removed, False if no entry had this id
        """
        self._require_unlocked()
        record = self._load_existing()
        remaining = [entry for entry in record.entries if entry.id != entry_id]
        if len(remaining) == len(record.entries):
            return False

        record.entries = remaining
        record.updated_at = now_iso()
        self.store.save(record)
        logger.info("Entry removed (%d left)", len(remaining))
        return True

    def reveal_entry(self, entry_id: str) -> str:
        """
        Decrypt one secret on demand. Nothing is cached.

        Raises:
            UnlockRequiredError: vault is locked
            EntryNotFoundError: no entry with this id
            AuthenticationFailure: envelope was tampered with or re-linked
        """
        key = self._require_unlocked()
        record = self._load_existing()
        entry = record.find(entry_id)
        if entry is None:
            raise EntryNotFoundError(f"Entry {entry_id} not found")
        # The envelope must be bound to this entry, not copied from another
        if entry.envelope.associated_data != entry.id:
            raise AuthenticationFailure("secret could not be authenticated")
        return crypto.decrypt_secret(key, entry.envelope)

    def append_entries(self, items) -> List[EntryMeta]:
        """
        Encrypt already-decrypted entries under this vault's key and append
        them in one save.

        Each item needs title, note, created_at, updated_at and secret
        attributes (see importer.DecryptedEntry). Every item gets a freshly
        minted id, which is also its associated data.

        Returns:
            Metadata of the appended entries, in input order
        """
        key = self._require_unlocked()
        record = self._load_existing()

        taken = {entry.id for entry in record.entries}
        appended = []
        for item in items:
            entry_id = crypto.new_entry_id()
            while entry_id in taken:
                entry_id = crypto.new_entry_id()
            taken.add(entry_id)
            appended.append(EntryRecord(
                id=entry_id,
                title=item.title,
                note=item.note,
                created_at=item.created_at,
                updated_at=item.updated_at,
                envelope=crypto.encrypt_secret(key, item.secret, entry_id),
            ))

        if appended:
            record.entries.extend(appended)
            record.updated_at = now_iso()
            self.store.save(record)
        return [EntryMeta.from_record(entry) for entry in appended]

    # =========================================================================
    # BACKUP
    # =========================================================================

    def export_backup(self, destination: str, backend=None) -> int:
        """
        Copy the current vault record to another location.

        The backup has the same shape as the vault file and can be fed to
        the importer (or used as a vault directly).

        Returns:
            Number of entries exported
        """
        self._require_unlocked()
        record = self._load_existing()
        target = VaultStore(destination, backend if backend is not None else self.store.backend)
        target.save(record)
        logger.info("Exported %d entries to %s", len(record.entries), destination)
        return len(record.entries)

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _require_unlocked(self) -> bytes:
        """Return the key, or raise if the vault is not unlocked."""
        if self._key is None:
            raise UnlockRequiredError("Vault is locked. Call unlock() first.")
        return bytes(self._key)

    def _load_existing(self) -> VaultRecord:
        record = self.store.load()
        if record is None or record.master is None:
            raise InvalidFileError(f"Vault record at {self.path} is missing its master credential")
        return record

    def _wipe_key(self) -> None:
        if self._key is not None:
            for i in range(len(self._key)):
                self._key[i] = 0
        self._key = None
