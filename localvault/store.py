"""
LocalVault - Vault Record Store

Reads and writes the whole vault record as pretty-printed JSON through a
byte backend. The store keeps no cryptographic material and no cache:
every load() goes back to the backend.

Backends implement two calls:
    read(location)  -> bytes or None (None = nothing stored yet)
    write(location, data) -> None     (full replace)
"""

import json
import logging
import os
import tempfile
from typing import Dict, Optional

from .errors import InvalidFileError
from .records import Invalid, VaultRecord, parse_vault_record, record_to_dict

logger = logging.getLogger(__name__)


# =============================================================================
# Backends
# =============================================================================

class FileBackend:
    """Local filesystem backend with atomic full-file replace."""

    def read(self, location: str) -> Optional[bytes]:
        if not os.path.exists(location):
            return None
        with open(location, "rb") as f:
            return f.read()

    def write(self, location: str, data: bytes) -> None:
        directory = os.path.dirname(os.path.abspath(location))
        os.makedirs(directory, exist_ok=True)

        # Write beside the target, then swap it in with one rename.
        fd, tmp_path = tempfile.mkstemp(prefix=".vault-", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, location)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


class MemoryBackend:
    """In-process backend; handy for tests and throwaway vaults."""

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}

    def read(self, location: str) -> Optional[bytes]:
        return self.blobs.get(location)

    def write(self, location: str, data: bytes) -> None:
        self.blobs[location] = bytes(data)


# =============================================================================
# Encoding
# =============================================================================

def encode_record(record: VaultRecord) -> bytes:
    """Serialize a record to UTF-8 JSON (2-space indent, human-diffable)."""
    return json.dumps(record_to_dict(record), indent=2, ensure_ascii=False).encode("utf-8")


def decode_json(data: bytes) -> object:
    """
    Decode raw bytes into a JSON document.

    Raises:
        InvalidFileError: not UTF-8 or not JSON
    """
    try:
        return json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InvalidFileError(f"vault file is not valid JSON: {exc}") from exc


# =============================================================================
# Store
# =============================================================================

class VaultStore:
    """
    Load/save a VaultRecord at one location.

    Usage:
        store = VaultStore("~/.localvault/vault.json")
        record = store.load()          # None on first run
        store.save(record)             # full replace
    """

    def __init__(self, location: str, backend=None):
        self.location = location
        self.backend = backend if backend is not None else FileBackend()

    def exists(self) -> bool:
        return self.backend.read(self.location) is not None

    def load(self) -> Optional[VaultRecord]:
        """
        Read the record.

        Returns:
            VaultRecord, or None if nothing has been stored yet

        Raises:
            InvalidFileError: bytes exist but are not a valid vault record
        """
        data = self.backend.read(self.location)
        if data is None:
            return None

        result = parse_vault_record(decode_json(data))
        if isinstance(result, Invalid):
            logger.error("Vault record at %s is invalid: %s", self.location, result.reason)
            raise InvalidFileError(result.reason)
        return result.record

    def save(self, record: VaultRecord) -> None:
        """Write the full record, replacing whatever was there."""
        self.backend.write(self.location, encode_record(record))
        logger.debug("Saved vault record (%d entries) to %s", len(record.entries), self.location)
