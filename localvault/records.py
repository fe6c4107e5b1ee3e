"""
LocalVault - Vault Record Model

The durable structure of a vault file and the code that converts it to and
from the JSON document written on disk.

File layout (JSON, camelCase keys, binary fields base64):

    {
      "version": "1.0.0",
      "updatedAt": "2024-05-01T10:00:00.000Z",
      "master": {"algorithm": "scrypt", "salt": ..., "hash": ...,
                 "params": {"N": 16384, "r": 8, "p": 1, "keyLen": 32, "maxmem": 67108864}},
      "entries": [{"id": ..., "title": ..., "note": ..., "createdAt": ..., "updatedAt": ...,
                   "passwordCrypto": {"version": "enc-v1", "algorithm": "aes-256-gcm",
                                      "iv": ..., "ciphertext": ..., "tag": ..., "aad": ...}}]
    }

Parsing never raises: parse_vault_record() returns Valid(record) or
Invalid(reason) so callers decide, at one site, what a bad file means.
"""

import base64
import binascii
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from . import crypto
from .config import FORMAT_VERSION
from .crypto import KdfParams, SecretEnvelope


def now_iso() -> str:
    """Current UTC time as ISO-8601 with milliseconds and a 'Z' suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# =============================================================================
# Record types
# =============================================================================

@dataclass(frozen=True)
class MasterCredential:
    salt: bytes
    hash: bytes
    params: KdfParams
    algorithm: str = crypto.KDF_ALGORITHM


@dataclass
class EntryRecord:
    id: str
    title: str
    note: str
    created_at: str
    updated_at: str
    envelope: SecretEnvelope


@dataclass(frozen=True)
class EntryMeta:
    """Entry as shown to callers: everything except the envelope."""

    id: str
    title: str
    note: str
    created_at: str
    updated_at: str

    @classmethod
    def from_record(cls, entry: EntryRecord) -> "EntryMeta":
        return cls(entry.id, entry.title, entry.note, entry.created_at, entry.updated_at)


@dataclass
class VaultRecord:
    updated_at: str
    master: Optional[MasterCredential] = None
    entries: List[EntryRecord] = field(default_factory=list)
    version: str = FORMAT_VERSION

    def find(self, entry_id: str) -> Optional[EntryRecord]:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None


def empty_record() -> VaultRecord:
    """Record used before setup has run."""
    return VaultRecord(updated_at=now_iso())


# =============================================================================
# Parse results
# =============================================================================

@dataclass(frozen=True)
class Valid:
    record: VaultRecord


@dataclass(frozen=True)
class Invalid:
    reason: str


ParseResult = Union[Valid, Invalid]


class _Malformed(ValueError):
    pass


def _b64(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def _unb64(value: Any, name: str) -> bytes:
    if not isinstance(value, str):
        raise _Malformed(f"'{name}' must be a base64 string")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise _Malformed(f"'{name}' is not valid base64")


def _require_str(obj: Dict[str, Any], key: str, where: str) -> str:
    value = obj.get(key)
    if not isinstance(value, str):
        raise _Malformed(f"{where}.{key} must be a string")
    return value


def _require_object(value: Any, where: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise _Malformed(f"{where} must be an object")
    return value


def _positive_int(obj: Dict[str, Any], key: str) -> int:
    value = obj.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise _Malformed(f"master.params.{key} must be a positive integer")
    return value


# =============================================================================
# dict -> record
# =============================================================================

def _parse_params(raw: Any) -> KdfParams:
    params = _require_object(raw, "master.params")
    return KdfParams(
        n=_positive_int(params, "N"),
        r=_positive_int(params, "r"),
        p=_positive_int(params, "p"),
        key_length=_positive_int(params, "keyLen"),
        max_memory=_positive_int(params, "maxmem"),
    )


def _parse_master(raw: Any) -> MasterCredential:
    master = _require_object(raw, "master")
    if master.get("algorithm") != crypto.KDF_ALGORITHM:
        raise _Malformed("master.algorithm must be 'scrypt'")
    salt = _unb64(master.get("salt"), "master.salt")
    digest = _unb64(master.get("hash"), "master.hash")
    if not salt or not digest:
        raise _Malformed("master salt and hash must not be empty")
    return MasterCredential(salt=salt, hash=digest, params=_parse_params(master.get("params")))


def _parse_envelope(raw: Any, where: str) -> SecretEnvelope:
    env = _require_object(raw, f"{where}.passwordCrypto")
    if env.get("version") != crypto.ENVELOPE_VERSION:
        raise _Malformed(f"{where}.passwordCrypto.version must be '{crypto.ENVELOPE_VERSION}'")
    if env.get("algorithm") != crypto.AEAD_ALGORITHM:
        raise _Malformed(f"{where}.passwordCrypto.algorithm must be '{crypto.AEAD_ALGORITHM}'")
    return SecretEnvelope(
        nonce=_unb64(env.get("iv"), f"{where}.passwordCrypto.iv"),
        ciphertext=_unb64(env.get("ciphertext"), f"{where}.passwordCrypto.ciphertext"),
        tag=_unb64(env.get("tag"), f"{where}.passwordCrypto.tag"),
        associated_data=_require_str(env, "aad", f"{where}.passwordCrypto"),
    )


def _parse_entry(raw: Any, index: int) -> EntryRecord:
    where = f"entries[{index}]"
    entry = _require_object(raw, where)
    entry_id = _require_str(entry, "id", where)
    if not entry_id:
        raise _Malformed(f"{where}.id must not be empty")
    return EntryRecord(
        id=entry_id,
        title=_require_str(entry, "title", where),
        note=_require_str(entry, "note", where),
        created_at=_require_str(entry, "createdAt", where),
        updated_at=_require_str(entry, "updatedAt", where),
        envelope=_parse_envelope(entry.get("passwordCrypto"), where),
    )


def _parse(raw: Any, strict: bool) -> VaultRecord:
    doc = _require_object(raw, "vault record")

    if "version" in doc or strict:
        if doc.get("version") != FORMAT_VERSION:
            raise _Malformed(f"unsupported format version: {doc.get('version')!r}")

    if "updatedAt" in doc or strict:
        updated_at = _require_str(doc, "updatedAt", "vault record")
    else:
        updated_at = now_iso()

    master_raw = doc.get("master")
    if master_raw is None:
        if strict:
            raise _Malformed("master credential is missing")
        master = None
    else:
        master = _parse_master(master_raw)

    entries_raw = doc.get("entries", None if strict else [])
    if not isinstance(entries_raw, list):
        raise _Malformed("entries must be a list")
    entries = [_parse_entry(item, i) for i, item in enumerate(entries_raw)]

    ids = [entry.id for entry in entries]
    if len(set(ids)) != len(ids):
        raise _Malformed("entry ids are not unique")

    if strict:
        for index, entry in enumerate(entries):
            if entry.envelope.associated_data != entry.id:
                raise _Malformed(f"entries[{index}].passwordCrypto.aad does not match the entry id")

    return VaultRecord(updated_at=updated_at, master=master, entries=entries)


def parse_vault_record(raw: Any, strict: bool = False) -> ParseResult:
    """
    Validate a decoded JSON document and build a VaultRecord.

    Args:
        raw: Decoded JSON (normally a dict)
        strict: Import mode. Requires 'version', 'updatedAt', a master
            credential and an entries list. In local mode a missing
            version defaults to the current one and master may be null.

    Returns:
        Valid(record) or Invalid(reason)
    """
    try:
        return Valid(_parse(raw, strict))
    except _Malformed as exc:
        return Invalid(str(exc))


# =============================================================================
# record -> dict
# =============================================================================

def _params_to_dict(params: KdfParams) -> Dict[str, int]:
    return {
        "N": params.n,
        "r": params.r,
        "p": params.p,
        "keyLen": params.key_length,
        "maxmem": params.max_memory,
    }


def envelope_to_dict(envelope: SecretEnvelope) -> Dict[str, str]:
    return {
        "version": envelope.version,
        "algorithm": envelope.algorithm,
        "iv": _b64(envelope.nonce),
        "ciphertext": _b64(envelope.ciphertext),
        "tag": _b64(envelope.tag),
        "aad": envelope.associated_data,
    }


def record_to_dict(record: VaultRecord) -> Dict[str, Any]:
    master = None
    if record.master is not None:
        master = {
            "algorithm": record.master.algorithm,
            "salt": _b64(record.master.salt),
            "hash": _b64(record.master.hash),
            "params": _params_to_dict(record.master.params),
        }
    return {
        "version": record.version,
        "updatedAt": record.updated_at,
        "master": master,
        "entries": [
            {
                "id": entry.id,
                "title": entry.title,
                "note": entry.note,
                "createdAt": entry.created_at,
                "updatedAt": entry.updated_at,
                "passwordCrypto": envelope_to_dict(entry.envelope),
            }
            for entry in record.entries
        ],
    }
