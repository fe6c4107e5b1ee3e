"""Tests for the vault record model, validation and JSON store."""

import json

import pytest

from localvault import crypto
from localvault.errors import InvalidFileError
from localvault.records import (
    EntryRecord,
    Invalid,
    MasterCredential,
    Valid,
    VaultRecord,
    parse_vault_record,
    record_to_dict,
)
from localvault.store import FileBackend, MemoryBackend, VaultStore, encode_record


def sample_record():
    key = b"k" * 32
    envelope = crypto.encrypt_secret(key, "p@ss", "abc123")
    return VaultRecord(
        updated_at="2024-05-01T10:00:00.000Z",
        master=MasterCredential(salt=b"s" * 16, hash=key, params=crypto.KdfParams(n=1024)),
        entries=[EntryRecord("abc123", "bank", "", "2024-05-01T10:00:00.000Z",
                             "2024-05-01T10:00:00.000Z", envelope)],
    )


# =============================================================================
# Parsing
# =============================================================================

def test_round_trip_through_dict():
    record = sample_record()
    result = parse_vault_record(record_to_dict(record), strict=True)
    assert isinstance(result, Valid)
    assert result.record == record


def test_missing_version_defaults_in_local_mode():
    doc = record_to_dict(sample_record())
    del doc["version"]

    result = parse_vault_record(doc)
    assert isinstance(result, Valid)
    assert result.record.version == "1.0.0"

    assert isinstance(parse_vault_record(doc, strict=True), Invalid)


def test_null_master_only_allowed_locally():
    doc = {"version": "1.0.0", "updatedAt": "2024-05-01T10:00:00.000Z", "master": None, "entries": []}
    assert isinstance(parse_vault_record(doc), Valid)

    result = parse_vault_record(doc, strict=True)
    assert isinstance(result, Invalid)
    assert "master" in result.reason


def corrupt(doc, path, value):
    target = doc
    for key in path[:-1]:
        target = target[key]
    if value is KeyError:
        del target[path[-1]]
    else:
        target[path[-1]] = value
    return doc


@pytest.mark.parametrize("path,value", [
    (("version",), "2.0.0"),
    (("entries",), {}),
    (("master", "algorithm"), "argon2id"),
    (("master", "salt"), 42),
    (("master", "hash"), "not base64!!"),
    (("master", "params", "N"), 0),
    (("master", "params", "keyLen"), "32"),
    (("master", "params", "maxmem"), KeyError),
    (("entries", 0, "id"), None),
    (("entries", 0, "title"), 7),
    (("entries", 0, "passwordCrypto"), KeyError),
    (("entries", 0, "passwordCrypto", "version"), "enc-v2"),
    (("entries", 0, "passwordCrypto", "algorithm"), "chacha20"),
    (("entries", 0, "passwordCrypto", "tag"), KeyError),
    (("entries", 0, "passwordCrypto", "iv"), ["x"]),
    (("entries", 0, "passwordCrypto", "aad"), None),
])
def test_structural_errors_are_reported(path, value):
    doc = corrupt(record_to_dict(sample_record()), path, value)
    assert isinstance(parse_vault_record(doc), Invalid)
    assert isinstance(parse_vault_record(doc, strict=True), Invalid)


def test_duplicate_ids_are_invalid():
    doc = record_to_dict(sample_record())
    doc["entries"].append(dict(doc["entries"][0]))
    result = parse_vault_record(doc)
    assert isinstance(result, Invalid)
    assert "unique" in result.reason


def test_non_object_is_invalid():
    assert isinstance(parse_vault_record([]), Invalid)
    assert isinstance(parse_vault_record("vault"), Invalid)


# =============================================================================
# Store
# =============================================================================

def test_load_returns_none_on_first_run():
    store = VaultStore("vault.json", MemoryBackend())
    assert store.load() is None
    assert not store.exists()


def test_save_then_load():
    backend = MemoryBackend()
    store = VaultStore("vault.json", backend)
    record = sample_record()

    store.save(record)
    assert store.load() == record

    text = backend.blobs["vault.json"].decode("utf-8")
    assert text.startswith("{\n  \"version\"")
    assert "p@ss" not in text


def test_load_rereads_backend():
    backend = MemoryBackend()
    store = VaultStore("vault.json", backend)
    store.save(sample_record())
    store.load()

    doc = json.loads(backend.blobs["vault.json"])
    doc["entries"] = []
    backend.write("vault.json", json.dumps(doc).encode("utf-8"))
    assert store.load().entries == []


@pytest.mark.parametrize("data", [b"", b"not json", b"\xff\xfe", b"[1, 2]", b'{"entries": 5}'])
def test_load_surfaces_invalid_files(data):
    backend = MemoryBackend()
    backend.write("vault.json", data)
    with pytest.raises(InvalidFileError):
        VaultStore("vault.json", backend).load()


def test_file_backend_creates_directories(tmp_path):
    location = tmp_path / "a" / "b" / "vault.json"
    store = VaultStore(str(location))
    assert store.load() is None

    record = sample_record()
    store.save(record)
    assert location.exists()
    assert json.loads(location.read_text(encoding="utf-8")) == record_to_dict(record)
    assert [p.name for p in location.parent.iterdir()] == ["vault.json"]


def test_file_backend_replaces_whole_file(tmp_path):
    location = str(tmp_path / "vault.json")
    backend = FileBackend()
    backend.write(location, b"x" * 10000)
    encoded = encode_record(sample_record())
    backend.write(location, encoded)
    assert backend.read(location) == encoded


# =============================================================================
# Config
# =============================================================================

def test_vault_path_resolution(monkeypatch, tmp_path):
    from localvault import config

    monkeypatch.delenv(config.ENV_VAULT_PATH, raising=False)
    assert config.resolve_vault_path() == config.DEFAULT_VAULT_PATH

    monkeypatch.setenv(config.ENV_VAULT_PATH, str(tmp_path / "env.json"))
    assert config.resolve_vault_path() == str(tmp_path / "env.json")
    assert config.resolve_vault_path(str(tmp_path / "cli.json")) == str(tmp_path / "cli.json")


def test_log_level_resolution(monkeypatch):
    import logging

    from localvault import config

    monkeypatch.delenv(config.ENV_LOG_LEVEL, raising=False)
    assert config.resolve_log_level() == logging.WARNING
    monkeypatch.setenv(config.ENV_LOG_LEVEL, "debug")
    assert config.resolve_log_level() == logging.DEBUG
    monkeypatch.setenv(config.ENV_LOG_LEVEL, "chatty")
    assert config.resolve_log_level() == logging.WARNING
