"""
LocalVault - Crypto Self-Tests

Run with: pytest

Proves the primitives behave and that common attacks fail:
- Wrong key / tampered nonce, ciphertext, tag or AD (fails)
- Envelope moved to another entry id (fails)
- Malformed scrypt parameters (rejected)
"""

import os

import pytest

from localvault import crypto
from localvault.crypto import KdfParams
from localvault.errors import AuthenticationFailure, KdfFailure

FAST = KdfParams(n=1024, r=8, p=1)


def flip(data: bytes, index: int = 0) -> bytes:
    tampered = bytearray(data)
    tampered[index] ^= 1
    return bytes(tampered)


# =============================================================================
# KDF
# =============================================================================

def test_kdf_is_deterministic():
    salt = crypto.create_salt()

    key1 = crypto.derive_key("test_password", salt, FAST)
    key2 = crypto.derive_key("test_password", salt, FAST)

    assert key1 == key2, "KDF should be deterministic"
    assert len(key1) == 32

    key3 = crypto.derive_key("test_passwore", salt, FAST)
    assert key1 != key3, "Different passphrases should give different keys"

    key4 = crypto.derive_key("test_password", crypto.create_salt(), FAST)
    assert key1 != key4, "Different salts should give different keys"


def test_kdf_respects_key_length():
    key = crypto.derive_key("pass", os.urandom(16), KdfParams(n=1024, key_length=64))
    assert len(key) == 64


def test_kdf_default_params():
    assert crypto.DEFAULT_KDF_PARAMS == KdfParams(
        n=16384, r=8, p=1, key_length=32, max_memory=64 * 1024 * 1024
    )
    key = crypto.derive_key("correcthorse1", crypto.create_salt())
    assert len(key) == 32


@pytest.mark.parametrize("params", [
    KdfParams(n=0),
    KdfParams(n=-1024),
    KdfParams(n=1000),
    KdfParams(n=1024, r=0),
    KdfParams(n=1024, p=0),
    KdfParams(n=1024, key_length=0),
    KdfParams(n=1024, max_memory=0),
    KdfParams(n=1024, r=True),
    KdfParams(n=1024.0),
])
def test_kdf_rejects_malformed_params(params):
    with pytest.raises(KdfFailure):
        crypto.derive_key("pass", os.urandom(16), params)


def test_kdf_rejects_params_above_memory_limit():
    # 128 * 8 * (1024 + 2) + 128 * 8 > 1 MiB
    params = KdfParams(n=1024, r=8, p=1, max_memory=1024 * 1024)
    with pytest.raises(KdfFailure):
        crypto.derive_key("pass", os.urandom(16), params)


def test_salt_is_random():
    assert len(crypto.create_salt()) == 16
    assert crypto.create_salt() != crypto.create_salt()


def test_verify_master_hash():
    stored = os.urandom(32)
    assert crypto.verify_master_hash(stored, bytes(stored))
    assert not crypto.verify_master_hash(stored, flip(stored, 31))
    assert not crypto.verify_master_hash(stored, stored[:16])


# =============================================================================
# Encryption
# =============================================================================

def test_encryption_round_trip():
    key = os.urandom(32)
    for secret in ["p@ss", "", "日本語のパスワード", "x" * 5000]:
        envelope = crypto.encrypt_secret(key, secret, "entry-123")
        assert crypto.decrypt_secret(key, envelope) == secret


def test_envelope_fields():
    key = os.urandom(32)
    envelope = crypto.encrypt_secret(key, "my secret", "entry-123")

    assert envelope.version == "enc-v1"
    assert envelope.algorithm == "aes-256-gcm"
    assert len(envelope.nonce) == 12
    assert len(envelope.tag) == 16
    assert envelope.associated_data == "entry-123"
    assert b"my secret" not in envelope.ciphertext


def test_fresh_nonce_per_call():
    key = os.urandom(32)
    a = crypto.encrypt_secret(key, "same", "id")
    b = crypto.encrypt_secret(key, "same", "id")
    assert a.nonce != b.nonce
    assert a.ciphertext != b.ciphertext


@pytest.mark.parametrize("field", ["nonce", "ciphertext", "tag"])
def test_tampering_detected(field):
    key = os.urandom(32)
    envelope = crypto.encrypt_secret(key, "This is a secret message!", "entry-123")
    tampered = crypto.SecretEnvelope(**{**envelope.__dict__, field: flip(getattr(envelope, field))})

    with pytest.raises(AuthenticationFailure):
        crypto.decrypt_secret(key, tampered)


def test_tampered_associated_data_detected():
    key = os.urandom(32)
    envelope = crypto.encrypt_secret(key, "secret", "entry-123")
    tampered = crypto.SecretEnvelope(**{**envelope.__dict__, "associated_data": "entry-124"})

    with pytest.raises(AuthenticationFailure):
        crypto.decrypt_secret(key, tampered)


def test_envelope_cannot_move_to_another_entry():
    key = os.urandom(32)
    id_a, id_b = crypto.new_entry_id(), crypto.new_entry_id()
    envelope_a = crypto.encrypt_secret(key, "secret for A", id_a)

    relinked = crypto.SecretEnvelope(**{**envelope_a.__dict__, "associated_data": id_b})
    with pytest.raises(AuthenticationFailure):
        crypto.decrypt_secret(key, relinked)


def test_wrong_key_rejected():
    envelope = crypto.encrypt_secret(os.urandom(32), "secret", "id")
    with pytest.raises(AuthenticationFailure):
        crypto.decrypt_secret(os.urandom(32), envelope)


def test_malformed_lengths_rejected():
    key = os.urandom(32)
    envelope = crypto.encrypt_secret(key, "secret", "id")

    short_tag = crypto.SecretEnvelope(**{**envelope.__dict__, "tag": envelope.tag[:8]})
    with pytest.raises(AuthenticationFailure):
        crypto.decrypt_secret(key, short_tag)

    no_nonce = crypto.SecretEnvelope(**{**envelope.__dict__, "nonce": b""})
    with pytest.raises(AuthenticationFailure):
        crypto.decrypt_secret(key, no_nonce)

    with pytest.raises(AuthenticationFailure):
        crypto.decrypt_secret(os.urandom(7), envelope)


def test_entry_ids_are_unique_hex():
    ids = {crypto.new_entry_id() for _ in range(100)}
    assert len(ids) == 100
    assert all(len(i) == 32 and int(i, 16) >= 0 for i in ids)


# =============================================================================
# Password Generation
# =============================================================================

def test_password_generation():
    pwd = crypto.generate_password(length=20)
    assert 20 <= len(pwd) <= 22
    assert any(c in crypto.LOWER for c in pwd)
    assert any(c in crypto.DIGITS for c in pwd)
    assert any(c in crypto.UPPER for c in pwd)
    assert any(c in crypto.SYMBOLS for c in pwd)


def test_password_generation_without_extras():
    pwd = crypto.generate_password(length=16, include_uppercase=False, include_symbols=False)
    assert 16 <= len(pwd) <= 18
    assert all(c in crypto.LOWER + crypto.DIGITS for c in pwd)


def test_password_length_is_clamped():
    assert 10 <= len(crypto.generate_password(length=2)) <= 12
    assert 40 <= len(crypto.generate_password(length=500)) <= 42
