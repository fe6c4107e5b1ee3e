"""
LocalVault - Cryptography Module

All cryptographic operations for the vault live in this one file:

    1. Master passphrase -> scrypt -> vault key (32 bytes)
    2. The derived key is stored as the master hash and compared in
       constant time on unlock
    3. Each secret -> AES-256-GCM with the owning entry id as associated data

Only the 'cryptography' library is used for primitives; randomness comes
from os.urandom / secrets.
"""

import hmac
import os
import secrets
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from .errors import AuthenticationFailure, KdfFailure


# =============================================================================
# Configuration
# =============================================================================

KDF_ALGORITHM = "scrypt"
SALT_SIZE = 16           # 128-bit salt
ENTRY_ID_SIZE = 16       # 16 random bytes -> 32 hex chars

ENVELOPE_VERSION = "enc-v1"
AEAD_ALGORITHM = "aes-256-gcm"
NONCE_SIZE = 12          # 96-bit nonce for AES-GCM
TAG_SIZE = 16            # 128-bit authentication tag

# scrypt parameters
# N = CPU/memory cost (power of 2), r = block size, p = parallelization
SCRYPT_N = 2**14         # 16384 - uses ~16 MB RAM
SCRYPT_R = 8
SCRYPT_P = 1
SCRYPT_KEY_LENGTH = 32
SCRYPT_MAX_MEMORY = 64 * 1024 * 1024


@dataclass(frozen=True)
class KdfParams:
    """scrypt cost parameters, persisted next to the master hash."""

    n: int = SCRYPT_N
    r: int = SCRYPT_R
    p: int = SCRYPT_P
    key_length: int = SCRYPT_KEY_LENGTH
    max_memory: int = SCRYPT_MAX_MEMORY


DEFAULT_KDF_PARAMS = KdfParams()


@dataclass(frozen=True)
class SecretEnvelope:
    """One AES-GCM encryption result, stored in place of a plaintext secret."""

    nonce: bytes
    ciphertext: bytes
    tag: bytes
    associated_data: str
    version: str = ENVELOPE_VERSION
    algorithm: str = AEAD_ALGORITHM


# =============================================================================
# Key Derivation
# =============================================================================

def create_salt() -> bytes:
    """Return a fresh random salt for a new master credential."""
    return os.urandom(SALT_SIZE)


def scrypt_memory_required(params: KdfParams) -> int:
    """
    Estimate scrypt working memory in bytes.

    V array: 128 * r * (N + 2), B array: 128 * r * p.
    """
    return 128 * params.r * (params.n + 2) + 128 * params.r * params.p


def validate_kdf_params(params: KdfParams) -> None:
    """
    Reject parameters scrypt cannot (or must not) run with.

    Raises:
        KdfFailure: non-positive or non-integer field, N not a power of two,
            or a memory estimate above params.max_memory
    """
    for name in ("n", "r", "p", "key_length", "max_memory"):
        value = getattr(params, name)
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise KdfFailure(f"scrypt parameter '{name}' must be a positive integer")

    if params.n < 2 or params.n & (params.n - 1):
        raise KdfFailure("scrypt parameter 'n' must be a power of two greater than 1")

    if scrypt_memory_required(params) > params.max_memory:
        raise KdfFailure("scrypt parameters exceed their memory limit")


def derive_key(passphrase: str, salt: bytes, params: KdfParams = DEFAULT_KDF_PARAMS) -> bytes:
    """
    Derive the vault key from a master passphrase using scrypt.

    Why scrypt?
    - Memory-hard: every guess against a stolen vault file costs RAM, not
      just CPU, which blunts GPU/ASIC attacks
    - The parameters travel with the stored hash, so vaults created with
      older defaults keep unlocking

    Args:
        passphrase: Master passphrase
        salt: Random salt stored with the credential (not secret)
        params: Cost parameters the hash was (or will be) computed with

    Returns:
        params.key_length bytes

    Raises:
        KdfFailure: If params are malformed or the backend rejects them
    """
    validate_kdf_params(params)
    kdf = Scrypt(
        salt=salt,
        length=params.key_length,
        n=params.n,
        r=params.r,
        p=params.p,
    )
    try:
        return kdf.derive(passphrase.encode("utf-8"))
    except (ValueError, MemoryError) as exc:
        raise KdfFailure(f"scrypt derivation failed: {exc}") from exc


def verify_master_hash(stored: bytes, derived: bytes) -> bool:
    """
    Compare a stored master hash with a freshly derived key.

    Lengths are checked first; the byte comparison itself is constant-time
    so timing does not reveal how many leading bytes matched.
    """
    if len(stored) != len(derived):
        return False
    return hmac.compare_digest(stored, derived)


# =============================================================================
# Encryption (AES-256-GCM)
# =============================================================================

def new_entry_id() -> str:
    """Random opaque entry identifier (32 hex chars)."""
    return os.urandom(ENTRY_ID_SIZE).hex()


def encrypt_secret(key: bytes, plaintext: str, associated_data: str) -> SecretEnvelope:
    """
    Encrypt one secret with AES-256-GCM.

    The associated data (the owning entry's id) is authenticated but not
    encrypted: an envelope copied onto another entry will not decrypt.

    Args:
        key: 32-byte vault key
        plaintext: Secret to protect
        associated_data: Entry id the envelope is bound to

    Returns:
        SecretEnvelope with a fresh 12-byte nonce
    """
    # Generate random nonce (NEVER reuse with same key!)
    nonce = os.urandom(NONCE_SIZE)

    aesgcm = AESGCM(bytes(key))
    sealed = aesgcm.encrypt(nonce, plaintext.encode("utf-8"), associated_data.encode("utf-8"))

    # cryptography returns ciphertext || tag
    return SecretEnvelope(
        nonce=nonce,
        ciphertext=sealed[:-TAG_SIZE],
        tag=sealed[-TAG_SIZE:],
        associated_data=associated_data,
    )


def decrypt_secret(key: bytes, envelope: SecretEnvelope) -> str:
    """
    Decrypt an envelope produced by encrypt_secret().

    Fails closed: no plaintext is returned unless the tag verifies over the
    ciphertext and the stored associated data.

    Raises:
        AuthenticationFailure: wrong key, tampered nonce/ciphertext/tag/AD,
            or malformed lengths (all reported identically)
    """
    if len(envelope.tag) != TAG_SIZE:
        raise AuthenticationFailure("secret could not be authenticated")
    try:
        aesgcm = AESGCM(bytes(key))
        plaintext = aesgcm.decrypt(
            envelope.nonce,
            envelope.ciphertext + envelope.tag,
            envelope.associated_data.encode("utf-8"),
        )
        return plaintext.decode("utf-8")
    except (InvalidTag, ValueError) as exc:
        raise AuthenticationFailure("secret could not be authenticated") from exc


# =============================================================================
# Password Generation
# =============================================================================

# No ambiguous glyphs (I, l, O, 0, 1)
UPPER = "ABCDEFGHJKLMNPQRSTUVWXYZ"
LOWER = "abcdefghijkmnopqrstuvwxyz"
DIGITS = "23456789"
SYMBOLS = "!@#$%^&*()-_=+[]{};:,.?"

MIN_GENERATED_LENGTH = 10
MAX_GENERATED_LENGTH = 40


def generate_password(length: int = 18, include_uppercase: bool = True,
                      include_symbols: bool = True) -> str:
    """
    Generate a strong random password.

    The requested length is clamped to 10..40 and the result is 0-2
    characters longer than that. At least one lowercase letter and one digit
    are always present, plus one uppercase letter / symbol when enabled.

    Returns:
        Random password string
    """
    safe_length = max(MIN_GENERATED_LENGTH, min(MAX_GENERATED_LENGTH, int(round(length))))

    charset = LOWER + DIGITS
    required = [secrets.choice(LOWER), secrets.choice(DIGITS)]
    if include_uppercase:
        charset += UPPER
        required.append(secrets.choice(UPPER))
    if include_symbols:
        charset += SYMBOLS
        required.append(secrets.choice(SYMBOLS))

    target_length = safe_length + secrets.randbelow(3)
    password = required + [secrets.choice(charset) for _ in range(target_length - len(required))]

    # Fisher-Yates shuffle
    for i in range(len(password) - 1, 0, -1):
        j = secrets.randbelow(i + 1)
        password[i], password[j] = password[j], password[i]

    return "".join(password)
