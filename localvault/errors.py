"""
LocalVault - Error Taxonomy

Every failure the vault core reports is a subclass of VaultError, so callers
(the interactive menu, tests, scripts) can catch the whole family at once or
handle one outcome specifically.

Cryptographic failures (WrongPassphraseError, AuthenticationFailure) carry a
fixed message. Structural failures (InvalidFileError) carry a reason.
"""


class VaultError(Exception):
    # general container for vault errors
    pass


class WeakPassphraseError(VaultError):
    # raised when setup receives a passphrase below the minimum length
    pass


class UnlockRequiredError(VaultError):
    # raised when an entry operation runs while locked or before setup
    pass


class WrongPassphraseError(VaultError):
    # raised when a derived key does not match the stored master hash
    pass


class InvalidFileError(VaultError):
    # raised when a vault record is malformed or fails decryption on import
    pass


class EntryNotFoundError(VaultError):
    # raised when an operation references an unknown entry id
    pass


class KdfFailure(VaultError):
    # raised on malformed or oversized scrypt parameters
    pass


class AuthenticationFailure(VaultError):
    # raised when AES-GCM tag verification fails, whatever the cause
    pass
