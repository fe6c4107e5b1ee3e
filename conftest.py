"""Shared pytest fixtures for the LocalVault test suite."""

import json

import pytest

from localvault.crypto import KdfParams
from localvault.store import MemoryBackend
from localvault.vault import Vault

# Cheap scrypt settings so the suite runs quickly; same code paths as defaults.
FAST_PARAMS = KdfParams(n=1024, r=8, p=1)

MASTER = "correcthorse1"


@pytest.fixture
def fast_params():
    return FAST_PARAMS


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def vault(backend):
    """A vault that has been set up and is unlocked."""
    v = Vault("vault.json", backend=backend, kdf_params=FAST_PARAMS)
    assert v.setup(MASTER)
    return v


@pytest.fixture
def make_foreign(backend):
    """Build a foreign vault document (decoded JSON) with the given secrets."""

    def _make(passphrase, secrets, location="foreign.json"):
        foreign = Vault(location, backend=backend, kdf_params=FAST_PARAMS)
        assert foreign.setup(passphrase)
        for title, secret in secrets:
            foreign.add_entry(title, secret, note=f"note for {title}")
        foreign.lock()
        return json.loads(backend.blobs[location].decode("utf-8"))

    return _make
