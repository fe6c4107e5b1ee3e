"""
LocalVault - Configuration

Where the vault lives and how loud the logs are. Cryptographic constants
(scrypt cost, nonce size) live in crypto.py next to the code that uses them.

Environment overrides:
    LOCALVAULT_PATH       path of the vault file
    LOCALVAULT_LOG_LEVEL  logging level name for the interactive menu
"""

import logging
import os
from typing import Optional

DEFAULT_VAULT_PATH = os.path.join(os.path.expanduser("~"), ".localvault", "vault.json")

FORMAT_VERSION = "1.0.0"
MIN_PASSPHRASE_LENGTH = 8

ENV_VAULT_PATH = "LOCALVAULT_PATH"
ENV_LOG_LEVEL = "LOCALVAULT_LOG_LEVEL"
DEFAULT_LOG_LEVEL = logging.WARNING


def resolve_vault_path(explicit: Optional[str] = None) -> str:
    """Return the vault path: explicit argument, then environment, then default."""
    if explicit:
        return os.path.expanduser(explicit)
    from_env = os.environ.get(ENV_VAULT_PATH, "").strip()
    if from_env:
        return os.path.expanduser(from_env)
    return DEFAULT_VAULT_PATH


def resolve_log_level() -> int:
    name = os.environ.get(ENV_LOG_LEVEL, "").strip().upper()
    if not name:
        return DEFAULT_LOG_LEVEL
    level = logging.getLevelName(name)
    # getLevelName returns "Level X" for unknown names
    return level if isinstance(level, int) else DEFAULT_LOG_LEVEL


def configure_logging(level: Optional[int] = None) -> None:
    # Configure root logger once; keep output simple for terminals.
    logging.basicConfig(
        level=resolve_log_level() if level is None else level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
