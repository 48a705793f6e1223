"""Secure credential storage for Backpack API keys.

Provides local storage for the base64 Ed25519 key pair with owner-only file
permissions, plus loading from environment variables.

DESIGN PRINCIPLES:
- Safe by default: Private keys never logged or printed in full
- Secure storage: File permissions 0600 (owner read/write only)
- No git: ~/.bpxc/creds.json is outside the repo

USAGE:
    creds = get_creds_from_env() or load_creds()
    if creds:
        client = BackpackClient(creds.private_key, creds.public_key)
"""

from __future__ import annotations

import json
import os
import stat
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from bpxc.auth.redact import mask_string
from bpxc.config import DEFAULT_WINDOW_MS
from bpxc.errors import CredentialsError
from bpxc.logging import get_logger

logger = get_logger("auth.creds")

# Default credentials directory and file
DEFAULT_CREDS_DIR = Path.home() / ".bpxc"
CREDS_FILENAME = "creds.json"

# Required file permissions (owner read/write only)
SECURE_PERMS = stat.S_IRUSR | stat.S_IWUSR  # 0o600


@dataclass
class BackpackCredentials:
    """Backpack API credentials.

    Attributes:
        private_key: Base64 Ed25519 seed (the API secret)
        public_key: Base64 Ed25519 public key (the API key)
        window_ms: Signature validity window in milliseconds
    """

    private_key: str
    public_key: str
    window_ms: int = DEFAULT_WINDOW_MS

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BackpackCredentials:
        """Create credentials from dictionary."""
        return cls(
            private_key=data["private_key"],
            public_key=data["public_key"],
            window_ms=int(data.get("window_ms", DEFAULT_WINDOW_MS)),
        )

    def masked_api_key(self) -> str:
        """Return masked public key showing first and last 4 characters."""
        if len(self.public_key) <= 8:
            return "****"
        return mask_string(self.public_key)

    def __repr__(self) -> str:
        return (
            f"BackpackCredentials(public_key={self.masked_api_key()!r}, "
            f"window_ms={self.window_ms})"
        )


def get_creds_path(creds_dir: Path | None = None) -> Path:
    """Get the path to the credentials file."""
    return (creds_dir or DEFAULT_CREDS_DIR) / CREDS_FILENAME


def save_creds(creds: BackpackCredentials, creds_dir: Path | None = None) -> Path:
    """Save credentials to disk with secure permissions.

    Returns:
        Path to saved file

    Raises:
        OSError: If file cannot be created
    """
    creds_path = get_creds_path(creds_dir)
    creds_path.parent.mkdir(parents=True, exist_ok=True)

    with open(creds_path, "w", encoding="utf-8") as f:
        json.dump(creds.to_dict(), f, indent=2)

    try:
        os.chmod(creds_path, SECURE_PERMS)
        logger.info(f"Saved credentials to {creds_path} with secure permissions")
    except OSError as e:
        # chmod is best effort on Windows
        logger.warning(f"Could not set secure permissions on {creds_path}: {e}")

    return creds_path


def load_creds(creds_dir: Path | None = None) -> BackpackCredentials | None:
    """Load credentials from disk.

    Returns:
        BackpackCredentials if found and valid, None otherwise
    """
    creds_path = get_creds_path(creds_dir)

    if not creds_path.exists():
        logger.debug(f"No credentials file at {creds_path}")
        return None

    try:
        with open(creds_path, encoding="utf-8") as f:
            data = json.load(f)
        return BackpackCredentials.from_dict(data)
    except (OSError, json.JSONDecodeError, KeyError, ValueError) as e:
        logger.warning(f"Failed to load credentials from {creds_path}: {e}")
        return None


def delete_creds(creds_dir: Path | None = None) -> bool:
    """Delete the credentials file.

    Returns:
        True if deleted, False if it didn't exist
    """
    creds_path = get_creds_path(creds_dir)
    if not creds_path.exists():
        return False

    creds_path.unlink()
    logger.info(f"Deleted credentials at {creds_path}")
    return True


def creds_exist(creds_dir: Path | None = None) -> bool:
    """Check if the credentials file exists."""
    return get_creds_path(creds_dir).exists()


def _read_key_value(value: str) -> str:
    """Return ``value`` or, if it names a file, that file's stripped contents."""
    if os.path.isfile(value):
        try:
            with open(value, encoding="utf-8") as f:
                return f.read().strip()
        except OSError as e:
            raise CredentialsError(f"Failed to read key file {value}: {e}") from e
    return value


def get_creds_from_env() -> BackpackCredentials | None:
    """Load credentials from environment variables.

    Environment variables:
        BPX_PRIVATE_KEY: Base64 private key (or path to a file holding it)
        BPX_PUBLIC_KEY: Base64 public key
        BPX_WINDOW: Optional validity window in milliseconds

    Returns:
        BackpackCredentials if both keys are set, None otherwise

    Raises:
        CredentialsError: If a key file cannot be read or BPX_WINDOW is invalid
    """
    private_key = os.environ.get("BPX_PRIVATE_KEY")
    public_key = os.environ.get("BPX_PUBLIC_KEY")

    if not private_key or not public_key:
        return None

    window_raw = os.environ.get("BPX_WINDOW", str(DEFAULT_WINDOW_MS))
    try:
        window_ms = int(window_raw)
    except ValueError as e:
        raise CredentialsError(f"BPX_WINDOW must be an integer, got {window_raw!r}") from e

    return BackpackCredentials(
        private_key=_read_key_value(private_key),
        public_key=public_key.strip(),
        window_ms=window_ms,
    )


def resolve_creds(creds_dir: Path | None = None) -> BackpackCredentials:
    """Find credentials in the environment first, then on disk.

    Raises:
        CredentialsError: If no credentials are configured
    """
    creds = get_creds_from_env() or load_creds(creds_dir)
    if creds is None:
        raise CredentialsError(
            "No Backpack credentials found. Set BPX_PRIVATE_KEY and BPX_PUBLIC_KEY "
            f"or create {get_creds_path(creds_dir)}"
        )
    return creds
