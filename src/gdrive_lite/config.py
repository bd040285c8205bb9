"""Centralized credential configuration.

All credentials live in one config directory (``~/.config/gdrive-lite`` by
default, override with the ``GDRIVE_LITE_HOME`` environment variable):
    .env              - GDRIVE_CLIENT_ID / GDRIVE_CLIENT_SECRET
    credentials.json  - Google OAuth client credentials
    token.json        - cached OAuth token

This module auto-loads the .env file on import, making the client
credentials available to every gdrive-lite module.
"""

import logging
import os
import sys
from pathlib import Path

CONFIG_DIR = Path(
    os.environ.get("GDRIVE_LITE_HOME", Path.home() / ".config" / "gdrive-lite")
).expanduser()

# Credential file paths
ENV_FILE = CONFIG_DIR / ".env"
GOOGLE_CREDENTIALS = CONFIG_DIR / "credentials.json"
GOOGLE_TOKEN = CONFIG_DIR / "token.json"

CLIENT_ID_ENV = "GDRIVE_CLIENT_ID"
CLIENT_SECRET_ENV = "GDRIVE_CLIENT_SECRET"

DEFAULT_REDIRECT_URI = "http://127.0.0.1:3000/"


def _load_env_file(env_path: Path) -> dict[str, str]:
    """Load environment variables from a file.

    Args:
        env_path: Path to .env file.

    Returns:
        Dictionary of loaded variables.
    """
    loaded = {}
    if not env_path.exists():
        return loaded

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()

            # Remove surrounding quotes
            if (value.startswith('"') and value.endswith('"')) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]

            # Real environment wins over .env
            if key and key not in os.environ:
                os.environ[key] = value
                loaded[key] = value

    return loaded


def ensure_config_dir() -> Path:
    """Create the config directory if it doesn't exist."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    return CONFIG_DIR


def get_credential_status() -> dict:
    """Get status of all configured credentials.

    Returns:
        Dictionary with credential status.
    """
    return {
        "config_dir": str(CONFIG_DIR),
        "env_file": ENV_FILE.exists(),
        "client": {
            "client_id_env": bool(os.environ.get(CLIENT_ID_ENV)),
            "client_secret_env": bool(os.environ.get(CLIENT_SECRET_ENV)),
            "credentials": GOOGLE_CREDENTIALS.exists(),
        },
        "token": GOOGLE_TOKEN.exists(),
    }


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a consistent format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stderr,
    )


# Auto-load .env from the config directory on import
_loaded = _load_env_file(ENV_FILE)
