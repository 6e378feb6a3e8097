"""Client Configuration.

Centralized configuration for the operation client.

Environment Variables:
    WG_BASE_URL: Base URL of the server (default: http://localhost:9991)
    WG_TIMEOUT: Connect/write/pool timeout in seconds (default: 120)
    WG_MAX_MESSAGE_SIZE: Largest accepted stream message in bytes (default: unlimited)
    WG_SETTINGS_PATH: Path to the settings file
    VERBOSE: Enable verbose client output (1, true, yes)

Settings File:
    ~/.wgexecute/settings.toml

    [client]
    base_url = "http://localhost:9991"
    timeout = 30
    max_message_size = 1048576

Environment files loaded (in order):
    1. .env (project root)
    2. .env (current directory)

Environment variables take precedence over the settings file.
"""

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_BASE_URL = "http://localhost:9991"
TIMEOUT_DEFAULT = 120.0  # seconds, applies to everything but stream reads

# =============================================================================
# Paths
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_SETTINGS_PATH = Path.home() / ".wgexecute" / "settings.toml"


# =============================================================================
# Settings Loading
# =============================================================================


def load_env() -> None:
    """Load .env files (project root first, then the working directory).

    Variables already present in the environment are never overridden.
    """
    load_dotenv(PROJECT_ROOT / ".env")
    load_dotenv(Path.cwd() / ".env")


def get_settings_path() -> Path:
    """Get the path to the settings file.

    Priority:
        1. WG_SETTINGS_PATH environment variable
        2. ~/.wgexecute/settings.toml
    """
    if path := os.environ.get("WG_SETTINGS_PATH"):
        return Path(path)
    return DEFAULT_SETTINGS_PATH


def load_settings() -> dict[str, Any]:
    """Load the [client] table of the settings file.

    Returns:
        Settings dict, or an empty dict if the file doesn't exist.
    """
    path = get_settings_path()
    if not path.exists():
        return {}
    with open(path, "rb") as f:
        return tomllib.load(f).get("client", {})


def get_base_url(settings: dict[str, Any]) -> str:
    """Get the server base URL.

    Priority:
        1. WG_BASE_URL environment variable
        2. settings.toml [client].base_url
        3. Default: http://localhost:9991
    """
    if url := os.environ.get("WG_BASE_URL"):
        return url
    return settings.get("base_url", DEFAULT_BASE_URL)


def get_timeout(settings: dict[str, Any]) -> float:
    """Get the request timeout in seconds.

    Raises:
        ValueError: If WG_TIMEOUT is not a number
    """
    if timeout := os.environ.get("WG_TIMEOUT"):
        return float(timeout)
    return float(settings.get("timeout", TIMEOUT_DEFAULT))


def get_max_message_size(settings: dict[str, Any]) -> Optional[int]:
    """Get the largest accepted stream message, None meaning unlimited.

    Zero or a negative value also means unlimited.

    Raises:
        ValueError: If WG_MAX_MESSAGE_SIZE is not an integer
    """
    raw = os.environ.get("WG_MAX_MESSAGE_SIZE") or settings.get("max_message_size")
    if not raw:
        return None
    size = int(raw)
    return size if size > 0 else None


def is_verbose() -> bool:
    """Check if verbose mode is enabled.

    Returns:
        True if VERBOSE env var is set to 1/true/yes.
    """
    return os.environ.get("VERBOSE", "").lower() in ("1", "true", "yes")


# =============================================================================
# Configuration Dataclass
# =============================================================================


@dataclass
class ClientConfig:
    """Complete client configuration."""

    base_url: str = DEFAULT_BASE_URL
    timeout: float = TIMEOUT_DEFAULT
    max_message_size: Optional[int] = None
    verbose: bool = False

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Create config from .env files, environment and settings file.

        Returns:
            ClientConfig instance with all settings loaded.
        """
        load_env()
        settings = load_settings()
        return cls(
            base_url=get_base_url(settings),
            timeout=get_timeout(settings),
            max_message_size=get_max_message_size(settings),
            verbose=is_verbose(),
        )


def get_config() -> ClientConfig:
    """Get the current client configuration.

    Returns:
        ClientConfig instance.
    """
    return ClientConfig.from_env()
