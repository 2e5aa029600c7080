"""Compiler settings loaded from designer.yaml, with 1Password references."""

import os
import subprocess
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml

from .analyzer import DEFAULT_NETWORK_MODE

# Default location of the settings file
CONFIG_PATH = Path("designer.yaml")
CONFIG_ENV_VAR = "INFRA_DESIGNER_CONFIG"

DEFAULT_IMAGE_URL = (
    "https://cdimage.debian.org/images/cloud/bookworm/latest/debian-12-generic-amd64.raw"
)


class ConfigError(Exception):
    """Raised when settings cannot be loaded."""

    pass


@dataclass
class CompilerSettings:
    """Knobs that shape analysis and rendering."""

    network_mode: str = DEFAULT_NETWORK_MODE
    strict_subnets: bool = False
    storage_class: str = "nfs-client"
    image_url: str = DEFAULT_IMAGE_URL
    login_users: list[str] = field(default_factory=lambda: ["root", "debian"])
    login_password: str = "pass123"
    user_data_limit: int = 2048  # bytes
    ipam_range_start: int = 10
    ipam_range_end: int = 200
    management_interface: str = "enp1s0"
    management_gateway: str = "10.0.2.1"


def _op_read(reference: str) -> str:
    """Execute 'op read' to fetch a secret from 1Password.

    Args:
        reference: 1Password secret reference (e.g., "op://vault/item/field")

    Returns:
        The secret value

    Raises:
        ConfigError: If the op command fails or is not found
    """
    try:
        result = subprocess.run(
            ["op", "read", reference],
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout.strip()
    except subprocess.CalledProcessError as e:
        raise ConfigError(
            f"Failed to read 1Password reference '{reference}': {e.stderr}"
        ) from e
    except FileNotFoundError:
        raise ConfigError(
            "1Password CLI (op) not found but settings contain an op:// reference."
        ) from None


def _resolve_value(value: Any) -> Any:
    """Resolve a value, fetching from 1Password if it's an op:// reference."""
    if isinstance(value, str) and value.startswith("op://"):
        return _op_read(value)
    return value


def _as_int(data: dict, key: str, default: int) -> int:
    value = _resolve_value(data.get(key, default))
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Setting '{key}' must be an integer, got {value!r}") from None


def parse_settings(data: Optional[dict]) -> CompilerSettings:
    """Build CompilerSettings from a parsed settings mapping.

    Raises:
        ConfigError: If a value has the wrong type
    """
    if not data:
        return CompilerSettings()
    if not isinstance(data, dict):
        raise ConfigError("Settings must be a mapping")

    defaults = CompilerSettings()
    login = data.get("login") or {}
    ipam = data.get("ipam") or {}
    management = data.get("management") or {}

    users = login.get("users", defaults.login_users)
    if isinstance(users, str):
        users = [users]

    settings = CompilerSettings(
        network_mode=_resolve_value(data.get("network_mode", defaults.network_mode)),
        strict_subnets=bool(data.get("strict_subnets", defaults.strict_subnets)),
        storage_class=_resolve_value(data.get("storage_class", defaults.storage_class)),
        image_url=_resolve_value(data.get("image_url", defaults.image_url)),
        login_users=[str(u) for u in users],
        login_password=str(_resolve_value(login.get("password", defaults.login_password))),
        user_data_limit=_as_int(data, "user_data_limit", defaults.user_data_limit),
        ipam_range_start=_as_int(ipam, "range_start", defaults.ipam_range_start),
        ipam_range_end=_as_int(ipam, "range_end", defaults.ipam_range_end),
        management_interface=_resolve_value(
            management.get("interface", defaults.management_interface)
        ),
        management_gateway=_resolve_value(
            management.get("gateway", defaults.management_gateway)
        ),
    )
    if not 1 < settings.ipam_range_start <= settings.ipam_range_end < 255:
        raise ConfigError(
            f"Invalid IPAM range {settings.ipam_range_start}-{settings.ipam_range_end}"
        )
    return settings


@lru_cache
def load_settings(path: Optional[Path] = None) -> CompilerSettings:
    """Load and cache settings.

    Args:
        path: Explicit settings file; falls back to $INFRA_DESIGNER_CONFIG,
            then ./designer.yaml

    Returns:
        CompilerSettings, defaults when no file is present

    Raises:
        ConfigError: If an explicitly requested file is missing or invalid
    """
    explicit = path is not None or CONFIG_ENV_VAR in os.environ
    if path is None:
        path = Path(os.environ.get(CONFIG_ENV_VAR, CONFIG_PATH))

    if not path.exists():
        if explicit:
            raise ConfigError(f"Config file not found at {path}")
        return CompilerSettings()

    try:
        with open(path) as f:
            return parse_settings(yaml.safe_load(f))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
