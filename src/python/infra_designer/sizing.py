"""Sizing and bandwidth string normalization.

Malformed sizing values never raise: they fall back to the documented
defaults so an export always completes. Bandwidth labels are validated when a
connection is created, so those do raise.
"""

import re
from typing import Optional

from .models import DeviceType

DEFAULT_STORAGE = "10Gi"
DEFAULT_VM_MEMORY = "2G"
DEFAULT_MEMORY = "1G"
DEFAULT_CORES = 1
DEFAULT_ROUTER_CORES = 2

_STORAGE_PATTERN = re.compile(r"^(\d+)(gi|mi|ti|gb?|mb?|tb?)?$", re.IGNORECASE)
_MEMORY_PATTERN = re.compile(r"^(\d+)([gmt])(?:i|b)?$", re.IGNORECASE)
_SPEED_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s?([a-zA-Z]+)$")
_FIRST_INTEGER = re.compile(r"\d+")

# Multipliers to Mbps
SPEED_UNITS = {
    "bps": 1 / 1_000_000,
    "Kbps": 1 / 1000,
    "Mbps": 1,
    "Gbps": 1000,
    "Tbps": 1_000_000,
}


class InvalidSpeedError(Exception):
    """Raised when a bandwidth label cannot be parsed."""

    pass


def normalize_storage_quantity(storage: Optional[str]) -> str:
    """Convert a storage size (e.g., '20GB', '512M') to a binary quantity.

    Args:
        storage: Size with optional unit suffix (G, GB, M, MB, T, TB)

    Returns:
        Kubernetes quantity such as "20Gi"; "10Gi" when absent or unparseable
    """
    if not storage:
        return DEFAULT_STORAGE
    cleaned = re.sub(r"\s+", "", str(storage))
    match = _STORAGE_PATTERN.match(cleaned)
    if not match:
        return DEFAULT_STORAGE
    amount, unit = match.groups()
    # Bare numbers are treated as gigabytes
    suffix = (unit or "G")[0].upper()
    return f"{amount}{suffix}i"


def normalize_memory(memory: Optional[str], device_type: DeviceType) -> str:
    """Convert a memory size to the plain form used by machine requests.

    "4Gi", "4GB" and "4g" all become "4G".
    """
    default = DEFAULT_VM_MEMORY if device_type is DeviceType.VM else DEFAULT_MEMORY
    if not memory:
        return default
    match = _MEMORY_PATTERN.match(re.sub(r"\s+", "", str(memory)))
    if not match:
        return default
    amount, unit = match.groups()
    return f"{amount}{unit.upper()}"


def parse_cpu_cores(cpu: Optional[str], device_type: DeviceType) -> int:
    """Return the first integer found in a CPU description."""
    default = DEFAULT_ROUTER_CORES if device_type is DeviceType.ROUTER else DEFAULT_CORES
    if not cpu:
        return default
    match = _FIRST_INTEGER.search(str(cpu))
    if not match:
        return default
    return int(match.group()) or default


def parse_speed_to_mbps(speed: str) -> float:
    """Convert a bandwidth label (e.g., '100Mbps', '1 Gbps') to Mbps.

    Raises:
        InvalidSpeedError: If the label or its unit is not recognised
    """
    match = _SPEED_PATTERN.match(str(speed).strip())
    if not match:
        raise InvalidSpeedError(f"Invalid speed format: {speed}")
    value, unit = match.groups()
    if unit not in SPEED_UNITS:
        raise InvalidSpeedError(f"Unsupported unit: {unit}")
    return float(value) * SPEED_UNITS[unit]
