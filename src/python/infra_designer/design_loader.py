"""Topology design loader for YAML files."""

from pathlib import Path

import yaml

from .registry import RegistryError, TopologyRegistry
from .sizing import InvalidSpeedError

# Base path for design files
DESIGNS_BASE_PATH = Path("designs")

DESIGN_SUFFIXES = (".yaml", ".yml")


class DesignNotFoundError(Exception):
    """Raised when a design file cannot be found."""

    pass


class DesignParseError(Exception):
    """Raised when a design file is malformed."""

    pass


def discover_designs(base_path: Path = DESIGNS_BASE_PATH) -> list[str]:
    """Return list of available design names.

    Returns:
        Sorted list of design file stems under base_path
    """
    designs = []
    if not base_path.exists():
        return designs

    for path in base_path.iterdir():
        if path.is_file() and path.suffix in DESIGN_SUFFIXES:
            designs.append(path.stem)
    return sorted(designs)


def get_design_path(design: str, base_path: Path = DESIGNS_BASE_PATH) -> Path:
    """Resolve a design name or file path.

    Args:
        design: A path to a YAML file, or a design name under base_path

    Returns:
        Path to the design file

    Raises:
        DesignNotFoundError: If no matching file exists
    """
    path = Path(design)
    if path.is_file():
        return path
    for suffix in DESIGN_SUFFIXES:
        candidate = base_path / f"{design}{suffix}"
        if candidate.is_file():
            return candidate
    raise DesignNotFoundError(f"Design '{design}' not found")


def _optional_str(data: dict, key: str):
    value = data.get(key)
    return None if value is None else str(value)


def _load_devices(registry: TopologyRegistry, devices: list) -> None:
    for index, device_data in enumerate(devices):
        if not isinstance(device_data, dict) or "id" not in device_data:
            raise DesignParseError(f"Device #{index + 1} must be a mapping with an 'id'")
        interface_ips = device_data.get("interface_ips") or {}
        if not isinstance(interface_ips, dict):
            raise DesignParseError(
                f"interface_ips of device {device_data['id']} must be a mapping"
            )
        registry.add_device(
            str(device_data["id"]),
            device_data.get("type", "vm"),
            cpu=_optional_str(device_data, "cpu"),
            memory=_optional_str(device_data, "memory"),
            storage=_optional_str(device_data, "storage"),
            ip=_optional_str(device_data, "ip"),
            interface_ips={str(k): str(v) for k, v in interface_ips.items()},
        )


def _load_connections(registry: TopologyRegistry, connections: list) -> None:
    for index, conn_data in enumerate(connections):
        if not isinstance(conn_data, dict) or "from" not in conn_data or "to" not in conn_data:
            raise DesignParseError(
                f"Connection #{index + 1} must be a mapping with 'from' and 'to'"
            )
        registry.add_connection(
            str(conn_data["from"]),
            str(conn_data["to"]),
            speed=_optional_str(conn_data, "speed"),
            from_router_ip=_optional_str(conn_data, "from_router_ip"),
            to_router_ip=_optional_str(conn_data, "to_router_ip"),
        )


def parse_design(data: dict, registry: TopologyRegistry | None = None) -> TopologyRegistry:
    """Populate a registry from a parsed design mapping.

    Every record goes through registry validation, so a design file cannot
    bypass the device and connection invariants.

    Raises:
        DesignParseError: If the structure or any record is rejected
    """
    if not isinstance(data, dict):
        raise DesignParseError("Design must be a mapping with 'devices' and 'connections'")

    registry = registry if registry is not None else TopologyRegistry()
    devices = data.get("devices") or []
    connections = data.get("connections") or []
    if not isinstance(devices, list) or not isinstance(connections, list):
        raise DesignParseError("'devices' and 'connections' must be lists")

    try:
        _load_devices(registry, devices)
        _load_connections(registry, connections)
    except (RegistryError, InvalidSpeedError) as e:
        raise DesignParseError(str(e)) from e

    return registry


def load_design(design: str, base_path: Path = DESIGNS_BASE_PATH) -> TopologyRegistry:
    """Load and validate a design into a fresh registry.

    Args:
        design: Path to a design file, or a design name under base_path

    Returns:
        TopologyRegistry holding the design's devices and connections

    Raises:
        DesignNotFoundError: If the design doesn't exist
        DesignParseError: If YAML is invalid or the design is rejected
    """
    path = get_design_path(design, base_path)

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise DesignParseError(f"Invalid YAML in {path}: {e}") from e

    return parse_design(data or {})
