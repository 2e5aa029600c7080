"""Topology analysis: partition a design into network segments."""

import logging
from typing import Callable, Iterable, Optional

from .ipv4 import is_valid_ipv4, network_base
from .models import Connection, Device, DeviceType, NetworkSegment, TopologyAnalysis

logger = logging.getLogger(__name__)

DEFAULT_NETWORK_MODE = "connection"


class SubnetMismatchError(Exception):
    """Raised in strict mode when a segment's addresses disagree on a subnet."""

    pass


class UnknownNetworkModeError(Exception):
    """Raised when no analyzer strategy matches the requested mode."""

    pass


def _fallback_base(counter: int) -> str:
    return f"192.168.{counter}"


def _derive_segment(
    name: str,
    counter: int,
    members: list[str],
    candidates: Iterable[Optional[str]],
    strict: bool,
    connection: Optional[Connection] = None,
) -> NetworkSegment:
    """Build a segment whose subnet comes from the first valid candidate IP."""
    connection_ips = [ip for ip in candidates if ip]
    valid_ips = [ip for ip in connection_ips if is_valid_ipv4(ip)]

    detected_ip = valid_ips[0] if valid_ips else None
    base = network_base(detected_ip) if detected_ip else _fallback_base(counter)
    subnet = f"{base}.0/24"

    consistent = all(network_base(ip) == base for ip in valid_ips)
    if not consistent:
        label = connection.key if connection else name
        message = (
            f"Not all IPs in {label} are in the same subnet: "
            f"expected {subnet}, found {', '.join(connection_ips)}"
        )
        if strict:
            raise SubnetMismatchError(message)
        logger.warning(message)

    if detected_ip:
        logger.debug("Derived subnet %s for %s from IP %s", subnet, name, detected_ip)

    return NetworkSegment(
        name=name,
        subnet=subnet,
        network_base=base,
        devices=members,
        connection=connection,
        detected_from_ip=detected_ip,
        connection_ips=connection_ips,
        consistent=consistent,
    )


def analyze_connection_topology(
    devices: list[Device],
    connections: list[Connection],
    strict_subnets: bool = False,
) -> TopologyAnalysis:
    """Create one segment per connection, in connection insertion order.

    Args:
        devices: All devices in the design
        connections: All connections in the design
        strict_subnets: Raise instead of warn on mismatched addresses

    Returns:
        TopologyAnalysis with segments named net1, net2, ...
    """
    analysis = TopologyAnalysis()
    by_id = {device.id: device for device in devices}
    for device in devices:
        analysis.device_networks[device.id] = []

    processed: set[str] = set()
    counter = 1

    for conn in connections:
        if conn.key in processed or conn.reverse_key in processed:
            continue
        from_device = by_id.get(conn.from_id)
        to_device = by_id.get(conn.to_id)
        if from_device is None or to_device is None:
            logger.warning("Skipping connection %s with unknown endpoint", conn.key)
            continue

        name = f"net{counter}"
        segment = _derive_segment(
            name,
            counter,
            [conn.from_id, conn.to_id],
            [conn.from_router_ip, conn.to_router_ip, from_device.ip, to_device.ip],
            strict_subnets,
            connection=conn,
        )
        analysis.segments[name] = segment
        analysis.device_networks[conn.from_id].append(name)
        analysis.device_networks[conn.to_id].append(name)

        processed.add(conn.key)
        processed.add(conn.reverse_key)
        counter += 1

    _log_analysis(analysis)
    return analysis


def analyze_shared_topology(
    devices: list[Device],
    connections: list[Connection],
    strict_subnets: bool = False,
) -> TopologyAnalysis:
    """Place every device on a single shared segment."""
    analysis = TopologyAnalysis()
    if not devices:
        return analysis

    candidates: list[Optional[str]] = []
    for conn in connections:
        candidates.extend([conn.from_router_ip, conn.to_router_ip])
    candidates.extend(device.ip for device in devices)

    segment = _derive_segment(
        "net1", 1, [device.id for device in devices], candidates, strict_subnets
    )
    analysis.segments[segment.name] = segment
    for device in devices:
        analysis.device_networks[device.id] = [segment.name]

    _log_analysis(analysis)
    return analysis


def analyze_device_type_topology(
    devices: list[Device],
    connections: list[Connection],
    strict_subnets: bool = False,
) -> TopologyAnalysis:
    """Create one segment per device type; routers join every segment."""
    analysis = TopologyAnalysis()
    for device in devices:
        analysis.device_networks[device.id] = []

    types_present: list[DeviceType] = []
    for device in devices:
        if device.type not in types_present:
            types_present.append(device.type)

    routers = [device for device in devices if device.is_router]
    for counter, device_type in enumerate(types_present, start=1):
        own = [device for device in devices if device.type is device_type]
        members = own if device_type is DeviceType.ROUTER else routers + own
        # Keep design order so interface numbering follows the device list
        members.sort(key=devices.index)

        name = f"net{counter}"
        segment = _derive_segment(
            name,
            counter,
            [device.id for device in members],
            [device.ip for device in own],
            strict_subnets,
        )
        analysis.segments[name] = segment
        for device in members:
            analysis.device_networks[device.id].append(name)

    _log_analysis(analysis)
    return analysis


STRATEGIES: dict[str, Callable[..., TopologyAnalysis]] = {
    "connection": analyze_connection_topology,
    "shared": analyze_shared_topology,
    "device-type": analyze_device_type_topology,
}


def analyze_topology(
    devices: list[Device],
    connections: list[Connection],
    network_mode: str = DEFAULT_NETWORK_MODE,
    strict_subnets: bool = False,
) -> TopologyAnalysis:
    """Run the analyzer strategy selected by network_mode.

    Raises:
        UnknownNetworkModeError: If network_mode is not a known strategy
        SubnetMismatchError: In strict mode, on disagreeing addresses
    """
    strategy = STRATEGIES.get(network_mode)
    if strategy is None:
        raise UnknownNetworkModeError(
            f"Unknown network mode '{network_mode}'. "
            f"Available modes: {', '.join(STRATEGIES)}"
        )
    return strategy(devices, connections, strict_subnets=strict_subnets)


def _log_analysis(analysis: TopologyAnalysis) -> None:
    logger.info("Network segments: %d", len(analysis.segments))
    for name, segment in analysis.segments.items():
        logger.debug(
            "  %s: %s (%s) [detected from: %s]",
            name,
            segment.subnet,
            " <-> ".join(segment.devices),
            segment.detected_from_ip or "auto",
        )
    for device_id, networks in analysis.device_networks.items():
        logger.debug("  %s: %d network(s) %s", device_id, len(networks), ", ".join(networks))
