"""Per-interface address assignment."""

import logging
from dataclasses import dataclass

from .ipv4 import host_address, host_number
from .models import Device, DeviceType, InterfaceAssignment, NetworkSegment, TopologyAnalysis

logger = logging.getLogger(__name__)

ROUTER_HOST = 1
ROUTED_HOST = 10
UNROUTED_HOST = 11
MAX_HOST = 254


class AddressExhaustedError(Exception):
    """Raised when a segment runs out of host numbers."""

    pass


@dataclass
class _Resolved:
    ip: str
    is_custom: bool


def _check_host(segment: NetworkSegment, host: int) -> int:
    if host > MAX_HOST:
        raise AddressExhaustedError(
            f"No host addresses left in {segment.subnet} ({segment.name})"
        )
    return host


def _router_address(router: Device, segment: NetworkSegment) -> _Resolved:
    """Resolve a router's address on a connection-backed segment.

    Priority: connection-level router IP, stored interface IP, then .1.
    """
    conn = segment.connection
    if conn.from_id == router.id and conn.from_router_ip:
        return _Resolved(conn.from_router_ip, True)
    if conn.to_id == router.id and conn.to_router_ip:
        return _Resolved(conn.to_router_ip, True)

    stored = router.interface_ips.get(f"to_{conn.peer_of(router.id)}")
    if stored:
        return _Resolved(stored, True)

    return _Resolved(host_address(segment.network_base, ROUTER_HOST), False)


def _host_address(device: Device, peer: Device, segment: NetworkSegment, index: int) -> _Resolved:
    """Resolve a VM or switch address on a connection-backed segment."""
    if index == 0 and device.ip:
        return _Resolved(device.ip, True)
    host = ROUTED_HOST if peer.is_router else UNROUTED_HOST
    return _Resolved(host_address(segment.network_base, host), False)


def _resolve_endpoint(device: Device, peer: Device, segment: NetworkSegment, index: int) -> _Resolved:
    if device.type is DeviceType.ROUTER:
        return _router_address(device, segment)
    if device.type in (DeviceType.VM, DeviceType.SWITCH):
        return _host_address(device, peer, segment, index)
    raise ValueError(f"Unhandled device type: {device.type}")


def _next_free(segment: NetworkSegment, taken: str) -> str:
    host = _check_host(segment, host_number(taken) + 1)
    return host_address(segment.network_base, host)


def _assign_connection_segment(
    segment: NetworkSegment,
    by_id: dict[str, Device],
    analysis: TopologyAnalysis,
) -> tuple[dict[str, _Resolved], str]:
    """Return the addresses of both endpoints and the segment gateway."""
    conn = segment.connection
    from_device = by_id[conn.from_id]
    to_device = by_id[conn.to_id]

    from_addr = _resolve_endpoint(
        from_device, to_device, segment, analysis.device_networks[from_device.id].index(segment.name)
    )
    to_addr = _resolve_endpoint(
        to_device, from_device, segment, analysis.device_networks[to_device.id].index(segment.name)
    )

    # Two non-routers both default to .11 and two routers to .1; rather than
    # hand both ends the same address, the auto-assigned side moves up one.
    if from_addr.ip == to_addr.ip:
        if not to_addr.is_custom:
            to_addr = _Resolved(_next_free(segment, from_addr.ip), False)
        elif not from_addr.is_custom:
            from_addr = _Resolved(_next_free(segment, to_addr.ip), False)
        else:
            logger.warning(
                "Devices %s and %s both use %s on %s",
                from_device.id,
                to_device.id,
                from_addr.ip,
                segment.name,
            )

    if from_device.is_router:
        gateway = from_addr.ip
    elif to_device.is_router:
        gateway = to_addr.ip
    else:
        gateway = host_address(segment.network_base, ROUTER_HOST)

    return {from_device.id: from_addr, to_device.id: to_addr}, gateway


def _assign_pooled_segment(
    segment: NetworkSegment,
    by_id: dict[str, Device],
    analysis: TopologyAnalysis,
) -> tuple[dict[str, _Resolved], str]:
    """Number routers from .1 and other members from .10 in member order.

    Static addresses are reserved up front so numbered hosts skip them.
    """
    addresses: dict[str, _Resolved] = {}
    for device_id in segment.devices:
        device = by_id[device_id]
        index = analysis.device_networks[device_id].index(segment.name)
        if not device.is_router and index == 0 and device.ip:
            addresses[device_id] = _Resolved(device.ip, True)
    taken = {address.ip for address in addresses.values()}

    def allocate(host: int) -> tuple[str, int]:
        while host_address(segment.network_base, _check_host(segment, host)) in taken:
            host += 1
        ip = host_address(segment.network_base, host)
        taken.add(ip)
        return ip, host + 1

    next_router = ROUTER_HOST
    next_host = ROUTED_HOST
    gateway = None

    for device_id in segment.devices:
        if device_id in addresses:
            continue
        if by_id[device_id].is_router:
            ip, next_router = allocate(next_router)
            if gateway is None:
                gateway = ip
        else:
            ip, next_host = allocate(next_host)
        addresses[device_id] = _Resolved(ip, False)

    return addresses, gateway or host_address(segment.network_base, ROUTER_HOST)


def assign_addresses(
    devices: list[Device],
    analysis: TopologyAnalysis,
) -> dict[str, list[InterfaceAssignment]]:
    """Compute every device's address on each of its segments.

    Args:
        devices: All devices in the design
        analysis: Output of the topology analyzer

    Returns:
        Map of device id -> assignments ordered by interface index
    """
    by_id = {device.id: device for device in devices}

    resolved: dict[str, tuple[dict[str, _Resolved], str]] = {}
    for name, segment in analysis.segments.items():
        if segment.connection is not None:
            resolved[name] = _assign_connection_segment(segment, by_id, analysis)
        else:
            resolved[name] = _assign_pooled_segment(segment, by_id, analysis)

    assignments: dict[str, list[InterfaceAssignment]] = {}
    for device in devices:
        device_assignments = []
        for index, name in enumerate(analysis.device_networks.get(device.id, [])):
            segment = analysis.segments[name]
            addresses, gateway = resolved[name]
            address = addresses[device.id]
            device_assignments.append(
                InterfaceAssignment(
                    device_id=device.id,
                    network=name,
                    ip=address.ip,
                    subnet=segment.subnet,
                    gateway=gateway,
                    interface_index=index,
                    is_custom_ip=address.is_custom,
                    connection_id=segment.connection_id,
                )
            )
            logger.debug(
                "%s %s: %s on %s (%s) [%s]",
                device.id,
                f"eth{index + 1}",
                address.ip,
                name,
                segment.subnet,
                "CUSTOM" if address.is_custom else "AUTO",
            )
        assignments[device.id] = device_assignments

    return assignments
