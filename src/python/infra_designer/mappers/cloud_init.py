"""First-boot (cloud-init) user-data for a device."""

import logging

from ..config import CompilerSettings
from ..models import Device, DeviceType, InterfaceAssignment
from ..rendering import to_yaml
from .storage import resource_name

logger = logging.getLogger(__name__)

NET_SCRIPT_PATH = "/tmp/net.sh"

BASIC_PACKAGES = [
    "net-tools",
    "iputils-ping",
    "traceroute",
    "wget",
    "curl",
    "tcpdump",
    "iperf3",
    "openssh-server",
]


def hostname_for(device: Device) -> str:
    return resource_name(device)


def _guest_nic(index: int) -> str:
    """Guest NIC name for the index-th segment interface (0-based)."""
    # enp1s0 is the management (pod network) NIC
    return f"enp{index + 2}s0"


def _serialize(config: dict) -> str:
    return "#cloud-config\n" + to_yaml(config).rstrip() + "\n"


def _chpasswd(users: list[str], password: str) -> dict:
    return {
        "list": "".join(f"{user}:{password}\n" for user in users),
        "expire": False,
    }


def build_network_script(
    device: Device,
    assignments: list[InterfaceAssignment],
    settings: CompilerSettings,
) -> str:
    """Shell script configuring each segment interface."""
    mgmt = settings.management_interface
    lines = ["#!/bin/bash", f"dhclient {mgmt}"]

    for assignment in assignments:
        nic = _guest_nic(assignment.interface_index)
        name = assignment.interface_name
        lines.extend(
            [
                f"ip link set {nic} name {name} 2>/dev/null||true",
                f"ip addr add {assignment.ip}/24 dev {name}",
                f"ip link set {name} up",
            ]
        )

    if device.type is DeviceType.ROUTER:
        lines.extend(
            [
                "echo 1>/proc/sys/net/ipv4/ip_forward",
                "iptables -A FORWARD -j ACCEPT",
            ]
        )
    elif device.type in (DeviceType.VM, DeviceType.SWITCH):
        if assignments:
            first = assignments[0]
            mgmt_gw = settings.management_gateway
            lines.extend(
                [
                    f"ip route del default via {mgmt_gw} dev {mgmt} 2>/dev/null||true",
                    f"ip route add default via {first.gateway} dev {first.interface_name} metric 50",
                    f"ip route add default via {mgmt_gw} dev {mgmt} metric 100 2>/dev/null||true",
                ]
            )
    else:
        raise ValueError(f"Unhandled device type: {device.type}")

    return "\n".join(lines) + "\n"


def build_user_data(
    device: Device,
    assignments: list[InterfaceAssignment],
    settings: CompilerSettings,
) -> dict:
    """Full cloud-config tree for a networked machine."""
    config = {
        "hostname": hostname_for(device),
        "ssh_pwauth": True,
        "disable_root": False,
        "chpasswd": _chpasswd(settings.login_users, settings.login_password),
    }
    if assignments:
        config["write_files"] = [
            {
                "path": NET_SCRIPT_PATH,
                "permissions": "0755",
                "content": build_network_script(device, assignments, settings),
            }
        ]
        config["runcmd"] = [NET_SCRIPT_PATH]
    else:
        config["runcmd"] = [f"dhclient {settings.management_interface}"]
    return config


def build_minimal_user_data(
    device: Device,
    assignments: list[InterfaceAssignment],
    settings: CompilerSettings,
) -> dict:
    """Abbreviated cloud-config: DHCP plus the first interface only."""
    runcmd = [f"dhclient {settings.management_interface}"]
    if assignments:
        first = assignments[0]
        nic = _guest_nic(0)
        runcmd.extend(
            [
                f"ip addr add {first.ip}/24 dev {nic}",
                f"ip link set {nic} up",
                f"ip route add default via {first.gateway} dev {nic}",
            ]
        )
    return {
        "hostname": hostname_for(device),
        "ssh_pwauth": True,
        "chpasswd": _chpasswd(settings.login_users[:1], settings.login_password),
        "runcmd": runcmd,
    }


def render_user_data(
    device: Device,
    assignments: list[InterfaceAssignment],
    settings: CompilerSettings,
) -> str:
    """Render user-data, falling back to the abbreviated form when too large.

    Returns:
        "#cloud-config" document text within settings.user_data_limit when
        the abbreviated form allows it
    """
    user_data = _serialize(build_user_data(device, assignments, settings))
    size = len(user_data.encode("utf-8"))
    logger.debug("Cloud-init size for %s: %d bytes (limit: %d)", device.id, size, settings.user_data_limit)

    if size <= settings.user_data_limit:
        return user_data

    logger.warning(
        "Cloud-init too large for %s (%d bytes), using minimal config", device.id, size
    )
    minimal = _serialize(build_minimal_user_data(device, assignments, settings))
    minimal_size = len(minimal.encode("utf-8"))
    if minimal_size > settings.user_data_limit:
        logger.error(
            "Minimal cloud-init for %s still exceeds limit: %d bytes", device.id, minimal_size
        )
    return minimal


def render_basic_user_data(device: Device, settings: CompilerSettings) -> str:
    """User-data for pod-network-only machines."""
    config = {
        "hostname": hostname_for(device),
        "ssh_pwauth": True,
        "disable_root": False,
        "chpasswd": _chpasswd(settings.login_users, settings.login_password),
        "package_update": True,
        "packages": list(BASIC_PACKAGES),
        "runcmd": [
            "systemctl enable ssh",
            "systemctl start ssh",
            f"echo \"{device.id} ({device.type.value}) is ready on pod network\"",
            "ip addr show",
        ],
    }
    return _serialize(config)
