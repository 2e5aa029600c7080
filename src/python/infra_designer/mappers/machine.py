"""Mapper for KubeVirt VirtualMachine resources."""

from ..config import CompilerSettings
from ..models import Device, InterfaceAssignment, Manifest
from ..sizing import normalize_memory, parse_cpu_cores
from .cloud_init import render_basic_user_data, render_user_data
from .storage import claim_name, label_value, resource_name

# Default configuration
MACHINE_TYPE = "q35"
DEFAULT_NETWORK = "default"
DISK_NAME = "disk0"
CLOUD_INIT_DISK = "cloudinitdisk"


def machine_name(device: Device, generation: str) -> str:
    """Machine name carrying the generation token."""
    return f"{resource_name(device)}-{generation}"


def build_machine(
    device: Device,
    assignments: list[InterfaceAssignment],
    settings: CompilerSettings,
    generation: str,
) -> Manifest:
    """Build a multi-interface VirtualMachine from a device and its assignments.

    Args:
        device: Device record
        assignments: The device's interface assignments, in interface order
        settings: Compiler settings
        generation: Token appended to the machine name

    Returns:
        Manifest holding the VirtualMachine document
    """
    interfaces, networks = _build_network_interfaces(assignments)
    user_data = render_user_data(device, assignments, settings)

    body = {
        "apiVersion": "kubevirt.io/v1",
        "kind": "VirtualMachine",
        "metadata": {
            "name": machine_name(device, generation),
            "labels": {
                "kubevirt.io/os": "linux",
                "device-type": device.type.value,
                "device-id": label_value(device.id),
                "deployment-version": generation,
                "interface-count": str(len(assignments)),
            },
        },
        "spec": {
            "runStrategy": "Always",
            "template": {
                "metadata": {
                    "labels": {
                        "deployment-id": generation,
                        "network-interfaces": str(len(assignments)),
                    },
                },
                "spec": _build_template_spec(device, interfaces, networks, user_data),
            },
        },
    }
    comment = (
        f"{device.type.value.upper()}: {device.id} with Multi-Interface "
        f"Configuration ({len(assignments)} interfaces)"
    )
    return Manifest(comment=comment, body=body)


def build_basic_machine(device: Device, settings: CompilerSettings) -> Manifest:
    """Build a VirtualMachine attached to the pod network only."""
    interfaces, networks = _build_network_interfaces([])
    user_data = render_basic_user_data(device, settings)

    body = {
        "apiVersion": "kubevirt.io/v1",
        "kind": "VirtualMachine",
        "metadata": {
            "name": resource_name(device),
            "labels": {
                "kubevirt.io/os": "linux",
                "device-type": device.type.value,
                "device-id": label_value(device.id),
            },
        },
        "spec": {
            "runStrategy": "Always",
            "template": {
                "spec": _build_template_spec(device, interfaces, networks, user_data),
            },
        },
    }
    return Manifest(comment=f"Basic {device.type.value.upper()}: {device.id}", body=body)


def _build_network_interfaces(
    assignments: list[InterfaceAssignment],
) -> tuple[list[dict], list[dict]]:
    """Build the domain interface list and the matching pod networks.

    The default masquerade interface always comes first; each assignment
    adds a bridge interface bound to its segment's attachment.
    """
    interfaces = [{"name": DEFAULT_NETWORK, "masquerade": {}}]
    networks = [{"name": DEFAULT_NETWORK, "pod": {}}]

    for assignment in assignments:
        interfaces.append({"name": assignment.network, "bridge": {}})
        networks.append(
            {"name": assignment.network, "multus": {"networkName": assignment.network}}
        )

    return interfaces, networks


def _build_template_spec(
    device: Device,
    interfaces: list[dict],
    networks: list[dict],
    user_data: str,
) -> dict:
    return {
        "domain": {
            "cpu": {
                "cores": parse_cpu_cores(device.cpu, device.type),
            },
            "devices": {
                "disks": [
                    {"disk": {"bus": "virtio"}, "name": DISK_NAME},
                    {"cdrom": {"bus": "sata", "readonly": True}, "name": CLOUD_INIT_DISK},
                ],
                "interfaces": interfaces,
            },
            "machine": {"type": MACHINE_TYPE},
            "resources": {
                "requests": {
                    "memory": normalize_memory(device.memory, device.type),
                },
            },
        },
        "networks": networks,
        "volumes": [
            {
                "name": DISK_NAME,
                "persistentVolumeClaim": {"claimName": claim_name(device)},
            },
            {
                "name": CLOUD_INIT_DISK,
                "cloudInitNoCloud": {"userData": user_data},
            },
        ],
    }
