"""Export entry points sharing one analyze/assign/render pipeline."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .analyzer import analyze_topology
from .assigner import assign_addresses
from .config import CompilerSettings
from .mappers import (
    build_basic_machine,
    build_machine,
    build_network_attachments,
    build_storage_claim,
)
from .models import Connection, Device, InterfaceAssignment, Manifest, TopologyAnalysis
from .rendering import render_documents

logger = logging.getLogger(__name__)


class NoDevicesError(Exception):
    """Raised when an export is requested for an empty design."""

    pass


@dataclass
class CompiledTopology:
    """Analyzer and assigner output for one snapshot."""

    devices: list[Device]
    connections: list[Connection]
    analysis: TopologyAnalysis
    assignments: dict[str, list[InterfaceAssignment]]
    settings: CompilerSettings
    generation: str


def generation_token(now: Optional[datetime] = None) -> str:
    """Minute-resolution timestamp, e.g. "202410181432"."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y%m%d%H%M")


def compile_topology(
    devices: list[Device],
    connections: list[Connection],
    settings: Optional[CompilerSettings] = None,
    generation: Optional[str] = None,
) -> CompiledTopology:
    """Run analysis and address assignment for a snapshot.

    Raises:
        NoDevicesError: If devices is empty
    """
    if not devices:
        raise NoDevicesError("No devices to export. Please add some devices first.")

    settings = settings or CompilerSettings()
    logger.info("Compiling %d devices, %d connections", len(devices), len(connections))

    analysis = analyze_topology(
        devices,
        connections,
        network_mode=settings.network_mode,
        strict_subnets=settings.strict_subnets,
    )
    assignments = assign_addresses(devices, analysis)

    return CompiledTopology(
        devices=devices,
        connections=connections,
        analysis=analysis,
        assignments=assignments,
        settings=settings,
        generation=generation or generation_token(),
    )


def _attachments(compiled: CompiledTopology) -> list[Manifest]:
    return build_network_attachments(list(compiled.analysis.segments.values()), compiled.settings)


def _claims(compiled: CompiledTopology) -> list[Manifest]:
    return [build_storage_claim(device, compiled.settings) for device in compiled.devices]


def _machines(compiled: CompiledTopology) -> list[Manifest]:
    return [
        build_machine(
            device,
            compiled.assignments.get(device.id, []),
            compiled.settings,
            compiled.generation,
        )
        for device in compiled.devices
    ]


def _generated_line() -> str:
    return f"Generated: {datetime.now(timezone.utc).isoformat(timespec='seconds')}"


def compile_full_bundle(
    devices: list[Device],
    connections: list[Connection],
    settings: Optional[CompilerSettings] = None,
    generation: Optional[str] = None,
) -> str:
    """Render attachments, storage claims and machines as one document stream.

    Raises:
        NoDevicesError: If devices is empty
    """
    compiled = compile_topology(devices, connections, settings, generation)
    header = [
        "KubeVirt Infrastructure with Connection-Based Networking",
        _generated_line(),
        f"Devices: {len(devices)} | Connections: {len(connections)}"
        f" | Network mode: {compiled.settings.network_mode}",
        "",
        "DEPLOYMENT:",
        "1. Apply this complete file, or",
        "2. Apply PVCs first, wait for import, then apply VMs",
    ]
    manifests = _attachments(compiled) + _claims(compiled) + _machines(compiled)
    return render_documents(header, manifests)


def compile_storage_claims(
    devices: list[Device],
    connections: list[Connection],
    settings: Optional[CompilerSettings] = None,
    generation: Optional[str] = None,
) -> str:
    """Render network attachments and storage claims for a staged import.

    Raises:
        NoDevicesError: If devices is empty
    """
    compiled = compile_topology(devices, connections, settings, generation)
    header = [
        "KubeVirt PVCs and Network Setup",
        _generated_line(),
        "",
        "Apply this first and wait for CDI import completion",
        f"Network segments: {len(compiled.analysis.segments)}",
    ]
    return render_documents(header, _attachments(compiled) + _claims(compiled))


def compile_machines(
    devices: list[Device],
    connections: list[Connection],
    settings: Optional[CompilerSettings] = None,
    generation: Optional[str] = None,
) -> str:
    """Render machines that bind to claims from an earlier claims export.

    Raises:
        NoDevicesError: If devices is empty
    """
    compiled = compile_topology(devices, connections, settings, generation)
    header = [
        "KubeVirt VMs with Connection-Based Network Configuration",
        _generated_line(),
        "",
        "IMPORTANT: Apply after PVCs are ready (Status: Succeeded)",
        "Check with: kubectl get pvc",
    ]
    return render_documents(header, _machines(compiled))


def compile_basic_machines(
    devices: list[Device],
    connections: list[Connection],
    settings: Optional[CompilerSettings] = None,
    generation: Optional[str] = None,
) -> str:
    """Render pod-network-only machines for smoke testing a cluster.

    Raises:
        NoDevicesError: If devices is empty
    """
    if not devices:
        raise NoDevicesError("No devices to export. Please add some devices first.")
    settings = settings or CompilerSettings()
    header = [
        "Basic KubeVirt VMs (Pod Network Only)",
        _generated_line(),
        "",
        "This creates VMs with basic pod networking only",
        "Use this for initial testing, then upgrade to full networking",
    ]
    return render_documents(header, [build_basic_machine(d, settings) for d in devices])


def describe_topology(
    devices: list[Device],
    connections: list[Connection],
    settings: Optional[CompilerSettings] = None,
) -> dict:
    """JSON-ready report of segments and per-device assignments."""
    settings = settings or CompilerSettings()
    if devices:
        compiled = compile_topology(devices, connections, settings, generation="report")
        analysis, assignments = compiled.analysis, compiled.assignments
    else:
        analysis, assignments = TopologyAnalysis(), {}

    return {
        "networkMode": settings.network_mode,
        "devices": [
            {
                "id": device.id,
                "type": device.type.value,
                "ip": device.ip,
                "interfaceIPs": dict(device.interface_ips),
                "networks": [
                    {
                        "network": a.network,
                        "ip": a.ip,
                        "subnet": a.subnet,
                        "gateway": a.gateway,
                        "interfaceName": a.interface_name,
                        "isCustomIP": a.is_custom_ip,
                        "connectionId": a.connection_id,
                    }
                    for a in assignments.get(device.id, [])
                ],
            }
            for device in devices
        ],
        "networkSegments": {
            name: {
                "name": segment.name,
                "subnet": segment.subnet,
                "networkBase": segment.network_base,
                "devices": list(segment.devices),
                "connectionId": segment.connection_id,
                "speed": segment.speed,
                "detectedFromIP": segment.detected_from_ip,
                "allConnectionIPs": list(segment.connection_ips),
                "consistent": segment.consistent,
            }
            for name, segment in analysis.segments.items()
        },
        "connections": [
            {
                "from": conn.from_id,
                "to": conn.to_id,
                "speed": conn.speed,
                "fromRouterIP": conn.from_router_ip,
                "toRouterIP": conn.to_router_ip,
            }
            for conn in connections
        ],
    }
