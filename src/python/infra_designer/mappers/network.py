"""Mapper for per-segment Multus network attachments."""

import json
import logging

from ..config import CompilerSettings
from ..ipv4 import host_address
from ..models import Manifest, NetworkSegment
from .storage import label_value

logger = logging.getLogger(__name__)

CNI_VERSION = "0.3.1"


def bridge_names(segments: list[NetworkSegment]) -> dict[str, str]:
    """Pick a short Linux bridge name per segment.

    Names come from the subnet's third octet ("br5"). A later segment whose
    octet is already taken gets its segment number appended ("br5n3").
    """
    names: dict[str, str] = {}
    used: set[str] = set()
    for segment in segments:
        name = f"br{segment.third_octet}"
        if name in used:
            clash = name
            name = f"{name}n{segment.name.removeprefix('net')}"
            logger.warning(
                "Bridge %s already used, %s uses %s instead", clash, segment.name, name
            )
        used.add(name)
        names[segment.name] = name
    return names


def build_cni_config(
    segment: NetworkSegment,
    bridge: str,
    settings: CompilerSettings,
) -> dict:
    """CNI bridge plugin config with a host-local pool over the segment."""
    return {
        "cniVersion": CNI_VERSION,
        "name": segment.name,
        "type": "bridge",
        "bridge": bridge,
        "isDefaultGateway": False,
        "isGateway": False,
        "ipMasq": False,
        "hairpinMode": True,
        "ipam": {
            "type": "host-local",
            "subnet": segment.subnet,
            "rangeStart": host_address(segment.network_base, settings.ipam_range_start),
            "rangeEnd": host_address(segment.network_base, settings.ipam_range_end),
        },
    }


def build_network_attachment(
    segment: NetworkSegment,
    bridge: str,
    settings: CompilerSettings,
) -> Manifest:
    """Build the NetworkAttachmentDefinition for one segment."""
    logger.info("Creating NetworkAttachmentDefinition %s: %s (bridge: %s)", segment.name, segment.subnet, bridge)

    labels = {
        "network-type": "infrastructure-segment",
        "network-subnet": label_value(segment.subnet.replace("/", "-").replace(".", "-")),
        "network-octet": segment.third_octet,
    }
    if segment.connection_id:
        labels["connection"] = label_value(segment.connection_id)

    body = {
        "apiVersion": "k8s.cni.cncf.io/v1",
        "kind": "NetworkAttachmentDefinition",
        "metadata": {
            "name": segment.name,
            "labels": labels,
        },
        "spec": {
            "config": json.dumps(build_cni_config(segment, bridge, settings), indent=2) + "\n",
        },
    }
    members = " <-> ".join(segment.devices)
    return Manifest(comment=f"Network {segment.name}: {segment.subnet} ({members})", body=body)


def build_network_attachments(
    segments: list[NetworkSegment],
    settings: CompilerSettings,
) -> list[Manifest]:
    bridges = bridge_names(segments)
    return [build_network_attachment(s, bridges[s.name], settings) for s in segments]
