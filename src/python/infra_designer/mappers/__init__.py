"""Resource mappers for converting designed devices to KubeVirt manifests."""

from .machine import build_basic_machine, build_machine
from .network import build_network_attachments
from .storage import build_storage_claim

__all__ = [
    "build_basic_machine",
    "build_machine",
    "build_network_attachments",
    "build_storage_claim",
]
