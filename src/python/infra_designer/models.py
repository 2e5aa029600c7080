"""Data models for infra_designer."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class DeviceType(str, Enum):
    """Kind of node in a designed topology."""

    VM = "vm"
    ROUTER = "router"
    SWITCH = "switch"


@dataclass
class Device:
    """A device record as held by the registry."""

    id: str
    type: DeviceType
    cpu: Optional[str] = None  # e.g., "2 cores"
    memory: Optional[str] = None  # e.g., "4GB"
    storage: Optional[str] = None  # e.g., "20GB"
    ip: Optional[str] = None  # static address, e.g., "10.5.5.50"
    # Router only, keyed "to_<peerDeviceId>"
    interface_ips: dict[str, str] = field(default_factory=dict)

    @property
    def is_router(self) -> bool:
        return self.type is DeviceType.ROUTER


@dataclass
class Connection:
    """An undirected link between two devices."""

    from_id: str
    to_id: str
    from_router_ip: Optional[str] = None
    to_router_ip: Optional[str] = None
    speed: Optional[str] = None  # e.g., "1Gbps"

    @property
    def key(self) -> str:
        return f"{self.from_id}-{self.to_id}"

    @property
    def reverse_key(self) -> str:
        return f"{self.to_id}-{self.from_id}"

    def joins(self, a: str, b: str) -> bool:
        return {self.from_id, self.to_id} == {a, b}

    def peer_of(self, device_id: str) -> str:
        return self.to_id if device_id == self.from_id else self.from_id


@dataclass
class NetworkSegment:
    """An isolated broadcast domain derived from the topology."""

    name: str  # e.g., "net1"
    subnet: str  # e.g., "192.168.1.0/24"
    network_base: str  # e.g., "192.168.1"
    devices: list[str] = field(default_factory=list)
    connection: Optional[Connection] = None
    detected_from_ip: Optional[str] = None
    connection_ips: list[str] = field(default_factory=list)
    consistent: bool = True

    @property
    def connection_id(self) -> Optional[str]:
        return self.connection.key if self.connection else None

    @property
    def speed(self) -> Optional[str]:
        return self.connection.speed if self.connection else None

    @property
    def third_octet(self) -> str:
        return self.network_base.split(".")[2]


@dataclass
class InterfaceAssignment:
    """Address a device uses on one of its segments."""

    device_id: str
    network: str
    ip: str
    subnet: str
    gateway: str
    interface_index: int
    is_custom_ip: bool = False
    connection_id: Optional[str] = None

    @property
    def interface_name(self) -> str:
        return f"eth{self.interface_index + 1}"


@dataclass
class TopologyAnalysis:
    """Segments and per-device segment membership."""

    segments: dict[str, NetworkSegment] = field(default_factory=dict)
    device_networks: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class Manifest:
    """A single document ready for serialization."""

    comment: str
    body: dict[str, Any]
