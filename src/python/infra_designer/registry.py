"""In-memory device/connection registry.

The registry owns the mutable design state. The compiler never reads it
directly; callers hand it a ``snapshot()`` instead.
"""

import copy
import logging
from typing import Optional

from .ipv4 import is_valid_ipv4
from .models import Connection, Device, DeviceType
from .sizing import parse_speed_to_mbps

logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """Base class for rejected registry operations."""

    pass


class DuplicateDeviceError(RegistryError):
    """Raised when a device id is already taken."""

    pass


class DuplicateAddressError(RegistryError):
    """Raised when a static IP is already assigned to another device."""

    pass


class InvalidAddressError(RegistryError):
    """Raised when an address is not a valid dotted-quad."""

    pass


class DeviceNotFoundError(RegistryError):
    """Raised when a referenced device does not exist."""

    pass


class ProhibitedConnectionError(RegistryError):
    """Raised for connections the topology does not allow (VM to VM)."""

    pass


class DuplicateConnectionError(RegistryError):
    """Raised when two devices are already connected."""

    pass


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _interface_key(peer_id: str) -> str:
    return f"to_{peer_id}"


class TopologyRegistry:
    """Holds devices and connections in insertion order."""

    def __init__(self) -> None:
        self._devices: list[Device] = []
        self._connections: list[Connection] = []

    def __len__(self) -> int:
        return len(self._devices)

    def get_device(self, device_id: str) -> Device:
        """Return the device with the given id.

        Raises:
            DeviceNotFoundError: If no such device exists
        """
        for device in self._devices:
            if device.id == device_id:
                return device
        raise DeviceNotFoundError(f"Device {device_id} not found")

    def add_device(
        self,
        device_id: str,
        device_type: DeviceType | str,
        cpu: Optional[str] = None,
        memory: Optional[str] = None,
        storage: Optional[str] = None,
        ip: Optional[str] = None,
        interface_ips: Optional[dict[str, str]] = None,
    ) -> Device:
        """Validate and store a new device.

        Args:
            device_id: Unique, user-chosen identifier
            device_type: One of vm, router, switch
            cpu: CPU description, e.g. "2"
            memory: Memory size, e.g. "4GB"
            storage: Disk size, e.g. "20GB"
            ip: Optional static address
            interface_ips: Router-only map of "to_<peer>" -> address

        Returns:
            The stored Device

        Raises:
            RegistryError: If the id, type or addresses are rejected
        """
        device_id = _clean(device_id)
        if not device_id:
            raise RegistryError("Device id is required")
        try:
            device_type = DeviceType(device_type)
        except ValueError:
            raise RegistryError(
                f"Unsupported device type: {device_type}. Expected one of: "
                + ", ".join(t.value for t in DeviceType)
            ) from None

        if any(d.id == device_id for d in self._devices):
            raise DuplicateDeviceError(f"Device with ID {device_id} already exists")

        ip = _clean(ip)
        if ip is not None:
            if not is_valid_ipv4(ip):
                raise InvalidAddressError(f"Invalid IP address format: {ip}")
            owner = next((d for d in self._devices if d.ip == ip), None)
            if owner is not None:
                raise DuplicateAddressError(
                    f"IP address {ip} is already assigned to device {owner.id}"
                )

        processed_interface_ips: dict[str, str] = {}
        if device_type is DeviceType.ROUTER and interface_ips:
            for key, value in interface_ips.items():
                value = _clean(value)
                if value is None:
                    continue
                if not is_valid_ipv4(value):
                    raise InvalidAddressError(
                        f"Invalid interface IP format for {key}: {value}"
                    )
                processed_interface_ips[key] = value

        device = Device(
            id=device_id,
            type=device_type,
            cpu=_clean(cpu),
            memory=_clean(memory),
            storage=_clean(storage),
            ip=ip,
            interface_ips=processed_interface_ips,
        )
        self._devices.append(device)
        logger.info("Device created: %s (%s)", device.id, device.type.value)
        return device

    def list_devices(self) -> list[Device]:
        return list(self._devices)

    def delete_device(self, device_id: str) -> tuple[int, int]:
        """Remove a device and every connection that references it.

        Returns:
            Tuple of (devices deleted, connections deleted)
        """
        initial_devices = len(self._devices)
        initial_connections = len(self._connections)

        self._devices = [d for d in self._devices if d.id != device_id]
        self._connections = [
            c for c in self._connections if device_id not in (c.from_id, c.to_id)
        ]
        # Router interfaces toward the removed device go with its links
        for device in self._devices:
            device.interface_ips.pop(_interface_key(device_id), None)

        devices_deleted = initial_devices - len(self._devices)
        connections_deleted = initial_connections - len(self._connections)
        logger.info(
            "Deleted %d device(s), %d connection(s) for %s",
            devices_deleted,
            connections_deleted,
            device_id,
        )
        return devices_deleted, connections_deleted

    def add_connection(
        self,
        from_id: str,
        to_id: str,
        speed: Optional[str] = None,
        from_router_ip: Optional[str] = None,
        to_router_ip: Optional[str] = None,
    ) -> Connection:
        """Validate and store a connection between two existing devices.

        Router-side addresses are also recorded on the router's
        ``interface_ips`` under ``to_<peer>``.

        Raises:
            RegistryError: If the endpoints, pair or addresses are rejected
        """
        try:
            from_device = self.get_device(from_id)
            to_device = self.get_device(to_id)
        except DeviceNotFoundError:
            raise DeviceNotFoundError("One or both devices not found.") from None

        if from_device.id == to_device.id:
            raise ProhibitedConnectionError("A device cannot be connected to itself.")
        if from_device.type is DeviceType.VM and to_device.type is DeviceType.VM:
            raise ProhibitedConnectionError("Connecting VM with VM is prohibited.")
        if any(c.joins(from_id, to_id) for c in self._connections):
            raise DuplicateConnectionError(
                "Connection already exists between these devices"
            )

        speed = _clean(speed)
        if speed is not None:
            parse_speed_to_mbps(speed)

        from_router_ip = self._router_side_ip(from_device, from_router_ip)
        to_router_ip = self._router_side_ip(to_device, to_router_ip)

        connection = Connection(
            from_id=from_device.id,
            to_id=to_device.id,
            from_router_ip=from_router_ip,
            to_router_ip=to_router_ip,
            speed=speed,
        )
        self._connections.append(connection)

        if from_router_ip:
            from_device.interface_ips[_interface_key(to_device.id)] = from_router_ip
            logger.info("Router %s interface to %s: %s", from_device.id, to_device.id, from_router_ip)
        if to_router_ip:
            to_device.interface_ips[_interface_key(from_device.id)] = to_router_ip
            logger.info("Router %s interface to %s: %s", to_device.id, from_device.id, to_router_ip)

        logger.info("Connection created: %s", connection.key)
        return connection

    def list_connections(self) -> list[Connection]:
        return list(self._connections)

    def clear(self) -> None:
        self._devices = []
        self._connections = []

    def snapshot(self) -> tuple[list[Device], list[Connection]]:
        """Return independent copies of the current devices and connections."""
        return copy.deepcopy(self._devices), copy.deepcopy(self._connections)

    @staticmethod
    def _router_side_ip(device: Device, value: Optional[str]) -> Optional[str]:
        value = _clean(value)
        if value is None:
            return None
        if device.type is not DeviceType.ROUTER:
            logger.info("Ignoring router IP %s for non-router %s", value, device.id)
            return None
        if not is_valid_ipv4(value):
            raise InvalidAddressError(
                f"Invalid router interface IP for {device.id}: {value}"
            )
        return value
