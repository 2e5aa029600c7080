"""Small IPv4 helpers shared by the registry and the analyzer."""

import ipaddress
from typing import Optional


def is_valid_ipv4(value: Optional[str]) -> bool:
    """Return True if value is a dotted-quad IPv4 address."""
    if not value or not isinstance(value, str):
        return False
    try:
        ipaddress.IPv4Address(value.strip())
    except ipaddress.AddressValueError:
        return False
    return True


def network_base(ip: str) -> str:
    """Return the first three octets of an address, e.g. "10.5.5"."""
    return ".".join(ip.strip().split(".")[:3])


def host_address(base: str, host: int) -> str:
    """Compose an address from a /24 base and a host number."""
    return f"{base}.{host}"


def host_number(ip: str) -> int:
    """Return the last octet of an address."""
    return int(ip.strip().split(".")[3])
