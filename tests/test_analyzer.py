import logging

import pytest

from infra_designer.analyzer import (
    SubnetMismatchError,
    UnknownNetworkModeError,
    analyze_topology,
)
from infra_designer.models import Connection, Device, DeviceType


def test_isolated_devices_get_empty_network_lists(registry):
    registry.add_device("V1", "vm")
    registry.add_device("S1", "switch")
    devices, connections = registry.snapshot()

    analysis = analyze_topology(devices, connections)

    assert analysis.segments == {}
    assert analysis.device_networks == {"V1": [], "S1": []}


def test_one_segment_per_connection_with_fallback_subnets(star_registry):
    devices, connections = star_registry.snapshot()

    analysis = analyze_topology(devices, connections)

    assert list(analysis.segments) == ["net1", "net2"]
    assert analysis.segments["net1"].subnet == "192.168.1.0/24"
    assert analysis.segments["net2"].subnet == "192.168.2.0/24"
    assert analysis.segments["net1"].devices == ["R1", "V1"]
    assert analysis.segments["net2"].connection_id == "R1-V2"
    assert analysis.device_networks == {
        "R1": ["net1", "net2"],
        "V1": ["net1"],
        "V2": ["net2"],
    }


def test_segment_numbering_follows_insertion_order(registry):
    registry.add_device("R1", "router")
    registry.add_device("V1", "vm")
    registry.add_device("V2", "vm")
    registry.add_connection("R1", "V2")
    registry.add_connection("R1", "V1")

    analysis = analyze_topology(*registry.snapshot())

    assert analysis.segments["net1"].devices == ["R1", "V2"]
    assert analysis.segments["net2"].devices == ["R1", "V1"]
    assert analysis.device_networks["V1"] == ["net2"]


def test_static_ip_sets_subnet(registry):
    registry.add_device("V1", "vm", ip="10.5.5.50")
    registry.add_device("R1", "router")
    registry.add_connection("V1", "R1")

    segment = analyze_topology(*registry.snapshot()).segments["net1"]

    assert segment.subnet == "10.5.5.0/24"
    assert segment.network_base == "10.5.5"
    assert segment.detected_from_ip == "10.5.5.50"
    assert segment.consistent


def test_router_ip_takes_priority_over_device_ips(registry):
    registry.add_device("R1", "router")
    registry.add_device("S1", "switch", ip="172.16.4.9")
    registry.add_connection("S1", "R1", to_router_ip="172.16.8.1")

    segment = analyze_topology(*registry.snapshot()).segments["net1"]

    assert segment.subnet == "172.16.8.0/24"
    assert segment.connection_ips == ["172.16.8.1", "172.16.4.9"]


def test_mismatched_subnet_is_flagged_not_rejected(registry, caplog):
    registry.add_device("R1", "router")
    registry.add_device("S1", "switch", ip="172.16.4.9")
    registry.add_connection("S1", "R1", to_router_ip="172.16.8.1")

    with caplog.at_level(logging.WARNING, logger="infra_designer.analyzer"):
        segment = analyze_topology(*registry.snapshot()).segments["net1"]

    assert not segment.consistent
    assert "same subnet" in caplog.text


def test_mismatched_subnet_rejected_in_strict_mode(registry):
    registry.add_device("R1", "router")
    registry.add_device("S1", "switch", ip="172.16.4.9")
    registry.add_connection("S1", "R1", to_router_ip="172.16.8.1")

    with pytest.raises(SubnetMismatchError):
        analyze_topology(*registry.snapshot(), strict_subnets=True)


def test_invalid_candidate_falls_back_to_synthetic_subnet():
    devices = [Device("R1", DeviceType.ROUTER), Device("V1", DeviceType.VM, ip="not-an-ip")]
    connections = [Connection("R1", "V1", from_router_ip="999.1.1.1")]

    segment = analyze_topology(devices, connections).segments["net1"]

    assert segment.subnet == "192.168.1.0/24"
    assert segment.detected_from_ip is None


def test_duplicate_and_dangling_connections_are_skipped():
    devices = [Device("R1", DeviceType.ROUTER), Device("V1", DeviceType.VM)]
    connections = [
        Connection("R1", "V1"),
        Connection("V1", "R1"),
        Connection("R1", "ghost"),
    ]

    analysis = analyze_topology(devices, connections)

    assert list(analysis.segments) == ["net1"]
    assert analysis.device_networks == {"R1": ["net1"], "V1": ["net1"]}


def test_analysis_is_repeatable(star_registry):
    devices, connections = star_registry.snapshot()
    first = analyze_topology(devices, connections)
    second = analyze_topology(devices, connections)
    assert first == second


def test_shared_mode_uses_single_segment(star_registry):
    analysis = analyze_topology(*star_registry.snapshot(), network_mode="shared")

    assert list(analysis.segments) == ["net1"]
    assert analysis.segments["net1"].devices == ["R1", "V1", "V2"]
    assert analysis.segments["net1"].connection is None
    assert all(networks == ["net1"] for networks in analysis.device_networks.values())


def test_device_type_mode_attaches_routers_everywhere(registry):
    registry.add_device("V1", "vm", ip="10.1.1.20")
    registry.add_device("R1", "router")
    registry.add_device("S1", "switch")
    registry.add_device("V2", "vm")

    analysis = analyze_topology(*registry.snapshot(), network_mode="device-type")

    assert list(analysis.segments) == ["net1", "net2", "net3"]
    assert analysis.segments["net1"].devices == ["V1", "R1", "V2"]
    assert analysis.segments["net1"].subnet == "10.1.1.0/24"
    assert analysis.segments["net2"].devices == ["R1"]
    assert analysis.segments["net3"].devices == ["R1", "S1"]
    assert analysis.segments["net3"].subnet == "192.168.3.0/24"
    assert analysis.device_networks["R1"] == ["net1", "net2", "net3"]


def test_unknown_mode_rejected(star_registry):
    with pytest.raises(UnknownNetworkModeError):
        analyze_topology(*star_registry.snapshot(), network_mode="vlan")
