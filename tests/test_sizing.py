import pytest

from infra_designer.models import DeviceType
from infra_designer.sizing import (
    InvalidSpeedError,
    normalize_memory,
    normalize_storage_quantity,
    parse_cpu_cores,
    parse_speed_to_mbps,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("20GB", "20Gi"),
        ("512MB", "512Mi"),
        ("1TB", "1Ti"),
        ("20g", "20Gi"),
        ("64 M", "64Mi"),
        ("30Gi", "30Gi"),
        ("15", "15Gi"),
        ("", "10Gi"),
        (None, "10Gi"),
        ("lots", "10Gi"),
        ("2.5GB", "10Gi"),
    ],
)
def test_storage_quantity_normalization(raw, expected):
    assert normalize_storage_quantity(raw) == expected


def test_memory_strips_binary_decoration():
    assert normalize_memory("4Gi", DeviceType.VM) == "4G"
    assert normalize_memory("4GB", DeviceType.ROUTER) == "4G"
    assert normalize_memory("512Mi", DeviceType.SWITCH) == "512M"


def test_memory_defaults_depend_on_type():
    assert normalize_memory(None, DeviceType.VM) == "2G"
    assert normalize_memory(None, DeviceType.ROUTER) == "1G"
    assert normalize_memory("plenty", DeviceType.SWITCH) == "1G"


def test_cpu_takes_first_integer():
    assert parse_cpu_cores("4 cores", DeviceType.VM) == 4
    assert parse_cpu_cores("vCPU x2, 8 threads", DeviceType.VM) == 2


def test_cpu_degrades_to_defaults():
    assert parse_cpu_cores(None, DeviceType.VM) == 1
    assert parse_cpu_cores(None, DeviceType.ROUTER) == 2
    assert parse_cpu_cores("many", DeviceType.ROUTER) == 2
    assert parse_cpu_cores("0", DeviceType.VM) == 1


def test_speed_conversion():
    assert parse_speed_to_mbps("100Mbps") == 100
    assert parse_speed_to_mbps("1 Gbps") == 1000
    assert parse_speed_to_mbps("500Kbps") == pytest.approx(0.5)


@pytest.mark.parametrize("label", ["fast", "10 furlongs", "10GBPS"])
def test_speed_rejects_unknown_labels(label):
    with pytest.raises(InvalidSpeedError):
        parse_speed_to_mbps(label)
