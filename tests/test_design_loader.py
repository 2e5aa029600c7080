import pytest

from infra_designer.design_loader import (
    DesignNotFoundError,
    DesignParseError,
    discover_designs,
    get_design_path,
    load_design,
    parse_design,
)

STAR_DESIGN = """\
devices:
  - id: R1
    type: router
    cpu: 2 cores
  - id: V1
    type: vm
    memory: 4Gi
    storage: 20GB
    ip: 10.5.5.50
connections:
  - from: V1
    to: R1
    speed: 1Gbps
"""


def test_load_design_from_path(tmp_path):
    path = tmp_path / "star.yaml"
    path.write_text(STAR_DESIGN)

    devices, connections = load_design(str(path)).snapshot()

    assert [d.id for d in devices] == ["R1", "V1"]
    assert devices[0].cpu == "2 cores"
    assert devices[1].ip == "10.5.5.50"
    assert [(c.from_id, c.to_id, c.speed) for c in connections] == [("V1", "R1", "1Gbps")]


def test_load_design_by_name(tmp_path):
    (tmp_path / "star.yml").write_text(STAR_DESIGN)

    registry = load_design("star", base_path=tmp_path)

    assert len(registry) == 2


def test_missing_design(tmp_path):
    with pytest.raises(DesignNotFoundError):
        get_design_path("nope", base_path=tmp_path)


def test_invalid_yaml(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("devices: [unclosed\n")

    with pytest.raises(DesignParseError):
        load_design(str(path))


def test_vm_to_vm_connection_is_rejected():
    data = {
        "devices": [{"id": "V1", "type": "vm"}, {"id": "V2", "type": "vm"}],
        "connections": [{"from": "V1", "to": "V2"}],
    }
    with pytest.raises(DesignParseError, match="prohibited"):
        parse_design(data)


def test_bad_speed_is_rejected():
    data = {
        "devices": [{"id": "R1", "type": "router"}, {"id": "V1"}],
        "connections": [{"from": "R1", "to": "V1", "speed": "fast"}],
    }
    with pytest.raises(DesignParseError):
        parse_design(data)


def test_device_without_id_is_rejected():
    with pytest.raises(DesignParseError, match="Device #1"):
        parse_design({"devices": [{"type": "vm"}]})


def test_router_ips_recorded_on_router():
    data = {
        "devices": [{"id": "R1", "type": "router"}, {"id": "S1", "type": "switch"}],
        "connections": [{"from": "S1", "to": "R1", "to_router_ip": "172.16.8.1"}],
    }
    devices, _ = parse_design(data).snapshot()
    assert devices[0].interface_ips == {"to_S1": "172.16.8.1"}


def test_empty_design_loads_empty_registry():
    assert len(parse_design({})) == 0


def test_discover_designs(tmp_path):
    (tmp_path / "b.yaml").write_text("devices: []\n")
    (tmp_path / "a.yml").write_text("devices: []\n")
    (tmp_path / "notes.txt").write_text("ignored\n")

    assert discover_designs(tmp_path) == ["a", "b"]
    assert discover_designs(tmp_path / "missing") == []
