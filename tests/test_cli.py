import json

import pytest
import yaml
from click.testing import CliRunner

from infra_designer.cli import cli

STAR_DESIGN = {
    "devices": [
        {"id": "R1", "type": "router"},
        {"id": "V1", "type": "vm"},
        {"id": "V2", "type": "vm"},
    ],
    "connections": [{"from": "R1", "to": "V1"}, {"from": "R1", "to": "V2"}],
}


@pytest.fixture()
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    designs = tmp_path / "designs"
    designs.mkdir()
    (designs / "star.yaml").write_text(yaml.safe_dump(STAR_DESIGN))
    return tmp_path


def _invoke(*args):
    return CliRunner().invoke(cli, list(args))


def test_export_full_to_stdout(workdir):
    result = _invoke("export", "star", "--generation", "202401011200")

    assert result.exit_code == 0
    docs = [d for d in yaml.safe_load_all(result.output) if d]
    assert [d["kind"] for d in docs].count("VirtualMachine") == 3
    assert "r1-202401011200" in result.output


def test_export_to_file(workdir):
    out = workdir / "pvcs.yaml"
    result = _invoke("export", "star", "--mode", "pvcs", "-o", str(out))

    assert result.exit_code == 0
    assert "Wrote pvcs export for 3 devices" in result.output
    kinds = [d["kind"] for d in yaml.safe_load_all(out.read_text()) if d]
    assert "VirtualMachine" not in kinds


def test_export_network_mode_override(workdir):
    result = _invoke("export", "star", "--network-mode", "shared", "--mode", "pvcs")

    kinds = [d["kind"] for d in yaml.safe_load_all(result.output) if d]
    assert kinds.count("NetworkAttachmentDefinition") == 1


def test_export_empty_design_fails(workdir):
    (workdir / "designs" / "empty.yaml").write_text("devices: []\n")

    result = _invoke("export", "empty")

    assert result.exit_code == 1
    assert "No devices to export" in result.output


def test_missing_design_fails(workdir):
    result = _invoke("validate", "nope")

    assert result.exit_code == 1
    assert "Design 'nope' not found" in result.output


def test_rejected_design_fails(workdir):
    bad = {
        "devices": [{"id": "V1"}, {"id": "V2"}],
        "connections": [{"from": "V1", "to": "V2"}],
    }
    (workdir / "designs" / "bad.yaml").write_text(yaml.safe_dump(bad))

    result = _invoke("export", "bad")

    assert result.exit_code == 1
    assert "prohibited" in result.output


def test_topology_report(workdir):
    result = _invoke("topology", "star")

    assert result.exit_code == 0
    report = json.loads(result.output)["topology"]
    assert sorted(report["networkSegments"]) == ["net1", "net2"]


def test_validate_summary(workdir):
    result = _invoke("validate", "star")

    assert result.exit_code == 0
    assert "star: 3 devices, 2 connections, 2 network segments" in result.output


def test_config_option(workdir):
    settings = workdir / "settings.yaml"
    settings.write_text("storage_class: local-path\n")

    result = _invoke("--config", str(settings), "export", "star", "--mode", "pvcs")

    assert result.exit_code == 0
    assert "storageClassName: local-path" in result.output


def test_missing_config_option_fails(workdir):
    result = _invoke("--config", str(workdir / "nope.yaml"), "validate", "star")

    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_list_designs(workdir):
    result = _invoke("list")

    assert result.exit_code == 0
    assert "  - star" in result.output


def test_list_empty_directory(workdir):
    result = _invoke("list", str(workdir / "nothing"))

    assert "No designs found" in result.output
