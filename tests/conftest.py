import sys
from pathlib import Path

import pytest

# Ensure the package source is importable without an install
SRC = Path(__file__).resolve().parent.parent / "src" / "python"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from infra_designer.config import load_settings  # noqa: E402
from infra_designer.registry import TopologyRegistry  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    monkeypatch.delenv("INFRA_DESIGNER_CONFIG", raising=False)
    load_settings.cache_clear()
    yield
    load_settings.cache_clear()


@pytest.fixture()
def registry() -> TopologyRegistry:
    return TopologyRegistry()


@pytest.fixture()
def star_registry(registry) -> TopologyRegistry:
    """R1 router with two VMs hanging off it."""
    registry.add_device("R1", "router")
    registry.add_device("V1", "vm")
    registry.add_device("V2", "vm")
    registry.add_connection("R1", "V1")
    registry.add_connection("R1", "V2")
    return registry
