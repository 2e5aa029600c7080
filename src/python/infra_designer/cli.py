"""Click CLI commands for infra_designer."""

import dataclasses
import json
import logging
import sys
from pathlib import Path

import click

from .analyzer import STRATEGIES, SubnetMismatchError, UnknownNetworkModeError
from .assigner import AddressExhaustedError
from .config import ConfigError, load_settings
from .design_loader import (
    DESIGNS_BASE_PATH,
    DesignNotFoundError,
    DesignParseError,
    discover_designs,
    load_design,
)
from .exporter import (
    NoDevicesError,
    compile_basic_machines,
    compile_full_bundle,
    compile_machines,
    compile_storage_claims,
    describe_topology,
)

EXPORT_MODES = {
    "full": compile_full_bundle,
    "pvcs": compile_storage_claims,
    "vms": compile_machines,
    "basic": compile_basic_machines,
}

# Errors reported to the user without a traceback
_USER_ERRORS = (
    ConfigError,
    DesignNotFoundError,
    DesignParseError,
    NoDevicesError,
    SubnetMismatchError,
    UnknownNetworkModeError,
    AddressExhaustedError,
)


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Settings file (default: $INFRA_DESIGNER_CONFIG or ./designer.yaml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """Compile virtual network designs into KubeVirt manifests."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


def _settings(ctx: click.Context, network_mode: str | None = None):
    settings = load_settings(ctx.obj.get("config_path"))
    if network_mode:
        settings = dataclasses.replace(settings, network_mode=network_mode)
    return settings


def _fail(error: Exception) -> None:
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)


@cli.command()
@click.argument("design")
@click.option(
    "--mode",
    type=click.Choice(list(EXPORT_MODES)),
    default="full",
    show_default=True,
    help="full bundle, PVCs only, VMs only, or basic pod-network VMs",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    help="Write manifests to a file instead of stdout",
)
@click.option(
    "--network-mode",
    type=click.Choice(list(STRATEGIES)),
    help="Override the configured topology strategy",
)
@click.option("--generation", help="Machine name suffix (default: current UTC minute)")
@click.pass_context
def export(
    ctx: click.Context,
    design: str,
    mode: str,
    output: Path | None,
    network_mode: str | None,
    generation: str | None,
) -> None:
    """Export DESIGN as KubeVirt manifests.

    DESIGN is a YAML file path or a design name under designs/.
    """
    try:
        settings = _settings(ctx, network_mode)
        registry = load_design(design)
        devices, connections = registry.snapshot()
        manifests = EXPORT_MODES[mode](devices, connections, settings, generation)
    except _USER_ERRORS as e:
        _fail(e)

    if output:
        output.write_text(manifests)
        click.echo(
            f"Wrote {mode} export for {len(devices)} devices to {output}", err=True
        )
    else:
        click.echo(manifests, nl=False)


@cli.command()
@click.argument("design")
@click.option(
    "--network-mode",
    type=click.Choice(list(STRATEGIES)),
    help="Override the configured topology strategy",
)
@click.pass_context
def topology(ctx: click.Context, design: str, network_mode: str | None) -> None:
    """Print the segment and address analysis of DESIGN as JSON."""
    try:
        settings = _settings(ctx, network_mode)
        devices, connections = load_design(design).snapshot()
        report = describe_topology(devices, connections, settings)
    except _USER_ERRORS as e:
        _fail(e)

    click.echo(json.dumps({"topology": report}, indent=2))


@cli.command()
@click.argument("design")
@click.pass_context
def validate(ctx: click.Context, design: str) -> None:
    """Check that DESIGN loads and compiles."""
    try:
        settings = _settings(ctx)
        devices, connections = load_design(design).snapshot()
        report = describe_topology(devices, connections, settings)
    except _USER_ERRORS as e:
        _fail(e)

    segments = report["networkSegments"].values()
    click.echo(
        f"{design}: {len(devices)} devices, {len(connections)} connections, "
        f"{len(segments)} network segments"
    )
    inconsistent = [s["name"] for s in segments if not s["consistent"]]
    if inconsistent:
        click.echo(f"Warning: mixed subnets in {', '.join(inconsistent)}", err=True)


@cli.command("list")
@click.argument(
    "directory",
    required=False,
    type=click.Path(file_okay=False, path_type=Path),
)
def list_designs(directory: Path | None) -> None:
    """List all discovered designs."""
    base = directory or DESIGNS_BASE_PATH
    designs = discover_designs(base)
    if designs:
        click.echo("Discovered designs:")
        for design in designs:
            click.echo(f"  - {design}")
    else:
        click.echo(f"No designs found in {base}/")
