"""Command line interface for nft-tickets-deployments."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import load_config, read_raw_config, validate_config
from .deployments import run_migrations
from .exceptions import DeploymentError
from .registry import DeploymentRegistry

APP_NAME = "nft-tickets-deploy"
LOG_FORMAT = "%(message)s"

console = Console()


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Setup logging configuration

    Args:
        verbose: Enable verbose output (INFO level)
        debug: Enable debug output (DEBUG level)
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[
            RichHandler(
                console=console,
                show_time=debug,
                show_path=debug,
                rich_tracebacks=True,
                tracebacks_suppress=[click],
            )
        ],
    )

    # Request-level chatter only when debugging
    logging.getLogger("urllib3").setLevel(logging.DEBUG if debug else logging.WARNING)


class Context:
    """Options shared by all commands"""

    def __init__(self, config_path: Optional[Path], registry_path: Optional[Path]):
        self.config_path = config_path
        self.registry_path = registry_path
        self.debug = False


def _fail(ctx: click.Context, error: Exception) -> None:
    console.print(f"[red]✗ {error}[/red]")
    if ctx.obj.debug:
        console.print_exception()
    ctx.exit(1)


@click.group(name=APP_NAME)
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (defaults to ./deploy-config.json or built-in networks)",
)
@click.option(
    "--registry",
    "registry_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Deployment registry file",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("-d", "--debug", is_flag=True, help="Enable debug output")
@click.pass_context
def cli(ctx, config_path, registry_path, verbose, debug):
    """Deploy the NFT ticketing contracts to a configured network."""
    setup_logging(verbose=verbose, debug=debug)
    ctx.obj = Context(config_path, registry_path)
    ctx.obj.debug = debug


@cli.command()
@click.option("-n", "--network", required=True, help="Network profile to deploy to")
@click.option("-f", "--from", "from_step", type=int, help="Run migrations from this number")
@click.option("--to", "to_step", type=int, help="Stop after this migration number")
@click.option("--reset", is_flag=True, help="Run all migrations from the beginning")
@click.option(
    "--dry-run/--no-dry-run",
    default=None,
    help="Only simulate, or skip the simulation remote networks get by default",
)
@click.pass_context
def migrate(ctx, network, from_step, to_step, reset, dry_run):
    """Run pending migrations against a network."""
    try:
        config = load_config(ctx.obj.config_path)
        result = run_migrations(
            network,
            config,
            from_step=from_step,
            to_step=to_step,
            reset=reset,
            dry_run=dry_run,
            registry_path=ctx.obj.registry_path,
        )
    except DeploymentError as e:
        _fail(ctx, e)
        return

    if not result.executed_migrations:
        console.print(f"[green]✓[/green] Network '{network}' is up to date")
        return

    table = Table(title=f"{'Dry run' if result.dry_run else 'Deployed'} on {network}")
    table.add_column("Migration", justify="right")
    table.add_column("Contract")
    table.add_column("Address")
    table.add_column("Estimated gas" if result.dry_run else "Gas used", justify="right")
    for deployed in result.deployed:
        table.add_row(
            str(deployed.migration),
            deployed.name,
            deployed.address,
            str(deployed.gas_used or ""),
        )
    console.print(table)

    if result.dry_run:
        console.print(f"Total estimated gas: {result.estimated_gas}")
    else:
        console.print(
            f"[green]✓[/green] Last completed migration: {result.last_completed_migration}"
        )


@cli.command()
@click.pass_context
def networks(ctx):
    """List configured network profiles."""
    try:
        config = load_config(ctx.obj.config_path)
    except DeploymentError as e:
        _fail(ctx, e)
        return

    table = Table(title="Networks")
    table.add_column("Name")
    table.add_column("Network id")
    table.add_column("Endpoint")
    table.add_column("Confirmations", justify="right")
    table.add_column("Gas", justify="right")
    table.add_column("Gas price", justify="right")
    for name in config.network_names():
        profile = config.networks[name]
        table.add_row(
            name,
            str(profile.network_id),
            profile.endpoint,
            str(profile.confirmations),
            str(profile.gas),
            str(profile.gas_price),
        )
    console.print(table)
    console.print(f"Compiler: solc {config.compiler_version}")


@cli.command()
@click.pass_context
def validate(ctx):
    """Check every network profile in the configuration."""
    try:
        raw = read_raw_config(ctx.obj.config_path)
    except DeploymentError as e:
        _fail(ctx, e)
        return

    report = validate_config(raw)
    if not report:
        console.print("[green]✓[/green] Configuration is valid")
        return

    for name, problems in report.items():
        console.print(f"[red]✗[/red] [bold]{name}[/bold]")
        for problem in problems:
            console.print(f"    • {problem}")
    ctx.exit(1)


@cli.command()
@click.option("-n", "--network", required=True, help="Network profile to inspect")
@click.pass_context
def status(ctx, network):
    """Show contracts recorded for a network."""
    try:
        registry = DeploymentRegistry(ctx.obj.registry_path)
        deployments = registry.all_deployments(network)
        info = registry.network_info(network)
    except DeploymentError as e:
        _fail(ctx, e)
        return

    table = Table(title=f"{network} (network id {info['network_id']})")
    table.add_column("Migration", justify="right")
    table.add_column("Contract")
    table.add_column("Address")
    table.add_column("Block", justify="right")
    table.add_column("Explorer")
    for deployed in deployments:
        table.add_row(
            str(deployed.migration or ""),
            deployed.name,
            deployed.address,
            str(deployed.block or ""),
            deployed.url or "",
        )
    console.print(table)
    console.print(f"Last completed migration: {info['last_completed_migration']}")


def main():
    """Main entry point for the CLI application"""
    try:
        cli(prog_name=APP_NAME)
    except KeyboardInterrupt:
        console.print("\n[yellow]Deployment interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
