"""Sync command - merge package sources into the registry once and exit."""

import click

from berth.cli.error_boundary import cli_error_boundary
from berth.config import BerthConfig, load_sources
from berth.context import create_context
from berth.services.install_service import InstallService


@click.command("sync")
@click.option(
    "--force/--no-force",
    default=True,
    show_default=True,
    help="Re-parse and rewrite every source. --no-force skips unchanged sources.",
)
@click.pass_obj
@cli_error_boundary
def sync_cmd(config: BerthConfig, force: bool) -> None:
    """Force a synchronization of all configured package sources into Consul.

    Exits with status 1 if any source failed.
    """
    sources = load_sources(config.sources_file)
    context = create_context(config)
    try:
        result = InstallService(context, sources).sync_sources(force or config.force_sync)
    finally:
        context.close()

    for name in result.succeeded:
        status = "unchanged" if name in result.skipped else "synced"
        click.echo(f"✓ {name}: {status}")
    for name, reason in result.failed.items():
        click.echo(f"✗ {name}: {reason}", err=True)
    click.echo(f"{result.entries_written} entries written")

    if result.failed:
        raise SystemExit(1)
