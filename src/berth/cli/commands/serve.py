"""Serve command - sync package sources, then serve the HTTP API."""

import click
import uvicorn

from berth.cli.error_boundary import cli_error_boundary
from berth.config import BerthConfig, load_sources
from berth.context import create_context
from berth.main import create_app, initial_sync


@click.command("serve")
@click.pass_obj
@cli_error_boundary
def serve_cmd(config: BerthConfig) -> None:
    """Run the package API server.

    Exits with status 1 if Consul is unreachable at startup.
    """
    sources = load_sources(config.sources_file)
    context = create_context(config)
    try:
        app = create_app(context, sources)
        initial_sync(app.state.install_service, config.force_sync)

        uvicorn.run(app, host=config.listen_host, port=config.listen_port, log_config=None)
    finally:
        context.close()
