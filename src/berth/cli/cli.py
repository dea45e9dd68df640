"""Command-line entry point.

Every global option can also be set through a BERTH_* environment variable.
"""

from pathlib import Path

import click

from berth.cli.commands.serve import serve_cmd
from berth.cli.commands.sync import sync_cmd
from berth.config import ENV_PREFIX, BerthConfig
from berth.logging_setup import configure_logging

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])

_DEFAULTS = BerthConfig()


def _env(name: str) -> str:
    return f"{ENV_PREFIX}{name}"


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="berth")
@click.option("--host", envvar=_env("LISTEN_HOST"), default=_DEFAULTS.listen_host, show_default=True)
@click.option(
    "--port", envvar=_env("LISTEN_PORT"), type=int, default=_DEFAULTS.listen_port, show_default=True
)
@click.option(
    "--consul",
    envvar=_env("CONSUL"),
    default=_DEFAULTS.consul_url,
    show_default=True,
    help="Consul HTTP API URL.",
)
@click.option(
    "--marathon",
    envvar=_env("MARATHON"),
    default="",
    help="Marathon URL. Discovered through Consul if unset.",
)
@click.option("--marathon-user", envvar=_env("MARATHON_USER"), default="")
@click.option("--marathon-password", envvar=_env("MARATHON_PASSWORD"), default="")
@click.option("--marathon-no-verify-ssl", envvar=_env("MARATHON_NO_VERIFY_SSL"), is_flag=True)
@click.option(
    "--mesos",
    envvar=_env("MESOS"),
    default="",
    help="Mesos master URL. Discovered through Consul if unset.",
)
@click.option("--mesos-principal", envvar=_env("MESOS_PRINCIPAL"), default="")
@click.option("--mesos-secret", envvar=_env("MESOS_SECRET"), default="")
@click.option("--mesos-no-verify-ssl", envvar=_env("MESOS_NO_VERIFY_SSL"), is_flag=True)
@click.option(
    "--zookeeper",
    envvar=_env("ZOOKEEPER"),
    default="",
    help="Comma-separated host:port list. Discovered through Consul if unset.",
)
@click.option(
    "--force-sync",
    envvar=_env("FORCE_SYNC"),
    is_flag=True,
    help="Re-parse and rewrite every source on the initial sync.",
)
@click.option("--log-level", envvar=_env("LOG_LEVEL"), default=_DEFAULTS.log_level, show_default=True)
@click.option(
    "--log-format", envvar=_env("LOG_FORMAT"), default=_DEFAULTS.log_format, show_default=True
)
@click.option(
    "--cache-dir",
    envvar=_env("CACHE_DIR"),
    type=click.Path(path_type=Path),
    default=_DEFAULTS.cache_dir,
)
@click.option(
    "--key-prefix", envvar=_env("KEY_PREFIX"), default=_DEFAULTS.key_prefix, show_default=True
)
@click.option(
    "--http-timeout",
    envvar=_env("HTTP_TIMEOUT"),
    type=float,
    default=_DEFAULTS.http_timeout,
    show_default=True,
)
@click.option(
    "--sources-file",
    envvar=_env("SOURCES_FILE"),
    type=click.Path(path_type=Path),
    default=None,
    help="TOML file replacing the built-in package source list.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    host: str,
    port: int,
    consul: str,
    marathon: str,
    marathon_user: str,
    marathon_password: str,
    marathon_no_verify_ssl: bool,
    mesos: str,
    mesos_principal: str,
    mesos_secret: str,
    mesos_no_verify_ssl: bool,
    zookeeper: str,
    force_sync: bool,
    log_level: str,
    log_format: str,
    cache_dir: Path,
    key_prefix: str,
    http_timeout: float,
    sources_file: Path | None,
) -> None:
    """Install packages from prioritized catalogs onto a Marathon cluster."""
    # Only build config if not already provided (e.g., by tests)
    if ctx.obj is not None:
        return

    ctx.obj = BerthConfig(
        listen_host=host,
        listen_port=port,
        consul_url=consul,
        marathon_url=marathon,
        marathon_user=marathon_user,
        marathon_password=marathon_password,
        marathon_verify_ssl=not marathon_no_verify_ssl,
        mesos_url=mesos,
        mesos_principal=mesos_principal,
        mesos_secret=mesos_secret,
        mesos_verify_ssl=not mesos_no_verify_ssl,
        zookeeper=zookeeper,
        force_sync=force_sync,
        log_level=log_level,
        log_format=log_format,
        cache_dir=cache_dir.expanduser(),
        key_prefix=key_prefix,
        http_timeout=http_timeout,
        sources_file=sources_file.expanduser() if sources_file is not None else None,
    )
    configure_logging(log_level, log_format)


cli.add_command(serve_cmd)
cli.add_command(sync_cmd)


def main() -> None:
    """CLI entry point used by the `berth` console script."""
    cli()
