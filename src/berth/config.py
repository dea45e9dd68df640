"""Configuration loaded once at the entry point.

BerthConfig is immutable and passed explicitly to every component that
needs it. Values come from CLI flags, which fall back to BERTH_*
environment variables (see BerthConfig.from_env for the names).
"""

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path

from berth.models.package import PackageSource, SourceType

ENV_PREFIX = "BERTH_"

DEFAULT_SOURCES: tuple[PackageSource, ...] = (
    PackageSource(
        name="mantl",
        path="https://github.com/CiscoCloud/mantl-universe.git",
        source_type=SourceType.GIT,
        index=1,
    ),
    PackageSource(
        name="mesosphere",
        path="https://github.com/mesosphere/universe.git",
        source_type=SourceType.GIT,
        index=0,
    ),
    PackageSource(
        name="mesosphere-multiverse",
        path="https://github.com/mesosphere/multiverse.git",
        source_type=SourceType.GIT,
        index=2,
    ),
)


@dataclass(frozen=True)
class BerthConfig:
    """Immutable process configuration.

    Empty marathon_url, mesos_url and zookeeper mean "discover through the
    registry catalog".
    """

    listen_host: str = "0.0.0.0"
    listen_port: int = 4001
    consul_url: str = "http://localhost:8500"
    marathon_url: str = ""
    marathon_user: str = ""
    marathon_password: str = ""
    marathon_verify_ssl: bool = True
    mesos_url: str = ""
    mesos_principal: str = ""
    mesos_secret: str = ""
    mesos_verify_ssl: bool = True
    zookeeper: str = ""
    force_sync: bool = False
    log_level: str = "info"
    log_format: str = "text"
    cache_dir: Path = Path.home() / ".cache" / "berth" / "sources"
    key_prefix: str = "berth"
    http_timeout: float = 10.0
    sources_file: Path | None = None

    @staticmethod
    def from_env(environ: dict[str, str] | None = None) -> "BerthConfig":
        """Load configuration from BERTH_* environment variables."""
        env = os.environ if environ is None else environ
        defaults = BerthConfig()

        def get(name: str, default: str) -> str:
            return env.get(f"{ENV_PREFIX}{name}", default)

        def get_bool(name: str, default: bool) -> bool:
            return get(name, "true" if default else "false").lower() in ("1", "true", "yes")

        sources_file = get("SOURCES_FILE", "")
        return BerthConfig(
            listen_host=get("LISTEN_HOST", defaults.listen_host),
            listen_port=int(get("LISTEN_PORT", str(defaults.listen_port))),
            consul_url=get("CONSUL", defaults.consul_url),
            marathon_url=get("MARATHON", ""),
            marathon_user=get("MARATHON_USER", ""),
            marathon_password=get("MARATHON_PASSWORD", ""),
            marathon_verify_ssl=not get_bool("MARATHON_NO_VERIFY_SSL", False),
            mesos_url=get("MESOS", ""),
            mesos_principal=get("MESOS_PRINCIPAL", ""),
            mesos_secret=get("MESOS_SECRET", ""),
            mesos_verify_ssl=not get_bool("MESOS_NO_VERIFY_SSL", False),
            zookeeper=get("ZOOKEEPER", ""),
            force_sync=get_bool("FORCE_SYNC", False),
            log_level=get("LOG_LEVEL", defaults.log_level),
            log_format=get("LOG_FORMAT", defaults.log_format),
            cache_dir=Path(get("CACHE_DIR", str(defaults.cache_dir))).expanduser(),
            key_prefix=get("KEY_PREFIX", defaults.key_prefix),
            http_timeout=float(get("HTTP_TIMEOUT", str(defaults.http_timeout))),
            sources_file=Path(sources_file).expanduser() if sources_file else None,
        )


def load_sources(sources_file: Path | None) -> list[PackageSource]:
    """Load the package source list.

    Without a file the built-in list is used. A file replaces it entirely:

        [[sources]]
        name = "mesosphere"
        path = "https://github.com/mesosphere/universe.git"
        type = "git"
        index = 0

    Raises:
        FileNotFoundError: If sources_file does not exist
        ValueError: If the file is malformed
    """
    if sources_file is None:
        return list(DEFAULT_SOURCES)

    if not sources_file.exists():
        raise FileNotFoundError(f"Sources file not found at {sources_file}")

    try:
        data = tomllib.loads(sources_file.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {sources_file}: {e}") from e

    entries = data.get("sources")
    if not isinstance(entries, list) or not entries:
        raise ValueError(f"No [[sources]] defined in {sources_file}")

    sources: list[PackageSource] = []
    for entry in entries:
        for required in ("name", "path", "index"):
            if required not in entry:
                raise ValueError(f"Source entry missing '{required}' in {sources_file}")
        type_value = entry.get("type", SourceType.GIT.value)
        try:
            source_type = SourceType(type_value)
        except ValueError as e:
            raise ValueError(f"Unknown source type '{type_value}' in {sources_file}") from e
        sources.append(
            PackageSource(
                name=str(entry["name"]),
                path=str(entry["path"]),
                source_type=source_type,
                index=int(entry["index"]),
            )
        )

    indexes = [s.index for s in sources]
    if len(set(indexes)) != len(indexes):
        raise ValueError(f"Source indexes must be unique in {sources_file}")
    return sources
