"""Server context for dependency injection."""

import logging
from dataclasses import dataclass
from pathlib import Path

from berth.config import BerthConfig
from berth.integrations.registry_store.abc import RegistryStore
from berth.integrations.registry_store.fake import FakeRegistryStore
from berth.integrations.registry_store.real import RealRegistryStore
from berth.integrations.resource_manager.abc import ResourceManager
from berth.integrations.resource_manager.fake import FakeResourceManager
from berth.integrations.resource_manager.real import RealResourceManager
from berth.integrations.scheduler.abc import Scheduler
from berth.integrations.scheduler.fake import FakeScheduler
from berth.integrations.scheduler.real import RealScheduler
from berth.integrations.source_fetcher.abc import SourceFetcher
from berth.integrations.source_fetcher.fake import FakeSourceFetcher
from berth.integrations.source_fetcher.git import GitSourceFetcher
from berth.models.cluster import ZookeeperEnsemble
from berth.models.package import SourceType
from berth.services.discovery import DiscoveryResolver

logger = logging.getLogger(__name__)

DEFAULT_MESOS_URL = "http://localhost:5050"
DEFAULT_ZOOKEEPER = "localhost:2181"


@dataclass(frozen=True)
class BerthContext:
    """Immutable context holding all dependencies for berth operations.

    Created once at the entry point and passed to the services. Use
    for_test() for testing scenarios.
    """

    config: BerthConfig
    registry: RegistryStore
    scheduler: Scheduler
    resource_manager: ResourceManager
    zookeeper: ZookeeperEnsemble
    fetchers: dict[SourceType, SourceFetcher]

    def __post_init__(self) -> None:
        missing = [t.value for t in SourceType if t not in self.fetchers]
        if missing:
            raise ValueError(f"No fetcher configured for source types: {', '.join(missing)}")

    @classmethod
    def for_test(
        cls,
        *,
        config: BerthConfig | None = None,
        registry: RegistryStore | None = None,
        scheduler: Scheduler | None = None,
        resource_manager: ResourceManager | None = None,
        zookeeper: ZookeeperEnsemble | None = None,
        fetcher: SourceFetcher | None = None,
    ) -> "BerthContext":
        """Create a test context with fake implementations.

        Args:
            config: Optional config. If None, uses defaults with a sentinel cache dir.
            registry: Optional RegistryStore. If None, creates empty FakeRegistryStore.
            scheduler: Optional Scheduler. If None, creates empty FakeScheduler.
            resource_manager: Optional ResourceManager. If None, creates FakeResourceManager.
            zookeeper: Optional ensemble. If None, uses a single localhost server.
            fetcher: Optional fetcher used for every source type.
                If None, creates empty FakeSourceFetcher.
        """
        source_fetcher = fetcher if fetcher is not None else FakeSourceFetcher()
        return cls(
            config=config or BerthConfig(cache_dir=Path("/test/berth/cache")),
            registry=registry or FakeRegistryStore(),
            scheduler=scheduler or FakeScheduler(),
            resource_manager=resource_manager or FakeResourceManager(),
            zookeeper=zookeeper or ZookeeperEnsemble.parse(DEFAULT_ZOOKEEPER),
            fetchers={source_type: source_fetcher for source_type in SourceType},
        )

    def close(self) -> None:
        """Release upstream client connections."""
        self.registry.close()
        self.scheduler.close()
        self.resource_manager.close()


def create_registry(config: BerthConfig) -> RealRegistryStore:
    """Create the Consul client and verify it is reachable.

    Raises:
        UpstreamError: If Consul cannot be reached. Fatal at startup.
    """
    registry = RealRegistryStore(config.consul_url, timeout=config.http_timeout)
    registry.ping()
    logger.debug("Using Consul at %s", config.consul_url)
    return registry


def create_fetchers() -> dict[SourceType, SourceFetcher]:
    return {SourceType.GIT: GitSourceFetcher()}


def create_context(config: BerthConfig) -> BerthContext:
    """Create the production context.

    Unset Marathon, Mesos and Zookeeper addresses are discovered through the
    Consul catalog, falling back to localhost defaults.

    Raises:
        UpstreamError: If Consul cannot be reached
    """
    registry = create_registry(config)
    resolver = DiscoveryResolver(registry)

    # Marathon has no useful fallback; an unresolved address fails on first use
    marathon = resolver.resolve(config.marathon_url, "marathon", None, "", scheme="http")
    if not marathon.resolved_address:
        logger.warning("No Marathon address configured or discovered")
    mesos = resolver.resolve(config.mesos_url, "mesos", "leader", DEFAULT_MESOS_URL, scheme="http")
    zookeeper = resolver.resolve_all(config.zookeeper, "zookeeper", None, DEFAULT_ZOOKEEPER)

    scheduler = RealScheduler(
        marathon.resolved_address,
        user=config.marathon_user,
        password=config.marathon_password,
        verify_ssl=config.marathon_verify_ssl,
        timeout=config.http_timeout,
    )
    resource_manager = RealResourceManager(
        mesos.resolved_address,
        principal=config.mesos_principal,
        secret=config.mesos_secret,
        verify_ssl=config.mesos_verify_ssl,
        timeout=config.http_timeout,
    )

    return BerthContext(
        config=config,
        registry=registry,
        scheduler=scheduler,
        resource_manager=resource_manager,
        zookeeper=ZookeeperEnsemble.parse(zookeeper.resolved_address),
        fetchers=create_fetchers(),
    )
