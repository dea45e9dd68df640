"""Resolution of unset service addresses through the registry catalog.

Explicit configuration always wins. Otherwise the catalog is queried once,
without retries, and the first healthy instance in catalog order is used.
Catalog failures and empty results fall back to a static default, since
single-node and manually configured clusters have no catalog entries.
"""

import logging

from berth.errors import UpstreamError
from berth.integrations.registry_store.abc import RegistryStore
from berth.models.cluster import DiscoveryResult, ServiceInstance

logger = logging.getLogger(__name__)


class DiscoveryResolver:
    """Resolves logical service names to addresses."""

    def __init__(self, registry: RegistryStore) -> None:
        self._registry = registry

    def resolve(
        self,
        configured_address: str,
        service_name: str,
        tag: str | None,
        default_address: str,
        scheme: str = "",
    ) -> DiscoveryResult:
        """Resolve one address for service_name.

        Args:
            configured_address: Statically configured address; returned verbatim
                when non-empty, without touching the catalog
            service_name: Catalog service name (e.g. "marathon")
            tag: Optional catalog tag, e.g. "leader" to find the current leader
            default_address: Fallback when discovery finds nothing
            scheme: URL scheme prefixed to discovered addresses (e.g. "http")
        """
        if configured_address:
            return DiscoveryResult(resolved_address=configured_address, discovered=False)

        instances = self._lookup(service_name, tag)
        if not instances:
            logger.info("Using default %s address %s", service_name, default_address)
            return DiscoveryResult(resolved_address=default_address, discovered=False)

        address = _with_scheme(instances[0].host_port, scheme)
        logger.info("Discovered %s at %s", service_name, address)
        return DiscoveryResult(resolved_address=address, discovered=True)

    def resolve_all(
        self,
        configured_address: str,
        service_name: str,
        tag: str | None,
        default_address: str,
    ) -> DiscoveryResult:
        """Resolve every healthy instance as a comma-delimited list.

        Used for ensembles such as Zookeeper, where clients take the full
        server list. Same precedence and fallback rules as resolve().
        """
        if configured_address:
            return DiscoveryResult(resolved_address=configured_address, discovered=False)

        instances = self._lookup(service_name, tag)
        if not instances:
            logger.info("Using default %s address %s", service_name, default_address)
            return DiscoveryResult(resolved_address=default_address, discovered=False)

        address = ",".join(i.host_port for i in instances)
        logger.info("Discovered %s at %s", service_name, address)
        return DiscoveryResult(resolved_address=address, discovered=True)

    def _lookup(self, service_name: str, tag: str | None) -> list[ServiceInstance]:
        try:
            return self._registry.catalog_lookup(service_name, tag)
        except UpstreamError as e:
            logger.warning("Could not discover %s: %s", service_name, e)
            return []


def _with_scheme(address: str, scheme: str) -> str:
    if not scheme:
        return address
    return f"{scheme}://{address}"
