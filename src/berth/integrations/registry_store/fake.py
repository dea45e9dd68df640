"""Fake in-memory registry store for testing."""

from berth.errors import UpstreamError
from berth.integrations.registry_store.abc import RegistryStore
from berth.models.cluster import ServiceInstance


class FakeRegistryStore(RegistryStore):
    """In-memory fake implementation for testing.

    State is provided via constructor. All puts and catalog lookups are
    recorded for test assertions.
    """

    def __init__(
        self,
        *,
        data: dict[str, str] | None = None,
        services: dict[str, list[ServiceInstance]] | None = None,
        unreachable: bool = False,
        catalog_unreachable: bool = False,
    ) -> None:
        """Create FakeRegistryStore.

        Args:
            data: Initial key-value contents
            services: Service name -> healthy instances, in catalog order
            unreachable: If True, every operation raises UpstreamError
            catalog_unreachable: If True, only catalog_lookup raises UpstreamError
        """
        self._data: dict[str, str] = dict(data or {})
        self._services = services or {}
        self._unreachable = unreachable
        self._catalog_unreachable = catalog_unreachable
        self._put_calls: list[tuple[str, str]] = []
        self._lookup_calls: list[tuple[str, str | None]] = []
        self._closed = False

    @property
    def data(self) -> dict[str, str]:
        """Get current contents for test assertions."""
        return self._data.copy()

    @property
    def put_calls(self) -> list[tuple[str, str]]:
        return list(self._put_calls)

    @property
    def lookup_calls(self) -> list[tuple[str, str | None]]:
        return list(self._lookup_calls)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def _check_reachable(self) -> None:
        if self._unreachable:
            raise UpstreamError("consul", "connection refused")

    def get(self, key: str) -> str | None:
        self._check_reachable()
        return self._data.get(key)

    def put(self, key: str, value: str) -> None:
        self._check_reachable()
        self._put_calls.append((key, value))
        self._data[key] = value

    def list_keys(self, prefix: str) -> list[str]:
        self._check_reachable()
        return sorted(k for k in self._data if k.startswith(prefix))

    def catalog_lookup(self, service_name: str, tag: str | None = None) -> list[ServiceInstance]:
        self._lookup_calls.append((service_name, tag))
        self._check_reachable()
        if self._catalog_unreachable:
            raise UpstreamError("consul", "catalog query failed")
        instances = self._services.get(service_name, [])
        if tag is None:
            return list(instances)
        return [i for i in instances if tag in i.tags]

    def ping(self) -> None:
        self._check_reachable()
