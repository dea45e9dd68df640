"""Abstract base class for the registry store."""

from abc import ABC, abstractmethod

from berth.models.cluster import ServiceInstance


class RegistryStore(ABC):
    """Abstract interface for the consistent key-value store and service catalog.

    Implementations include:
    - FakeRegistryStore: In-memory for testing
    - RealRegistryStore: Consul HTTP API for production

    Every method raises UpstreamError when the store cannot be reached.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Get the value stored under key.

        Returns:
            The value, or None if the key does not exist
        """
        ...

    @abstractmethod
    def put(self, key: str, value: str) -> None:
        """Store value under key. A single put is atomic."""
        ...

    @abstractmethod
    def list_keys(self, prefix: str) -> list[str]:
        """List all keys starting with prefix, sorted."""
        ...

    @abstractmethod
    def catalog_lookup(self, service_name: str, tag: str | None = None) -> list[ServiceInstance]:
        """List healthy instances of a service, in catalog order.

        Args:
            service_name: Logical service name (e.g. "marathon")
            tag: Optional tag filter (e.g. "leader")
        """
        ...

    @abstractmethod
    def ping(self) -> None:
        """Verify the store is reachable.

        Raises:
            UpstreamError: If the store cannot be reached
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Release connections held by the store."""
        ...
