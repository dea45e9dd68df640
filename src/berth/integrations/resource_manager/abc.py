"""Abstract interface for the cluster resource manager."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class MasterState:
    """Identity of the resource manager's current leader."""

    cluster_name: str
    leader: str


class ResourceManager(ABC):
    """Abstract interface for resource manager identity queries.

    Only leader and cluster identity are consulted. Transport failures
    raise UpstreamError.
    """

    @property
    @abstractmethod
    def url(self) -> str:
        """Address the resource manager was reached at."""
        ...

    @abstractmethod
    def master_state(self) -> MasterState:
        """Get the cluster name and current leader."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Release connections held by the client."""
        ...
