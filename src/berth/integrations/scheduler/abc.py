"""Abstract interface for the cluster job scheduler."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from berth.models.package import InstalledApp


class DeleteOutcome(str, Enum):
    """Result of a scheduler delete call."""

    DELETED = "deleted"
    NOT_FOUND = "not_found"


class Scheduler(ABC):
    """Abstract interface for submitting and removing scheduler jobs.

    The scheduler is treated as an opaque job-accepting endpoint. Transport
    failures and non-2xx responses raise UpstreamError.
    """

    @abstractmethod
    def submit(self, job_spec: dict[str, Any]) -> str:
        """Submit a job specification.

        Returns:
            The scheduler's raw response body, unmodified
        """
        ...

    @abstractmethod
    def list_apps(self) -> list[InstalledApp]:
        """List running jobs that were installed from a package.

        Jobs without package labels are omitted.
        """
        ...

    @abstractmethod
    def delete(self, app_id: str) -> DeleteOutcome:
        """Delete a running job.

        Returns:
            DELETED, or NOT_FOUND if the scheduler reports the job is already gone
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Release connections held by the scheduler client."""
        ...
