"""Error types surfaced by berth operations.

The boundary layer maps each kind to an HTTP status:
- ParseError, ValidationError: 4xx
- NotFoundError: 404
- UpstreamError: 5xx
- SyncError: raised only when every source failed during a sync

Errors are exceptions, not values. Integration layers wrap transport
failures into UpstreamError so callers never see raw httpx or subprocess
exceptions.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from berth.models.sync import SyncResult


class BerthError(Exception):
    """Base exception for berth."""


class ParseError(BerthError):
    """Malformed request body."""


class ValidationError(BerthError):
    """Install options failed validation against a package's config schema."""

    def __init__(self, package_name: str, problems: list[str]) -> None:
        self.package_name = package_name
        self.problems = problems
        super().__init__(f"Invalid options for package {package_name}: {'; '.join(problems)}")


class NotFoundError(BerthError):
    """Unknown package name/version, or no installed instance."""

    def __init__(self, name: str, version: str | None = None) -> None:
        self.name = name
        self.version = version
        if version is None:
            super().__init__(f"Package {name} not found")
        else:
            super().__init__(f"Package {name}@{version} not found")


class UpstreamError(BerthError):
    """A collaborator (Consul, Marathon, Mesos, git) failed or answered non-2xx."""

    def __init__(
        self,
        service: str,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        self.service = service
        self.status_code = status_code
        self.body = body
        detail = f"{service}: {message}"
        if status_code is not None:
            detail += f" (status {status_code})"
        if body:
            detail += f": {body.strip()}"
        super().__init__(detail)


class SyncError(BerthError):
    """One or more package sources failed to fetch, parse or write.

    Raised from sync_sources only when every source failed. The partial
    result is attached so callers can report per-source failures.
    """

    def __init__(self, result: "SyncResult") -> None:
        self.result = result
        failures = ", ".join(f"{name}: {reason}" for name, reason in result.failed.items())
        super().__init__(f"All package sources failed to sync ({failures})")
