"""Business logic for listing, installing and uninstalling packages."""

import logging
from collections.abc import Sequence

from berth.context import BerthContext
from berth.errors import NotFoundError
from berth.integrations.scheduler.abc import DeleteOutcome
from berth.models.cluster import ClusterInfo
from berth.models.package import (
    InstalledApp,
    PackageDefinition,
    PackageRequest,
    PackageSource,
    PackageSummary,
    version_key,
)
from berth.models.sync import SyncResult
from berth.services.options import validate_options
from berth.services.registry_keys import catalog_key, catalog_prefix, parse_catalog_key
from berth.services.rendering import render_job_spec, template_variables
from berth.services.source_sync import SourceSynchronizer

logger = logging.getLogger(__name__)


class InstallService:
    """Facade used by the HTTP layer.

    Holds no mutable state of its own: every call reads the registry store
    and, for install and uninstall, talks to the scheduler. Safe to call
    from many threads at once.
    """

    def __init__(self, ctx: BerthContext, sources: Sequence[PackageSource] = ()) -> None:
        """Create InstallService.

        Args:
            ctx: Context with injected dependencies
            sources: Package sources used by sync_sources
        """
        self._ctx = ctx
        self._sources = tuple(sources)
        self._synchronizer = SourceSynchronizer(
            ctx.registry,
            ctx.fetchers,
            cache_dir=ctx.config.cache_dir,
            key_prefix=ctx.config.key_prefix,
        )

    @property
    def sources(self) -> tuple[PackageSource, ...]:
        return self._sources

    def sync_sources(self, force: bool) -> SyncResult:
        """Synchronize the configured sources into the registry.

        Raises:
            SyncError: If every source failed
        """
        return self._synchronizer.sync_sources(self._sources, force)

    def packages(self) -> list[PackageSummary]:
        """List the latest active version of every package, sorted by name.

        Raises:
            UpstreamError: If the registry store is unreachable
        """
        active = self._active_keys()

        versions_by_name: dict[str, list[str]] = {}
        for name, version in active:
            versions_by_name.setdefault(name, []).append(version)

        summaries: list[PackageSummary] = []
        for name in sorted(versions_by_name):
            versions = sorted(versions_by_name[name], key=version_key)
            latest = versions[-1]
            definition = self._load(name, latest, active[(name, latest)])
            if definition is None:
                continue
            summaries.append(
                PackageSummary(
                    name=name,
                    version=latest,
                    source_index=definition.source_index,
                    description=definition.description,
                    maintainer=definition.maintainer,
                    versions=tuple(versions),
                )
            )
        return summaries

    def package(self, name: str, version: str | None = None) -> PackageDefinition:
        """Get the active definition of a package.

        Args:
            name: Package name
            version: Pinned version, or None for the latest

        Raises:
            NotFoundError: If no source defines the package (or version)
            UpstreamError: If the registry store is unreachable
        """
        active = self._active_keys(name)
        versions = sorted((v for (_, v) in active), key=version_key)
        if version is None:
            if not versions:
                raise NotFoundError(name)
            version = versions[-1]
        elif version not in versions:
            raise NotFoundError(name, version)

        definition = self._load(name, version, active[(name, version)])
        if definition is None:
            raise NotFoundError(name, version)
        return definition

    def install_package(self, request: PackageRequest) -> str:
        """Install a package on the scheduler.

        Returns:
            The scheduler's response body, unmodified

        Raises:
            NotFoundError: If the package (or version) does not exist
            ValidationError: If the options do not fit the package's config schema
            UpstreamError: If the registry, resource manager or scheduler fails
        """
        definition = self.package(request.name, request.version)
        options = validate_options(definition.name, definition.config_schema, request.options)
        logger.debug("Validated options for %s@%s", definition.name, definition.version)

        job_spec = render_job_spec(definition, options, self._cluster_context(definition))
        response = self._ctx.scheduler.submit(job_spec)
        logger.info(
            "Installed %s@%s as %s",
            definition.name,
            definition.version,
            job_spec.get("id", ""),
        )
        return response

    def find_installed(self, request: PackageRequest) -> InstalledApp | None:
        """Find the running app installed from a package.

        Matches on package name, and on version when the request pins one.
        Returns the first match in scheduler order, or None.

        Raises:
            UpstreamError: If the scheduler cannot list apps
        """
        for app in self._ctx.scheduler.list_apps():
            if app.matches(request):
                return app
        return None

    def uninstall_package(self, app: InstalledApp) -> None:
        """Remove an installed app from the scheduler.

        An app the scheduler no longer knows about counts as removed.

        Raises:
            UpstreamError: If the scheduler fails
        """
        outcome = self._ctx.scheduler.delete(app.app_id)
        if outcome == DeleteOutcome.NOT_FOUND:
            logger.info("App %s for %s was already absent", app.app_id, app.package_name)
            return
        logger.info("Uninstalled %s (%s)", app.package_name, app.app_id)

    def _active_keys(self, name: str | None = None) -> dict[tuple[str, str], int]:
        """Map each (name, version) to the lowest source index that stores it."""
        prefix = self._ctx.config.key_prefix
        active: dict[tuple[str, str], int] = {}
        for key in self._ctx.registry.list_keys(catalog_prefix(prefix)):
            parsed = parse_catalog_key(prefix, key)
            if parsed is None:
                continue
            source_index, pkg_name, pkg_version = parsed
            if name is not None and pkg_name != name:
                continue
            current = active.get((pkg_name, pkg_version))
            if current is None or source_index < current:
                active[(pkg_name, pkg_version)] = source_index
        return active

    def _load(self, name: str, version: str, source_index: int) -> PackageDefinition | None:
        key = catalog_key(self._ctx.config.key_prefix, source_index, name, version)
        raw = self._ctx.registry.get(key)
        if raw is None:
            return None
        try:
            return PackageDefinition.from_json(raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring unreadable registry entry %s: %s", key, e)
            return None

    def _cluster_context(self, definition: PackageDefinition) -> dict[str, str] | None:
        # Only templates that use cluster identity pay for the lookup
        if "cluster" not in template_variables(definition.job_template):
            return None
        state = self._ctx.resource_manager.master_state()
        return ClusterInfo(
            mesos_url=self._ctx.resource_manager.url,
            mesos_leader=state.leader,
            cluster_name=state.cluster_name,
            zookeeper=self._ctx.zookeeper,
        ).template_context()
