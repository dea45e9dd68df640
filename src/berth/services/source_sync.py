"""Merging of prioritized package catalogs into the registry store.

A sync runs in two phases:

1. Fetch: every source is fetched (clone-or-pull) in parallel and, unless
   its content is unchanged since its last successful sync, parsed.
2. Merge: once every fetch has finished, each (name, version) is assigned
   to the source with the lowest index that defines it. Only winners from
   freshly parsed sources are written; shadowed definitions never are.

Precedence is decided over the complete set of sources, so the outcome does
not depend on which fetch finishes first. Failures are tracked per source.
"""

import logging
import threading
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from berth.errors import SyncError, UpstreamError
from berth.integrations.registry_store.abc import RegistryStore
from berth.integrations.source_fetcher.abc import SourceFetcher
from berth.models.package import PackageDefinition, PackageSource, SourceType
from berth.models.sync import FetchedCatalog, SourceRecord, SyncResult
from berth.services.catalog import CatalogError, parse_catalog
from berth.services.registry_keys import catalog_key, catalog_prefix, source_key

logger = logging.getLogger(__name__)

PackageKey = tuple[str, str]


class SourceStatus(str, Enum):
    """How a source came out of the fetch phase."""

    PARSED = "parsed"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass(frozen=True)
class SourceOutcome:
    """Fetch-phase result for one source."""

    source: PackageSource
    status: SourceStatus
    catalog: FetchedCatalog | None = None
    definitions: dict[PackageKey, PackageDefinition] = field(default_factory=dict)
    claims: tuple[PackageKey, ...] = ()
    error: str = ""


class SourceSynchronizer:
    """Synchronizes package sources into the registry store."""

    def __init__(
        self,
        registry: RegistryStore,
        fetchers: dict[SourceType, SourceFetcher],
        *,
        cache_dir: Path,
        key_prefix: str,
        max_workers: int = 4,
    ) -> None:
        """Create SourceSynchronizer.

        Args:
            registry: Store receiving the merged definitions
            fetchers: One fetcher per source type
            cache_dir: Directory holding one checkout per source
            key_prefix: Namespace for all registry keys
            max_workers: Upper bound on parallel fetches
        """
        self._registry = registry
        self._fetchers = fetchers
        self._cache_dir = cache_dir
        self._key_prefix = key_prefix
        self._max_workers = max_workers
        self._lock = threading.Lock()

    def sync_sources(self, sources: Sequence[PackageSource], force: bool) -> SyncResult:
        """Fetch every source and merge its packages into the registry.

        Args:
            sources: Sources to sync. Indexes must be unique.
            force: Re-parse and rewrite every source even if unchanged

        Returns:
            Which sources succeeded, failed or were skipped, and how many
            entries were written

        Raises:
            ValueError: If two sources share an index
            SyncError: If every source failed. Registry contents from earlier
                syncs are left untouched.
        """
        indexes = [s.index for s in sources]
        if len(set(indexes)) != len(indexes):
            raise ValueError("Package source indexes must be unique")

        ordered = sorted(sources, key=lambda s: s.index)
        if not ordered:
            return SyncResult()

        # One sync at a time: concurrent syncs would share checkout directories
        with self._lock:
            return self._sync(ordered, force)

    def _sync(self, ordered: list[PackageSource], force: bool) -> SyncResult:
        logger.info("Syncing %d package sources (force=%s)", len(ordered), force)

        # Fetch phase: results are collected in index order, not completion order
        workers = max(1, min(self._max_workers, len(ordered)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="berth-sync") as pool:
            futures = [pool.submit(self._load_source, source, force) for source in ordered]
            outcomes = [future.result() for future in futures]

        failed: dict[str, str] = {
            o.source.name: o.error for o in outcomes if o.status == SourceStatus.FAILED
        }
        entries_written = self._merge(outcomes, failed)
        self._record_sources(outcomes, failed)

        result = SyncResult(
            succeeded=[o.source.name for o in outcomes if o.source.name not in failed],
            failed=failed,
            skipped=[
                o.source.name
                for o in outcomes
                if o.status == SourceStatus.UNCHANGED and o.source.name not in failed
            ],
            entries_written=entries_written,
        )

        for name, reason in failed.items():
            logger.error("Source %s failed to sync: %s", name, reason)
        logger.info(
            "Sync finished: %d succeeded, %d failed, %d entries written",
            len(result.succeeded),
            len(result.failed),
            result.entries_written,
        )

        if len(failed) == len(ordered):
            raise SyncError(result)
        return result

    def _load_source(self, source: PackageSource, force: bool) -> SourceOutcome:
        """Fetch one source and parse it unless it is unchanged."""
        fetcher = self._fetchers.get(source.source_type)
        if fetcher is None:
            return SourceOutcome(
                source=source,
                status=SourceStatus.FAILED,
                error=f"no fetcher for source type {source.source_type.value}",
            )

        try:
            catalog = fetcher.fetch(source, self._checkout_dir(source))
            previous = None if force else self._read_record(source)

            if previous is not None and self._is_unchanged(source, catalog, previous):
                logger.info("Source %s unchanged at %s", source.name, catalog.fingerprint)
                return SourceOutcome(
                    source=source,
                    status=SourceStatus.UNCHANGED,
                    catalog=catalog,
                    claims=previous.packages,
                )

            definitions = self._parse(source, catalog)
        except (UpstreamError, CatalogError, OSError) as e:
            return SourceOutcome(source=source, status=SourceStatus.FAILED, error=str(e))

        logger.info("Parsed %d packages from source %s", len(definitions), source.name)
        return SourceOutcome(
            source=source,
            status=SourceStatus.PARSED,
            catalog=catalog,
            definitions=definitions,
            claims=tuple(definitions),
        )

    def _parse(
        self, source: PackageSource, catalog: FetchedCatalog
    ) -> dict[PackageKey, PackageDefinition]:
        definitions: dict[PackageKey, PackageDefinition] = {}
        for definition in parse_catalog(catalog.root, source.index):
            key = (definition.name, definition.version)
            if key in definitions:
                logger.warning(
                    "Source %s defines %s@%s more than once, keeping the first",
                    source.name,
                    definition.name,
                    definition.version,
                )
                continue
            definitions[key] = definition
        return definitions

    def _merge(self, outcomes: list[SourceOutcome], failed: dict[str, str]) -> int:
        """Write the lowest-index definition of every (name, version).

        outcomes must be in ascending index order. Write failures are added
        to failed.
        """
        winners: dict[PackageKey, SourceOutcome] = {}
        for outcome in outcomes:
            if outcome.status == SourceStatus.FAILED:
                continue
            for claim in outcome.claims:
                winners.setdefault(claim, outcome)

        try:
            existing = self._existing_catalog_keys(winners)
        except UpstreamError as e:
            for outcome in outcomes:
                if outcome.status == SourceStatus.UNCHANGED:
                    failed[outcome.source.name] = str(e)
            existing = set()

        # Unchanged sources are parsed at most once, on their first missing key
        reparsed: dict[int, dict[PackageKey, PackageDefinition]] = {}
        written = 0
        for (name, version), outcome in winners.items():
            source = outcome.source
            if source.name in failed:
                continue

            key = catalog_key(self._key_prefix, source.index, name, version)
            definition = outcome.definitions.get((name, version))
            if definition is None:
                # Unchanged source: its entry is already stored unless it was
                # shadowed when last written
                if key in existing:
                    continue
                if source.index not in reparsed:
                    reparsed[source.index] = self._reparse(outcome, failed)
                definition = reparsed[source.index].get((name, version))
                if definition is None:
                    continue

            try:
                self._registry.put(key, definition.to_json())
            except UpstreamError as e:
                failed[source.name] = str(e)
                continue
            written += 1
            logger.debug("Wrote %s from source %s", key, source.name)

        return written

    def _existing_catalog_keys(self, winners: dict[PackageKey, SourceOutcome]) -> set[str]:
        if all(o.status == SourceStatus.PARSED for o in winners.values()):
            return set()
        return set(self._registry.list_keys(catalog_prefix(self._key_prefix)))

    def _reparse(
        self, outcome: SourceOutcome, failed: dict[str, str]
    ) -> dict[PackageKey, PackageDefinition]:
        """Parse an unchanged source whose stored entries are incomplete.

        A parse failure marks the source failed and yields no definitions.
        """
        if outcome.catalog is None:
            failed[outcome.source.name] = "no fetched catalog to parse"
            return {}
        try:
            return self._parse(outcome.source, outcome.catalog)
        except (CatalogError, OSError) as e:
            failed[outcome.source.name] = str(e)
            return {}

    def _record_sources(self, outcomes: list[SourceOutcome], failed: dict[str, str]) -> None:
        for outcome in outcomes:
            source = outcome.source
            if outcome.status != SourceStatus.PARSED or outcome.catalog is None:
                continue
            if source.name in failed:
                continue
            record = SourceRecord(
                name=source.name,
                path=source.path,
                fingerprint=outcome.catalog.fingerprint,
                packages=tuple(sorted(outcome.claims)),
            )
            try:
                self._registry.put(source_key(self._key_prefix, source.index), record.to_json())
            except UpstreamError as e:
                failed[source.name] = str(e)

    def _read_record(self, source: PackageSource) -> SourceRecord | None:
        raw = self._registry.get(source_key(self._key_prefix, source.index))
        if raw is None:
            return None
        try:
            return SourceRecord.from_json(raw)
        except (ValueError, KeyError, TypeError):
            logger.warning("Ignoring unreadable sync record for source %s", source.name)
            return None

    def _is_unchanged(
        self, source: PackageSource, catalog: FetchedCatalog, previous: SourceRecord
    ) -> bool:
        return (
            previous.fingerprint == catalog.fingerprint
            and previous.path == source.path
            and previous.name == source.name
        )

    def _checkout_dir(self, source: PackageSource) -> Path:
        return self._cache_dir / f"{source.index}-{source.name}"
