"""Fake catalog fetcher for testing."""

import threading
import time
from pathlib import Path

from berth.errors import UpstreamError
from berth.integrations.source_fetcher.abc import SourceFetcher
from berth.models.package import PackageSource
from berth.models.sync import FetchedCatalog


class FakeSourceFetcher(SourceFetcher):
    """Serves pre-built catalog directories instead of fetching.

    Catalogs are keyed by source name. The fingerprint is whatever the test
    supplies, so "unchanged content" is simulated by keeping it fixed.
    """

    def __init__(
        self,
        *,
        catalogs: dict[str, FetchedCatalog] | None = None,
        failures: dict[str, str] | None = None,
        delays: dict[str, float] | None = None,
    ) -> None:
        """Create FakeSourceFetcher.

        Args:
            catalogs: Source name -> catalog to return
            failures: Source name -> error message raised as UpstreamError
            delays: Source name -> seconds to sleep before returning
        """
        self._catalogs = catalogs or {}
        self._failures = failures or {}
        self._delays = delays or {}
        self._lock = threading.Lock()
        self._fetch_calls: list[tuple[str, Path]] = []
        self._completion_order: list[str] = []

    @property
    def fetch_calls(self) -> list[tuple[str, Path]]:
        with self._lock:
            return list(self._fetch_calls)

    @property
    def completion_order(self) -> list[str]:
        with self._lock:
            return list(self._completion_order)

    def fetch(self, source: PackageSource, dest: Path) -> FetchedCatalog:
        with self._lock:
            self._fetch_calls.append((source.name, dest))

        delay = self._delays.get(source.name, 0.0)
        if delay:
            time.sleep(delay)

        with self._lock:
            self._completion_order.append(source.name)

        if source.name in self._failures:
            raise UpstreamError("git", self._failures[source.name])
        if source.name not in self._catalogs:
            raise UpstreamError("git", f"no route to {source.path}")
        return self._catalogs[source.name]
