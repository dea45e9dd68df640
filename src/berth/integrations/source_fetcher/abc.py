"""Abstract interface for fetching package catalogs."""

from abc import ABC, abstractmethod
from pathlib import Path

from berth.models.package import PackageSource
from berth.models.sync import FetchedCatalog


class SourceFetcher(ABC):
    """Fetches one kind of package catalog onto local disk.

    There is one implementation per SourceType member.
    """

    @abstractmethod
    def fetch(self, source: PackageSource, dest: Path) -> FetchedCatalog:
        """Fetch or update the catalog for source into dest.

        Args:
            source: The package source to fetch
            dest: Local directory owned by this source. May already hold a
                previous checkout, which should be updated in place.

        Returns:
            The checkout location and a content fingerprint

        Raises:
            UpstreamError: If the catalog cannot be fetched
        """
        ...
