"""Package catalog fetchers, one per source type."""

from berth.integrations.source_fetcher.abc import SourceFetcher
from berth.integrations.source_fetcher.fake import FakeSourceFetcher

__all__ = ["FakeSourceFetcher", "SourceFetcher"]
