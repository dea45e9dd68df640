"""Git-backed catalog fetcher.

Clone-or-pull semantics: the first fetch does a shallow clone, later
fetches update the existing checkout to the remote HEAD. The fingerprint is
the checked-out commit sha.
"""

import logging
import shutil
from pathlib import Path

from berth.errors import UpstreamError
from berth.integrations.source_fetcher.abc import SourceFetcher
from berth.models.package import PackageSource
from berth.models.sync import FetchedCatalog
from berth.subprocess_utils import run_subprocess_with_context

logger = logging.getLogger(__name__)


class GitSourceFetcher(SourceFetcher):
    """Production fetcher executing git via subprocess."""

    def __init__(self, *, timeout: float | None = 300.0) -> None:
        """Create GitSourceFetcher.

        Args:
            timeout: Seconds allowed per git command
        """
        self._timeout = timeout

    def fetch(self, source: PackageSource, dest: Path) -> FetchedCatalog:
        try:
            if (dest / ".git").is_dir():
                self._pull(source, dest)
            else:
                self._clone(source, dest)
            fingerprint = self._head_sha(dest)
        except RuntimeError as e:
            raise UpstreamError("git", f"could not fetch source {source.name}: {e}") from e

        logger.debug("Source %s at %s", source.name, fingerprint)
        return FetchedCatalog(root=dest, fingerprint=fingerprint)

    def _clone(self, source: PackageSource, dest: Path) -> None:
        # A half-written directory from an interrupted clone is not a checkout
        if dest.exists():
            shutil.rmtree(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Cloning %s from %s", source.name, source.path)
        run_subprocess_with_context(
            ["git", "clone", "--depth", "1", source.path, str(dest)],
            operation_context=f"clone source '{source.name}'",
            timeout=self._timeout,
        )

    def _pull(self, source: PackageSource, dest: Path) -> None:
        logger.info("Updating %s from %s", source.name, source.path)
        run_subprocess_with_context(
            ["git", "fetch", "--depth", "1", source.path, "HEAD"],
            operation_context=f"fetch source '{source.name}'",
            cwd=dest,
            timeout=self._timeout,
        )
        run_subprocess_with_context(
            ["git", "reset", "--hard", "FETCH_HEAD"],
            operation_context=f"update checkout of source '{source.name}'",
            cwd=dest,
            timeout=self._timeout,
        )

    def _head_sha(self, dest: Path) -> str:
        result = run_subprocess_with_context(
            ["git", "rev-parse", "HEAD"],
            operation_context="read checkout revision",
            cwd=dest,
            timeout=self._timeout,
        )
        return result.stdout.strip()
