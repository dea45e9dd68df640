"""Synchronization results and per-source bookkeeping."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class FetchedCatalog:
    """A catalog checkout on local disk.

    The fingerprint identifies the fetched content (a git commit sha for git
    sources). Equal fingerprints mean unchanged content.
    """

    root: Path
    fingerprint: str


@dataclass(frozen=True)
class SourceRecord:
    """What the last successful sync of a source wrote, keyed by source index."""

    name: str
    path: str
    fingerprint: str
    packages: tuple[tuple[str, str], ...]

    def to_json(self) -> str:
        return json.dumps(
            {
                "name": self.name,
                "path": self.path,
                "fingerprint": self.fingerprint,
                "packages": [list(p) for p in self.packages],
            },
            sort_keys=True,
        )

    @staticmethod
    def from_json(raw: str) -> "SourceRecord":
        data = json.loads(raw)
        return SourceRecord(
            name=data["name"],
            path=data["path"],
            fingerprint=data["fingerprint"],
            packages=tuple((str(name), str(version)) for name, version in data["packages"]),
        )


@dataclass(frozen=True)
class SyncResult:
    """Aggregate outcome of one sync_sources call.

    Attributes:
        succeeded: Names of sources that fetched and merged cleanly
        failed: Source name -> failure reason
        skipped: Names of succeeded sources whose content was unchanged
        entries_written: Number of registry entries written
    """

    succeeded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)
    entries_written: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "succeeded": list(self.succeeded),
            "failed": dict(self.failed),
            "skipped": list(self.skipped),
            "entries_written": self.entries_written,
        }
