"""Tests for SourceSynchronizer merge and precedence logic."""

import json
from collections.abc import Callable
from pathlib import Path

import pytest
from berth.errors import SyncError
from berth.integrations.registry_store.fake import FakeRegistryStore
from berth.integrations.source_fetcher.fake import FakeSourceFetcher
from berth.models.package import PackageDefinition, PackageSource, SourceType
from berth.models.sync import FetchedCatalog, SyncResult
from berth.services import source_sync
from berth.services.source_sync import SourceSynchronizer


def _source(name: str, index: int) -> PackageSource:
    return PackageSource(
        name=name,
        path=f"https://git.example.com/{name}.git",
        source_type=SourceType.GIT,
        index=index,
    )


MESOSPHERE = _source("mesosphere", 0)
MANTL = _source("mantl", 1)


def _synchronizer(
    registry: FakeRegistryStore, fetcher: FakeSourceFetcher, tmp_path: Path
) -> SourceSynchronizer:
    return SourceSynchronizer(
        registry,
        {SourceType.GIT: fetcher},
        cache_dir=tmp_path / "cache",
        key_prefix="berth",
    )


def _stored(registry: FakeRegistryStore, key: str) -> PackageDefinition:
    return PackageDefinition.from_json(registry.data[key])


@pytest.fixture
def catalogs(write_catalog: Callable[..., Path]) -> dict[str, FetchedCatalog]:
    """mesosphere and mantl both define redis 1.0; only mantl defines kafka."""
    mesosphere = write_catalog(
        "mesosphere", [{"name": "redis", "version": "1.0", "description": "mesosphere redis"}]
    )
    mantl = write_catalog(
        "mantl",
        [
            {"name": "redis", "version": "1.0", "description": "mantl redis"},
            {"name": "kafka", "version": "0.9"},
        ],
    )
    return {
        "mesosphere": FetchedCatalog(root=mesosphere, fingerprint="aaa111"),
        "mantl": FetchedCatalog(root=mantl, fingerprint="bbb222"),
    }


class TestPrecedence:
    def test_lowest_index_wins(
        self, catalogs: dict[str, FetchedCatalog], tmp_path: Path
    ) -> None:
        """redis 1.0 from mesosphere (index 0) shadows mantl's (index 1)."""
        registry = FakeRegistryStore()
        fetcher = FakeSourceFetcher(catalogs=catalogs)

        result = _synchronizer(registry, fetcher, tmp_path).sync_sources([MANTL, MESOSPHERE], False)

        assert _stored(registry, "berth/catalog/0/redis/1.0").description == "mesosphere redis"
        assert "berth/catalog/1/redis/1.0" not in registry.data
        assert _stored(registry, "berth/catalog/1/kafka/0.9").source_index == 1
        assert result.entries_written == 2
        assert result.succeeded == ["mesosphere", "mantl"]
        assert result.failed == {}

    def test_outcome_independent_of_fetch_completion_order(
        self, catalogs: dict[str, FetchedCatalog], tmp_path: Path
    ) -> None:
        registry = FakeRegistryStore()
        fetcher = FakeSourceFetcher(catalogs=catalogs, delays={"mesosphere": 0.2})

        _synchronizer(registry, fetcher, tmp_path).sync_sources([MESOSPHERE, MANTL], False)

        assert fetcher.completion_order == ["mantl", "mesosphere"]
        assert _stored(registry, "berth/catalog/0/redis/1.0").description == "mesosphere redis"
        assert "berth/catalog/1/redis/1.0" not in registry.data

    def test_lower_priority_source_fills_in_for_failed_source(
        self, catalogs: dict[str, FetchedCatalog], tmp_path: Path
    ) -> None:
        registry = FakeRegistryStore()
        fetcher = FakeSourceFetcher(
            catalogs=catalogs, failures={"mesosphere": "could not resolve host"}
        )

        result = _synchronizer(registry, fetcher, tmp_path).sync_sources([MESOSPHERE, MANTL], False)

        assert _stored(registry, "berth/catalog/1/redis/1.0").description == "mantl redis"
        assert result.succeeded == ["mantl"]
        assert "could not resolve host" in result.failed["mesosphere"]

    def test_checkouts_are_kept_per_source(
        self, catalogs: dict[str, FetchedCatalog], tmp_path: Path
    ) -> None:
        fetcher = FakeSourceFetcher(catalogs=catalogs)

        _synchronizer(FakeRegistryStore(), fetcher, tmp_path).sync_sources(
            [MESOSPHERE, MANTL], False
        )

        assert sorted(fetcher.fetch_calls) == [
            ("mantl", tmp_path / "cache" / "1-mantl"),
            ("mesosphere", tmp_path / "cache" / "0-mesosphere"),
        ]


class TestUnchangedSources:
    def test_second_sync_skips_unchanged_sources(
        self, catalogs: dict[str, FetchedCatalog], tmp_path: Path
    ) -> None:
        registry = FakeRegistryStore()
        synchronizer = _synchronizer(registry, FakeSourceFetcher(catalogs=catalogs), tmp_path)
        synchronizer.sync_sources([MESOSPHERE, MANTL], False)
        writes_after_first_sync = len(registry.put_calls)

        result = synchronizer.sync_sources([MESOSPHERE, MANTL], False)

        assert result.skipped == ["mesosphere", "mantl"]
        assert result.entries_written == 0
        assert len(registry.put_calls) == writes_after_first_sync

    def test_force_rewrites_unchanged_sources(
        self, catalogs: dict[str, FetchedCatalog], tmp_path: Path
    ) -> None:
        registry = FakeRegistryStore()
        synchronizer = _synchronizer(registry, FakeSourceFetcher(catalogs=catalogs), tmp_path)
        synchronizer.sync_sources([MESOSPHERE, MANTL], False)

        result = synchronizer.sync_sources([MESOSPHERE, MANTL], True)

        assert result.skipped == []
        assert result.entries_written == 2

    def test_changed_fingerprint_is_reparsed(
        self,
        catalogs: dict[str, FetchedCatalog],
        write_catalog: Callable[..., Path],
        tmp_path: Path,
    ) -> None:
        registry = FakeRegistryStore()
        _synchronizer(registry, FakeSourceFetcher(catalogs=catalogs), tmp_path).sync_sources(
            [MESOSPHERE, MANTL], False
        )

        updated_root = write_catalog(
            "mantl-updated",
            [
                {"name": "redis", "version": "1.0"},
                {"name": "kafka", "version": "0.10"},
            ],
        )
        updated = {**catalogs, "mantl": FetchedCatalog(root=updated_root, fingerprint="ccc333")}
        result = _synchronizer(registry, FakeSourceFetcher(catalogs=updated), tmp_path).sync_sources(
            [MESOSPHERE, MANTL], False
        )

        assert result.skipped == ["mesosphere"]
        assert "berth/catalog/1/kafka/0.10" in registry.data
        assert json.loads(registry.data["berth/sources/1"])["fingerprint"] == "ccc333"

    def test_unchanged_source_writes_entries_it_no_longer_loses(
        self, catalogs: dict[str, FetchedCatalog], tmp_path: Path
    ) -> None:
        """When the shadowing source is removed, the unchanged source's redis becomes active."""
        registry = FakeRegistryStore()
        fetcher = FakeSourceFetcher(catalogs=catalogs)
        _synchronizer(registry, fetcher, tmp_path).sync_sources([MESOSPHERE, MANTL], False)

        result = _synchronizer(registry, fetcher, tmp_path).sync_sources([MANTL], False)

        assert result.skipped == ["mantl"]
        assert result.entries_written == 1
        assert _stored(registry, "berth/catalog/1/redis/1.0").description == "mantl redis"

    def test_unchanged_source_is_parsed_once_for_many_missing_entries(
        self,
        write_catalog: Callable[..., Path],
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        versions = [{"name": "redis", "version": v} for v in ("1.0", "1.1", "1.2")]
        catalogs = {
            "mesosphere": FetchedCatalog(root=write_catalog("m", versions), fingerprint="aaa"),
            "mantl": FetchedCatalog(root=write_catalog("n", versions), fingerprint="bbb"),
        }
        registry = FakeRegistryStore()
        fetcher = FakeSourceFetcher(catalogs=catalogs)
        _synchronizer(registry, fetcher, tmp_path).sync_sources([MESOSPHERE, MANTL], False)

        parsed: list[Path] = []
        original_parse = source_sync.parse_catalog

        def counting_parse(root: Path, index: int) -> list[PackageDefinition]:
            parsed.append(root)
            return original_parse(root, index)

        monkeypatch.setattr(source_sync, "parse_catalog", counting_parse)
        result = _synchronizer(registry, fetcher, tmp_path).sync_sources([MANTL], False)

        assert result.entries_written == 3
        assert parsed == [catalogs["mantl"].root]

    def test_source_records_are_written(
        self, catalogs: dict[str, FetchedCatalog], tmp_path: Path
    ) -> None:
        registry = FakeRegistryStore()

        _synchronizer(registry, FakeSourceFetcher(catalogs=catalogs), tmp_path).sync_sources(
            [MESOSPHERE, MANTL], False
        )

        record = json.loads(registry.data["berth/sources/1"])
        assert record["name"] == "mantl"
        assert record["fingerprint"] == "bbb222"
        assert record["packages"] == [["kafka", "0.9"], ["redis", "1.0"]]


class TestFailures:
    def test_partial_failure_keeps_other_sources(
        self, catalogs: dict[str, FetchedCatalog], tmp_path: Path
    ) -> None:
        registry = FakeRegistryStore()
        fetcher = FakeSourceFetcher(catalogs=catalogs, failures={"mantl": "timed out"})

        result = _synchronizer(registry, fetcher, tmp_path).sync_sources([MESOSPHERE, MANTL], False)

        assert result.succeeded == ["mesosphere"]
        assert list(result.failed) == ["mantl"]
        assert "berth/catalog/0/redis/1.0" in registry.data
        assert "berth/catalog/1/kafka/0.9" not in registry.data
        assert "berth/sources/1" not in registry.data

    def test_all_sources_failing_raises_sync_error(self, tmp_path: Path) -> None:
        registry = FakeRegistryStore(data={"berth/catalog/0/redis/1.0": "{}"})
        fetcher = FakeSourceFetcher(failures={"mesosphere": "timed out", "mantl": "timed out"})

        with pytest.raises(SyncError) as exc_info:
            _synchronizer(registry, fetcher, tmp_path).sync_sources([MESOSPHERE, MANTL], False)

        assert sorted(exc_info.value.result.failed) == ["mantl", "mesosphere"]
        assert registry.put_calls == []
        assert registry.data == {"berth/catalog/0/redis/1.0": "{}"}

    def test_catalog_without_packages_dir_fails_source(
        self, catalogs: dict[str, FetchedCatalog], tmp_path: Path
    ) -> None:
        empty_root = tmp_path / "empty-checkout"
        empty_root.mkdir()
        broken = {**catalogs, "mantl": FetchedCatalog(root=empty_root, fingerprint="ddd444")}

        result = _synchronizer(
            FakeRegistryStore(), FakeSourceFetcher(catalogs=broken), tmp_path
        ).sync_sources([MESOSPHERE, MANTL], False)

        assert "No packages directory" in result.failed["mantl"]

    def test_unreachable_registry_fails_every_source(
        self, catalogs: dict[str, FetchedCatalog], tmp_path: Path
    ) -> None:
        registry = FakeRegistryStore(unreachable=True)

        with pytest.raises(SyncError):
            _synchronizer(registry, FakeSourceFetcher(catalogs=catalogs), tmp_path).sync_sources(
                [MESOSPHERE, MANTL], False
            )


class TestSourceList:
    def test_duplicate_indexes_rejected(self, tmp_path: Path) -> None:
        fetcher = FakeSourceFetcher()

        with pytest.raises(ValueError, match="unique"):
            _synchronizer(FakeRegistryStore(), fetcher, tmp_path).sync_sources(
                [MESOSPHERE, _source("other", 0)], False
            )

        assert fetcher.fetch_calls == []

    def test_empty_source_list(self, tmp_path: Path) -> None:
        result = _synchronizer(FakeRegistryStore(), FakeSourceFetcher(), tmp_path).sync_sources(
            [], False
        )

        assert result == SyncResult()
