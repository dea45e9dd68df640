"""Tests for the berth CLI commands."""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from berth.cli.cli import cli
from berth.config import BerthConfig
from berth.context import BerthContext
from berth.errors import UpstreamError
from berth.integrations.registry_store.fake import FakeRegistryStore
from berth.integrations.scheduler.fake import FakeScheduler
from berth.integrations.source_fetcher.fake import FakeSourceFetcher
from berth.models.sync import FetchedCatalog
from click.testing import CliRunner


@pytest.fixture
def sources_config(tmp_path: Path) -> BerthConfig:
    sources_file = tmp_path / "sources.toml"
    sources_file.write_text(
        '[[sources]]\nname = "mantl"\npath = "https://git.example.com/mantl.git"\nindex = 0\n',
        encoding="utf-8",
    )
    return BerthConfig(cache_dir=tmp_path / "cache", sources_file=sources_file)


def _use_context(monkeypatch: pytest.MonkeyPatch, module: str, ctx: BerthContext) -> None:
    monkeypatch.setattr(f"berth.cli.commands.{module}.create_context", lambda config: ctx)


def test_help() -> None:
    result = CliRunner().invoke(cli, ["-h"])

    assert result.exit_code == 0
    assert "serve" in result.output
    assert "sync" in result.output


class TestSyncCommand:
    def test_sync_reports_sources(
        self,
        monkeypatch: pytest.MonkeyPatch,
        sources_config: BerthConfig,
        write_catalog: Callable[..., Path],
    ) -> None:
        root = write_catalog("mantl", [{"name": "redis", "version": "1.0"}])
        registry = FakeRegistryStore()
        fetcher = FakeSourceFetcher(catalogs={"mantl": FetchedCatalog(root=root, fingerprint="a")})
        _use_context(monkeypatch, "sync", BerthContext.for_test(registry=registry, fetcher=fetcher))

        result = CliRunner().invoke(cli, ["sync"], obj=sources_config)

        assert result.exit_code == 0, result.output
        assert "✓ mantl: synced" in result.output
        assert "1 entries written" in result.output
        assert "berth/catalog/0/redis/1.0" in registry.data

    def test_sync_forces_by_default(
        self,
        monkeypatch: pytest.MonkeyPatch,
        sources_config: BerthConfig,
        write_catalog: Callable[..., Path],
    ) -> None:
        root = write_catalog("mantl", [{"name": "redis", "version": "1.0"}])
        registry = FakeRegistryStore()
        fetcher = FakeSourceFetcher(catalogs={"mantl": FetchedCatalog(root=root, fingerprint="a")})
        ctx = BerthContext.for_test(registry=registry, fetcher=fetcher)
        _use_context(monkeypatch, "sync", ctx)
        runner = CliRunner()
        runner.invoke(cli, ["sync"], obj=sources_config)

        forced = runner.invoke(cli, ["sync"], obj=sources_config)
        unforced = runner.invoke(cli, ["sync", "--no-force"], obj=sources_config)

        assert "✓ mantl: synced" in forced.output
        assert "1 entries written" in forced.output
        assert "✓ mantl: unchanged" in unforced.output
        assert "0 entries written" in unforced.output

    def test_sync_closes_clients(
        self, monkeypatch: pytest.MonkeyPatch, sources_config: BerthConfig
    ) -> None:
        registry = FakeRegistryStore()
        ctx = BerthContext.for_test(
            registry=registry, fetcher=FakeSourceFetcher(failures={"mantl": "timed out"})
        )
        _use_context(monkeypatch, "sync", ctx)

        CliRunner().invoke(cli, ["sync"], obj=sources_config)

        assert registry.closed

    def test_sync_all_sources_failing_exits_1(
        self, monkeypatch: pytest.MonkeyPatch, sources_config: BerthConfig
    ) -> None:
        fetcher = FakeSourceFetcher(failures={"mantl": "timed out"})
        _use_context(monkeypatch, "sync", BerthContext.for_test(fetcher=fetcher))

        result = CliRunner().invoke(cli, ["sync"], obj=sources_config)

        assert result.exit_code == 1
        assert "Error: All package sources failed" in result.output

    def test_unreachable_consul_exits_1(
        self, monkeypatch: pytest.MonkeyPatch, sources_config: BerthConfig
    ) -> None:
        def fail(config: BerthConfig) -> BerthContext:
            raise UpstreamError("consul", "connection refused")

        monkeypatch.setattr("berth.cli.commands.sync.create_context", fail)

        result = CliRunner().invoke(cli, ["sync"], obj=sources_config)

        assert result.exit_code == 1
        assert "Error: consul: connection refused" in result.output

    def test_missing_sources_file_exits_1(self, tmp_path: Path) -> None:
        config = BerthConfig(sources_file=tmp_path / "nope.toml")

        result = CliRunner().invoke(cli, ["sync"], obj=config)

        assert result.exit_code == 1
        assert "Sources file not found" in result.output


class TestServeCommand:
    def test_serve_syncs_then_runs_server(
        self,
        monkeypatch: pytest.MonkeyPatch,
        sources_config: BerthConfig,
        write_catalog: Callable[..., Path],
    ) -> None:
        root = write_catalog("mantl", [{"name": "redis", "version": "1.0"}])
        registry = FakeRegistryStore()
        fetcher = FakeSourceFetcher(catalogs={"mantl": FetchedCatalog(root=root, fingerprint="a")})
        _use_context(monkeypatch, "serve", BerthContext.for_test(registry=registry, fetcher=fetcher))
        runs: list[dict[str, Any]] = []
        monkeypatch.setattr(
            "berth.cli.commands.serve.uvicorn.run", lambda app, **kwargs: runs.append(kwargs)
        )

        result = CliRunner().invoke(cli, ["serve"], obj=sources_config)

        assert result.exit_code == 0, result.output
        assert "berth/catalog/0/redis/1.0" in registry.data
        assert runs == [{"host": "0.0.0.0", "port": 4001, "log_config": None}]

    def test_failed_initial_sync_still_serves(
        self, monkeypatch: pytest.MonkeyPatch, sources_config: BerthConfig
    ) -> None:
        fetcher = FakeSourceFetcher(failures={"mantl": "timed out"})
        _use_context(monkeypatch, "serve", BerthContext.for_test(fetcher=fetcher))
        runs: list[dict[str, Any]] = []
        monkeypatch.setattr(
            "berth.cli.commands.serve.uvicorn.run", lambda app, **kwargs: runs.append(kwargs)
        )

        result = CliRunner().invoke(cli, ["serve"], obj=sources_config)

        assert result.exit_code == 0, result.output
        assert len(runs) == 1

    def test_serve_closes_clients_after_server_exits(
        self, monkeypatch: pytest.MonkeyPatch, sources_config: BerthConfig
    ) -> None:
        scheduler = FakeScheduler()
        ctx = BerthContext.for_test(
            scheduler=scheduler, fetcher=FakeSourceFetcher(failures={"mantl": "timed out"})
        )
        _use_context(monkeypatch, "serve", ctx)
        monkeypatch.setattr("berth.cli.commands.serve.uvicorn.run", lambda app, **kwargs: None)

        CliRunner().invoke(cli, ["serve"], obj=sources_config)

        assert scheduler.closed
