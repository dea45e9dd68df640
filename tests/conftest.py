"""Pytest configuration and fixtures."""

import json
from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any

import pytest
from berth.config import BerthConfig
from berth.context import BerthContext
from berth.integrations.registry_store.fake import FakeRegistryStore
from berth.integrations.resource_manager.fake import FakeResourceManager
from berth.integrations.scheduler.fake import FakeScheduler
from berth.integrations.source_fetcher.fake import FakeSourceFetcher
from berth.main import create_app
from berth.services.install_service import InstallService
from httpx import ASGITransport, AsyncClient

DEFAULT_TEMPLATE = '{"id": "/{{ package.name }}", "instances": 1}'

WriteCatalog = Callable[[str, list[dict[str, Any]]], Path]


@pytest.fixture
def write_catalog(tmp_path: Path) -> WriteCatalog:
    """Build a universe-layout catalog on disk.

    Each package dict takes name and version, plus optional description,
    config (schema dict) and template (string, or None for no template).
    """

    def _write(catalog_name: str, packages: list[dict[str, Any]]) -> Path:
        root = tmp_path / "catalogs" / catalog_name
        packages_dir = root / "repo" / "packages"
        packages_dir.mkdir(parents=True, exist_ok=True)

        for revision, package in enumerate(packages):
            name = package["name"]
            revision_dir = packages_dir / name[0].upper() / name / str(revision)
            revision_dir.mkdir(parents=True)

            metadata = {
                "name": name,
                "version": package["version"],
                "description": package.get("description", f"{name} from {catalog_name}"),
                "maintainer": "ops@example.com",
            }
            (revision_dir / "package.json").write_text(json.dumps(metadata), encoding="utf-8")
            if "config" in package:
                (revision_dir / "config.json").write_text(
                    json.dumps(package["config"]), encoding="utf-8"
                )
            template = package.get("template", DEFAULT_TEMPLATE)
            if template is not None:
                (revision_dir / "marathon.json.mustache").write_text(template, encoding="utf-8")

        return root

    return _write


@pytest.fixture
def berth_config(tmp_path: Path) -> BerthConfig:
    return BerthConfig(cache_dir=tmp_path / "cache")


@pytest.fixture
def fake_registry() -> FakeRegistryStore:
    """Create a fresh FakeRegistryStore."""
    return FakeRegistryStore()


@pytest.fixture
def fake_scheduler() -> FakeScheduler:
    """Create a fresh FakeScheduler."""
    return FakeScheduler()


@pytest.fixture
def fake_resource_manager() -> FakeResourceManager:
    return FakeResourceManager()


@pytest.fixture
def fake_fetcher() -> FakeSourceFetcher:
    """Create a FakeSourceFetcher with no catalogs."""
    return FakeSourceFetcher()


@pytest.fixture
def berth_context(
    berth_config: BerthConfig,
    fake_registry: FakeRegistryStore,
    fake_scheduler: FakeScheduler,
    fake_resource_manager: FakeResourceManager,
    fake_fetcher: FakeSourceFetcher,
) -> BerthContext:
    """Create a BerthContext with fake implementations."""
    return BerthContext.for_test(
        config=berth_config,
        registry=fake_registry,
        scheduler=fake_scheduler,
        resource_manager=fake_resource_manager,
        fetcher=fake_fetcher,
    )


@pytest.fixture
def install_service(berth_context: BerthContext) -> InstallService:
    """Create an InstallService with fake context."""
    return InstallService(berth_context)


@pytest.fixture
async def async_client(berth_context: BerthContext) -> AsyncGenerator[AsyncClient]:
    """Create an async test client backed by fakes."""
    app = create_app(context=berth_context)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
