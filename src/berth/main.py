"""FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from starlette.concurrency import run_in_threadpool

from berth import __version__
from berth.config import BerthConfig, load_sources
from berth.context import BerthContext, create_context
from berth.errors import SyncError
from berth.logging_setup import configure_logging
from berth.models.package import PackageSource
from berth.routes.packages import register_error_handlers
from berth.routes.packages import router as packages_router
from berth.services.install_service import InstallService

logger = logging.getLogger(__name__)


def initial_sync(service: InstallService, force: bool) -> None:
    """Populate the registry before serving.

    A failed sync is logged, not raised: whatever an earlier sync stored is
    still served.
    """
    try:
        service.sync_sources(force)
    except SyncError as e:
        logger.error("Initial package sync failed: %s", e)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup/shutdown.

    Creates the production context from BERTH_* environment variables and
    runs the initial sync.
    """
    config = BerthConfig.from_env()
    sources = load_sources(config.sources_file)
    context = await run_in_threadpool(create_context, config)
    try:
        service = InstallService(context, sources)
        await run_in_threadpool(initial_sync, service, config.force_sync)

        app.state.context = context
        app.state.install_service = service

        yield
    finally:
        # Cleanup on shutdown
        context.close()


def create_app(
    context: BerthContext | None = None,
    sources: Sequence[PackageSource] = (),
) -> FastAPI:
    """Create FastAPI application.

    Args:
        context: Optional prepared BerthContext (CLI and tests). If None, the
                 lifespan builds the production context from the environment.
        sources: Package sources used by POST /1/sync when context is given

    Returns:
        Configured FastAPI application
    """
    if context is not None:
        app = FastAPI(
            title="Berth",
            description="Package install API for Marathon clusters",
            version=__version__,
        )
        app.state.context = context
        app.state.install_service = InstallService(context, sources)
    else:
        app = FastAPI(
            title="Berth",
            description="Package install API for Marathon clusters",
            version=__version__,
            lifespan=lifespan,
        )

    register_error_handlers(app)
    app.include_router(packages_router)

    return app


def run() -> None:
    """Run the server configured from the environment."""
    config = BerthConfig.from_env()
    configure_logging(config.log_level, config.log_format)
    uvicorn.run(
        create_app(),
        host=config.listen_host,
        port=config.listen_port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
