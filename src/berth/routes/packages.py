"""HTTP route handlers for package listing, install and uninstall."""

import logging
from typing import Any

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from berth.errors import (
    BerthError,
    NotFoundError,
    ParseError,
    SyncError,
    UpstreamError,
    ValidationError,
)
from berth.models.package import PackageDefinition, PackageRequest, PackageSummary
from berth.models.sync import SyncResult
from berth.services.install_service import InstallService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["packages"])


class PackageSummaryResponse(BaseModel):
    """One entry of the package listing."""

    name: str
    version: str
    source_index: int
    description: str
    maintainer: str
    versions: list[str]

    @classmethod
    def from_summary(cls, summary: PackageSummary) -> "PackageSummaryResponse":
        """Create response from PackageSummary model."""
        return cls(
            name=summary.name,
            version=summary.version,
            source_index=summary.source_index,
            description=summary.description,
            maintainer=summary.maintainer,
            versions=list(summary.versions),
        )


class PackageResponse(BaseModel):
    """Full definition of one package version."""

    name: str
    version: str
    source_index: int
    metadata: dict[str, Any]
    config_schema: dict[str, Any]
    job_template: str

    @classmethod
    def from_definition(cls, definition: PackageDefinition) -> "PackageResponse":
        """Create response from PackageDefinition model."""
        return cls(**definition.to_dict())


class SyncResponse(BaseModel):
    """Per-source outcome of a sync."""

    succeeded: list[str]
    failed: dict[str, str]
    skipped: list[str]
    entries_written: int

    @classmethod
    def from_result(cls, result: SyncResult) -> "SyncResponse":
        """Create response from SyncResult model."""
        return cls(**result.to_dict())


_ERROR_STATUS: dict[type[BerthError], int] = {
    ParseError: 400,
    NotFoundError: 404,
    ValidationError: 422,
    UpstreamError: 500,
    SyncError: 502,
}


def get_install_service(request: Request) -> InstallService:
    """Get InstallService from request state."""
    return request.app.state.install_service


async def handle_berth_error(request: Request, exc: Exception) -> JSONResponse:
    """Map berth errors onto HTTP statuses with a {"detail": ...} body."""
    status_code = 500
    for error_type, mapped in _ERROR_STATUS.items():
        if isinstance(exc, error_type):
            status_code = mapped
            break

    log = logger.error if status_code >= 500 else logger.warning
    log("%s %s failed (%d): %s", request.method, request.url.path, status_code, exc)

    content: dict[str, object] = {"detail": str(exc)}
    if isinstance(exc, ValidationError):
        content["problems"] = exc.problems
    if isinstance(exc, SyncError):
        content["result"] = exc.result.to_dict()
    return JSONResponse(status_code=status_code, content=content)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BerthError, handle_berth_error)


@router.get("/health", response_class=PlainTextResponse)
def health() -> str:
    """Liveness check."""
    return "OK"


@router.get("/1/packages", response_model=list[PackageSummaryResponse])
def list_packages(request: Request) -> list[PackageSummaryResponse]:
    """List the latest active version of every package."""
    service = get_install_service(request)
    return [PackageSummaryResponse.from_summary(s) for s in service.packages()]


@router.get("/1/packages/{name}", response_model=PackageResponse)
def describe_package(request: Request, name: str, version: str | None = None) -> PackageResponse:
    """Get the active definition of a package, optionally at a pinned version."""
    service = get_install_service(request)
    return PackageResponse.from_definition(service.package(name, version))


@router.post("/1/packages", status_code=201)
async def install_package(request: Request) -> Response:
    """Install a package and return the scheduler's response body."""
    service = get_install_service(request)
    package_request = PackageRequest.from_json(await request.body())
    body = await run_in_threadpool(service.install_package, package_request)
    return Response(content=body, status_code=201, media_type="application/json")


@router.delete("/1/packages/{name}", status_code=204)
async def uninstall_package(request: Request, name: str) -> Response:
    """Uninstall the running app created from a package.

    An optional JSON body may pin a version: {"version": "1.0"}.
    """
    service = get_install_service(request)
    package_request = PackageRequest.from_json(await request.body(), name_override=name)

    app = await run_in_threadpool(service.find_installed, package_request)
    if app is None:
        logger.warning("Uninstall requested for %s, which is not installed", name)
        raise HTTPException(status_code=404, detail=f"Package {name} is not installed")

    await run_in_threadpool(service.uninstall_package, app)
    return Response(status_code=204)


@router.post("/1/sync", response_model=SyncResponse)
def sync_sources(request: Request, force: bool = False) -> SyncResponse:
    """Re-synchronize the configured package sources."""
    service = get_install_service(request)
    return SyncResponse.from_result(service.sync_sources(force))
