"""Marathon scheduler implementation."""

import logging
from typing import Any

import httpx

from berth.errors import UpstreamError
from berth.integrations.scheduler.abc import DeleteOutcome, Scheduler
from berth.models.package import PACKAGE_NAME_LABEL, PACKAGE_VERSION_LABEL, InstalledApp

logger = logging.getLogger(__name__)


class RealScheduler(Scheduler):
    """Production scheduler speaking the Marathon v2 REST API."""

    def __init__(
        self,
        base_url: str,
        *,
        user: str = "",
        password: str = "",
        verify_ssl: bool = True,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Create RealScheduler.

        Args:
            base_url: Marathon address (e.g., http://marathon.service.consul:8080)
            user: Optional HTTP basic auth user
            password: Optional HTTP basic auth password
            verify_ssl: Whether to verify TLS certificates
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        auth = httpx.BasicAuth(user, password) if user else None
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            auth=auth,
            verify=verify_ssl,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise UpstreamError("marathon", f"{method} {path} failed: {e}") from e

    def submit(self, job_spec: dict[str, Any]) -> str:
        response = self._request("POST", "/v2/apps", json=job_spec)
        if not response.is_success:
            raise UpstreamError(
                "marathon",
                f"could not submit app {job_spec.get('id', '')}",
                status_code=response.status_code,
                body=response.text,
            )
        logger.info("Submitted app %s to marathon", job_spec.get("id", ""))
        return response.text

    def list_apps(self) -> list[InstalledApp]:
        response = self._request("GET", "/v2/apps", params={"label": PACKAGE_NAME_LABEL})
        if not response.is_success:
            raise UpstreamError(
                "marathon",
                "could not list apps",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(
                "marathon", "could not list apps: reply is not JSON", body=response.text
            ) from e

        apps: list[InstalledApp] = []
        try:
            for app in data.get("apps") or []:
                installed = _installed_app(app)
                if installed is not None:
                    apps.append(installed)
        except (AttributeError, KeyError, TypeError) as e:
            raise UpstreamError("marathon", f"could not list apps: malformed app list: {e}") from e
        return apps

    def delete(self, app_id: str) -> DeleteOutcome:
        response = self._request("DELETE", f"/v2/apps/{app_id.lstrip('/')}")
        if response.status_code == 404:
            logger.info("App %s already absent from marathon", app_id)
            return DeleteOutcome.NOT_FOUND
        if not response.is_success:
            raise UpstreamError(
                "marathon",
                f"could not delete app {app_id}",
                status_code=response.status_code,
                body=response.text,
            )
        logger.info("Deleted app %s from marathon", app_id)
        return DeleteOutcome.DELETED


def _installed_app(app: dict[str, Any]) -> InstalledApp | None:
    labels = {str(k): str(v) for k, v in (app.get("labels") or {}).items()}
    if PACKAGE_NAME_LABEL not in labels:
        return None
    return InstalledApp(
        app_id=str(app["id"]),
        package_name=labels[PACKAGE_NAME_LABEL],
        package_version=labels.get(PACKAGE_VERSION_LABEL, ""),
        labels=labels,
    )
