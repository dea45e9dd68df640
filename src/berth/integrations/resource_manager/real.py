"""Mesos resource manager implementation."""

import httpx

from berth.errors import UpstreamError
from berth.integrations.resource_manager.abc import MasterState, ResourceManager


class RealResourceManager(ResourceManager):
    """Production resource manager reading the Mesos master state endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        principal: str = "",
        secret: str = "",
        verify_ssl: bool = True,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Create RealResourceManager.

        Args:
            base_url: Mesos master address (e.g., http://localhost:5050)
            principal: Optional principal for HTTP authentication
            secret: Optional secret for HTTP authentication
            verify_ssl: Whether to verify TLS certificates
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self._url = base_url.rstrip("/")
        auth = httpx.BasicAuth(principal, secret) if principal else None
        self._client = httpx.Client(
            base_url=self._url,
            auth=auth,
            verify=verify_ssl,
            timeout=timeout,
            transport=transport,
        )

    @property
    def url(self) -> str:
        return self._url

    def close(self) -> None:
        self._client.close()

    def master_state(self) -> MasterState:
        try:
            response = self._client.get("/master/state")
        except httpx.HTTPError as e:
            raise UpstreamError("mesos", f"GET /master/state failed: {e}") from e

        if not response.is_success:
            raise UpstreamError(
                "mesos",
                "could not read master state",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(
                "mesos", "could not read master state: reply is not JSON", body=response.text
            ) from e
        if not isinstance(data, dict):
            raise UpstreamError("mesos", "could not read master state: expected a JSON object")

        return MasterState(
            cluster_name=data.get("cluster", ""),
            leader=data.get("leader", ""),
        )
