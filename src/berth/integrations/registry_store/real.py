"""Consul-backed registry store implementation."""

import logging
from typing import Any

import httpx

from berth.errors import UpstreamError
from berth.integrations.registry_store.abc import RegistryStore
from berth.models.cluster import ServiceInstance

logger = logging.getLogger(__name__)


class RealRegistryStore(RegistryStore):
    """Production registry store speaking the Consul HTTP API.

    Endpoints used:
    - /v1/kv/{key}?raw - read one value
    - /v1/kv/{key} (PUT) - write one value
    - /v1/kv/{prefix}?keys - list keys
    - /v1/health/service/{name}?passing - healthy instances
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Create RealRegistryStore.

        Args:
            base_url: Consul address (e.g., http://localhost:8500)
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self._base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        content: str | None = None,
    ) -> httpx.Response:
        try:
            return self._client.request(method, path, params=params, content=content)
        except httpx.HTTPError as e:
            raise UpstreamError("consul", f"{method} {path} failed: {e}") from e

    def _raise_for_status(self, response: httpx.Response, operation: str) -> None:
        if response.is_success:
            return
        raise UpstreamError(
            "consul",
            f"could not {operation}",
            status_code=response.status_code,
            body=response.text,
        )

    def _decode_list(self, response: httpx.Response, operation: str) -> list[Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(
                "consul", f"could not {operation}: reply is not JSON", body=response.text
            ) from e
        if not isinstance(data, list):
            raise UpstreamError(
                "consul", f"could not {operation}: expected a JSON array", body=response.text
            )
        return data

    def get(self, key: str) -> str | None:
        response = self._request("GET", f"/v1/kv/{key}", params={"raw": ""})
        if response.status_code == 404:
            return None
        self._raise_for_status(response, f"read key {key}")
        return response.text

    def put(self, key: str, value: str) -> None:
        response = self._request("PUT", f"/v1/kv/{key}", content=value)
        self._raise_for_status(response, f"write key {key}")
        if response.text.strip() != "true":
            raise UpstreamError("consul", f"write of key {key} was rejected", body=response.text)

    def list_keys(self, prefix: str) -> list[str]:
        response = self._request("GET", f"/v1/kv/{prefix}", params={"keys": ""})
        if response.status_code == 404:
            return []
        operation = f"list keys under {prefix}"
        self._raise_for_status(response, operation)
        keys = self._decode_list(response, operation)
        if not all(isinstance(key, str) for key in keys):
            raise UpstreamError("consul", f"could not {operation}: keys must be strings")
        return sorted(keys)

    def catalog_lookup(self, service_name: str, tag: str | None = None) -> list[ServiceInstance]:
        params: dict[str, Any] = {"passing": ""}
        if tag:
            params["tag"] = tag
        response = self._request("GET", f"/v1/health/service/{service_name}", params=params)
        operation = f"look up service {service_name}"
        self._raise_for_status(response, operation)

        instances: list[ServiceInstance] = []
        for entry in self._decode_list(response, operation):
            try:
                instance = _parse_health_entry(entry)
            except (AttributeError, TypeError, ValueError) as e:
                raise UpstreamError(
                    "consul", f"could not {operation}: malformed health entry: {e}"
                ) from e
            if instance is not None:
                instances.append(instance)
        return instances

    def ping(self) -> None:
        response = self._request("GET", "/v1/status/leader")
        self._raise_for_status(response, "reach consul")
        logger.debug("Consul reachable at %s", self._base_url)


def _parse_health_entry(entry: dict[str, Any]) -> ServiceInstance | None:
    node = entry.get("Node") or {}
    service = entry.get("Service") or {}
    # Service address is empty when the service shares the node address
    address = service.get("Address") or node.get("Address", "")
    if not address:
        return None
    return ServiceInstance(
        node=node.get("Node", ""),
        address=address,
        port=int(service.get("Port") or 0),
        tags=tuple(service.get("Tags") or ()),
    )
