"""Fake resource manager for testing."""

from berth.errors import UpstreamError
from berth.integrations.resource_manager.abc import MasterState, ResourceManager


class FakeResourceManager(ResourceManager):
    """In-memory fake returning a fixed master state."""

    def __init__(
        self,
        *,
        url: str = "http://localhost:5050",
        cluster_name: str = "test-cluster",
        leader: str = "master@127.0.0.1:5050",
        unreachable: bool = False,
    ) -> None:
        self._url = url
        self._state = MasterState(cluster_name=cluster_name, leader=leader)
        self._unreachable = unreachable
        self._state_calls = 0
        self._closed = False

    @property
    def url(self) -> str:
        return self._url

    @property
    def state_calls(self) -> int:
        return self._state_calls

    def master_state(self) -> MasterState:
        self._state_calls += 1
        if self._unreachable:
            raise UpstreamError("mesos", "connection refused")
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True
