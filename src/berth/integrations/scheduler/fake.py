"""Fake scheduler for testing."""

import json
from typing import Any

from berth.errors import UpstreamError
from berth.integrations.scheduler.abc import DeleteOutcome, Scheduler
from berth.models.package import (
    PACKAGE_NAME_LABEL,
    PACKAGE_VERSION_LABEL,
    InstalledApp,
)


class FakeScheduler(Scheduler):
    """In-memory fake implementation of the scheduler.

    Submitted jobs become installed apps when they carry package labels, so
    install followed by find_installed behaves like the real thing. All
    calls are recorded for test assertions.
    """

    def __init__(
        self,
        *,
        apps: list[InstalledApp] | None = None,
        submit_error: UpstreamError | None = None,
        delete_error: UpstreamError | None = None,
        list_error: UpstreamError | None = None,
    ) -> None:
        """Create FakeScheduler.

        Args:
            apps: Initially running apps
            submit_error: Raised from every submit call when set
            delete_error: Raised from every delete call when set
            list_error: Raised from every list_apps call when set
        """
        self._apps: dict[str, InstalledApp] = {app.app_id: app for app in apps or []}
        self._submit_error = submit_error
        self._delete_error = delete_error
        self._list_error = list_error
        self._submitted: list[dict[str, Any]] = []
        self._deleted: list[str] = []
        self._closed = False

    @property
    def submitted(self) -> list[dict[str, Any]]:
        return list(self._submitted)

    @property
    def deleted(self) -> list[str]:
        return list(self._deleted)

    @property
    def apps(self) -> list[InstalledApp]:
        return list(self._apps.values())

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def submit(self, job_spec: dict[str, Any]) -> str:
        self._submitted.append(job_spec)
        if self._submit_error is not None:
            raise self._submit_error

        app_id = str(job_spec.get("id", f"/app-{len(self._submitted)}"))
        labels = {str(k): str(v) for k, v in (job_spec.get("labels") or {}).items()}
        if PACKAGE_NAME_LABEL in labels:
            self._apps[app_id] = InstalledApp(
                app_id=app_id,
                package_name=labels[PACKAGE_NAME_LABEL],
                package_version=labels.get(PACKAGE_VERSION_LABEL, ""),
                labels=labels,
            )
        return json.dumps({"id": app_id, "version": "2016-01-01T00:00:00.000Z"})

    def list_apps(self) -> list[InstalledApp]:
        if self._list_error is not None:
            raise self._list_error
        return list(self._apps.values())

    def delete(self, app_id: str) -> DeleteOutcome:
        self._deleted.append(app_id)
        if self._delete_error is not None:
            raise self._delete_error
        if app_id not in self._apps:
            return DeleteOutcome.NOT_FOUND
        del self._apps[app_id]
        return DeleteOutcome.DELETED
