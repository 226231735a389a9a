from __future__ import annotations

import sqlite3
from typing import Callable, TypeVar

from dashboard_provisioner.domain.errors import StoreError
from dashboard_provisioner.domain.models.dashboard_record import (
    DashboardRecord,
    SaveDashboardRequest,
)
from dashboard_provisioner.domain.models.provisioning_record import ProvisioningRecord
from dashboard_provisioner.infrastructure.repositories.sqlite_provisioning_repository import (
    SqliteProvisioningRepository,
)
from dashboard_provisioner.infrastructure.repositories.sqlite_unit_of_work import SqliteUnitOfWork

T = TypeVar("T")


class SqliteProvisioningStore:
    """Provisioning store and dashboard lookup backed by SQLite.

    Every call runs in its own unit of work, so providers synced from
    different threads never share a connection.
    """

    def __init__(self, uow_factory: Callable[[], SqliteUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def _run(self, action: Callable[[SqliteProvisioningRepository], T]) -> T:
        try:
            with self._uow_factory() as uow:
                return action(uow.provisioning)
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc

    def fetch_provisioning_records(self, provider_name: str) -> list[ProvisioningRecord]:
        return self._run(lambda repo: repo.list_provisioning(provider_name))

    def save_dashboard(
        self, request: SaveDashboardRequest, provisioning: ProvisioningRecord
    ) -> DashboardRecord:
        def _save(repo: SqliteProvisioningRepository) -> DashboardRecord:
            dashboard = repo.upsert_dashboard(request)
            repo.upsert_provisioning(provisioning, dashboard)
            return dashboard

        return self._run(_save)

    def save_folder(self, request: SaveDashboardRequest) -> DashboardRecord:
        return self._run(lambda repo: repo.insert_folder_if_absent(request))

    def unprovision(self, dashboard_id: int) -> None:
        self._run(lambda repo: repo.delete_provisioning_by_dashboard(dashboard_id))

    def delete_dashboard(self, dashboard_id: int, org_id: int) -> None:
        self._run(lambda repo: repo.delete_dashboard(dashboard_id, org_id))

    def find_dashboard(self, org_id: int, folder_id: int, slug: str) -> DashboardRecord | None:
        return self._run(lambda repo: repo.find_dashboard(org_id, folder_id, slug))

    def find_by_uid(self, org_id: int, uid: str) -> DashboardRecord | None:
        return self._run(lambda repo: repo.find_by_uid(org_id, uid))

    def find_folder(self, org_id: int, slug: str) -> DashboardRecord | None:
        return self._run(lambda repo: repo.find_folder(org_id, slug))

    def get_dashboard(self, dashboard_id: int) -> DashboardRecord | None:
        return self._run(lambda repo: repo.get_dashboard(dashboard_id))

    def list_dashboards(self, org_id: int) -> list[DashboardRecord]:
        return self._run(lambda repo: repo.list_dashboards(org_id))
