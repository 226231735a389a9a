from __future__ import annotations

from typing import Protocol

from dashboard_provisioner.domain.models.dashboard_record import DashboardRecord


class DashboardLookupPort(Protocol):
    def find_dashboard(self, org_id: int, folder_id: int, slug: str) -> DashboardRecord | None: ...

    def find_by_uid(self, org_id: int, uid: str) -> DashboardRecord | None: ...

    def find_folder(self, org_id: int, slug: str) -> DashboardRecord | None: ...

    def get_dashboard(self, dashboard_id: int) -> DashboardRecord | None: ...
