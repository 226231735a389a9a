from __future__ import annotations

from typing import Protocol

from dashboard_provisioner.domain.models.dashboard_record import (
    DashboardRecord,
    SaveDashboardRequest,
)
from dashboard_provisioner.domain.models.provisioning_record import ProvisioningRecord


class ProvisioningStorePort(Protocol):
    """Persistence boundary for provisioned dashboards.

    Implementations raise ``StoreError`` when the backing store is unreachable
    or rejects a write. Unknown providers yield an empty list, never an error.
    """

    def fetch_provisioning_records(self, provider_name: str) -> list[ProvisioningRecord]: ...

    def save_dashboard(
        self, request: SaveDashboardRequest, provisioning: ProvisioningRecord
    ) -> DashboardRecord: ...

    def save_folder(self, request: SaveDashboardRequest) -> DashboardRecord: ...

    def unprovision(self, dashboard_id: int) -> None: ...

    def delete_dashboard(self, dashboard_id: int, org_id: int) -> None: ...
