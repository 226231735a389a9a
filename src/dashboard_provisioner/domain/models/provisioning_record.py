from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class ProvisioningRecord:
    provider_name: str
    external_id: str
    checksum: str
    updated: datetime
    dashboard_id: int | None = None
    synced_at: datetime | None = None
