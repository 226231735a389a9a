from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping


@dataclass(frozen=True, slots=True)
class DashboardRecord:
    id: int
    uid: str
    org_id: int
    folder_id: int
    is_folder: bool
    title: str
    slug: str
    updated_at: datetime
    payload: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class SaveDashboardRequest:
    org_id: int
    folder_id: int
    title: str
    slug: str
    uid: str | None
    payload: Mapping[str, Any]
    dashboard_id: int | None = None
    is_folder: bool = False
