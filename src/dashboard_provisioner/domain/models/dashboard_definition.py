from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping


@dataclass(frozen=True, slots=True)
class DashboardDefinition:
    source_file_path: Path
    modified_at: datetime
    checksum: str
    title: str
    slug: str
    uid: str | None
    embedded_id: int | None
    payload: Mapping[str, Any]

    @property
    def external_id(self) -> str:
        return str(self.source_file_path)
