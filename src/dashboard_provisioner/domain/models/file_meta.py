from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path


@dataclass(frozen=True, slots=True)
class FileMeta:
    path: Path
    name: str
    size: int
    mode: int
    modified_at: datetime
