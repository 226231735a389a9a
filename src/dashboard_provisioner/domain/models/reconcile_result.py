from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    provider: str
    created: int = 0
    updated: int = 0
    skipped: int = 0
    unprovisioned: int = 0
    failed: int = 0
    folders_created: int = 0
    cancelled: bool = False

    @property
    def writes(self) -> int:
        return self.created + self.updated + self.unprovisioned + self.folders_created


@dataclass(frozen=True, slots=True)
class SyncReport:
    results: tuple[ReconcileResult, ...]
    errors: tuple[tuple[str, str], ...]
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors and not self.skipped
