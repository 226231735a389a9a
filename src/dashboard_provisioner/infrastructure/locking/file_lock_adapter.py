from __future__ import annotations

from pathlib import Path

from filelock import FileLock, Timeout

from dashboard_provisioner.domain.protocols.lock_port import LockPort


class FileLockAdapter(LockPort):
    """Non-reentrant guard so that two sync cycles never overlap."""

    def __init__(self, lock_path: Path | str, timeout_seconds: float = 0.0) -> None:
        Path(lock_path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = FileLock(str(lock_path))
        self._timeout_seconds = float(timeout_seconds)
        self._held = False

    def acquire(self) -> bool:
        if self._held:
            return False
        try:
            self._lock.acquire(timeout=self._timeout_seconds)
        except Timeout:
            return False
        self._held = True
        return True

    def release(self) -> None:
        if not self._held:
            return
        self._held = False
        self._lock.release()
