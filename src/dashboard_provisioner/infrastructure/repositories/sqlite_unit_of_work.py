from __future__ import annotations

import sqlite3
from pathlib import Path
from types import TracebackType

from dashboard_provisioner.infrastructure.repositories.sqlite_provisioning_repository import (
    SqliteProvisioningRepository,
)


class SqliteUnitOfWork:
    def __init__(self, db_path: Path, busy_timeout_seconds: float = 5.0) -> None:
        self._db_path = db_path
        self._busy_timeout_seconds = float(busy_timeout_seconds)
        self._conn: sqlite3.Connection | None = None
        self.provisioning: SqliteProvisioningRepository

    def __enter__(self) -> "SqliteUnitOfWork":
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path), timeout=self._busy_timeout_seconds)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self.provisioning = SqliteProvisioningRepository(self._conn, self._db_path)
        self._conn.execute("BEGIN")
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._conn is None:
            return
        try:
            if exc_type:
                self.rollback()
            else:
                self.commit()
        finally:
            self._conn.close()
            self._conn = None

    def commit(self) -> None:
        if self._conn is not None:
            self._conn.commit()

    def rollback(self) -> None:
        if self._conn is not None:
            self._conn.rollback()
