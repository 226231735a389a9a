from __future__ import annotations

import json
import secrets
import sqlite3
from datetime import UTC, datetime
from pathlib import Path

from dashboard_provisioner.domain.models.dashboard_record import (
    DashboardRecord,
    SaveDashboardRequest,
)
from dashboard_provisioner.domain.models.folder_handle import ROOT_FOLDER_ID
from dashboard_provisioner.domain.models.provisioning_record import ProvisioningRecord

_DASHBOARD_COLUMNS = "id, uid, org_id, folder_id, is_folder, title, slug, data, updated_at"


def _now() -> datetime:
    return datetime.now(UTC)


def generate_uid() -> str:
    return secrets.token_urlsafe(9)[:12]


class SqliteProvisioningRepository:
    def __init__(self, conn: sqlite3.Connection, db_path: Path) -> None:
        self._conn = conn
        self._db_path = db_path

    def init_schema(self, schema_sql: str) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn.executescript(schema_sql)

    @staticmethod
    def _parse_dashboard(row: sqlite3.Row) -> DashboardRecord:
        data = json.loads(row["data"] or "{}")
        if not isinstance(data, dict):
            data = {}
        return DashboardRecord(
            id=int(row["id"]),
            uid=str(row["uid"]),
            org_id=int(row["org_id"]),
            folder_id=int(row["folder_id"] or ROOT_FOLDER_ID),
            is_folder=bool(row["is_folder"]),
            title=str(row["title"] or ""),
            slug=str(row["slug"] or ""),
            updated_at=datetime.fromisoformat(str(row["updated_at"])),
            payload=data,
        )

    @staticmethod
    def _parse_provisioning(row: sqlite3.Row) -> ProvisioningRecord:
        return ProvisioningRecord(
            provider_name=str(row["name"]),
            external_id=str(row["external_id"]),
            checksum=str(row["check_sum"] or ""),
            updated=datetime.fromtimestamp(int(row["updated"] or 0), UTC),
            dashboard_id=int(row["dashboard_id"]),
            synced_at=datetime.fromisoformat(str(row["synced_at"])),
        )

    def _fetch_dashboard(self, where: str, params: tuple[object, ...]) -> DashboardRecord | None:
        row = self._conn.execute(
            f"SELECT {_DASHBOARD_COLUMNS} FROM dashboard WHERE {where} LIMIT 1",
            params,
        ).fetchone()
        return self._parse_dashboard(row) if row is not None else None

    def get_dashboard(self, dashboard_id: int) -> DashboardRecord | None:
        return self._fetch_dashboard("id = ?", (int(dashboard_id),))

    def find_by_uid(self, org_id: int, uid: str) -> DashboardRecord | None:
        return self._fetch_dashboard("org_id = ? AND uid = ?", (int(org_id), uid))

    def find_dashboard(self, org_id: int, folder_id: int, slug: str) -> DashboardRecord | None:
        return self._fetch_dashboard(
            "org_id = ? AND folder_id = ? AND slug = ? AND is_folder = 0",
            (int(org_id), int(folder_id), slug),
        )

    def find_folder(self, org_id: int, slug: str) -> DashboardRecord | None:
        # Folders live at the root; a root dashboard with the same slug is a clash.
        return self._fetch_dashboard(
            "org_id = ? AND folder_id = ? AND slug = ? ORDER BY is_folder DESC",
            (int(org_id), ROOT_FOLDER_ID, slug),
        )

    def list_dashboards(self, org_id: int) -> list[DashboardRecord]:
        rows = self._conn.execute(
            f"SELECT {_DASHBOARD_COLUMNS} FROM dashboard WHERE org_id = ? ORDER BY id",
            (int(org_id),),
        ).fetchall()
        return [self._parse_dashboard(row) for row in rows]

    def _resolve_target(self, request: SaveDashboardRequest) -> DashboardRecord | None:
        if request.dashboard_id is not None:
            existing = self.get_dashboard(request.dashboard_id)
            if existing is not None and existing.org_id == request.org_id:
                return existing
        if request.uid:
            existing = self.find_by_uid(request.org_id, request.uid)
            if existing is not None and existing.is_folder == request.is_folder:
                return existing
        return self._fetch_dashboard(
            "org_id = ? AND folder_id = ? AND slug = ? AND is_folder = ?",
            (request.org_id, request.folder_id, request.slug, int(request.is_folder)),
        )

    def upsert_dashboard(
        self, request: SaveDashboardRequest, now: datetime | None = None
    ) -> DashboardRecord:
        """Insert or overwrite a dashboard, matching by id, then uid, then slug."""
        timestamp = (now or _now()).isoformat()
        target = self._resolve_target(request)
        uid = request.uid or (target.uid if target is not None else generate_uid())
        data = dict(request.payload)
        data["uid"] = uid
        data.pop("id", None)
        row = {
            "uid": uid,
            "org_id": int(request.org_id),
            "folder_id": int(request.folder_id),
            "is_folder": int(request.is_folder),
            "title": request.title,
            "slug": request.slug,
            "data": json.dumps(data, ensure_ascii=True, sort_keys=True),
            "updated_at": timestamp,
        }

        if target is not None:
            row["id"] = target.id
            self._conn.execute(
                """
                UPDATE dashboard
                SET uid = :uid, folder_id = :folder_id, is_folder = :is_folder,
                    title = :title, slug = :slug, data = :data, updated_at = :updated_at
                WHERE id = :id
                """,
                row,
            )
            dashboard_id = target.id
        else:
            row["created_at"] = timestamp
            cursor = self._conn.execute(
                """
                INSERT INTO dashboard (
                    uid, org_id, folder_id, is_folder, title, slug, data, created_at, updated_at
                ) VALUES (
                    :uid, :org_id, :folder_id, :is_folder, :title, :slug, :data,
                    :created_at, :updated_at
                )
                """,
                row,
            )
            dashboard_id = int(cursor.lastrowid or 0)

        saved = self.get_dashboard(dashboard_id)
        if saved is None:
            raise sqlite3.IntegrityError(f"dashboard {dashboard_id} vanished during save")
        return saved

    def insert_folder_if_absent(
        self, request: SaveDashboardRequest, now: datetime | None = None
    ) -> DashboardRecord:
        timestamp = (now or _now()).isoformat()
        uid = request.uid or generate_uid()
        data = dict(request.payload)
        data["uid"] = uid
        self._conn.execute(
            """
            INSERT INTO dashboard (
                uid, org_id, folder_id, is_folder, title, slug, data, created_at, updated_at
            ) VALUES (?, ?, ?, 1, ?, ?, ?, ?, ?)
            ON CONFLICT (org_id, folder_id, slug, is_folder) DO NOTHING
            """,
            (
                uid,
                int(request.org_id),
                ROOT_FOLDER_ID,
                request.title,
                request.slug,
                json.dumps(data, ensure_ascii=True, sort_keys=True),
                timestamp,
                timestamp,
            ),
        )
        folder = self._fetch_dashboard(
            "org_id = ? AND folder_id = ? AND slug = ? AND is_folder = 1",
            (int(request.org_id), ROOT_FOLDER_ID, request.slug),
        )
        if folder is None:
            raise sqlite3.IntegrityError(f"folder {request.slug!r} could not be created")
        return folder

    def list_provisioning(self, provider_name: str) -> list[ProvisioningRecord]:
        rows = self._conn.execute(
            """
            SELECT name, external_id, dashboard_id, check_sum, updated, synced_at
            FROM dashboard_provisioning
            WHERE name = ?
            ORDER BY external_id
            """,
            (provider_name,),
        ).fetchall()
        return [self._parse_provisioning(row) for row in rows]

    def upsert_provisioning(
        self, record: ProvisioningRecord, dashboard: DashboardRecord
    ) -> ProvisioningRecord:
        # One provisioning row per dashboard; a new owner replaces the old row.
        self._conn.execute(
            """
            DELETE FROM dashboard_provisioning
            WHERE dashboard_id = ? AND NOT (name = ? AND external_id = ?)
            """,
            (dashboard.id, record.provider_name, record.external_id),
        )
        self._conn.execute(
            """
            INSERT INTO dashboard_provisioning (
                name, external_id, dashboard_id, check_sum, updated, synced_at
            ) VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT (name, external_id)
            DO UPDATE SET
                dashboard_id = excluded.dashboard_id,
                check_sum = excluded.check_sum,
                updated = excluded.updated,
                synced_at = excluded.synced_at
            """,
            (
                record.provider_name,
                record.external_id,
                dashboard.id,
                record.checksum,
                int(record.updated.timestamp()),
                dashboard.updated_at.isoformat(),
            ),
        )
        return ProvisioningRecord(
            provider_name=record.provider_name,
            external_id=record.external_id,
            checksum=record.checksum,
            updated=record.updated,
            dashboard_id=dashboard.id,
            synced_at=dashboard.updated_at,
        )

    def delete_provisioning_by_dashboard(self, dashboard_id: int) -> int:
        deleted = self._conn.execute(
            "DELETE FROM dashboard_provisioning WHERE dashboard_id = ?",
            (int(dashboard_id),),
        ).rowcount
        return int(deleted or 0)

    def delete_dashboard(self, dashboard_id: int, org_id: int) -> int:
        target = self.get_dashboard(dashboard_id)
        if target is None or target.org_id != int(org_id):
            return 0
        cursor = self._conn.cursor()
        if target.is_folder:
            cursor.execute(
                "DELETE FROM dashboard WHERE folder_id = ? AND org_id = ?",
                (target.id, target.org_id),
            )
        deleted = cursor.execute("DELETE FROM dashboard WHERE id = ?", (target.id,)).rowcount
        return int(deleted or 0)
