from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from dashboard_provisioner.config.settings_models import AppConfig
from dashboard_provisioner.domain.models.provider_config import ProviderConfig
from dashboard_provisioner.domain.workflows.purge_provider import PurgeProvider
from dashboard_provisioner.domain.workflows.reconcile_provider import ReconcileProvider
from dashboard_provisioner.domain.workflows.sync_providers import SyncProviders
from dashboard_provisioner.infrastructure.locking.file_lock_adapter import FileLockAdapter
from dashboard_provisioner.infrastructure.repositories.sqlite_provisioning_store import (
    SqliteProvisioningStore,
)
from dashboard_provisioner.infrastructure.repositories.sqlite_unit_of_work import SqliteUnitOfWork


class Container:
    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self.logger = logging.getLogger("dashboard_provisioner")

        self.store = SqliteProvisioningStore(self.uow_factory)
        self.lock = FileLockAdapter(config.paths.cache_dir / "sync.lock", timeout_seconds=0.0)

    def uow_factory(self) -> SqliteUnitOfWork:
        return SqliteUnitOfWork(self.config.paths.provisioning_db_path)

    def initialize(self) -> None:
        init_sql = self._read_init_sql(self.config.paths.init_dir / "provisioning_db.sql")
        with self.uow_factory() as uow:
            uow.provisioning.init_schema(init_sql)
            uow.commit()

    @staticmethod
    def _read_init_sql(path: Path) -> str:
        if not path.exists():
            raise FileNotFoundError(f"Provisioning schema not found: {path}")
        sql = path.read_text("utf-8").strip()
        if not sql:
            raise ValueError(f"Provisioning schema file is empty: {path}")
        return sql

    def build_reconcile_use_case(self, provider: ProviderConfig) -> ReconcileProvider:
        return ReconcileProvider(
            config=provider,
            store=self.store,
            lookup=self.store,
            app_root=self.config.paths.app_root,
            logger=self.logger.getChild(provider.name),
        )

    def build_sync_use_case(self, should_stop: Callable[[], bool] | None = None) -> SyncProviders:
        return SyncProviders(
            providers=self.config.providers,
            reconcile_factory=self.build_reconcile_use_case,
            lock=self.lock,
            logger=self.logger,
            worker_count=self.config.user.provider_workers,
            should_stop=should_stop,
        )

    def build_purge_use_case(self) -> PurgeProvider:
        return PurgeProvider(store=self.store, logger=self.logger)
