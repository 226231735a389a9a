from __future__ import annotations

from collections import Counter
from enum import StrEnum
from pathlib import Path
from typing import Callable

from dashboard_provisioner.domain.errors import (
    DefinitionParseError,
    FolderNameMissingError,
    StoreError,
)
from dashboard_provisioner.domain.models.dashboard_definition import DashboardDefinition
from dashboard_provisioner.domain.models.dashboard_record import (
    DashboardRecord,
    SaveDashboardRequest,
)
from dashboard_provisioner.domain.models.file_meta import FileMeta
from dashboard_provisioner.domain.models.folder_handle import FolderHandle
from dashboard_provisioner.domain.models.provider_config import FileFilter, ProviderConfig
from dashboard_provisioner.domain.models.provisioning_record import ProvisioningRecord
from dashboard_provisioner.domain.models.reconcile_result import ReconcileResult
from dashboard_provisioner.domain.protocols.dashboard_lookup_port import DashboardLookupPort
from dashboard_provisioner.domain.protocols.logger_port import LoggerPort
from dashboard_provisioner.domain.protocols.provisioning_store_port import ProvisioningStorePort
from dashboard_provisioner.domain.services.duplicate_tracker import DuplicateTracker
from dashboard_provisioner.domain.services.path_resolver import resolve_source_path
from dashboard_provisioner.domain.workflows.resolve_folder import resolve_folder
from dashboard_provisioner.infrastructure.filesystem.definition_parser import (
    DefinitionParser,
    normalize_definition,
)
from dashboard_provisioner.infrastructure.filesystem.definition_walker import DefinitionWalker


class FileOutcome(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class ReconcileProvider:
    """Runs reconciliation passes for a single provider.

    A pass discovers definition files, compares them with the provisioning
    records stored for the provider, saves what is new or changed and
    unprovisions dashboards whose file disappeared. Broken files and failed
    saves are logged and counted; they never abort the pass. Errors reading
    the source directory, resolving the folder or loading prior state are
    raised to the caller.
    """

    def __init__(
        self,
        config: ProviderConfig,
        store: ProvisioningStorePort,
        lookup: DashboardLookupPort,
        app_root: Path,
        logger: LoggerPort,
        parser: DefinitionParser | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self._lookup = lookup
        self._logger = logger
        self._parser = parser or DefinitionParser()
        self.source_path = resolve_source_path(config.options, app_root)
        self._walker = DefinitionWalker(self.source_path, logger, config.file_filter)

    @property
    def config(self) -> ProviderConfig:
        return self._config

    @property
    def file_filter(self) -> FileFilter | None:
        return self._walker.file_filter

    @file_filter.setter
    def file_filter(self, value: FileFilter | None) -> None:
        self._walker.file_filter = value

    def _resolve_folder(self) -> FolderHandle:
        try:
            return resolve_folder(self._config, self._store, self._lookup)
        except FolderNameMissingError:
            self._logger.debug(
                "Provider %s has no folder name, provisioning into the root folder",
                self._config.name,
            )
            return FolderHandle.root(self._config.org_id)

    def _load_provisioned(self) -> dict[str, ProvisioningRecord]:
        records = self._store.fetch_provisioning_records(self._config.name)
        return {record.external_id: record for record in records}

    def _has_drifted(self, prior: ProvisioningRecord) -> bool:
        if prior.dashboard_id is None or prior.synced_at is None:
            return False
        dashboard = self._lookup.get_dashboard(prior.dashboard_id)
        if dashboard is None:
            return True
        return dashboard.updated_at > prior.synced_at

    def _is_up_to_date(self, definition: DashboardDefinition, prior: ProvisioningRecord) -> bool:
        if prior.checksum != definition.checksum:
            return False
        if self._has_drifted(prior):
            self._logger.info(
                "Provider %s: dashboard %s was changed outside provisioning, restoring %s",
                self._config.name,
                prior.dashboard_id,
                definition.external_id,
            )
            return False
        return True

    def _find_existing(
        self, definition: DashboardDefinition, folder: FolderHandle
    ) -> DashboardRecord | None:
        if definition.uid:
            by_uid = self._lookup.find_by_uid(self._config.org_id, definition.uid)
            if by_uid is not None and not by_uid.is_folder:
                return by_uid
        return self._lookup.find_dashboard(self._config.org_id, folder.id, definition.slug)

    def _target_dashboard_id(
        self,
        definition: DashboardDefinition,
        folder: FolderHandle,
        orphaned_ids: set[int],
    ) -> tuple[int | None, bool]:
        """Return ``(dashboard_id, should_save)`` for a file without prior record."""
        existing = self._find_existing(definition, folder)
        if existing is None:
            return None, True
        if existing.id in orphaned_ids:
            return existing.id, True
        # File mtimes have whole-second precision.
        if existing.updated_at.replace(microsecond=0) > definition.modified_at:
            self._logger.debug(
                "Provider %s: dashboard %r (id %s) is newer than %s, leaving it untouched",
                self._config.name,
                definition.slug,
                existing.id,
                definition.external_id,
            )
            return existing.id, False
        return existing.id, True

    def _sync_file(
        self,
        meta: FileMeta,
        folder: FolderHandle,
        prior: ProvisioningRecord | None,
        orphaned_ids: set[int],
        claimed_ids: set[int],
        tracker: DuplicateTracker,
    ) -> FileOutcome:
        try:
            definition = normalize_definition(self._parser.parse(meta))
        except DefinitionParseError as exc:
            self._logger.error(
                "Provider %s: failed to load dashboard from %s: %s",
                self._config.name,
                exc.path,
                exc.reason,
            )
            return FileOutcome.FAILED

        tracker.track(definition)

        try:
            if prior is not None and self._is_up_to_date(definition, prior):
                return FileOutcome.SKIPPED

            if prior is not None:
                dashboard_id, should_save = prior.dashboard_id, True
            else:
                dashboard_id, should_save = self._target_dashboard_id(
                    definition, folder, orphaned_ids
                )
            if not should_save:
                return FileOutcome.SKIPPED

            self._logger.debug(
                "Provider %s: saving %s into folder %s",
                self._config.name,
                definition.external_id,
                folder.id,
            )
            saved = self._store.save_dashboard(
                SaveDashboardRequest(
                    org_id=self._config.org_id,
                    folder_id=folder.id,
                    title=definition.title,
                    slug=definition.slug,
                    uid=definition.uid,
                    payload=definition.payload,
                    dashboard_id=dashboard_id,
                ),
                ProvisioningRecord(
                    provider_name=self._config.name,
                    external_id=definition.external_id,
                    checksum=definition.checksum,
                    updated=definition.modified_at,
                ),
            )
        except StoreError as exc:
            self._logger.error(
                "Provider %s: failed to save dashboard from %s: %s",
                self._config.name,
                meta.path,
                exc,
            )
            return FileOutcome.FAILED

        claimed_ids.add(saved.id)
        return FileOutcome.CREATED if dashboard_id is None else FileOutcome.UPDATED

    def _handle_missing_files(
        self,
        provisioned: dict[str, ProvisioningRecord],
        found: dict[str, FileMeta],
        claimed_ids: set[int],
    ) -> int:
        missing = [
            record
            for path, record in sorted(provisioned.items())
            if path not in found
            and record.dashboard_id is not None
            and record.dashboard_id not in claimed_ids
        ]
        if not missing:
            return 0

        if not self._config.remove_on_missing:
            self._logger.info(
                "Provider %s: %d definition files are gone, keeping their dashboards provisioned",
                self._config.name,
                len(missing),
            )
            return 0

        unprovisioned = 0
        for record in missing:
            self._logger.debug(
                "Provider %s: unprovisioning dashboard %s, %s is missing on disk",
                self._config.name,
                record.dashboard_id,
                record.external_id,
            )
            try:
                self._store.unprovision(record.dashboard_id)
            except StoreError as exc:
                self._logger.error(
                    "Provider %s: failed to unprovision dashboard %s: %s",
                    self._config.name,
                    record.dashboard_id,
                    exc,
                )
                continue
            unprovisioned += 1
        return unprovisioned

    def __call__(self, should_stop: Callable[[], bool] | None = None) -> ReconcileResult:
        found = self._walker.walk()
        folder = self._resolve_folder()
        provisioned = self._load_provisioned()

        orphaned_ids = {
            record.dashboard_id
            for path, record in provisioned.items()
            if path not in found and record.dashboard_id is not None
        }
        claimed_ids: set[int] = set()
        tracker = DuplicateTracker()
        outcomes: Counter[FileOutcome] = Counter()
        cancelled = False

        for path in sorted(found):
            if should_stop is not None and should_stop():
                cancelled = True
                self._logger.warning(
                    "Provider %s: pass cancelled before %s", self._config.name, path
                )
                break
            outcome = self._sync_file(
                found[path], folder, provisioned.get(path), orphaned_ids, claimed_ids, tracker
            )
            outcomes[outcome] += 1

        unprovisioned = 0
        if not cancelled:
            unprovisioned = self._handle_missing_files(provisioned, found, claimed_ids)
        tracker.log_warnings(self._config.name, self._logger)

        result = ReconcileResult(
            provider=self._config.name,
            created=outcomes[FileOutcome.CREATED],
            updated=outcomes[FileOutcome.UPDATED],
            skipped=outcomes[FileOutcome.SKIPPED],
            unprovisioned=unprovisioned,
            failed=outcomes[FileOutcome.FAILED],
            folders_created=1 if folder.created else 0,
            cancelled=cancelled,
        )
        self._logger.info(
            "Provider %s synced: created %d, updated %d, skipped %d, unprovisioned %d, failed %d",
            result.provider,
            result.created,
            result.updated,
            result.skipped,
            result.unprovisioned,
            result.failed,
        )
        return result
