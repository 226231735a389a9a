from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from dashboard_provisioner.domain.errors import ConfigError, SourcePathError, StoreError
from dashboard_provisioner.domain.models.file_meta import FileMeta
from dashboard_provisioner.domain.models.provider_config import ProviderConfig
from dashboard_provisioner.domain.workflows.reconcile_provider import ReconcileProvider
from tests.fakes import FakeLogger, FakeProvisioningStore


def _config(
    source: Path | str,
    name: str = "Default",
    folder: str = "",
    option: str = "path",
    remove_on_missing: bool = True,
) -> ProviderConfig:
    return ProviderConfig(
        name=name,
        org_id=1,
        folder=folder,
        options={option: str(source)},
        remove_on_missing=remove_on_missing,
    )


def _reader(
    config: ProviderConfig,
    store: FakeProvisioningStore,
    logger: FakeLogger,
    app_root: Path = Path("/"),
) -> ReconcileProvider:
    return ReconcileProvider(
        config=config, store=store, lookup=store, app_root=app_root, logger=logger
    )


def _mtime(path: Path) -> datetime:
    return datetime.fromtimestamp(int(path.stat().st_mtime), UTC)


def _counts(store: FakeProvisioningStore) -> tuple[int, int]:
    folders = sum(1 for request in store.inserted if request.is_folder)
    return folders, len(store.inserted) - folders


def test_reconcile_given_path_option_when_created_then_resolves_absolute_source(
    dashboards_dir: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    reader = _reader(_config(dashboards_dir / "folder-one"), fake_store, fake_logger)

    assert reader.source_path == dashboards_dir / "folder-one"
    assert reader.source_path.is_absolute() is True


def test_reconcile_given_relative_folder_option_when_created_then_anchors_at_app_root(
    temp_workspace: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    config = _config("test-dashboards/folder-one", option="folder")

    reader = _reader(config, fake_store, fake_logger, app_root=temp_workspace)

    assert reader.source_path == temp_workspace / "test-dashboards" / "folder-one"


def test_reconcile_given_no_source_option_when_created_then_raises_config_error(
    fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    config = ProviderConfig(name="Default", org_id=1, folder="", options={})

    with pytest.raises(ConfigError):
        _ = _reader(config, fake_store, fake_logger)


def test_reconcile_given_target_folder_when_synced_then_inserts_folder_and_dashboards(
    dashboards_dir: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    reader = _reader(
        _config(dashboards_dir / "folder-one", folder="Team A"), fake_store, fake_logger
    )

    result = reader()

    assert _counts(fake_store) == (1, 2)
    folder_id = next(r for r in fake_store.dashboards.values() if r.is_folder).id
    dashboards = [r for r in fake_store.dashboards.values() if not r.is_folder]
    assert {d.folder_id for d in dashboards} == {folder_id}
    assert result.created == 2
    assert result.folders_created == 1
    assert result.failed == 0


def test_reconcile_given_unchanged_files_when_synced_twice_then_second_pass_writes_nothing(
    dashboards_dir: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    reader = _reader(
        _config(dashboards_dir / "folder-one", folder="Team A"), fake_store, fake_logger
    )

    _ = reader()
    inserted_after_first = len(fake_store.inserted)
    second = reader()

    assert len(fake_store.inserted) == inserted_after_first
    assert second.writes == 0
    assert second.skipped == 2
    assert fake_store.unprovisioned == []


def test_reconcile_given_stored_dashboard_older_than_file_when_synced_then_replaces_it(
    dashboards_dir: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    source = dashboards_dir / "one-dashboard"
    existing = fake_store.add_dashboard(
        "grafana", updated_at=_mtime(source / "dashboard1.json") - timedelta(days=1)
    )

    result = _reader(_config(source), fake_store, fake_logger)()

    assert len(fake_store.inserted) == 1
    assert fake_store.inserted[0].dashboard_id == existing.id
    assert result.updated == 1
    assert fake_store.records("Default")[0].dashboard_id == existing.id


def test_reconcile_given_stored_dashboard_newer_than_file_when_synced_then_leaves_it(
    dashboards_dir: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    source = dashboards_dir / "one-dashboard"
    existing = fake_store.add_dashboard(
        "grafana", updated_at=_mtime(source / "dashboard1.json") + timedelta(days=1)
    )

    result = _reader(_config(source), fake_store, fake_logger)()

    assert fake_store.inserted == []
    assert fake_store.dashboards[existing.id] == existing
    assert result.skipped == 1
    assert result.writes == 0


def test_reconcile_given_file_with_embedded_id_when_synced_then_id_is_dropped(
    dashboards_dir: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    fake_store.add_dashboard("unrelated", updated_at=datetime(2020, 1, 1, tzinfo=UTC))

    result = _reader(_config(dashboards_dir / "containing-id"), fake_store, fake_logger)()

    assert len(fake_store.inserted) == 1
    request = fake_store.inserted[0]
    assert request.dashboard_id is None
    assert "id" not in request.payload
    assert result.created == 1
    assert fake_store.dashboards[1].slug == "unrelated"


def test_reconcile_given_broken_files_when_synced_then_valid_ones_are_saved(
    dashboards_dir: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    result = _reader(_config(dashboards_dir / "broken-dashboards"), fake_store, fake_logger)()

    assert len(fake_store.inserted) == 1
    assert result.created == 1
    assert result.failed == 2
    assert len(fake_logger.errors) == 2
    assert all("Default" in message for message in fake_logger.errors)


def test_reconcile_given_two_providers_with_same_folder_when_synced_then_one_folder(
    dashboards_dir: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    first = _reader(
        _config(dashboards_dir / "folder-one", name="1", folder="Shared"), fake_store, fake_logger
    )
    second = _reader(
        _config(dashboards_dir / "unprovision", name="2", folder="Shared"), fake_store, fake_logger
    )

    _ = first()
    result = second()

    folders = [r for r in fake_store.dashboards.values() if r.is_folder]
    assert len(folders) == 1
    assert _counts(fake_store) == (1, 4)
    assert result.folders_created == 0


def test_reconcile_given_two_providers_with_different_folders_when_synced_then_both_provision(
    dashboards_dir: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    source = dashboards_dir / "containing-id"
    for name, folder in (("1", "f1"), ("2", "f2")):
        _ = _reader(_config(source, name=name, folder=folder), fake_store, fake_logger)()

    assert _counts(fake_store) == (2, 2)
    assert len(fake_store.records("1")) == 1
    assert len(fake_store.records("2")) == 1


def test_reconcile_given_folder_option_without_name_when_synced_then_uses_root_folder(
    dashboards_dir: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    config = _config(dashboards_dir / "folder-one", option="folder")

    result = _reader(config, fake_store, fake_logger)()

    assert _counts(fake_store) == (0, 2)
    assert {request.folder_id for request in fake_store.inserted} == {0}
    assert result.folders_created == 0


def test_reconcile_given_missing_file_when_removal_allowed_then_unprovisions_once(
    dashboards_dir: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    reader = _reader(
        _config(dashboards_dir / "unprovision", option="folder"), fake_store, fake_logger
    )

    _ = reader()
    assert len(fake_store.records("Default")) == 2
    assert len(fake_store.inserted) == 2
    removed_id = next(
        r.dashboard_id
        for r in fake_store.records("Default")
        if r.external_id.endswith("dashboard2.json")
    )

    def _only_first(meta: FileMeta) -> bool:
        return meta.name == "dashboard1.json"

    reader.file_filter = _only_first
    result = reader()

    assert len(fake_store.records("Default")) == 1
    assert len(fake_store.inserted) == 2
    assert fake_store.unprovisioned == [removed_id]
    assert result.unprovisioned == 1
    assert removed_id in fake_store.dashboards


def test_reconcile_given_missing_file_when_removal_disabled_then_keeps_provisioning(
    dashboards_dir: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    source = dashboards_dir / "unprovision"
    reader = _reader(_config(source, remove_on_missing=False), fake_store, fake_logger)

    _ = reader()
    (source / "dashboard2.json").unlink()
    result = reader()

    assert fake_store.unprovisioned == []
    assert len(fake_store.records("Default")) == 2
    assert result.unprovisioned == 0
    assert fake_store.deleted == []


def test_reconcile_given_changed_content_when_synced_then_updates_exactly_once(
    dashboards_dir: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    source = dashboards_dir / "unprovision"
    reader = _reader(_config(source), fake_store, fake_logger)
    _ = reader()
    original_ids = {r.external_id: r.dashboard_id for r in fake_store.records("Default")}

    target = source / "dashboard1.json"
    _ = target.write_text('{"title": "Unprovision One", "rows": []}\n', encoding="utf-8")
    changed = reader()
    unchanged = reader()

    assert changed.updated == 1
    assert changed.created == 0
    assert len(fake_store.inserted) == 3
    assert fake_store.inserted[-1].dashboard_id == original_ids[str(target)]
    assert unchanged.writes == 0
    assert len(fake_store.inserted) == 3


def test_reconcile_given_dashboard_edited_outside_provisioning_when_synced_then_restores_file(
    dashboards_dir: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    reader = _reader(_config(dashboards_dir / "one-dashboard"), fake_store, fake_logger)
    _ = reader()
    record = fake_store.records("Default")[0]
    assert record.dashboard_id is not None and record.synced_at is not None

    fake_store.touch_dashboard(record.dashboard_id, record.synced_at + timedelta(hours=1))
    result = reader()

    assert result.updated == 1
    assert fake_store.inserted[-1].dashboard_id == record.dashboard_id


def test_reconcile_given_renamed_file_when_synced_then_keeps_same_dashboard(
    dashboards_dir: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    source = dashboards_dir / "one-dashboard"
    reader = _reader(_config(source), fake_store, fake_logger)
    _ = reader()
    dashboard_id = fake_store.records("Default")[0].dashboard_id

    os.rename(source / "dashboard1.json", source / "renamed.json")
    result = reader()

    records = fake_store.records("Default")
    assert [r.external_id for r in records] == [str(source / "renamed.json")]
    assert records[0].dashboard_id == dashboard_id
    assert result.updated == 1
    assert result.unprovisioned == 0
    assert fake_store.unprovisioned == []


def test_reconcile_given_store_down_when_loading_prior_state_then_raises(
    dashboards_dir: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    fake_store.fail_fetch_for.add("Default")
    reader = _reader(_config(dashboards_dir / "folder-one"), fake_store, fake_logger)

    with pytest.raises(StoreError):
        _ = reader()
    assert fake_store.inserted == []


def test_reconcile_given_single_save_failure_when_synced_then_other_files_are_saved(
    dashboards_dir: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    source = dashboards_dir / "folder-one"
    fake_store.fail_save_for.add(str(source / "dashboard1.json"))

    result = _reader(_config(source), fake_store, fake_logger)()

    assert result.failed == 1
    assert result.created == 1
    assert any("dashboard1.json" in message for message in fake_logger.errors)


def test_reconcile_given_missing_source_directory_when_synced_then_raises(
    temp_workspace: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    reader = _reader(_config(temp_workspace / "nope", folder="Team A"), fake_store, fake_logger)

    with pytest.raises(SourcePathError):
        _ = reader()
    assert fake_store.inserted == []


def test_reconcile_given_stop_request_when_synced_then_stops_before_next_file(
    dashboards_dir: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    reader = _reader(_config(dashboards_dir / "folder-one"), fake_store, fake_logger)
    checks: list[int] = []

    def _should_stop() -> bool:
        checks.append(1)
        return len(checks) > 1

    result = reader(_should_stop)

    assert result.cancelled is True
    assert result.created == 1
    assert len(fake_store.inserted) == 1


def test_reconcile_given_duplicate_titles_when_synced_then_warns(
    dashboards_dir: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    source = dashboards_dir / "folder-one"
    nested = source / "nested"
    nested.mkdir()
    _ = (nested / "copy.json").write_text('{"title": "Grafana"}', encoding="utf-8")

    _ = _reader(_config(source), fake_store, fake_logger)()

    assert any("'Grafana'" in message for message in fake_logger.warnings)


def test_reconcile_given_deeply_nested_file_when_synced_then_other_files_are_saved(
    temp_workspace: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    source = temp_workspace / "defs"
    source.mkdir()
    _ = (source / "a.json").write_text('{"title": "First"}', encoding="utf-8")
    _ = (source / "b.json").write_text("[" * 200_000, encoding="utf-8")
    _ = (source / "c.json").write_text('{"title": "Third"}', encoding="utf-8")

    result = _reader(_config(source), fake_store, fake_logger)()

    assert result.created == 2
    assert result.failed == 1
    assert any("b.json" in message for message in fake_logger.errors)


def test_reconcile_given_titles_without_ascii_characters_when_synced_then_each_is_provisioned(
    temp_workspace: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    source = temp_workspace / "defs"
    source.mkdir()
    _ = (source / "a.json").write_text('{"title": "日本"}', encoding="utf-8")
    _ = (source / "b.json").write_text('{"title": "中文"}', encoding="utf-8")

    result = _reader(_config(source), fake_store, fake_logger)()

    assert result.created == 2
    assert result.skipped == 0
    assert sorted(d.title for d in fake_store.dashboards.values()) == ["中文", "日本"]
    assert sorted(r.external_id for r in fake_store.records("Default")) == [
        str(source / "a.json"),
        str(source / "b.json"),
    ]


def _write_aged(path: Path, content: str, age: timedelta) -> None:
    _ = path.write_text(content, encoding="utf-8")
    stamp = (datetime.now(UTC) - age).timestamp()
    os.utime(path, (stamp, stamp))


def test_reconcile_given_uid_of_newer_dashboard_in_other_folder_when_synced_then_leaves_it(
    temp_workspace: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    source = temp_workspace / "defs"
    source.mkdir()
    _write_aged(source / "a.json", '{"title": "From File", "uid": "abc"}', timedelta(days=10))
    other = fake_store.add_dashboard(
        "other", updated_at=datetime.now(UTC), is_folder=True, title="Other"
    )
    manual = fake_store.add_dashboard(
        "manual-edit",
        updated_at=datetime.now(UTC),
        folder_id=other.id,
        title="Manual Edit",
        uid="abc",
    )

    result = _reader(_config(source), fake_store, fake_logger)()

    assert result.created == 0
    assert result.skipped == 1
    assert fake_store.inserted == []
    assert fake_store.dashboards[manual.id] == manual


def test_reconcile_given_uid_of_older_dashboard_when_synced_then_updates_that_dashboard(
    temp_workspace: Path, fake_store: FakeProvisioningStore, fake_logger: FakeLogger
) -> None:
    source = temp_workspace / "defs"
    source.mkdir()
    _ = (source / "a.json").write_text('{"title": "From File", "uid": "abc"}', encoding="utf-8")
    manual = fake_store.add_dashboard(
        "manual-edit",
        updated_at=datetime.now(UTC) - timedelta(days=10),
        folder_id=42,
        title="Manual Edit",
        uid="abc",
    )

    result = _reader(_config(source), fake_store, fake_logger)()

    assert result.updated == 1
    assert result.created == 0
    assert fake_store.inserted[0].dashboard_id == manual.id
    saved = fake_store.dashboards[manual.id]
    assert (saved.title, saved.folder_id) == ("From File", 0)
    assert fake_store.records("Default")[0].dashboard_id == manual.id
