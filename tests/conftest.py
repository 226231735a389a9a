from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from tests.fakes import FakeLogger, FakeProvisioningStore

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures" / "test-dashboards"
SCHEMA_PATH = Path(__file__).resolve().parents[1] / "init" / "provisioning_db.sql"


@pytest.fixture
def temp_workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    root = tmp_path / "workspace"
    (root / "init").mkdir(parents=True, exist_ok=True)
    (root / "configs").mkdir(parents=True, exist_ok=True)
    monkeypatch.chdir(root)
    monkeypatch.setenv("APP_ROOT", str(root))
    return root


@pytest.fixture
def dashboards_dir(temp_workspace: Path) -> Path:
    target = temp_workspace / "test-dashboards"
    _ = shutil.copytree(FIXTURES_DIR, target)
    return target


@pytest.fixture
def fake_store() -> FakeProvisioningStore:
    return FakeProvisioningStore()


@pytest.fixture
def fake_logger() -> FakeLogger:
    return FakeLogger()


@pytest.fixture
def schema_sql() -> str:
    return SCHEMA_PATH.read_text("utf-8")
