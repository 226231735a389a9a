from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from dashboard_provisioner.domain.models.provider_config import ProviderConfig
from dashboard_provisioner.domain.services.file_filters import glob_filter


class UserSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    log_level: str = Field(default="info")
    sync_interval_seconds: int = Field(default=30, ge=1)
    sync_cron_expression: str = Field(default="")
    provider_workers: int = Field(default=1, ge=1)

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized = str(value or "").strip().lower()
        if normalized not in {"debug", "info", "warn", "warning", "error"}:
            raise ValueError("LOG_LEVEL must be one of: debug, info, warn, error")
        return "warning" if normalized == "warn" else normalized


class ProviderSettings(BaseModel):
    """One ``[provider:<name>]`` section of the settings file."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    org_id: int = Field(default=1, ge=1)
    folder: str = Field(default="")
    path: str = Field(default="")
    source_folder: str = Field(default="")
    remove_on_missing: bool = Field(default=True)
    include: str = Field(default="")

    @field_validator("name", "folder", "path", "source_folder", "include")
    @classmethod
    def _strip(cls, value: str) -> str:
        return str(value or "").strip()

    @model_validator(mode="after")
    def _require_source(self) -> "ProviderSettings":
        if not self.path and not self.source_folder:
            raise ValueError(f"provider {self.name!r} needs a path or source_folder option")
        return self

    @property
    def include_patterns(self) -> tuple[str, ...]:
        return tuple(p.strip() for p in self.include.split(",") if p.strip())

    def to_provider_config(self) -> ProviderConfig:
        options: dict[str, str] = {}
        if self.path:
            options["path"] = self.path
        if self.source_folder:
            options["folder"] = self.source_folder
        return ProviderConfig(
            name=self.name,
            org_id=self.org_id,
            folder=self.folder,
            options=options,
            remove_on_missing=self.remove_on_missing,
            file_filter=glob_filter(*self.include_patterns),
        )


@dataclass(frozen=True)
class RuntimePaths:
    app_root: Path
    init_dir: Path
    configs_dir: Path
    data_dir: Path
    cache_dir: Path
    logs_dir: Path
    provisioning_db_path: Path
    settings_path: Path

    @classmethod
    def from_root(cls, app_root: Path, settings_path: Path | None = None) -> "RuntimePaths":
        root = Path(app_root).absolute()
        data_dir = root / "data"
        configs_dir = root / "configs"
        return cls(
            app_root=root,
            init_dir=root / "init",
            configs_dir=configs_dir,
            data_dir=data_dir,
            cache_dir=data_dir / "cache",
            logs_dir=data_dir / "logs",
            provisioning_db_path=data_dir / "provisioning.db",
            settings_path=settings_path or configs_dir / "settings.ini",
        )


@dataclass(frozen=True)
class AppConfig:
    user: UserSettings
    paths: RuntimePaths
    providers: tuple[ProviderConfig, ...] = ()

    def provider(self, name: str) -> ProviderConfig | None:
        for config in self.providers:
            if config.name == name:
                return config
        return None
