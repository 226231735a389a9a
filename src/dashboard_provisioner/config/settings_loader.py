from __future__ import annotations

import configparser
import os
from pathlib import Path

from pydantic import ValidationError

from dashboard_provisioner.config.settings_models import (
    AppConfig,
    ProviderSettings,
    RuntimePaths,
    UserSettings,
)
from dashboard_provisioner.domain.errors import ConfigError

SETTINGS_SECTION = "settings"
PROVIDER_SECTION_PREFIX = "provider:"


class SettingsLoader:
    """Builds ``AppConfig`` from an INI file.

    ``[settings]`` holds the service options and every ``[provider:<name>]``
    section declares one dashboard provider. A missing file yields defaults
    and no providers.
    """

    @staticmethod
    def _app_root() -> Path:
        configured = os.getenv("APP_ROOT", "").strip()
        return Path(configured) if configured else Path.cwd()

    @staticmethod
    def _read(path: Path) -> configparser.ConfigParser:
        parser = configparser.ConfigParser(interpolation=None)
        if not path.exists():
            return parser
        try:
            with path.open("r", encoding="utf-8") as stream:
                parser.read_file(stream)
        except (OSError, configparser.Error) as exc:
            raise ConfigError(f"Failed to read settings file {path}: {exc}") from exc
        return parser

    @staticmethod
    def _parse_providers(parser: configparser.ConfigParser) -> list[ProviderSettings]:
        providers: list[ProviderSettings] = []
        seen: set[str] = set()
        for section in parser.sections():
            if not section.startswith(PROVIDER_SECTION_PREFIX):
                continue
            name = section[len(PROVIDER_SECTION_PREFIX):].strip()
            if name in seen:
                raise ConfigError(f"Provider {name!r} is declared more than once")
            seen.add(name)
            try:
                values = dict(parser.items(section))
                values.pop("name", None)
                providers.append(ProviderSettings(name=name, **values))
            except ValidationError as exc:
                raise ConfigError(f"Invalid provider section [{section}]: {exc}") from exc
        return providers

    @classmethod
    def load(cls, settings_path: Path | None = None) -> AppConfig:
        paths = RuntimePaths.from_root(cls._app_root(), settings_path)
        parser = cls._read(paths.settings_path)

        raw_settings: dict[str, str] = {}
        if parser.has_section(SETTINGS_SECTION):
            raw_settings = dict(parser.items(SETTINGS_SECTION))
        try:
            user = UserSettings(**raw_settings)
        except ValidationError as exc:
            raise ConfigError(f"Invalid [{SETTINGS_SECTION}] section: {exc}") from exc

        providers = tuple(item.to_provider_config() for item in cls._parse_providers(parser))
        return AppConfig(user=user, paths=paths, providers=providers)
