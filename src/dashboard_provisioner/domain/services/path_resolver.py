from __future__ import annotations

from pathlib import Path
from typing import Mapping

from dashboard_provisioner.domain.errors import ConfigError
from dashboard_provisioner.domain.models.provider_config import FOLDER_OPTION, PATH_OPTION


def _option(options: Mapping[str, object], key: str) -> str:
    return str(options.get(key) or "").strip()


def resolve_source_path(options: Mapping[str, object], app_root: Path) -> Path:
    """Return the absolute source directory described by ``path`` or ``folder``.

    ``path`` wins when both are present. Relative values are anchored at
    ``app_root``; absolute values are returned unchanged.
    """
    raw = _option(options, PATH_OPTION) or _option(options, FOLDER_OPTION)
    if not raw:
        raise ConfigError("Failed to load dashboards: path or folder option is required")

    candidate = Path(raw).expanduser()
    if candidate.is_absolute():
        return candidate

    return (Path(app_root) / candidate).absolute()
