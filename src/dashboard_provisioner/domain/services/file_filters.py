from __future__ import annotations

from fnmatch import fnmatch

from dashboard_provisioner.domain.models.file_meta import FileMeta
from dashboard_provisioner.domain.models.provider_config import FileFilter


def glob_filter(*patterns: str) -> FileFilter | None:
    """Accept files whose name matches any of ``patterns``; ``None`` when empty."""
    cleaned = tuple(p.strip() for p in patterns if p and p.strip())
    if not cleaned:
        return None

    def _accept(meta: FileMeta) -> bool:
        return any(fnmatch(meta.name, pattern) for pattern in cleaned)

    return _accept
