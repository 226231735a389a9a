from __future__ import annotations

import os
import stat
from datetime import UTC, datetime
from pathlib import Path

from dashboard_provisioner.domain.errors import SourcePathError
from dashboard_provisioner.domain.models.file_meta import FileMeta
from dashboard_provisioner.domain.models.provider_config import FileFilter
from dashboard_provisioner.domain.protocols.logger_port import LoggerPort

DEFINITION_SUFFIX = ".json"


def should_descend(dir_name: str) -> bool:
    return not dir_name.startswith(".")


def is_definition_file(file_name: str) -> bool:
    return file_name.lower().endswith(DEFINITION_SUFFIX)


def file_meta_from_stat(path: Path, stat_result: os.stat_result) -> FileMeta:
    return FileMeta(
        path=path,
        name=path.name,
        size=int(stat_result.st_size),
        mode=int(stat_result.st_mode),
        modified_at=datetime.fromtimestamp(int(stat_result.st_mtime), UTC),
    )


class DefinitionWalker:
    """Finds dashboard definition files below a source directory."""

    def __init__(
        self,
        root: Path,
        logger: LoggerPort,
        file_filter: FileFilter | None = None,
    ) -> None:
        self._root = Path(root)
        self._logger = logger
        self.file_filter = file_filter

    @property
    def root(self) -> Path:
        return self._root

    def _check_root(self) -> None:
        try:
            stat_result = self._root.stat()
        except OSError as exc:
            raise SourcePathError(self._root, exc.strerror or str(exc)) from exc
        if not stat.S_ISDIR(stat_result.st_mode):
            raise SourcePathError(self._root, "not a directory")
        if not os.access(self._root, os.R_OK | os.X_OK):
            raise SourcePathError(self._root, "permission denied")

    def _on_walk_error(self, exc: OSError) -> None:
        self._logger.error(
            "Skipping unreadable directory %s: %s", exc.filename, exc.strerror or exc
        )

    def _accept(self, meta: FileMeta) -> bool:
        if self.file_filter is None:
            return True
        return bool(self.file_filter(meta))

    def walk(self) -> dict[str, FileMeta]:
        """Return matching files keyed by absolute path, depth first and sorted."""
        self._check_root()

        found: dict[str, FileMeta] = {}
        for dirpath, dirnames, filenames in os.walk(self._root, onerror=self._on_walk_error):
            dirnames[:] = sorted(d for d in dirnames if should_descend(d))
            for file_name in sorted(filenames):
                if not is_definition_file(file_name):
                    continue
                path = Path(dirpath) / file_name
                try:
                    meta = file_meta_from_stat(path, path.stat())
                except OSError as exc:
                    self._logger.error("Skipping unreadable file %s: %s", path, exc.strerror or exc)
                    continue
                if self._accept(meta):
                    found[str(path)] = meta
        return found
