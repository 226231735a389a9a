from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Mapping

from dashboard_provisioner.domain.models.file_meta import FileMeta

FileFilter = Callable[[FileMeta], bool]

PATH_OPTION = "path"
FOLDER_OPTION = "folder"


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """One configured source of dashboard definitions.

    ``options`` carries the source location under either the ``path`` or the
    ``folder`` key. Using ``folder`` means the provider expects a named
    destination folder, so ``folder`` (the destination name) must be set.
    """

    name: str
    org_id: int = 1
    folder: str = ""
    options: Mapping[str, str] = field(default_factory=dict)
    remove_on_missing: bool = True
    file_filter: FileFilter | None = None

    @property
    def uses_folder_option(self) -> bool:
        return not str(self.options.get(PATH_OPTION) or "").strip() and bool(
            str(self.options.get(FOLDER_OPTION) or "").strip()
        )
