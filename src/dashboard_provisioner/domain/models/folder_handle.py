from __future__ import annotations

from dataclasses import dataclass

ROOT_FOLDER_ID = 0


@dataclass(frozen=True, slots=True)
class FolderHandle:
    id: int
    org_id: int
    name: str
    created: bool = False

    @property
    def is_root(self) -> bool:
        return self.id == ROOT_FOLDER_ID

    @classmethod
    def root(cls, org_id: int) -> "FolderHandle":
        return cls(id=ROOT_FOLDER_ID, org_id=org_id, name="")
