from __future__ import annotations

from pathlib import Path


class ProvisioningError(Exception):
    """Base class for every error raised by the provisioning engine."""


class ConfigError(ProvisioningError):
    """Provider configuration is missing or contradictory."""


class FolderNameMissingError(ProvisioningError):
    def __init__(self, provider_name: str = "") -> None:
        self.provider_name = provider_name
        super().__init__("Folder name missing")


class FolderConflictError(ProvisioningError):
    """The folder slug is already taken by a dashboard."""


class SourcePathError(ProvisioningError):
    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"Source path {path} is not accessible: {reason}")


class DefinitionParseError(ProvisioningError):
    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Failed to parse dashboard definition {path}: {reason}")


class StoreError(ProvisioningError):
    """The provisioning store is unreachable or rejected an operation."""
