from __future__ import annotations

import dataclasses
import json
from typing import Any

from dashboard_provisioner.domain.errors import DefinitionParseError
from dashboard_provisioner.domain.models.dashboard_definition import DashboardDefinition
from dashboard_provisioner.domain.models.file_meta import FileMeta
from dashboard_provisioner.domain.services.definition_fingerprint import fingerprint_definition
from dashboard_provisioner.domain.services.slugify import slugify


def _embedded_id(payload: dict[str, Any]) -> int | None:
    value = payload.get("id")
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _uid(payload: dict[str, Any]) -> str | None:
    value = payload.get("uid")
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()


class DefinitionParser:
    def parse(self, meta: FileMeta) -> DashboardDefinition:
        try:
            content = meta.path.read_bytes()
        except OSError as exc:
            raise DefinitionParseError(meta.path, exc.strerror or str(exc)) from exc

        try:
            payload = json.loads(content.decode("utf-8"))
        except UnicodeDecodeError as exc:
            raise DefinitionParseError(meta.path, "file is not valid UTF-8") from exc
        except ValueError as exc:
            raise DefinitionParseError(meta.path, f"invalid JSON: {exc}") from exc
        except RecursionError as exc:
            raise DefinitionParseError(meta.path, "JSON is nested too deeply") from exc

        if not isinstance(payload, dict):
            raise DefinitionParseError(meta.path, "definition must be a JSON object")

        title = payload.get("title")
        if not isinstance(title, str) or not title.strip():
            raise DefinitionParseError(meta.path, "dashboard title cannot be empty")
        title = title.strip()

        return DashboardDefinition(
            source_file_path=meta.path,
            modified_at=meta.modified_at,
            checksum=fingerprint_definition(content),
            title=title,
            slug=slugify(title),
            uid=_uid(payload),
            embedded_id=_embedded_id(payload),
            payload=payload,
        )


def normalize_definition(definition: DashboardDefinition) -> DashboardDefinition:
    """Drop any id declared in the file; only the store assigns ids."""
    if definition.embedded_id is None and "id" not in definition.payload:
        return definition
    payload = {key: value for key, value in definition.payload.items() if key != "id"}
    return dataclasses.replace(definition, payload=payload, embedded_id=None)
