from __future__ import annotations

from collections import defaultdict

from dashboard_provisioner.domain.models.dashboard_definition import DashboardDefinition
from dashboard_provisioner.domain.protocols.logger_port import LoggerPort


class DuplicateTracker:
    """Collects titles and uids seen in one pass to warn about clashes."""

    def __init__(self) -> None:
        self._by_uid: dict[str, list[str]] = defaultdict(list)
        self._by_title: dict[str, list[str]] = defaultdict(list)

    def track(self, definition: DashboardDefinition) -> None:
        if definition.uid:
            self._by_uid[definition.uid].append(definition.external_id)
        self._by_title[definition.title].append(definition.external_id)

    def duplicated_uids(self) -> dict[str, list[str]]:
        return {uid: paths for uid, paths in self._by_uid.items() if len(paths) > 1}

    def duplicated_titles(self) -> dict[str, list[str]]:
        return {title: paths for title, paths in self._by_title.items() if len(paths) > 1}

    def log_warnings(self, provider: str, logger: LoggerPort) -> None:
        for uid, paths in sorted(self.duplicated_uids().items()):
            logger.warning(
                "Provider %s: uid %s is used by %d files (%s), only one will be kept",
                provider,
                uid,
                len(paths),
                ", ".join(sorted(paths)),
            )
        for title, paths in sorted(self.duplicated_titles().items()):
            logger.warning(
                "Provider %s: title %r is used by %d files (%s)",
                provider,
                title,
                len(paths),
                ", ".join(sorted(paths)),
            )
