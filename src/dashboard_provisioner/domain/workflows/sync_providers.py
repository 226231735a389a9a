from __future__ import annotations

import traceback
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Protocol

from dashboard_provisioner.domain.errors import ProvisioningError
from dashboard_provisioner.domain.models.provider_config import ProviderConfig
from dashboard_provisioner.domain.models.reconcile_result import ReconcileResult, SyncReport
from dashboard_provisioner.domain.protocols.lock_port import LockPort
from dashboard_provisioner.domain.protocols.logger_port import LoggerPort


class ProviderPass(Protocol):
    def __call__(self, should_stop: Callable[[], bool] | None = None) -> ReconcileResult: ...


class SyncProviders:
    """Runs one reconciliation pass for every configured provider.

    A fatal error in one provider is logged and reported; the remaining
    providers still run. Overlapping cycles are skipped through ``lock``.
    """

    def __init__(
        self,
        providers: tuple[ProviderConfig, ...],
        reconcile_factory: Callable[[ProviderConfig], ProviderPass],
        lock: LockPort,
        logger: LoggerPort,
        worker_count: int = 1,
        should_stop: Callable[[], bool] | None = None,
    ) -> None:
        self._providers = providers
        self._reconcile_factory = reconcile_factory
        self._lock = lock
        self._logger = logger
        self._worker_count = max(1, int(worker_count))
        self._should_stop = should_stop

    def _run_one(self, config: ProviderConfig) -> ReconcileResult:
        reconcile = self._reconcile_factory(config)
        return reconcile(self._should_stop)

    def _log_unexpected(self, name: str) -> None:
        self._logger.error(
            "Unexpected failure syncing provider %s\n%s", name, traceback.format_exc()
        )

    def _run_all(self) -> tuple[list[ReconcileResult], list[tuple[str, str]]]:
        results: list[ReconcileResult] = []
        errors: list[tuple[str, str]] = []

        if self._worker_count <= 1 or len(self._providers) <= 1:
            for config in self._providers:
                try:
                    results.append(self._run_one(config))
                except ProvisioningError as exc:
                    self._logger.error("Provider %s failed: %s", config.name, exc)
                    errors.append((config.name, str(exc)))
                except Exception:
                    self._log_unexpected(config.name)
                    errors.append((config.name, "unexpected error"))
            return results, errors

        with ThreadPoolExecutor(max_workers=self._worker_count) as executor:
            future_by_name = {
                executor.submit(self._run_one, config): config.name for config in self._providers
            }
            for future in as_completed(future_by_name):
                name = future_by_name[future]
                try:
                    results.append(future.result())
                except ProvisioningError as exc:
                    self._logger.error("Provider %s failed: %s", name, exc)
                    errors.append((name, str(exc)))
                except Exception:
                    self._log_unexpected(name)
                    errors.append((name, "unexpected error"))
        return results, errors

    def __call__(self) -> SyncReport:
        if not self._lock.acquire():
            self._logger.warning("Sync skipped: another cycle is still running")
            return SyncReport(results=tuple(), errors=tuple(), skipped=True)

        try:
            results, errors = self._run_all()
        finally:
            self._lock.release()

        order = {config.name: index for index, config in enumerate(self._providers)}
        results.sort(key=lambda item: order.get(item.provider, len(order)))
        errors.sort(key=lambda item: order.get(item[0], len(order)))
        self._logger.info(
            "Sync finished: %d providers ok, %d failed", len(results), len(errors)
        )
        return SyncReport(results=tuple(results), errors=tuple(errors))
