from __future__ import annotations

from dashboard_provisioner.domain.models.provider_config import ProviderConfig
from dashboard_provisioner.domain.protocols.logger_port import LoggerPort
from dashboard_provisioner.domain.protocols.provisioning_store_port import ProvisioningStorePort


class PurgeProvider:
    """Hard-deletes every dashboard provisioned by one provider.

    Routine passes only unprovision; this is the explicit delete path.
    """

    def __init__(self, store: ProvisioningStorePort, logger: LoggerPort) -> None:
        self._store = store
        self._logger = logger

    def __call__(self, config: ProviderConfig) -> int:
        records = self._store.fetch_provisioning_records(config.name)
        deleted = 0
        for record in records:
            if record.dashboard_id is None:
                continue
            self._store.delete_dashboard(record.dashboard_id, config.org_id)
            deleted += 1
            self._logger.debug(
                "Provider %s: deleted dashboard %s (%s)",
                config.name,
                record.dashboard_id,
                record.external_id,
            )
        self._logger.info("Provider %s purged: %d dashboards deleted", config.name, deleted)
        return deleted
