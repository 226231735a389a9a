from __future__ import annotations

from dashboard_provisioner.domain.errors import FolderConflictError, FolderNameMissingError
from dashboard_provisioner.domain.models.dashboard_record import SaveDashboardRequest
from dashboard_provisioner.domain.models.folder_handle import ROOT_FOLDER_ID, FolderHandle
from dashboard_provisioner.domain.models.provider_config import ProviderConfig
from dashboard_provisioner.domain.protocols.dashboard_lookup_port import DashboardLookupPort
from dashboard_provisioner.domain.protocols.provisioning_store_port import ProvisioningStorePort
from dashboard_provisioner.domain.services.slugify import slugify


def resolve_folder(
    config: ProviderConfig,
    store: ProvisioningStorePort,
    lookup: DashboardLookupPort,
) -> FolderHandle:
    """Find or create the destination folder of a provider.

    Providers that point at the same ``(org_id, folder)`` share one folder;
    the store keeps folder slugs unique per organization, so a concurrent
    creator ends up reading the folder the other one inserted.
    """
    name = (config.folder or "").strip()
    if not name:
        if config.uses_folder_option:
            raise FolderNameMissingError(config.name)
        return FolderHandle.root(config.org_id)

    slug = slugify(name)
    existing = lookup.find_folder(config.org_id, slug)
    if existing is not None:
        if not existing.is_folder:
            raise FolderConflictError(
                f"Expected folder {name!r} in org {config.org_id}, found dashboard {existing.id}"
            )
        return FolderHandle(id=existing.id, org_id=config.org_id, name=existing.title)

    saved = store.save_folder(
        SaveDashboardRequest(
            org_id=config.org_id,
            folder_id=ROOT_FOLDER_ID,
            title=name,
            slug=slug,
            uid=None,
            payload={"title": name},
            is_folder=True,
        )
    )
    return FolderHandle(id=saved.id, org_id=config.org_id, name=saved.title, created=True)
