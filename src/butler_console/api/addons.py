"""Catalog and addon control API."""

import logging
from dataclasses import dataclass
from typing import Any

from butler_console.api.client import ApiClient
from butler_console.models import (
    AddonDefinition,
    CatalogResponse,
    InstallAddonRequest,
    InstalledAddon,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClusterTarget:
    """The cluster an operation is addressed to.

    A tenant cluster is identified by namespace and name. The management cluster
    has no identity and is reached through ``/management`` endpoints.
    """

    namespace: str | None = None
    name: str | None = None

    @classmethod
    def management(cls) -> "ClusterTarget":
        return cls()

    @property
    def is_management(self) -> bool:
        return not (self.namespace and self.name)

    @property
    def display_name(self) -> str:
        return "management" if self.is_management else str(self.name)

    @property
    def base_path(self) -> str:
        if self.is_management:
            return "/management"
        return f"/clusters/{self.namespace}/{self.name}"


class AddonsApi:
    """Catalog and addon lifecycle endpoints."""

    def __init__(self, client: ApiClient):
        self.client = client

    async def get_catalog(self) -> CatalogResponse:
        data = await self.client.get("/addons/catalog")
        return CatalogResponse.model_validate(data or {})

    async def list_installed(self, target: ClusterTarget) -> list[InstalledAddon]:
        """List installed addons on a cluster in the canonical shape.

        Args:
            target: Cluster to query

        Returns:
            List of InstalledAddon
        """
        data = await self.client.get(f"{target.base_path}/addons") or {}
        records = data.get("addons", []) if isinstance(data, dict) else data

        if target.is_management:
            return [InstalledAddon.from_management(r) for r in records]
        return [InstalledAddon.model_validate(r) for r in records]

    async def install(
        self,
        target: ClusterTarget,
        addon: str,
        values: dict[str, Any] | None = None,
        version: str | None = None,
    ) -> Any:
        """Request installation of a catalog addon.

        Args:
            target: Cluster to install into
            addon: Catalog addon name
            values: Optional Helm values
            version: Optional chart version

        Returns:
            Backend acknowledgement
        """
        request = InstallAddonRequest(addon=addon, values=values, version=version)
        logger.info(f"Installing addon '{addon}' on {target.display_name}")

        if target.is_management:
            body = {"name": addon, **request.to_payload()}
            return await self.client.post("/management/addons", body)
        return await self.client.post(f"{target.base_path}/addons", request.to_payload())

    async def update(
        self,
        target: ClusterTarget,
        addon: str,
        values: dict[str, Any] | None = None,
        version: str | None = None,
    ) -> Any:
        body: dict[str, Any] = {}
        if values is not None:
            body["values"] = values
        if version:
            body["version"] = version

        logger.info(f"Updating addon '{addon}' on {target.display_name}")
        return await self.client.put(f"{target.base_path}/addons/{addon}", body)

    async def uninstall(self, target: ClusterTarget, addon: str) -> Any:
        logger.info(f"Uninstalling addon '{addon}' from {target.display_name}")
        return await self.client.delete(f"{target.base_path}/addons/{addon}")


def group_by_category(addons: list[AddonDefinition]) -> dict[str, list[AddonDefinition]]:
    """Group catalog addons by category, preserving catalog order."""
    groups: dict[str, list[AddonDefinition]] = {}
    for addon in addons:
        groups.setdefault(addon.category, []).append(addon)
    return groups


def platform_addons(catalog: list[AddonDefinition]) -> list[AddonDefinition]:
    return [a for a in catalog if a.platform]


def optional_addons(catalog: list[AddonDefinition]) -> list[AddonDefinition]:
    return [a for a in catalog if not a.platform]


def get_installed_addon(name: str, installed: list[InstalledAddon]) -> InstalledAddon | None:
    """Find an installed addon by case-insensitive name."""
    key = name.lower()
    return next((a for a in installed if a.key == key), None)
