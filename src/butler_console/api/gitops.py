"""GitOps configuration, discovery and export API."""

import logging
from typing import Any

from butler_console.api.addons import ClusterTarget
from butler_console.api.client import ApiClient
from butler_console.models import (
    Branch,
    DiscoveryResult,
    ExportResult,
    GitOpsExportConfig,
    GitOpsStatus,
    GitProviderConfig,
    MigrationRequest,
    Repository,
)
from butler_console.utils.validation import split_repository

logger = logging.getLogger(__name__)


class GitOpsApi:
    """Endpoints backing the export / preview / migrate workflow."""

    def __init__(self, client: ApiClient):
        self.client = client

    async def get_config(self) -> GitProviderConfig:
        data = await self.client.get("/gitops/config")
        return GitProviderConfig.model_validate(data or {})

    async def list_repositories(self) -> list[Repository]:
        data = await self.client.get("/gitops/repos") or []
        return [Repository.model_validate(r) for r in data]

    async def list_branches(self, repository: str) -> list[Branch]:
        """List branches of a repository.

        Args:
            repository: Repository full name (``owner/repo``)

        Returns:
            List of branches
        """
        owner, repo = split_repository(repository)
        data = await self.client.get(f"/gitops/repos/{owner}/{repo}/branches") or []
        return [Branch.model_validate(b) for b in data]

    async def get_status(self, target: ClusterTarget) -> GitOpsStatus:
        data = await self.client.get(f"{target.base_path}/gitops/status")
        return GitOpsStatus.model_validate(data or {})

    async def discover(self, target: ClusterTarget) -> DiscoveryResult:
        """Scan a cluster for Helm releases and an installed GitOps engine.

        Args:
            target: Cluster to scan

        Returns:
            DiscoveryResult with matched releases listed before unmatched ones
        """
        data = await self.client.get(f"{target.base_path}/gitops/discover")
        result = DiscoveryResult.model_validate(data or {})
        logger.debug(
            f"Discovery on {target.display_name}: engine installed="
            f"{result.gitops_engine.installed}, {len(result.matched)} matched, "
            f"{len(result.unmatched)} unmatched"
        )
        return result

    async def preview_manifests(
        self, addon_name: str, repository: str, target_path: str
    ) -> dict[str, str]:
        """Render the manifests an export would write, without committing.

        Args:
            addon_name: Catalog addon name
            repository: Selected repository full name
            target_path: Repository-relative directory

        Returns:
            Mapping of filename to file content
        """
        body = {"addonName": addon_name, "repository": repository, "targetPath": target_path}
        data = await self.client.post("/gitops/preview", body) or {}
        return {str(name): str(content) for name, content in data.items()}

    async def export_addon(
        self,
        target: ClusterTarget,
        addon_name: str,
        config: GitOpsExportConfig,
        pr_title: str | None = None,
    ) -> ExportResult:
        """Export a not-yet-installed catalog addon from its catalog defaults."""
        body: dict[str, Any] = {
            "addonName": addon_name,
            "repository": config.repository,
            "branch": config.branch,
            "targetPath": config.path,
            "createPR": config.create_pr,
        }
        if pr_title:
            body["prTitle"] = pr_title

        path = (
            "/management/gitops/export-catalog"
            if target.is_management
            else f"{target.base_path}/gitops/export"
        )
        logger.info(f"Exporting addon '{addon_name}' to {config.repository}@{config.branch}")
        return ExportResult.model_validate(await self.client.post(path, body) or {"success": False})

    async def export_release(
        self,
        target: ClusterTarget,
        release_name: str,
        release_namespace: str,
        config: GitOpsExportConfig,
        pr_title: str | None = None,
    ) -> ExportResult:
        """Export an installed Helm release so an external reconciler takes it over."""
        body: dict[str, Any] = {
            "releaseName": release_name,
            "releaseNamespace": release_namespace,
            "repository": config.repository,
            "branch": config.branch,
            "path": config.path,
            "createPR": config.create_pr,
        }
        if pr_title:
            body["prTitle"] = pr_title
        if config.helm_repo_url:
            body["helmRepoUrl"] = config.helm_repo_url

        path = (
            "/management/gitops/export"
            if target.is_management
            else f"{target.base_path}/gitops/export-release"
        )
        logger.info(
            f"Exporting release {release_namespace}/{release_name} to "
            f"{config.repository}@{config.branch}"
        )
        return ExportResult.model_validate(await self.client.post(path, body) or {"success": False})

    async def migrate(self, target: ClusterTarget, request: MigrationRequest) -> ExportResult:
        logger.info(
            f"Migrating {len(request.releases)} release(s) on {target.display_name} "
            f"to {request.repository}@{request.branch}"
        )
        data = await self.client.post(f"{target.base_path}/gitops/migrate", request.to_payload())
        return ExportResult.model_validate(data or {"success": False})
