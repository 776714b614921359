"""GitOps export orchestrator.

Drives the export / preview / migrate dialogs:

    IDLE -> CONFIGURING -> (PREVIEWING) -> EXPORTING -> DONE | FAILED

A session owns the repository / branch / path form state, fetches branch lists as
the repository changes, and turns backend results into user-facing outcomes. It
never changes an addon's authority locally; callers refresh from the backend once
a submission finishes.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from butler_console.addons.matcher import MigrationTarget
from butler_console.api.addons import ClusterTarget
from butler_console.api.gitops import GitOpsApi
from butler_console.models import (
    Branch,
    DiscoveredRelease,
    ExportResult,
    GitOpsExportConfig,
    GitOpsStatus,
    MigrationRelease,
    MigrationRequest,
    Repository,
)
from butler_console.utils.errors import (
    BackendRejection,
    ButlerConsoleError,
    NetworkFailure,
    OperationInProgressError,
    ValidationFailure,
)
from butler_console.utils.validation import validate_target_path

logger = logging.getLogger(__name__)


class ExportState(str, Enum):
    IDLE = "idle"
    CONFIGURING = "configuring"
    PREVIEWING = "previewing"
    EXPORTING = "exporting"
    DONE = "done"
    FAILED = "failed"


class ExportMode(str, Enum):
    """Export a catalog addon from its defaults, or migrate an installed release."""

    ADDON = "addon"
    RELEASE = "release"


@dataclass
class ExportOutcome:
    """User-facing result of a submission."""

    success: bool
    title: str
    message: str
    pr_url: str | None = None

    @property
    def pull_request(self) -> bool:
        return self.success and bool(self.pr_url)


def default_target_path(cluster_name: str, addon_name: str, platform: bool = False) -> str:
    """Repository path an addon is exported to by default.

    Args:
        cluster_name: Cluster the addon belongs to
        addon_name: Addon name
        platform: Whether the catalog entry is a platform addon

    Returns:
        ``clusters/<cluster>/infrastructure/<addon>`` for platform addons,
        ``clusters/<cluster>/apps/<addon>`` otherwise
    """
    kind = "infrastructure" if platform else "apps"
    return f"clusters/{cluster_name}/{kind}/{addon_name}"


class BranchSelector:
    """Repository and branch selection.

    Every repository change starts a new branch fetch tagged with a generation
    number. A fetch that resolves after a newer selection is discarded.
    """

    def __init__(
        self,
        gitops: GitOpsApi,
        repositories: list[Repository],
        configured: GitOpsStatus | None = None,
        default_branch: str = "main",
    ):
        self.gitops = gitops
        self.repositories = repositories
        self.configured = configured
        self.repository: str | None = None
        self.branch = (configured.branch if configured else None) or default_branch
        self.branches: list[Branch] = []
        self.loading = False
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def initial_repository(self) -> str | None:
        """Configured repository if any, otherwise the first listed repository."""
        if self.configured and self.configured.repository:
            return self.configured.repository
        if self.repositories:
            return self.repositories[0].full_name
        return None

    def _preferred_branch(self, repository: str) -> str:
        if (
            self.configured
            and self.configured.branch
            and self.configured.repository == repository
        ):
            return self.configured.branch
        declared = next(
            (r.default_branch for r in self.repositories if r.full_name == repository), None
        )
        return declared or self.branch

    async def select(self, repository: str | None) -> None:
        """Select a repository and load its branches.

        Args:
            repository: Repository full name, or None to clear the selection
        """
        self._generation += 1
        generation = self._generation
        self.repository = repository or None
        self.branches = []

        if not self.repository:
            self.loading = False
            return

        self.loading = True
        try:
            branches = await self.gitops.list_branches(self.repository)
        except (ButlerConsoleError, ValueError) as e:
            if generation == self._generation:
                logger.warning(f"Failed to load branches for {repository}: {e}")
                self.loading = False
            return

        if generation != self._generation:
            logger.debug(f"Discarding stale branch list for {repository}")
            return

        self.branches = branches
        self.branch = self._preferred_branch(self.repository)
        self.loading = False


class _Session:
    """Shared form state and lifecycle for export and migration dialogs."""

    def __init__(
        self,
        gitops: GitOpsApi,
        target: ClusterTarget,
        repositories: list[Repository],
        gitops_status: GitOpsStatus | None = None,
        default_branch: str = "main",
        create_pr: bool = True,
    ):
        self.gitops = gitops
        self.target = target
        self.selector = BranchSelector(gitops, repositories, gitops_status, default_branch)
        self.create_pr = create_pr
        self.state = ExportState.IDLE
        self.outcome: ExportOutcome | None = None

    @property
    def repository(self) -> str | None:
        return self.selector.repository

    @property
    def branch(self) -> str:
        return self.selector.branch

    @branch.setter
    def branch(self, value: str) -> None:
        self.selector.branch = value

    async def open(self) -> None:
        """Enter the configuring state and preselect a repository."""
        self.state = ExportState.CONFIGURING
        await self.selector.select(self.selector.initial_repository())

    async def select_repository(self, repository: str | None) -> None:
        await self.selector.select(repository)

    def _require_repository(self) -> str:
        if not self.repository:
            raise ValidationFailure("Please select a repository")
        return self.repository

    def _begin(self) -> None:
        if self.state == ExportState.EXPORTING:
            raise OperationInProgressError("This export is already being submitted")
        if self.state == ExportState.DONE:
            raise ValidationFailure("This export has already completed")
        self.state = ExportState.EXPORTING

    def _finish(self, outcome: ExportOutcome) -> ExportOutcome:
        self.outcome = outcome
        self.state = ExportState.DONE if outcome.success else ExportState.FAILED
        return outcome


class ExportSession(_Session):
    """Export a single addon to a Git repository.

    In ``ADDON`` mode a catalog addon that is not installed yet is exported from
    its catalog defaults. In ``RELEASE`` mode an installed, console-managed addon
    is migrated by exporting the Helm release that backs it.
    """

    def __init__(
        self,
        gitops: GitOpsApi,
        target: ClusterTarget,
        addon_name: str,
        repositories: list[Repository],
        mode: ExportMode = ExportMode.ADDON,
        display_name: str | None = None,
        platform: bool = False,
        gitops_status: GitOpsStatus | None = None,
        default_branch: str = "main",
        migration: MigrationTarget | None = None,
        create_pr: bool = True,
    ):
        super().__init__(gitops, target, repositories, gitops_status, default_branch, create_pr)
        self.addon_name = addon_name
        self.display_name = display_name or addon_name
        self.mode = mode
        self.path = default_target_path(target.display_name, addon_name, platform)
        self.preview: dict[str, str] | None = None

        if mode == ExportMode.RELEASE and migration is None:
            migration = MigrationTarget.resolve(addon_name, [])
        self.migration = migration
        self.helm_repo_url = migration.helm_repo_url if migration else None

    @property
    def pr_title(self) -> str:
        if self.mode == ExportMode.RELEASE:
            return f"Migrate {self.display_name} to GitOps"
        return f"Add {self.display_name} addon"

    @property
    def can_submit(self) -> bool:
        return bool(self.repository) and self.state not in (
            ExportState.EXPORTING,
            ExportState.DONE,
        )

    def config(self) -> GitOpsExportConfig:
        """Build the export configuration from the current form state.

        Raises:
            ValidationFailure: If no repository is selected or the path is invalid
        """
        repository = self._require_repository()
        try:
            validate_target_path(self.path)
        except ValueError as e:
            raise ValidationFailure(str(e)) from e
        return GitOpsExportConfig(
            repository=repository,
            branch=self.branch,
            path=self.path.strip(),
            create_pr=self.create_pr,
            helm_repo_url=self.helm_repo_url or None,
        )

    async def toggle_preview(self) -> dict[str, str] | None:
        """Show or hide the rendered manifests.

        Returns:
            Mapping of filename to content while shown, None once hidden or when
            the preview could not be rendered

        Raises:
            ValidationFailure: If no repository is selected
        """
        if self.preview is not None:
            self.preview = None
            self.state = ExportState.CONFIGURING
            return None

        repository = self._require_repository()
        self.state = ExportState.PREVIEWING
        try:
            self.preview = await self.gitops.preview_manifests(
                self.addon_name, repository, self.path
            )
        except ButlerConsoleError as e:
            logger.warning(f"Failed to load preview for '{self.addon_name}': {e}")
            self.state = ExportState.CONFIGURING
            return None
        return self.preview

    async def submit(self) -> ExportOutcome:
        """Export or migrate the addon.

        Returns:
            ExportOutcome describing a pull request, a direct commit, or a failure

        Raises:
            ValidationFailure: Before any network call, if the form is incomplete
                or the session already completed
            OperationInProgressError: If a submission is already in flight
        """
        config = self.config()
        self._begin()
        try:
            if self.mode == ExportMode.RELEASE:
                result = await self.gitops.export_release(
                    self.target,
                    self.migration.release_name,
                    self.migration.release_namespace,
                    config,
                    pr_title=self.pr_title,
                )
            else:
                result = await self.gitops.export_addon(
                    self.target, self.addon_name, config, pr_title=self.pr_title
                )
        except (NetworkFailure, BackendRejection) as e:
            return self._finish(ExportOutcome(False, self._failure_title, str(e)))

        return self._finish(self._outcome(result))

    @property
    def _failure_title(self) -> str:
        return "Migration Failed" if self.mode == ExportMode.RELEASE else "Export Failed"

    def _outcome(self, result: ExportResult) -> ExportOutcome:
        if not result.success:
            return ExportOutcome(False, self._failure_title, result.message or "Unknown error")

        if self.mode == ExportMode.RELEASE:
            if result.pr_url:
                return ExportOutcome(
                    True,
                    "Pull Request Created",
                    f"{self.addon_name} migration PR created: {result.pr_url}",
                    result.pr_url,
                )
            return ExportOutcome(
                True,
                "Migrated to GitOps",
                f"{self.addon_name} manifests committed directly and now managed by GitOps",
            )

        if result.pr_url:
            return ExportOutcome(
                True,
                "Pull Request Created",
                f"{self.display_name} exported. View PR at {result.pr_url}",
                result.pr_url,
            )
        return ExportOutcome(
            True,
            "Exported to GitOps",
            f"{self.display_name} manifests committed directly",
        )


class MigrationSession(_Session):
    """Migrate many discovered Helm releases to GitOps in one commit or PR."""

    def __init__(
        self,
        gitops: GitOpsApi,
        target: ClusterTarget,
        releases: list[DiscoveredRelease],
        repositories: list[Repository],
        gitops_status: GitOpsStatus | None = None,
        default_branch: str = "main",
        create_pr: bool = True,
    ):
        super().__init__(gitops, target, repositories, gitops_status, default_branch, create_pr)
        self.releases = releases
        self.base_path = f"clusters/{target.display_name}"
        self.custom_repo_urls: dict[str, str] = {}
        # Preselect releases whose chart source is already known
        self.selected: set[str] = {r.key for r in releases if r.addon_definition or r.repo_url}

    def toggle(self, key: str) -> None:
        if key in self.selected:
            self.selected.discard(key)
        else:
            self.selected.add(key)

    def select_all(self) -> None:
        self.selected = {r.key for r in self.releases}

    def select_none(self) -> None:
        self.selected = set()

    def set_repo_url(self, key: str, url: str) -> None:
        if url.strip():
            self.custom_repo_urls[key] = url.strip()
        else:
            self.custom_repo_urls.pop(key, None)

    @property
    def selected_releases(self) -> list[DiscoveredRelease]:
        return [r for r in self.releases if r.key in self.selected]

    @property
    def needs_repo_url(self) -> list[DiscoveredRelease]:
        """Selected releases with no catalog match, detected URL, or user-supplied URL."""
        return [
            r
            for r in self.selected_releases
            if not r.addon_definition and not r.repo_url and r.key not in self.custom_repo_urls
        ]

    @property
    def can_submit(self) -> bool:
        return bool(self.repository) and bool(self.selected) and not self.needs_repo_url

    @property
    def pr_title(self) -> str:
        return f"Migrate {len(self.selected_releases)} releases to GitOps"

    def build_request(self) -> MigrationRequest:
        """Build the bulk migration request.

        Raises:
            ValidationFailure: If no repository or release is selected, or a
                selected release still needs a Helm repository URL
        """
        repository = self._require_repository()
        selected = self.selected_releases
        if not selected:
            raise ValidationFailure("Select at least one release to migrate")
        missing = self.needs_repo_url
        if missing:
            names = ", ".join(r.key for r in missing)
            raise ValidationFailure(f"Helm repository URL required for: {names}")

        return MigrationRequest(
            releases=[
                MigrationRelease(
                    name=r.name,
                    namespace=r.namespace,
                    repo_url=r.repo_url or self.custom_repo_urls.get(r.key, ""),
                    chart_name=r.chart_name,
                    chart_version=r.version,
                    values=r.values,
                    category=r.category,
                )
                for r in selected
            ],
            repository=repository,
            branch=self.branch,
            base_path=self.base_path,
            create_pr=self.create_pr,
            pr_title=self.pr_title,
        )

    async def submit(self) -> ExportOutcome:
        request = self.build_request()
        count = len(request.releases)
        self._begin()
        try:
            result = await self.gitops.migrate(self.target, request)
        except (NetworkFailure, BackendRejection) as e:
            return self._finish(ExportOutcome(False, "Migration Failed", str(e)))

        if not result.success:
            return self._finish(
                ExportOutcome(False, "Migration Failed", result.message or "Unknown error")
            )
        if result.pr_url:
            return self._finish(
                ExportOutcome(
                    True,
                    "Pull Request Created",
                    f"Migration PR for {count} releases created: {result.pr_url}",
                    result.pr_url,
                )
            )
        return self._finish(
            ExportOutcome(True, "Migrated to GitOps", f"{count} releases committed directly")
        )
