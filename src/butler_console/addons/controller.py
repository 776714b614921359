"""Addons controller.

Owns the state behind the addons screen of one cluster and wires user actions to
the backend. Read slices (catalog, Git provider, discovery, GitOps status,
installed addons) load concurrently and fail independently. Mutations are
serialized per addon, pass through the lifecycle guard, report through a
notifier, and end with a refresh of the installed list. The controller never
updates an addon's authority locally.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from typing import Any, Protocol

from butler_console.addons.aggregator import AddonStateAggregator, AddonsView
from butler_console.addons.export import (
    ExportMode,
    ExportOutcome,
    ExportSession,
    MigrationSession,
)
from butler_console.addons.guard import Action, Confirm, GuardResult, LifecycleGuard
from butler_console.addons.matcher import MigrationTarget
from butler_console.addons.values import ValuesEditor
from butler_console.api.addons import AddonsApi, ClusterTarget, get_installed_addon
from butler_console.api.gitops import GitOpsApi
from butler_console.api.schema import SchemaProvider
from butler_console.config import ConsoleConfig
from butler_console.models import (
    AddonDefinition,
    CategoryInfo,
    DiscoveryResult,
    GitOpsStatus,
    GitProviderConfig,
    InstalledAddon,
    Repository,
)
from butler_console.utils.errors import (
    ActionNotAvailableError,
    BackendRejection,
    ButlerConsoleError,
    NetworkFailure,
    OperationInProgressError,
    ValidationFailure,
)

logger = logging.getLogger(__name__)

BULK_MIGRATION_KEY = "gitops:migrate-all"


class Notifier(Protocol):
    """Transient user notifications."""

    def success(self, title: str, message: str) -> None: ...

    def error(self, title: str, message: str) -> None: ...


class AddonBusyTracker:
    """In-flight mutation markers keyed by lowercase addon name."""

    def __init__(self) -> None:
        self._keys: set[str] = set()

    @property
    def keys(self) -> frozenset[str]:
        return frozenset(self._keys)

    def is_busy(self, name: str) -> bool:
        return name.lower() in self._keys

    def check(self, name: str) -> None:
        if self.is_busy(name):
            raise OperationInProgressError(f"An operation on '{name}' is already in progress")

    @contextmanager
    def hold(self, name: str) -> Iterator[None]:
        """Mark an addon busy for the duration of the block.

        Raises:
            OperationInProgressError: If the addon is already busy
        """
        self.check(name)
        key = name.lower()
        self._keys.add(key)
        try:
            yield
        finally:
            self._keys.discard(key)


class AddonsController:
    """State and actions for the addons screen of a single cluster.

    The same controller serves plain and GitOps-aware views: with
    ``gitops_capable`` False the Git provider, discovery and status slices are
    never loaded and export / migrate are unavailable.
    """

    def __init__(
        self,
        addons_api: AddonsApi,
        gitops_api: GitOpsApi,
        target: ClusterTarget,
        notifier: Notifier,
        confirm: Confirm,
        schemas: SchemaProvider | None = None,
        config: ConsoleConfig | None = None,
        gitops_capable: bool = True,
        on_refresh: Callable[[], Awaitable[None]] | None = None,
    ):
        self.addons_api = addons_api
        self.gitops_api = gitops_api
        self.target = target
        self.notifier = notifier
        self.confirm = confirm
        self.schemas = schemas or SchemaProvider()
        self.default_branch = config.default_branch if config else "main"
        self.gitops_capable = gitops_capable
        self.on_refresh = on_refresh
        self.busy = AddonBusyTracker()

        # Catalog slice
        self.catalog: list[AddonDefinition] = []
        self.categories: list[CategoryInfo] = []
        self.catalog_loading = False
        self.catalog_error: str | None = None

        # Installed slice
        self.installed: list[InstalledAddon] = []
        self.installed_error: str | None = None

        # GitOps slices
        self.git_config: GitProviderConfig | None = None
        self.repositories: list[Repository] = []
        self.discovery = DiscoveryResult()
        self.gitops_status: GitOpsStatus | None = None

    # ------------------------------------------------------------------
    # Read slices
    # ------------------------------------------------------------------

    async def load_catalog(self) -> None:
        self.catalog_loading = True
        self.catalog_error = None
        try:
            response = await self.addons_api.get_catalog()
            self.catalog = response.addons
            self.categories = response.categories
        except ButlerConsoleError as e:
            logger.warning(f"Failed to load addon catalog: {e}")
            self.catalog_error = str(e) or "Failed to load addon catalog"
        finally:
            self.catalog_loading = False

    async def retry(self) -> None:
        """Retry after a catalog load failure."""
        await self.load_catalog()

    async def load_installed(self) -> None:
        try:
            self.installed = await self.addons_api.list_installed(self.target)
            self.installed_error = None
        except ButlerConsoleError as e:
            logger.warning(f"Failed to load installed addons on {self.target.display_name}: {e}")
            self.installed_error = str(e)

    async def load_git_config(self) -> None:
        try:
            self.git_config = await self.gitops_api.get_config()
            if self.git_config.configured:
                self.repositories = await self.gitops_api.list_repositories()
        except ButlerConsoleError as e:
            logger.warning(f"Failed to load git config: {e}")

    async def discover(self) -> None:
        try:
            self.discovery = await self.gitops_api.discover(self.target)
        except ButlerConsoleError as e:
            logger.warning(f"Failed to discover GitOps status on {self.target.display_name}: {e}")

    async def load_gitops_status(self) -> None:
        try:
            self.gitops_status = await self.gitops_api.get_status(self.target)
        except ButlerConsoleError as e:
            logger.warning(f"Failed to load GitOps status on {self.target.display_name}: {e}")

    async def mount(self) -> None:
        """Load every read slice concurrently."""
        loads = [self.load_catalog(), self.load_installed()]
        if self.gitops_capable:
            loads += [self.load_git_config(), self.discover(), self.load_gitops_status()]
        await asyncio.gather(*loads)

    async def refresh(self) -> None:
        """Re-fetch installed addons after a mutation."""
        await self.load_installed()
        if self.on_refresh is not None:
            await self.on_refresh()

    async def set_cluster(self, target: ClusterTarget) -> None:
        """Switch cluster context, reloading cluster-scoped slices."""
        self.target = target
        self.discovery = DiscoveryResult()
        self.gitops_status = None
        loads = [self.load_installed()]
        if self.gitops_capable:
            loads += [self.discover(), self.load_gitops_status()]
        await asyncio.gather(*loads)

    # ------------------------------------------------------------------
    # View model
    # ------------------------------------------------------------------

    def aggregator(self) -> AddonStateAggregator:
        return AddonStateAggregator(
            catalog=self.catalog,
            categories=self.categories,
            installed=self.installed,
            releases=self.discovery.releases,
            gitops_engine_installed=self.discovery.gitops_engine.installed,
            gitops_capable=self.gitops_capable,
        )

    def view(self, search: str = "", category: str = "all") -> AddonsView:
        return self.aggregator().build(search, category)

    @property
    def gitops_enabled(self) -> bool:
        return self.aggregator().gitops_enabled

    @property
    def git_configured(self) -> bool:
        return bool(self.git_config and self.git_config.configured)

    def catalog_entry(self, name: str) -> AddonDefinition | None:
        key = name.lower()
        return next((a for a in self.catalog if a.key == key), None)

    def guard_for(self, name: str) -> LifecycleGuard:
        """Build the lifecycle guard for an installed addon.

        Raises:
            ValidationFailure: If the addon is not installed
        """
        addon = get_installed_addon(name, self.installed)
        if addon is None:
            raise ValidationFailure(f"Addon '{name}' is not installed")
        return LifecycleGuard(
            addon,
            gitops_engine_installed=self.gitops_enabled,
            definition=self.catalog_entry(name),
        )

    # ------------------------------------------------------------------
    # Install / configure / uninstall
    # ------------------------------------------------------------------

    def _installable(self, name: str) -> AddonDefinition:
        definition = self.catalog_entry(name)
        if definition is None:
            raise ValidationFailure(f"Addon '{name}' is not in the catalog")
        if definition.platform:
            raise ActionNotAvailableError(
                f"'{definition.name}' is a platform addon and is installed by the platform"
            )
        if get_installed_addon(name, self.installed) is not None:
            raise ValidationFailure(f"Addon '{definition.name}' is already installed")
        return definition

    async def _install(self, definition: AddonDefinition, values: dict[str, Any] | None) -> bool:
        with self.busy.hold(definition.name):
            try:
                await self.addons_api.install(self.target, definition.name, values=values)
            except (NetworkFailure, BackendRejection) as e:
                self.notifier.error("Installation Failed", str(e))
                ok = False
            else:
                how = "custom configuration" if values else "default settings"
                self.notifier.success(
                    "Addon Installing", f"{definition.label} installation initiated with {how}"
                )
                ok = True
        await self.refresh()
        return ok

    async def quick_install(self, name: str) -> bool:
        """Install a catalog addon with its default values.

        Returns:
            True if the backend accepted the request

        Raises:
            ValidationFailure: If the addon cannot be installed
            OperationInProgressError: If the addon already has a pending operation
        """
        definition = self._installable(name)
        return await self._install(definition, None)

    async def configured_install(self, name: str, values: dict[str, Any]) -> bool:
        definition = self._installable(name)
        return await self._install(definition, values)

    async def open_values_editor(self, name: str) -> ValuesEditor:
        """Load the values form for an addon, prefilled with schema defaults."""
        schema = await self.schemas.load_schema(name)
        return ValuesEditor(schema)

    async def request_configure(
        self,
        name: str,
        values: dict[str, Any] | None = None,
        version: str | None = None,
    ) -> GuardResult:
        """Update an installed addon's values or version through the guard.

        Raises:
            ActionNotAvailableError: If the addon is platform-managed
            OperationInProgressError: If the addon already has a pending operation
        """
        guard = self.guard_for(name)
        self.busy.check(name)

        async def mutation() -> bool:
            with self.busy.hold(name):
                try:
                    await self.addons_api.update(
                        self.target, guard.addon.name, values=values, version=version
                    )
                except (NetworkFailure, BackendRejection) as e:
                    self.notifier.error("Update Failed", str(e))
                    ok = False
                else:
                    self.notifier.success("Addon Updated", f"{guard.addon.label} configuration updated")
                    ok = True
            await self.refresh()
            return ok

        return await guard.run(Action.CONFIGURE, mutation, self.confirm)

    async def request_uninstall(self, name: str) -> GuardResult:
        """Uninstall an addon through the guard.

        GitOps-managed addons show a re-creation warning first; cancelling leaves
        the addon untouched.

        Raises:
            ActionNotAvailableError: If the addon is platform-managed
            OperationInProgressError: If the addon already has a pending operation
        """
        guard = self.guard_for(name)
        self.busy.check(name)

        async def mutation() -> bool:
            with self.busy.hold(name):
                try:
                    await self.addons_api.uninstall(self.target, guard.addon.name)
                except (NetworkFailure, BackendRejection) as e:
                    self.notifier.error("Uninstall Failed", str(e))
                    ok = False
                else:
                    self.notifier.success("Addon Removed", f"{guard.addon.name} has been uninstalled")
                    ok = True
            await self.refresh()
            return ok

        return await guard.run(Action.UNINSTALL, mutation, self.confirm)

    # ------------------------------------------------------------------
    # GitOps export / migrate
    # ------------------------------------------------------------------

    def _require_gitops(self) -> None:
        if not self.gitops_capable:
            raise ActionNotAvailableError("GitOps is not available in this view")
        if not self.git_configured:
            raise ValidationFailure("No Git provider is configured")

    async def open_export(self, name: str, create_pr: bool = True) -> ExportSession:
        """Open the export dialog for a catalog addon that is not installed yet.

        Raises:
            ValidationFailure: If GitOps is not configured or the addon is
                unknown or already installed
        """
        self._require_gitops()
        definition = self.catalog_entry(name)
        if definition is None:
            raise ValidationFailure(f"Addon '{name}' is not in the catalog")
        if get_installed_addon(name, self.installed) is not None:
            raise ValidationFailure(f"Addon '{definition.name}' is already installed")

        session = ExportSession(
            self.gitops_api,
            self.target,
            definition.name,
            self.repositories,
            mode=ExportMode.ADDON,
            display_name=definition.label,
            platform=definition.platform,
            gitops_status=self.gitops_status,
            default_branch=self.default_branch,
            create_pr=create_pr,
        )
        await session.open()
        return session

    async def open_migrate(self, name: str, create_pr: bool = True) -> ExportSession | None:
        """Open the migrate-to-GitOps dialog for a console-managed addon.

        The release backing the addon is resolved from discovery results.

        Returns:
            An open ExportSession, or None when GitOps already manages the addon

        Raises:
            ActionNotAvailableError: If the addon is platform-managed or no
                GitOps engine is installed
        """
        self._require_gitops()
        guard = self.guard_for(name)
        if not guard.permits(Action.MIGRATE):
            return None

        definition = self.catalog_entry(name)
        session = ExportSession(
            self.gitops_api,
            self.target,
            guard.addon.name,
            self.repositories,
            mode=ExportMode.RELEASE,
            display_name=guard.addon.display_name or guard.addon.name,
            platform=bool(definition and definition.platform),
            gitops_status=self.gitops_status,
            default_branch=self.default_branch,
            migration=MigrationTarget.resolve(guard.addon.name, self.discovery.releases),
            create_pr=create_pr,
        )
        await session.open()
        return session

    async def open_bulk_migration(self, create_pr: bool = True) -> MigrationSession:
        self._require_gitops()
        session = MigrationSession(
            self.gitops_api,
            self.target,
            self.discovery.releases,
            self.repositories,
            gitops_status=self.gitops_status,
            default_branch=self.default_branch,
            create_pr=create_pr,
        )
        await session.open()
        return session

    def _report(self, outcome: ExportOutcome) -> None:
        if outcome.success:
            self.notifier.success(outcome.title, outcome.message)
        else:
            self.notifier.error(outcome.title, outcome.message)

    async def submit_export(self, session: ExportSession) -> ExportOutcome:
        """Submit an export or migrate dialog.

        Raises:
            ValidationFailure: If the form is incomplete; nothing is sent
            OperationInProgressError: If the addon already has a pending operation
        """
        with self.busy.hold(session.addon_name):
            outcome = await session.submit()
        self._report(outcome)
        await self.refresh()
        return outcome

    async def submit_migration(self, session: MigrationSession) -> ExportOutcome:
        with self.busy.hold(BULK_MIGRATION_KEY):
            outcome = await session.submit()
        self._report(outcome)
        await self.refresh()
        if outcome.success:
            await self.discover()
        return outcome
