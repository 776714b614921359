"""Tests for the lifecycle guard."""

from unittest.mock import AsyncMock

import pytest

from butler_console.addons.guard import (
    Action,
    GuardResult,
    LifecycleGuard,
    available_actions,
    gitops_warning,
    resolve_authority,
)
from butler_console.models import AddonDefinition, InstalledAddon, ManagedBy
from butler_console.utils.errors import ActionNotAvailableError


def addon(managed_by: str | None = None, name: str = "flux") -> InstalledAddon:
    return InstalledAddon(name=name, status="Installed", managedBy=managed_by)


class TestResolveAuthority:
    """Test deciding who owns an addon."""

    def test_backend_value_is_used(self):
        """Test the backend-reported authority is used as is."""
        assert resolve_authority(addon("gitops")) == ManagedBy.GITOPS
        assert resolve_authority(addon("butler")) == ManagedBy.BUTLER

    def test_missing_defaults_to_butler(self):
        """Test a record without an authority is console-managed."""
        assert resolve_authority(addon(None)) == ManagedBy.BUTLER

    def test_platform_catalog_entry_wins(self):
        """Test a platform catalog entry is always platform-owned."""
        definition = AddonDefinition(name="cilium", platform=True)
        assert resolve_authority(addon("butler", "cilium"), definition) == ManagedBy.PLATFORM


class TestAvailableActions:
    """Test which actions each authority exposes."""

    @pytest.mark.parametrize("engine", [True, False])
    def test_platform_exposes_nothing(self, engine):
        """Test platform addons never expose lifecycle actions."""
        assert available_actions(ManagedBy.PLATFORM, engine) == frozenset()

    def test_butler_with_engine(self):
        """Test migrate is offered once a GitOps engine is installed."""
        assert available_actions(ManagedBy.BUTLER, True) == {
            Action.CONFIGURE,
            Action.UNINSTALL,
            Action.MIGRATE,
        }

    def test_butler_without_engine(self):
        """Test migrate is hidden without a GitOps engine."""
        assert available_actions(ManagedBy.BUTLER, False) == {Action.CONFIGURE, Action.UNINSTALL}

    def test_gitops_hides_migrate(self):
        """Test GitOps-managed addons do not offer migrate."""
        assert Action.MIGRATE not in available_actions(ManagedBy.GITOPS, True)


class TestGitOpsWarning:
    """Test warning content."""

    def test_configure_warning(self):
        """Test the configure warning explains the overwrite risk."""
        warning = gitops_warning(addon("gitops"), Action.CONFIGURE)
        assert warning.title == "Changes may be overwritten"
        assert "overwrite your changes" in warning.message
        assert warning.proceed_label == "Configure Anyway"

    def test_uninstall_warning(self):
        """Test the uninstall warning explains the re-creation risk."""
        warning = gitops_warning(addon("gitops"), Action.UNINSTALL)
        assert warning.title == "Addon will be re-created"
        assert "re-create" in warning.message
        assert "Delete it from Git first" in warning.message
        assert warning.proceed_label == "Uninstall Anyway"

    def test_no_migrate_warning(self):
        """Test migrate has no warning."""
        with pytest.raises(ValueError):
            gitops_warning(addon("gitops"), Action.MIGRATE)


class TestLifecycleGuardRun:
    """Test running actions through the guard."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("action", list(Action))
    async def test_platform_actions_rejected(self, action):
        """Test platform addons reject every action before the mutation runs."""
        guard = LifecycleGuard(addon("platform", "cilium"), gitops_engine_installed=True)
        mutation = AsyncMock()
        confirm = AsyncMock(return_value=True)

        with pytest.raises(ActionNotAvailableError, match="read-only"):
            await guard.run(action, mutation, confirm)

        assert guard.is_read_only
        mutation.assert_not_called()
        confirm.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("action", [Action.CONFIGURE, Action.UNINSTALL])
    async def test_butler_runs_without_confirmation(self, action):
        """Test console-managed addons mutate directly."""
        guard = LifecycleGuard(addon("butler", "velero"))
        mutation = AsyncMock()
        confirm = AsyncMock(return_value=False)

        result = await guard.run(action, mutation, confirm)

        assert result == GuardResult.EXECUTED
        mutation.assert_awaited_once()
        confirm.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_mutation(self):
        """Test a mutation reporting failure is not counted as executed."""
        guard = LifecycleGuard(addon("butler", "velero"))
        mutation = AsyncMock(return_value=False)

        assert await guard.run(Action.UNINSTALL, mutation, AsyncMock()) == GuardResult.FAILED
        mutation.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_butler_migrate_requires_engine(self):
        """Test migrate is rejected when no GitOps engine is installed."""
        guard = LifecycleGuard(addon("butler", "velero"), gitops_engine_installed=False)
        mutation = AsyncMock()

        with pytest.raises(ActionNotAvailableError, match="no GitOps engine"):
            await guard.run(Action.MIGRATE, mutation, AsyncMock())

        mutation.assert_not_called()

    @pytest.mark.asyncio
    async def test_butler_migrate_with_engine(self):
        """Test migrate runs once an engine is installed."""
        guard = LifecycleGuard(addon("butler", "velero"), gitops_engine_installed=True)
        mutation = AsyncMock()

        assert await guard.run(Action.MIGRATE, mutation, AsyncMock()) == GuardResult.EXECUTED
        mutation.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("action", [Action.CONFIGURE, Action.UNINSTALL])
    async def test_gitops_cancel_never_mutates(self, action):
        """Test declining the warning leaves the addon untouched."""
        guard = LifecycleGuard(addon("gitops"))
        mutation = AsyncMock()
        confirm = AsyncMock(return_value=False)

        result = await guard.run(action, mutation, confirm)

        assert result == GuardResult.CANCELLED
        confirm.assert_awaited_once()
        assert confirm.await_args.args[0].action == action
        mutation.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("action", [Action.CONFIGURE, Action.UNINSTALL])
    async def test_gitops_confirm_mutates_after_warning(self, action):
        """Test the warning is shown before the mutation and confirming runs it."""
        guard = LifecycleGuard(addon("gitops"))
        order = []

        async def confirm(warning):
            order.append("warning")
            return True

        async def mutation():
            order.append("mutation")

        assert await guard.run(action, mutation, confirm) == GuardResult.EXECUTED
        assert order == ["warning", "mutation"]

    @pytest.mark.asyncio
    async def test_gitops_migrate_is_noop(self):
        """Test migrating a GitOps-managed addon is skipped."""
        guard = LifecycleGuard(addon("gitops"), gitops_engine_installed=True)
        mutation = AsyncMock()

        assert await guard.run(Action.MIGRATE, mutation, AsyncMock()) == GuardResult.SKIPPED
        assert guard.permits(Action.MIGRATE) is False
        mutation.assert_not_called()
