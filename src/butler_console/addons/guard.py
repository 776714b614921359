"""Lifecycle guard.

Decides which lifecycle actions an installed addon exposes, based on the authority
that owns its desired state, and intercepts actions that would conflict with an
external GitOps reconciler. Every entry point (quick action, overflow menu, CLI)
goes through ``LifecycleGuard.run``.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from butler_console.models import AddonDefinition, InstalledAddon, ManagedBy
from butler_console.utils.errors import ActionNotAvailableError

logger = logging.getLogger(__name__)


class Action(str, Enum):
    CONFIGURE = "configure"
    UNINSTALL = "uninstall"
    MIGRATE = "migrate"


class GuardResult(str, Enum):
    """What happened to a guarded action."""

    EXECUTED = "executed"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class GitOpsWarning:
    """Risk shown before mutating a GitOps-managed addon."""

    addon_name: str
    action: Action
    title: str
    message: str
    recommendation: str
    proceed_label: str


Confirm = Callable[[GitOpsWarning], Awaitable[bool]]


def resolve_authority(
    addon: InstalledAddon, definition: AddonDefinition | None = None
) -> ManagedBy:
    """Determine who owns an addon's desired state.

    Platform catalog entries are always platform-owned. A record without an
    authority is treated as directly managed by the console.

    Args:
        addon: Installed addon record
        definition: Matching catalog entry, if any

    Returns:
        ManagedBy authority
    """
    if definition is not None and definition.platform:
        return ManagedBy.PLATFORM
    if addon.managed_by is not None:
        return addon.managed_by
    return ManagedBy.BUTLER


def available_actions(
    managed_by: ManagedBy, gitops_engine_installed: bool = False
) -> frozenset[Action]:
    """Actions exposed for an authority.

    GitOps-managed addons still expose configure and uninstall, but both are
    intercepted by a warning before they run.
    """
    if managed_by == ManagedBy.PLATFORM:
        return frozenset()
    if managed_by == ManagedBy.GITOPS:
        return frozenset({Action.CONFIGURE, Action.UNINSTALL})
    if gitops_engine_installed:
        return frozenset({Action.CONFIGURE, Action.UNINSTALL, Action.MIGRATE})
    return frozenset({Action.CONFIGURE, Action.UNINSTALL})


def gitops_warning(addon: InstalledAddon, action: Action) -> GitOpsWarning:
    """Build the warning shown before a GitOps-managed addon is changed directly."""
    if action == Action.CONFIGURE:
        return GitOpsWarning(
            addon_name=addon.name,
            action=action,
            title="Changes may be overwritten",
            message=(
                f"{addon.label} is managed by GitOps. Reconciliation may overwrite your "
                "changes the next time GitOps syncs from your Git repository."
            ),
            recommendation="Make changes in your Git repository instead for a proper audit trail.",
            proceed_label="Configure Anyway",
        )
    if action == Action.UNINSTALL:
        return GitOpsWarning(
            addon_name=addon.name,
            action=action,
            title="Addon will be re-created",
            message=(
                f"{addon.label} is managed by GitOps. If you uninstall it, GitOps will "
                "re-create it from your Git repository. Delete it from Git first to "
                "remove it permanently."
            ),
            recommendation="Remove the addon from your Git repository to permanently uninstall it.",
            proceed_label="Uninstall Anyway",
        )
    raise ValueError(f"No GitOps warning for action '{action.value}'")


class LifecycleGuard:
    """Gate configure / uninstall / migrate for one installed addon."""

    def __init__(
        self,
        addon: InstalledAddon,
        gitops_engine_installed: bool = False,
        definition: AddonDefinition | None = None,
    ):
        self.addon = addon
        self.gitops_engine_installed = gitops_engine_installed
        self.authority = resolve_authority(addon, definition)

    @property
    def is_read_only(self) -> bool:
        return self.authority == ManagedBy.PLATFORM

    def available_actions(self) -> frozenset[Action]:
        return available_actions(self.authority, self.gitops_engine_installed)

    def is_available(self, action: Action) -> bool:
        return action in self.available_actions()

    def requires_confirmation(self, action: Action) -> bool:
        return self.authority == ManagedBy.GITOPS and action in (
            Action.CONFIGURE,
            Action.UNINSTALL,
        )

    def permits(self, action: Action) -> bool:
        """Check an action before any dialog opens.

        Returns:
            False when the action is a no-op for this authority (migrating an
            addon that GitOps already manages)

        Raises:
            ActionNotAvailableError: If the authority does not expose the action
        """
        if action == Action.MIGRATE and self.authority == ManagedBy.GITOPS:
            logger.debug(f"'{self.addon.name}' is already managed by GitOps, skipping migrate")
            return False

        if not self.is_available(action):
            reason = (
                "platform addons are read-only"
                if self.is_read_only
                else "no GitOps engine is installed on this cluster"
            )
            raise ActionNotAvailableError(f"Cannot {action.value} '{self.addon.name}': {reason}")
        return True

    async def run(
        self,
        action: Action,
        mutation: Callable[[], Awaitable[Any]],
        confirm: Confirm,
    ) -> GuardResult:
        """Run a lifecycle action through the guard.

        Args:
            action: Requested action
            mutation: Coroutine factory performing the underlying change
            confirm: Asked to accept a GitOps warning; False cancels

        Returns:
            EXECUTED when the mutation ran, FAILED when it ran and returned
            False, CANCELLED when the user declined the warning, SKIPPED when
            the action is a no-op for this authority

        Raises:
            ActionNotAvailableError: If the authority does not expose the action
        """
        if not self.permits(action):
            return GuardResult.SKIPPED

        if self.requires_confirmation(action):
            warning = gitops_warning(self.addon, action)
            if not await confirm(warning):
                logger.info(f"{action.value.capitalize()} of '{self.addon.name}' cancelled")
                return GuardResult.CANCELLED
            logger.info(
                f"Proceeding with {action.value} of GitOps-managed addon '{self.addon.name}'"
            )

        if await mutation() is False:
            return GuardResult.FAILED
        return GuardResult.EXECUTED
