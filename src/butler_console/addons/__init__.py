"""Addon lifecycle and GitOps migration engine.

This package tracks which authority owns each addon's desired state and moves
addons between the platform, the console and an external GitOps reconciler.
"""

from butler_console.addons.aggregator import AddonStateAggregator, AddonsView
from butler_console.addons.controller import AddonBusyTracker, AddonsController
from butler_console.addons.export import ExportSession, ExportState, MigrationSession
from butler_console.addons.guard import Action, GitOpsWarning, GuardResult, LifecycleGuard
from butler_console.addons.matcher import find_discovered_release, normalize_addon_name
from butler_console.addons.values import ValuesEditor, decode, encode

__all__ = [
    "Action",
    "AddonBusyTracker",
    "AddonStateAggregator",
    "AddonsController",
    "AddonsView",
    "ExportSession",
    "ExportState",
    "GitOpsWarning",
    "GuardResult",
    "LifecycleGuard",
    "MigrationSession",
    "ValuesEditor",
    "decode",
    "encode",
    "find_discovered_release",
    "normalize_addon_name",
]
