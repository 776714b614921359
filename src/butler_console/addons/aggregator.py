"""Addon state aggregator.

Merges the catalog, the installed-addon list and discovery results into the view
model the addons screen renders.
"""

from dataclasses import dataclass, field

from butler_console.addons.guard import Action, LifecycleGuard
from butler_console.addons.matcher import find_discovered_release
from butler_console.api.addons import group_by_category, optional_addons, platform_addons
from butler_console.models import (
    AddonDefinition,
    CategoryInfo,
    DiscoveredRelease,
    InstalledAddon,
    ManagedBy,
)

GITOPS_ENGINE_ADDONS = ("flux", "argocd")


@dataclass
class InstalledAddonView:
    """An installed addon paired with its catalog entry and exposed actions."""

    addon: InstalledAddon
    catalog_info: AddonDefinition | None
    authority: ManagedBy
    actions: frozenset[Action]
    release: DiscoveredRelease | None = None

    @property
    def name(self) -> str:
        return self.addon.name

    @property
    def label(self) -> str:
        if self.catalog_info is not None:
            return self.catalog_info.label
        return self.addon.label

    @property
    def read_only(self) -> bool:
        return not self.actions


@dataclass
class AddonsView:
    """Everything the addons screen shows for one cluster."""

    platform: list[InstalledAddonView] = field(default_factory=list)
    installed: list[InstalledAddonView] = field(default_factory=list)
    available: list[AddonDefinition] = field(default_factory=list)
    groups: dict[str, list[AddonDefinition]] = field(default_factory=dict)
    categories: list[CategoryInfo] = field(default_factory=list)
    gitops_enabled: bool = False

    def find(self, name: str) -> InstalledAddonView | None:
        key = name.lower()
        for entry in (*self.platform, *self.installed):
            if entry.addon.key == key:
                return entry
        return None


class AddonStateAggregator:
    """Build an AddonsView from independently loaded state slices."""

    def __init__(
        self,
        catalog: list[AddonDefinition] | None = None,
        categories: list[CategoryInfo] | None = None,
        installed: list[InstalledAddon] | None = None,
        releases: list[DiscoveredRelease] | None = None,
        gitops_engine_installed: bool = False,
        gitops_capable: bool = True,
    ):
        self.catalog = catalog or []
        self.categories = categories or []
        self.installed = installed or []
        self.releases = releases or []
        self.gitops_engine_installed = gitops_engine_installed
        self.gitops_capable = gitops_capable

    @property
    def platform_addon_names(self) -> set[str]:
        return {a.key for a in platform_addons(self.catalog)}

    @property
    def optional_catalog(self) -> list[AddonDefinition]:
        return optional_addons(self.catalog)

    @property
    def optional_categories(self) -> list[CategoryInfo]:
        """Categories that contain at least one optional addon, in catalog order."""
        names = {a.category for a in self.optional_catalog}
        return [c for c in self.categories if c.name in names]

    @property
    def gitops_enabled(self) -> bool:
        """GitOps is available when an engine was discovered or is installed as an addon."""
        if not self.gitops_capable:
            return False
        if self.gitops_engine_installed:
            return True
        return any(a.key in GITOPS_ENGINE_ADDONS for a in self.installed)

    def catalog_entry(self, name: str) -> AddonDefinition | None:
        key = name.lower()
        return next((a for a in self.catalog if a.key == key), None)

    def _view(self, addon: InstalledAddon) -> InstalledAddonView:
        definition = self.catalog_entry(addon.name)
        guard = LifecycleGuard(addon, self.gitops_enabled, definition)
        return InstalledAddonView(
            addon=addon,
            catalog_info=definition,
            authority=guard.authority,
            actions=guard.available_actions(),
            release=find_discovered_release(addon.name, self.releases),
        )

    def available(self, search: str = "", category: str = "all") -> list[AddonDefinition]:
        """Optional catalog addons that are not installed, filtered for display.

        Args:
            search: Case-insensitive substring of display name, description or name
            category: Category name, or ``all``

        Returns:
            Matching catalog entries in catalog order
        """
        installed = {a.key for a in self.installed}
        query = search.strip().lower()
        result = []
        for addon in self.optional_catalog:
            if addon.key in installed:
                continue
            if query and not (
                query in addon.display_name.lower()
                or query in addon.description.lower()
                or query in addon.key
            ):
                continue
            if category != "all" and addon.category != category:
                continue
            result.append(addon)
        return result

    def build(self, search: str = "", category: str = "all") -> AddonsView:
        platform_names = self.platform_addon_names
        platform: list[InstalledAddonView] = []
        optional: list[InstalledAddonView] = []
        for addon in self.installed:
            view = self._view(addon)
            if addon.key in platform_names:
                platform.append(view)
            else:
                optional.append(view)

        available = self.available(search, category)
        categories = self.optional_categories
        groups: dict[str, list[AddonDefinition]] = {c.name: [] for c in categories}
        for name, members in group_by_category(available).items():
            # Addons whose category is not listed in the catalog are not grouped
            if name in groups:
                groups[name] = members

        return AddonsView(
            platform=platform,
            installed=optional,
            available=available,
            groups=groups,
            categories=categories,
            gitops_enabled=self.gitops_enabled,
        )
