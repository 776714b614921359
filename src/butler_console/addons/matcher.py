"""Release discovery matcher.

Links catalog / installed addon names to live Helm releases found by discovery,
so a migration can be prefilled with the release that actually backs the addon.
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from butler_console.models import DiscoveredRelease

logger = logging.getLogger(__name__)

# Dashboard sub-components have historically been published under a "grafana" prefix
_GRAFANA_PREFIX = re.compile(r"^grafana[\s-]*")
_SEPARATORS = re.compile(r"[\s-]+")


def normalize_addon_name(name: str) -> str:
    """Normalize an addon or release name for comparison.

    Lowercases, strips a leading ``grafana`` token and collapses runs of
    whitespace and hyphens into a single hyphen.

    Args:
        name: Raw name

    Returns:
        Normalized name, e.g. ``"Grafana Dashboards"`` -> ``"dashboards"``
    """
    lowered = name.strip().lower()
    normalized = _SEPARATORS.sub("-", _GRAFANA_PREFIX.sub("", lowered))
    # A bare "grafana" must not normalize to the empty string, which every name contains
    return normalized or _SEPARATORS.sub("-", lowered)


def release_matches(addon_name: str, release: DiscoveredRelease) -> bool:
    """Check whether a discovered release backs the given addon."""
    wanted = normalize_addon_name(addon_name)
    if not wanted or not release.name:
        return False

    release_name = normalize_addon_name(release.name)
    chart_name = normalize_addon_name(release.chart_name) if release.chart_name else ""

    if release_name == wanted or (chart_name and chart_name == wanted):
        return True
    if wanted in release_name or release_name in wanted:
        return True
    return bool(chart_name) and wanted in chart_name


def find_discovered_release(
    addon_name: str, releases: Iterable[DiscoveredRelease]
) -> DiscoveredRelease | None:
    """Find the first discovered release matching an addon name.

    Args:
        addon_name: Catalog or installed addon name
        releases: Releases in discovery order (matched before unmatched)

    Returns:
        First matching release, or None
    """
    for release in releases:
        if release_matches(addon_name, release):
            logger.debug(f"Addon '{addon_name}' matched release {release.key} ({release.chart})")
            return release
    return None


@dataclass
class MigrationTarget:
    """Release identity used to prefill a migrate-to-GitOps request."""

    release_name: str
    release_namespace: str
    helm_repo_url: str | None = None
    matched: bool = False

    @classmethod
    def resolve(
        cls, addon_name: str, releases: Iterable[DiscoveredRelease]
    ) -> "MigrationTarget":
        """Resolve the release behind an addon, falling back to conventional names.

        Without a matching release the lowercased addon name is used as the release name and
        ``<addon>-system`` as the namespace.

        Args:
            addon_name: Installed addon name
            releases: Discovered releases

        Returns:
            MigrationTarget
        """
        release = find_discovered_release(addon_name, releases)
        if release is None:
            key = addon_name.lower()
            return cls(release_name=key, release_namespace=f"{key}-system")
        return cls(
            release_name=release.name,
            release_namespace=release.namespace or f"{addon_name.lower()}-system",
            helm_repo_url=release.repo_url,
            matched=True,
        )
