"""Table rendering utilities for the Butler console."""

from rich.table import Table

from butler_console.addons.aggregator import AddonsView, InstalledAddonView
from butler_console.models import AddonDefinition, AddonStatus, DiscoveryResult, ManagedBy

STATUS_STYLES = {
    "healthy": "green",
    "transitional": "yellow",
    "failing": "red",
}

AUTHORITY_STYLES = {
    ManagedBy.PLATFORM: "blue",
    ManagedBy.BUTLER: "cyan",
    ManagedBy.GITOPS: "magenta",
}


def _status_cell(status: AddonStatus) -> str:
    if status.is_healthy:
        style = STATUS_STYLES["healthy"]
    elif status.is_transitional:
        style = STATUS_STYLES["transitional"]
    elif status.is_failing:
        style = STATUS_STYLES["failing"]
    else:
        style = "white"
    return f"[{style}]{status.value}[/{style}]"


def create_catalog_table(
    addons: list[AddonDefinition], title: str = "Addon Catalog"
) -> Table:
    """Create a table of catalog addons.

    Args:
        addons: Catalog entries to list
        title: Table title

    Returns:
        Rich Table with catalog data
    """
    table = Table(title=title)

    table.add_column("Name", style="cyan")
    table.add_column("Display Name", style="white")
    table.add_column("Category", style="white")
    table.add_column("Version", style="white")
    table.add_column("Description", style="dim")

    for addon in addons:
        name = f"{addon.name} [blue](platform)[/blue]" if addon.platform else addon.name
        table.add_row(
            name,
            addon.label,
            addon.category,
            addon.default_version or "-",
            addon.description,
        )

    if not addons:
        table.add_row("[dim]No addons found[/dim]", "", "", "", "")

    return table


def create_installed_table(entries: list[InstalledAddonView], title: str) -> Table:
    """Create a table of installed addons with their authority and actions.

    Args:
        entries: Installed addon views
        title: Table title

    Returns:
        Rich Table with installed addon data
    """
    table = Table(title=title)

    table.add_column("Name", style="cyan")
    table.add_column("Status", style="white")
    table.add_column("Version", style="white")
    table.add_column("Managed By", style="white")
    table.add_column("Actions", style="white")

    for entry in entries:
        style = AUTHORITY_STYLES.get(entry.authority, "white")
        actions = ", ".join(sorted(a.value for a in entry.actions)) or "[dim]read-only[/dim]"
        table.add_row(
            entry.label,
            _status_cell(entry.addon.status),
            entry.addon.version or "-",
            f"[{style}]{entry.authority.value}[/{style}]",
            actions,
        )

    if not entries:
        table.add_row("[dim]No addons installed[/dim]", "", "", "", "")

    return table


def create_available_tables(view: AddonsView) -> list[Table]:
    """Create one catalog table per category of available addons."""
    tables = []
    for category in view.categories:
        addons = view.groups.get(category.name, [])
        if addons:
            tables.append(
                create_catalog_table(addons, title=f"Available: {category.display_name or category.name}")
            )
    return tables


def create_discovery_table(result: DiscoveryResult) -> Table:
    """Create a table of Helm releases found on the cluster.

    Args:
        result: Discovery result

    Returns:
        Rich Table with discovered releases
    """
    engine = result.gitops_engine
    caption = (
        f"GitOps engine: {engine.provider or 'installed'} {engine.version or ''}".strip()
        if engine.installed
        else "GitOps engine: not installed"
    )
    table = Table(title="Discovered Releases", caption=caption)

    table.add_column("Release", style="cyan")
    table.add_column("Namespace", style="white")
    table.add_column("Chart", style="white")
    table.add_column("Version", style="white")
    table.add_column("Repository", style="dim")
    table.add_column("Matched", style="white")

    matched = {r.key for r in result.matched}
    for release in result.releases:
        table.add_row(
            release.name,
            release.namespace,
            release.chart_name,
            release.version or "-",
            release.repo_url or "-",
            "[green]✓[/green]" if release.key in matched else "[dim]✗[/dim]",
        )

    if not result.releases:
        table.add_row("[dim]No releases found[/dim]", "", "", "", "", "")

    return table
