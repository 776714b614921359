"""CLI interface for the Butler console addon engine.

This module provides the ``butler-addons`` command: catalog browsing, addon
install / configure / uninstall, release discovery and GitOps export / migrate,
all driven through the same controller the web console uses.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

import yaml
from prompt_toolkit import PromptSession
from rich.console import Console
from rich.logging import RichHandler

from butler_console import __version__
from butler_console.addons.controller import AddonsController
from butler_console.addons.export import ExportSession
from butler_console.addons.guard import GitOpsWarning, GuardResult
from butler_console.addons.matcher import MigrationTarget
from butler_console.addons.values import dump_values, encode, load_values, set_nested_value
from butler_console.api.addons import AddonsApi, ClusterTarget
from butler_console.api.client import ApiClient
from butler_console.api.gitops import GitOpsApi
from butler_console.api.schema import SchemaProvider
from butler_console.config import ConsoleConfig
from butler_console.display.formatters import (
    RichNotifier,
    format_error,
    format_gitops_warning,
    format_info,
    format_preview,
)
from butler_console.display.tables import (
    create_available_tables,
    create_catalog_table,
    create_discovery_table,
    create_installed_table,
)
from butler_console.utils.errors import ButlerConsoleError, ConfigurationError, ValidationFailure
from butler_console.utils.validation import validate_label

console = Console()


def setup_logging(log_level: str = "info") -> None:
    """Setup logging with Rich handler.

    Args:
        log_level: Logging level (debug, info, warning, error)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=console,
                show_time=False,
                show_path=False,
                rich_tracebacks=True,
            )
        ],
    )
    # httpx logs every request at info
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def _add_gitops_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--repository", help="Target repository (owner/repo)")
    parser.add_argument("--branch", help="Target branch")
    parser.add_argument("--path", help="Repository path for generated manifests")
    parser.add_argument(
        "--direct",
        action="store_true",
        help="Commit directly instead of opening a pull request",
    )


def _add_values_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-f", "--values", type=Path, help="YAML file with Helm values")
    parser.add_argument(
        "--set",
        action="append",
        default=[],
        metavar="PATH=VALUE",
        help="Set a single value (dot-separated path), may be repeated",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build argument parser for CLI.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="butler-addons",
        description="Butler - cluster addon lifecycle and GitOps migration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("-n", "--namespace", help="Tenant cluster namespace")
    parser.add_argument("-c", "--cluster", help="Tenant cluster name")
    parser.add_argument(
        "--management",
        action="store_true",
        help="Target the management cluster",
    )
    parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Proceed past GitOps warnings without prompting",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Verbose output with request logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Butler Console {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    catalog = subparsers.add_parser("catalog", help="Show available catalog addons")
    catalog.add_argument("-s", "--search", default="", help="Filter by name or description")
    catalog.add_argument("--category", default="all", help="Filter by category")

    subparsers.add_parser("list", help="Show installed addons and their authority")

    install = subparsers.add_parser("install", help="Install a catalog addon")
    install.add_argument("addon", help="Catalog addon name")
    _add_values_options(install)

    configure = subparsers.add_parser("configure", help="Update an installed addon")
    configure.add_argument("addon", help="Installed addon name")
    configure.add_argument("--addon-version", dest="addon_version", help="Chart version")
    _add_values_options(configure)

    uninstall = subparsers.add_parser("uninstall", help="Uninstall an addon")
    uninstall.add_argument("addon", help="Installed addon name")

    subparsers.add_parser("discover", help="Show Helm releases found on the cluster")

    match = subparsers.add_parser("match", help="Show the release backing an addon")
    match.add_argument("addon", help="Addon name")

    preview = subparsers.add_parser("preview", help="Render export manifests without committing")
    preview.add_argument("addon", help="Catalog addon name")
    _add_gitops_options(preview)

    export = subparsers.add_parser("export", help="Export a catalog addon to GitOps")
    export.add_argument("addon", help="Catalog addon name")
    _add_gitops_options(export)

    migrate = subparsers.add_parser("migrate", help="Migrate addons to GitOps")
    migrate.add_argument("addon", nargs="?", help="Installed addon name")
    migrate.add_argument("--all", action="store_true", help="Migrate every discovered release")
    migrate.add_argument("--helm-repo-url", help="Helm repository URL of the release")
    migrate.add_argument(
        "--repo-url",
        action="append",
        default=[],
        metavar="NAMESPACE/NAME=URL",
        help="Helm repository URL for an unmatched release (with --all)",
    )
    _add_gitops_options(migrate)

    values = subparsers.add_parser("values", help="Show default values for an addon")
    values.add_argument("addon", help="Addon name")
    values.add_argument("--yaml", action="store_true", help="Render as standard YAML")

    return parser


def resolve_target(args: argparse.Namespace, config: ConsoleConfig) -> ClusterTarget:
    """Resolve the cluster addressed by the command line.

    Raises:
        ConfigurationError: If no tenant cluster is given and --management is not
            set, or the namespace or cluster name is not a valid DNS label
    """
    if args.management:
        return ClusterTarget.management()

    namespace = args.namespace or config.cluster_namespace
    name = args.cluster or config.cluster_name
    if not (namespace and name):
        raise ConfigurationError(
            "No cluster selected. Pass --namespace and --cluster, set "
            "BUTLER_CLUSTER_NAMESPACE and BUTLER_CLUSTER_NAME, or use --management."
        )
    try:
        validate_label(namespace, kind="Namespace")
        validate_label(name)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e
    return ClusterTarget(namespace=namespace, name=name)


def parse_values(args: argparse.Namespace) -> dict[str, Any] | None:
    """Collect Helm values from ``--values`` and ``--set`` options.

    Returns:
        Values mapping, or None when neither option was given
    """
    if not args.values and not args.set:
        return None

    values: dict[str, Any] = {}
    if args.values:
        values = load_values(args.values.read_text(encoding="utf-8"))

    for assignment in args.set:
        path, sep, raw = assignment.partition("=")
        if not sep or not path:
            raise ValidationFailure(f"Invalid --set '{assignment}'. Use PATH=VALUE")
        set_nested_value(values, path.strip(), yaml.safe_load(raw) if raw else "")
    return values


def make_confirm(assume_yes: bool = False):
    """Build the confirmation callback used for GitOps warnings."""

    async def confirm(warning: GitOpsWarning) -> bool:
        console.print(format_gitops_warning(warning))
        if assume_yes:
            return True
        session: PromptSession = PromptSession()
        answer = await session.prompt_async(f"{warning.proceed_label}? (y/n): ")
        return answer.strip().lower() in ("y", "yes")

    return confirm


async def _configure_session(session: ExportSession, args: argparse.Namespace) -> None:
    if args.repository:
        await session.select_repository(args.repository)
    if args.branch:
        session.branch = args.branch
    if args.path:
        session.path = args.path
    if getattr(args, "helm_repo_url", None):
        session.helm_repo_url = args.helm_repo_url


def _report_guard(result: GuardResult, addon: str) -> bool:
    if result == GuardResult.CANCELLED:
        console.print(format_info(f"No changes made to '{addon}'", title="Cancelled"))
    elif result == GuardResult.SKIPPED:
        console.print(format_info(f"'{addon}' is already managed by GitOps", title="Skipped"))
    return result != GuardResult.FAILED


async def cmd_catalog(controller: AddonsController, args: argparse.Namespace) -> bool:
    view = controller.view(args.search, args.category)
    tables = create_available_tables(view)
    if not tables:
        console.print(create_catalog_table(view.available))
    for table in tables:
        console.print(table)
    return True


async def cmd_list(controller: AddonsController, args: argparse.Namespace) -> bool:
    view = controller.view()
    if controller.gitops_enabled:
        console.print(format_info("Addons can be exported to Git", title="GitOps Enabled"))
    console.print(create_installed_table(view.platform, "Platform Addons"))
    console.print(create_installed_table(view.installed, "Installed Addons"))
    return True


async def cmd_install(controller: AddonsController, args: argparse.Namespace) -> bool:
    values = parse_values(args)
    if values is None:
        return await controller.quick_install(args.addon)
    return await controller.configured_install(args.addon, values)


async def cmd_configure(controller: AddonsController, args: argparse.Namespace) -> bool:
    result = await controller.request_configure(
        args.addon, values=parse_values(args), version=args.addon_version
    )
    return _report_guard(result, args.addon)


async def cmd_uninstall(controller: AddonsController, args: argparse.Namespace) -> bool:
    return _report_guard(await controller.request_uninstall(args.addon), args.addon)


async def cmd_discover(controller: AddonsController, args: argparse.Namespace) -> bool:
    console.print(create_discovery_table(controller.discovery))
    return True


async def cmd_match(controller: AddonsController, args: argparse.Namespace) -> bool:
    target = MigrationTarget.resolve(args.addon, controller.discovery.releases)
    if not target.matched:
        console.print(
            format_info(
                f"No discovered release matches '{args.addon}'. Migration would use "
                f"{target.release_namespace}/{target.release_name}.",
                title="No Match",
            )
        )
        return True
    console.print(
        format_info(
            f"Release: {target.release_namespace}/{target.release_name}\n"
            f"Helm repository: {target.helm_repo_url or '-'}",
            title=f"Match for {args.addon}",
        )
    )
    return True


async def cmd_preview(controller: AddonsController, args: argparse.Namespace) -> bool:
    session = await controller.open_export(args.addon)
    await _configure_session(session, args)
    files = await session.toggle_preview()
    if files is None:
        console.print(format_error("Preview could not be rendered", title="Preview Failed"))
        return False
    console.print(format_preview(files))
    return True


async def cmd_export(controller: AddonsController, args: argparse.Namespace) -> bool:
    session = await controller.open_export(args.addon, create_pr=not args.direct)
    await _configure_session(session, args)
    outcome = await controller.submit_export(session)
    return outcome.success


async def cmd_migrate(controller: AddonsController, args: argparse.Namespace) -> bool:
    if args.all:
        bulk = await controller.open_bulk_migration(create_pr=not args.direct)
        if args.repository:
            await bulk.select_repository(args.repository)
        if args.branch:
            bulk.branch = args.branch
        if args.path:
            bulk.base_path = args.path
        for override in args.repo_url:
            key, sep, url = override.partition("=")
            if not sep:
                raise ValidationFailure(f"Invalid --repo-url '{override}'. Use NAMESPACE/NAME=URL")
            bulk.selected.add(key)
            bulk.set_repo_url(key, url)
        outcome = await controller.submit_migration(bulk)
        return outcome.success

    if not args.addon:
        raise ValidationFailure("Name an addon to migrate, or pass --all")

    session = await controller.open_migrate(args.addon, create_pr=not args.direct)
    if session is None:
        return _report_guard(GuardResult.SKIPPED, args.addon)
    await _configure_session(session, args)
    outcome = await controller.submit_export(session)
    return outcome.success


async def cmd_values(controller: AddonsController, args: argparse.Namespace) -> bool:
    editor = await controller.open_values_editor(args.addon)
    text = dump_values(editor.values) if args.yaml else encode(editor.values)
    if not text:
        console.print("[dim]No default values[/dim]")
        return True
    console.print(text, markup=False, highlight=False)
    return True


COMMANDS = {
    "catalog": cmd_catalog,
    "list": cmd_list,
    "install": cmd_install,
    "configure": cmd_configure,
    "uninstall": cmd_uninstall,
    "discover": cmd_discover,
    "match": cmd_match,
    "preview": cmd_preview,
    "export": cmd_export,
    "migrate": cmd_migrate,
    "values": cmd_values,
}


async def run_command(args: argparse.Namespace, config: ConsoleConfig) -> int:
    """Mount the controller and run one subcommand.

    Returns:
        Process exit code
    """
    target = resolve_target(args, config)

    async with ApiClient(config) as client:
        controller = AddonsController(
            AddonsApi(client),
            GitOpsApi(client),
            target,
            notifier=RichNotifier(console),
            confirm=make_confirm(args.yes),
            schemas=SchemaProvider(),
            config=config,
        )
        await controller.mount()

        if controller.catalog_error:
            console.print(
                format_error(controller.catalog_error, title="Failed to load addon catalog")
            )
            return 1

        ok = await COMMANDS[args.command](controller, args)
    return 0 if ok else 1


async def async_main(argv: list[str] | None = None) -> int:
    """Async main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = ConsoleConfig()
        config.validate()
    except ValueError as e:
        console.print(f"[red]Configuration Error: {e}[/red]")
        console.print("\n[yellow]Please check your .env file or environment variables.[/yellow]")
        return 1

    setup_logging("debug" if args.verbose else config.log_level)

    try:
        return await run_command(args, config)
    except ConfigurationError as e:
        console.print(f"[red]Configuration Error: {e}[/red]")
        return 1
    except ValidationFailure as e:
        console.print(format_error(str(e), title="Not Allowed"))
        return 1
    except ButlerConsoleError as e:
        console.print(format_error(str(e)))
        if args.verbose:
            console.print_exception()
        return 1


def main() -> None:
    """Main entry point for CLI."""
    try:
        sys.exit(asyncio.run(async_main()))
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted[/dim]")
        sys.exit(0)
    except Exception as e:
        console.print(f"[red]Fatal error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
