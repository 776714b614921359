"""Output formatting utilities for the Butler console.

This module provides Rich panels for notifications, GitOps warnings and manifest
previews, plus the notifier implementations the addons controller reports through.
"""

from dataclasses import dataclass

from rich.console import Console, Group
from rich.panel import Panel
from rich.syntax import Syntax
from rich.text import Text

from butler_console.addons.guard import GitOpsWarning


@dataclass
class Notification:
    level: str
    title: str
    message: str


class RecordingNotifier:
    """Notifier that keeps every notification in memory."""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def success(self, title: str, message: str) -> None:
        self.notifications.append(Notification("success", title, message))

    def error(self, title: str, message: str) -> None:
        self.notifications.append(Notification("error", title, message))

    @property
    def last(self) -> Notification | None:
        return self.notifications[-1] if self.notifications else None

    def titles(self) -> list[str]:
        return [n.title for n in self.notifications]


class RichNotifier:
    """Notifier that prints panels to a Rich console."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def success(self, title: str, message: str) -> None:
        self.console.print(format_success(message, title=title))

    def error(self, title: str, message: str) -> None:
        self.console.print(format_error(message, title=title))


def format_error(message: str, title: str = "Error") -> Panel:
    """Format error message as a Rich panel.

    Args:
        message: Error message
        title: Panel title

    Returns:
        Rich Panel with error styling
    """
    return Panel(
        message,
        title=title,
        border_style="red",
        title_align="left",
    )


def format_success(message: str, title: str = "Success") -> Panel:
    """Format success message as a Rich panel.

    Args:
        message: Success message
        title: Panel title

    Returns:
        Rich Panel with success styling
    """
    return Panel(
        message,
        title=title,
        border_style="green",
        title_align="left",
    )


def format_info(message: str, title: str = "Info") -> Panel:
    return Panel(
        message,
        title=title,
        border_style="blue",
        title_align="left",
    )


def format_gitops_warning(warning: GitOpsWarning) -> Panel:
    """Format a GitOps warning shown before a direct change.

    Args:
        warning: Warning produced by the lifecycle guard

    Returns:
        Rich Panel with warning styling
    """
    body = Text()
    body.append(f"⚠ {warning.title}\n", style="bold yellow")
    body.append(f"{warning.message}\n\n")
    body.append("Recommended: ", style="bold")
    body.append(warning.recommendation)
    return Panel(
        body,
        title="GitOps-Managed Addon",
        border_style="yellow",
        title_align="left",
    )


def format_preview(files: dict[str, str]) -> Group | Panel:
    """Format rendered manifests, one panel per file."""
    if not files:
        return format_info("No manifests would be generated", title="Preview")
    return Group(
        *(
            Panel(
                Syntax(content, "yaml", line_numbers=False),
                title=filename,
                border_style="cyan",
                title_align="left",
            )
            for filename, content in sorted(files.items())
        )
    )
