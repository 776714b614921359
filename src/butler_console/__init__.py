"""Butler Console - addon lifecycle and GitOps migration for Butler clusters.

Tracks which authority owns each cluster addon (the platform, the console, or an
external GitOps reconciler) and moves addons between them safely.
"""

from butler_console.addons import AddonsController
from butler_console.config import ConsoleConfig

__version__ = "0.2.0"

__all__ = [
    "AddonsController",
    "ConsoleConfig",
    "__version__",
]
