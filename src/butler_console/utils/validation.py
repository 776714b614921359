"""Validation utilities for the Butler console."""

import re

_LABEL_RE = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")


def validate_label(value: str, kind: str = "Cluster name") -> bool:
    """Check a tenant namespace or cluster name is a Kubernetes DNS label.

    Args:
        value: Name to check
        kind: What the name is, used in error messages

    Returns:
        True if valid

    Raises:
        ValueError: If the name is empty, longer than 63 characters, or not
            lowercase alphanumeric with inner hyphens
    """
    if not value:
        raise ValueError(f"{kind} cannot be empty")

    if len(value) > 63:
        raise ValueError(f"{kind} must be 63 characters or less")

    if not _LABEL_RE.match(value):
        raise ValueError(
            f"{kind} '{value}' must be lowercase alphanumeric with hyphens, "
            "starting and ending with alphanumeric characters"
        )

    return True


def split_repository(full_name: str) -> tuple[str, str]:
    """Split a repository full name into owner and repository.

    Args:
        full_name: Repository in ``owner/repo`` format

    Returns:
        Tuple of (owner, repo)

    Raises:
        ValueError: If the name is not in ``owner/repo`` format
    """
    if not full_name:
        raise ValueError("Repository cannot be empty")

    owner, _, repo = full_name.partition("/")
    if not owner or not repo or "/" in repo:
        raise ValueError(f"Invalid repository '{full_name}'. Must be in format owner/repo")

    return owner, repo


def validate_target_path(path: str) -> bool:
    """Validate a repository-relative target path for generated manifests.

    Args:
        path: Target path inside the Git repository

    Returns:
        True if valid

    Raises:
        ValueError: If the path is empty, absolute, or escapes the repository
    """
    if not path or not path.strip():
        raise ValueError("Target path cannot be empty")

    norm = path.replace("\\", "/")
    if norm.startswith("/") or norm.startswith("~") or "://" in norm:
        raise ValueError(f"Invalid target path (must be repo-relative): {path}")
    if ".." in norm.split("/"):
        raise ValueError(f"Invalid target path (no '..' allowed): {path}")

    return True
