"""Configuration management for the Butler console.

This module handles configuration loading from environment variables and .env files:
backend location, credentials, default cluster context and logging.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

VALID_LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ConsoleConfig:
    """Butler console configuration.

    Loads configuration from environment variables. Explicit constructor arguments
    act as defaults and are overridden by the environment.
    """

    # Backend Configuration
    api_url: str = "http://localhost:8080/api"
    api_token: str | None = None
    session_cookie: str | None = None
    verify_tls: bool = True
    request_timeout: float = 30.0

    # Cluster Context
    cluster_namespace: str | None = None
    cluster_name: str | None = None

    # GitOps Defaults
    default_branch: str = "main"

    log_level: str = "info"

    def __post_init__(self):
        """Load configuration from environment variables after initialization."""
        # Load .env file if present
        load_dotenv()

        self.api_url = os.getenv("BUTLER_API_URL", self.api_url).rstrip("/")
        self.api_token = os.getenv("BUTLER_API_TOKEN", self.api_token)
        self.session_cookie = os.getenv("BUTLER_SESSION_COOKIE", self.session_cookie)
        self.verify_tls = _env_bool("BUTLER_VERIFY_TLS", self.verify_tls)

        timeout = os.getenv("BUTLER_REQUEST_TIMEOUT")
        if timeout is not None:
            try:
                self.request_timeout = float(timeout)
            except ValueError:
                # validate() reports the problem
                self.request_timeout = -1.0

        self.cluster_namespace = os.getenv("BUTLER_CLUSTER_NAMESPACE", self.cluster_namespace)
        self.cluster_name = os.getenv("BUTLER_CLUSTER_NAME", self.cluster_name)
        self.default_branch = os.getenv("BUTLER_DEFAULT_BRANCH", self.default_branch)
        self.log_level = os.getenv("LOG_LEVEL", self.log_level).lower()

    def validate(self) -> None:
        """Validate configuration.

        Raises:
            ValueError: If a setting is missing or malformed.
        """
        if not self.api_url.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid API URL: {self.api_url}. "
                "Set BUTLER_API_URL to an http:// or https:// address."
            )

        if self.request_timeout <= 0:
            raise ValueError(
                "Request timeout must be a positive number of seconds. "
                "Check the BUTLER_REQUEST_TIMEOUT environment variable."
            )

        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {self.log_level}. "
                f"Must be one of: {', '.join(VALID_LOG_LEVELS)}"
            )

        if not self.default_branch:
            raise ValueError("Default branch cannot be empty. Set BUTLER_DEFAULT_BRANCH.")

    def has_cluster_context(self) -> bool:
        """Check whether a default tenant cluster is configured.

        Returns:
            True if both namespace and name are set
        """
        return bool(self.cluster_namespace and self.cluster_name)

    def get_auth_headers(self) -> dict[str, str]:
        """Get credential headers sent with every request.

        Returns:
            Dict of HTTP headers (empty when no token is configured)
        """
        if self.api_token:
            return {"Authorization": f"Bearer {self.api_token}"}
        return {}
