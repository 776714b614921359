"""Pytest fixtures for testing the Butler console."""

import os
from unittest.mock import patch

import pytest

from butler_console.addons.controller import AddonsController
from butler_console.api.addons import AddonsApi, ClusterTarget
from butler_console.api.gitops import GitOpsApi
from butler_console.config import ConsoleConfig
from butler_console.display.formatters import RecordingNotifier
from tests.mocks import API_URL, CLUSTER_BASE, MockBackend, catalog_payload, discovery_payload


@pytest.fixture
def console_config() -> ConsoleConfig:
    """Create a console configuration isolated from the environment.

    Returns:
        ConsoleConfig pointing at the mock backend
    """
    with patch.dict(os.environ, {}, clear=True), patch("butler_console.config.load_dotenv"):
        config = ConsoleConfig(api_url=API_URL)
    return config


@pytest.fixture
def backend() -> MockBackend:
    return MockBackend()


@pytest.fixture
def target() -> ClusterTarget:
    return ClusterTarget(namespace="team-a", name="dev")


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def gitops_backend(backend: MockBackend) -> MockBackend:
    """Backend with catalog, Git provider, discovery and status routes."""
    backend.get("/addons/catalog", catalog_payload())
    backend.get("/gitops/config", {"configured": True, "provider": "github", "username": "ops"})
    backend.get(
        "/gitops/repos",
        [
            {"name": "fleet", "fullName": "acme/fleet", "defaultBranch": "main"},
            {"name": "infra", "fullName": "acme/infra", "defaultBranch": "trunk", "private": True},
        ],
    )
    backend.get("/gitops/repos/acme/fleet/branches", [{"name": "main"}, {"name": "dev"}])
    backend.get("/gitops/repos/acme/infra/branches", [{"name": "trunk"}])
    backend.get(f"{CLUSTER_BASE}/gitops/discover", discovery_payload())
    backend.get(f"{CLUSTER_BASE}/gitops/status", {"enabled": False})
    backend.get(f"{CLUSTER_BASE}/addons", {"addons": []})
    return backend


@pytest.fixture
def make_controller(console_config, backend, target, notifier):
    """Factory building a controller wired to the mock backend.

    Returns:
        Callable accepting ``confirm`` and ``gitops_capable`` overrides
    """

    def factory(confirm=None, gitops_capable: bool = True) -> AddonsController:
        async def deny(warning) -> bool:
            return False

        client = backend.client(console_config)
        return AddonsController(
            AddonsApi(client),
            GitOpsApi(client),
            target,
            notifier=notifier,
            confirm=confirm or deny,
            config=console_config,
            gitops_capable=gitops_capable,
        )

    return factory
