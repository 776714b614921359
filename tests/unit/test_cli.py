"""Unit tests for CLI interface."""

import argparse
import os
from unittest.mock import patch

import pytest

from butler_console.addons.guard import Action, GitOpsWarning
from butler_console.api.addons import ClusterTarget
from butler_console.cli import async_main, build_parser, make_confirm, parse_values, resolve_target
from butler_console.config import ConsoleConfig
from butler_console.utils.errors import ConfigurationError, ValidationFailure
from tests.mocks import API_URL, CLUSTER_BASE


class TestArgumentParser:
    """Test CLI argument parser."""

    def test_requires_command(self):
        """Test a subcommand is required."""
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_global_flags(self):
        """Test cluster selection and prompt flags."""
        args = build_parser().parse_args(["-n", "team-a", "-c", "dev", "-y", "-v", "list"])

        assert args.namespace == "team-a"
        assert args.cluster == "dev"
        assert args.yes is True
        assert args.verbose is True
        assert args.command == "list"

    def test_install_values(self):
        """Test repeated --set options accumulate."""
        args = build_parser().parse_args(["install", "velero", "--set", "a=1", "--set", "b.c=x"])
        assert args.addon == "velero"
        assert args.set == ["a=1", "b.c=x"]
        assert args.values is None

    def test_export_options(self):
        """Test GitOps options on export."""
        args = build_parser().parse_args(
            ["export", "loki", "--repository", "acme/fleet", "--branch", "dev", "--direct"]
        )
        assert args.repository == "acme/fleet"
        assert args.branch == "dev"
        assert args.direct is True
        assert args.path is None

    def test_migrate_all(self):
        """Test bulk migration options."""
        args = build_parser().parse_args(
            ["migrate", "--all", "--repo-url", "apps/my-app=https://charts.example.com"]
        )
        assert args.all is True
        assert args.addon is None
        assert args.repo_url == ["apps/my-app=https://charts.example.com"]


class TestResolveTarget:
    """Test resolving the addressed cluster."""

    def config(self, **kwargs) -> ConsoleConfig:
        with patch.dict(os.environ, {}, clear=True), patch("butler_console.config.load_dotenv"):
            return ConsoleConfig(**kwargs)

    def test_management(self):
        """Test --management wins over everything."""
        args = build_parser().parse_args(["--management", "-n", "x", "-c", "y", "list"])
        assert resolve_target(args, self.config()) == ClusterTarget.management()

    def test_arguments(self):
        """Test namespace and cluster from the command line."""
        args = build_parser().parse_args(["-n", "team-a", "-c", "dev", "list"])
        assert resolve_target(args, self.config()) == ClusterTarget("team-a", "dev")

    def test_config_fallback(self):
        """Test the configured cluster is used when no flags are given."""
        args = build_parser().parse_args(["list"])
        config = self.config(cluster_namespace="team-b", cluster_name="prod")
        assert resolve_target(args, config) == ClusterTarget("team-b", "prod")

    def test_missing(self):
        """Test a missing cluster is a configuration error."""
        args = build_parser().parse_args(["-n", "team-a", "list"])
        with pytest.raises(ConfigurationError, match="No cluster selected"):
            resolve_target(args, self.config())

    def test_invalid_names(self):
        """Test namespace and cluster names must be DNS labels."""
        args = build_parser().parse_args(["-n", "Team_A", "-c", "dev", "list"])
        with pytest.raises(ConfigurationError, match="Namespace 'Team_A'"):
            resolve_target(args, self.config())

        args = build_parser().parse_args(["list"])
        config = self.config(cluster_namespace="team-b", cluster_name="prod-")
        with pytest.raises(ConfigurationError, match="Cluster name 'prod-'"):
            resolve_target(args, config)


class TestParseValues:
    """Test collecting values from the command line."""

    def args(self, values=None, sets=None) -> argparse.Namespace:
        return argparse.Namespace(values=values, set=sets or [])

    def test_none(self):
        """Test no options means no values."""
        assert parse_values(self.args()) is None

    def test_set(self):
        """Test --set values are parsed as YAML scalars."""
        values = parse_values(
            self.args(sets=["prometheus.enabled=false", "replicas=2", "name=web", "empty="])
        )
        assert values == {"prometheus": {"enabled": False}, "replicas": 2, "name": "web", "empty": ""}

    def test_file_then_set(self, tmp_path):
        """Test --set overrides values loaded from a file."""
        path = tmp_path / "values.yaml"
        path.write_text("grafana:\n  enabled: true\n  adminPassword: admin\n")

        values = parse_values(self.args(values=path, sets=["grafana.adminPassword=s3cret"]))

        assert values == {"grafana": {"enabled": True, "adminPassword": "s3cret"}}

    def test_invalid_set(self):
        """Test a --set without '=' is rejected."""
        with pytest.raises(ValidationFailure, match="PATH=VALUE"):
            parse_values(self.args(sets=["novalue"]))


class TestConfirm:
    """Test the GitOps warning prompt."""

    @pytest.mark.asyncio
    async def test_assume_yes(self):
        """Test --yes proceeds without prompting."""
        warning = GitOpsWarning(
            addon_name="flux",
            action=Action.UNINSTALL,
            title="Addon will be re-created",
            message="GitOps will re-create it",
            recommendation="Delete it from Git first",
            proceed_label="Uninstall Anyway",
        )
        with patch("butler_console.cli.PromptSession") as prompt:
            assert await make_confirm(assume_yes=True)(warning) is True
        prompt.assert_not_called()


class TestAsyncMain:
    """Test running commands end to end against the mock backend."""

    @pytest.fixture
    def run(self, gitops_backend):
        async def run(*argv: str) -> int:
            env = {"BUTLER_API_URL": API_URL}
            with (
                patch.dict(os.environ, env, clear=True),
                patch("butler_console.config.load_dotenv"),
                patch("butler_console.cli.setup_logging"),
                patch("butler_console.cli.ApiClient", side_effect=gitops_backend.client),
            ):
                return await async_main(list(argv))

        return run

    @pytest.mark.asyncio
    async def test_install(self, run, gitops_backend):
        """Test the install command posts to the addressed cluster."""
        gitops_backend.post(f"{CLUSTER_BASE}/addons", {})

        assert await run("-n", "team-a", "-c", "dev", "install", "velero") == 0
        assert gitops_backend.calls("POST", f"{CLUSTER_BASE}/addons")[0].body == {
            "addon": "velero"
        }

    @pytest.mark.asyncio
    async def test_install_failure(self, run, gitops_backend):
        """Test a rejected install exits non-zero."""
        gitops_backend.post(f"{CLUSTER_BASE}/addons", {"error": "quota exceeded"}, status=409)
        assert await run("-n", "team-a", "-c", "dev", "install", "velero") == 1

    @pytest.mark.asyncio
    async def test_uninstall_failure(self, run, gitops_backend):
        """Test a rejected uninstall exits non-zero."""
        gitops_backend.get(
            f"{CLUSTER_BASE}/addons", {"addons": [{"name": "velero", "managedBy": "butler"}]}
        )
        gitops_backend.delete(f"{CLUSTER_BASE}/addons/velero", {"error": "in use"}, status=409)

        assert await run("-n", "team-a", "-c", "dev", "uninstall", "velero") == 1
        assert len(gitops_backend.calls("DELETE")) == 1

    @pytest.mark.asyncio
    async def test_export_failure(self, run, gitops_backend):
        """Test a failed export exits non-zero."""
        gitops_backend.post(
            f"{CLUSTER_BASE}/gitops/export", {"success": False, "message": "push rejected"}
        )
        assert await run("-n", "team-a", "-c", "dev", "export", "loki", "--direct") == 1

    @pytest.mark.asyncio
    async def test_missing_cluster(self, run, gitops_backend):
        """Test a missing cluster exits non-zero without requests."""
        assert await run("list") == 1
        assert gitops_backend.requests == []

    @pytest.mark.asyncio
    async def test_catalog_failure(self, run, gitops_backend):
        """Test a catalog load failure exits non-zero."""
        gitops_backend.get("/addons/catalog", {"error": "down"}, status=503)
        assert await run("-n", "team-a", "-c", "dev", "catalog") == 1

    @pytest.mark.asyncio
    async def test_guard_rejection(self, run, gitops_backend):
        """Test uninstalling a platform addon exits non-zero without a request."""
        gitops_backend.get(
            f"{CLUSTER_BASE}/addons", {"addons": [{"name": "cilium", "managedBy": "platform"}]}
        )
        assert await run("-n", "team-a", "-c", "dev", "uninstall", "cilium") == 1
        assert gitops_backend.calls("DELETE") == []

    @pytest.mark.asyncio
    async def test_invalid_configuration(self):
        """Test an invalid API URL exits non-zero."""
        with (
            patch.dict(os.environ, {"BUTLER_API_URL": "nowhere"}, clear=True),
            patch("butler_console.config.load_dotenv"),
        ):
            assert await async_main(["list"]) == 1
