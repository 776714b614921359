"""Unit tests for configuration management."""

import os
from unittest.mock import patch

import pytest

from butler_console.config import ConsoleConfig


def make_config(env: dict[str, str] | None = None, **kwargs) -> ConsoleConfig:
    with patch.dict(os.environ, env or {}, clear=True), patch("butler_console.config.load_dotenv"):
        return ConsoleConfig(**kwargs)


class TestConsoleConfig:
    """Test ConsoleConfig class."""

    def test_default_configuration(self):
        """Test default configuration values."""
        config = make_config()

        assert config.api_url == "http://localhost:8080/api"
        assert config.api_token is None
        assert config.verify_tls is True
        assert config.request_timeout == 30.0
        assert config.default_branch == "main"
        assert config.log_level == "info"
        assert not config.has_cluster_context()

    def test_environment_variable_loading(self):
        """Test loading backend and cluster settings from environment."""
        env = {
            "BUTLER_API_URL": "https://butler.example.com/api/",
            "BUTLER_API_TOKEN": "tok-123",
            "BUTLER_VERIFY_TLS": "false",
            "BUTLER_REQUEST_TIMEOUT": "5",
            "BUTLER_CLUSTER_NAMESPACE": "team-a",
            "BUTLER_CLUSTER_NAME": "dev",
            "BUTLER_DEFAULT_BRANCH": "trunk",
            "LOG_LEVEL": "DEBUG",
        }
        config = make_config(env)

        assert config.api_url == "https://butler.example.com/api"
        assert config.api_token == "tok-123"
        assert config.verify_tls is False
        assert config.request_timeout == 5.0
        assert config.has_cluster_context()
        assert config.default_branch == "trunk"
        assert config.log_level == "debug"

    def test_environment_overrides_arguments(self):
        """Test environment variables take precedence over constructor arguments."""
        config = make_config({"BUTLER_DEFAULT_BRANCH": "dev"}, default_branch="release")
        assert config.default_branch == "dev"

    def test_auth_headers(self):
        """Test a bearer token is sent when configured."""
        assert make_config().get_auth_headers() == {}
        assert make_config({"BUTLER_API_TOKEN": "abc"}).get_auth_headers() == {
            "Authorization": "Bearer abc"
        }

    def test_validation_success(self):
        """Test validation passes with defaults."""
        make_config().validate()

    def test_validation_invalid_url(self):
        """Test validation fails for a non-HTTP API URL."""
        config = make_config({"BUTLER_API_URL": "butler.local"})
        with pytest.raises(ValueError, match="Invalid API URL"):
            config.validate()

    def test_validation_invalid_timeout(self):
        """Test validation fails for a malformed timeout."""
        config = make_config({"BUTLER_REQUEST_TIMEOUT": "soon"})
        with pytest.raises(ValueError, match="Request timeout"):
            config.validate()

    def test_validation_invalid_log_level(self):
        """Test validation fails for an unknown log level."""
        config = make_config({"LOG_LEVEL": "verbose"})
        with pytest.raises(ValueError, match="Invalid log level"):
            config.validate()

    def test_validation_empty_branch(self):
        """Test validation fails for an empty default branch."""
        config = make_config({"BUTLER_DEFAULT_BRANCH": ""})
        with pytest.raises(ValueError, match="Default branch"):
            config.validate()
