"""Tests for configuration loading."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from connector.config import DEFAULT_BASE_URL, Config, ConfigurationError

VALID_KEY = "0123456789abcdef0123456789abcdef01234567"


class TestConfig:
    """Tests for Config class."""

    def test_valid_config(self, tmp_path: Path) -> None:
        """Test creating a valid configuration."""
        config = Config(api_key=VALID_KEY, state_dir=tmp_path)

        assert config.base_url == DEFAULT_BASE_URL
        assert config.request_timeout_seconds is None
        assert config.enable_audit_logging is True

    def test_missing_api_key(self) -> None:
        """Test that missing API key raises error."""
        with pytest.raises(ConfigurationError) as exc_info:
            Config(api_key="")

        assert "MERAKI_API_KEY" in str(exc_info.value)

    def test_malformed_api_key(self) -> None:
        """Test that a key with invalid characters is rejected."""
        with pytest.raises(ConfigurationError) as exc_info:
            Config(api_key="not a key!")

        assert "alphanumeric" in str(exc_info.value)

    def test_api_key_not_in_repr(self) -> None:
        """Test that the API key never appears in the repr."""
        config = Config(api_key=VALID_KEY)

        assert VALID_KEY not in repr(config)

    def test_base_url_must_be_versioned(self) -> None:
        """Test that the base URL has to point at /api/v1."""
        with pytest.raises(ConfigurationError) as exc_info:
            Config(api_key=VALID_KEY, base_url="https://api.meraki.com/api/v0")

        assert "MERAKI_BASE_URL" in str(exc_info.value)

    def test_base_url_must_be_http(self) -> None:
        """Test that a non-HTTP base URL is rejected."""
        with pytest.raises(ConfigurationError):
            Config(api_key=VALID_KEY, base_url="ftp://api.meraki.com/api/v1")

    def test_api_root_strips_trailing_slash(self) -> None:
        """Test that api_root is usable as a URL prefix."""
        config = Config(api_key=VALID_KEY, base_url="https://api.meraki.ca/api/v1/")

        assert config.api_root == "https://api.meraki.ca/api/v1"

    def test_invalid_timeout(self) -> None:
        """Test that an out-of-range timeout raises error."""
        with pytest.raises(ConfigurationError) as exc_info:
            Config(api_key=VALID_KEY, request_timeout_seconds=0.1)

        assert "MERAKI_REQUEST_TIMEOUT" in str(exc_info.value)

    def test_errors_are_collected(self) -> None:
        """Test that every problem is reported at once."""
        with pytest.raises(ConfigurationError) as exc_info:
            Config(api_key="", base_url="nope", request_timeout_seconds=10_000)

        message = str(exc_info.value)
        assert "MERAKI_API_KEY" in message
        assert "MERAKI_BASE_URL" in message
        assert "MERAKI_REQUEST_TIMEOUT" in message

    def test_state_dir_must_be_directory(self, tmp_path: Path) -> None:
        """Test that a file in place of the state dir is rejected."""
        not_a_dir = tmp_path / "state"
        not_a_dir.write_text("")

        with pytest.raises(ConfigurationError) as exc_info:
            Config(api_key=VALID_KEY, state_dir=not_a_dir)

        assert "MERAKI_STATE_DIR" in str(exc_info.value)

    def test_from_env(self, tmp_path: Path) -> None:
        """Test loading configuration from environment."""
        env = {
            "MERAKI_API_KEY": VALID_KEY,
            "MERAKI_BASE_URL": "https://api.meraki.cn/api/v1",
            "MERAKI_REQUEST_TIMEOUT": "30",
            "MERAKI_STATE_DIR": str(tmp_path),
            "MERAKI_AUDIT_LOGGING": "false",
        }

        with patch.dict(os.environ, env, clear=True):
            config = Config.from_env()

        assert config.api_key == VALID_KEY
        assert config.base_url == "https://api.meraki.cn/api/v1"
        assert config.request_timeout_seconds == 30.0
        assert config.state_dir == tmp_path
        assert config.enable_audit_logging is False

    def test_from_env_dashboard_key_fallback(self) -> None:
        """Test that MERAKI_DASHBOARD_API_KEY is accepted."""
        with patch.dict(os.environ, {"MERAKI_DASHBOARD_API_KEY": VALID_KEY}, clear=True):
            config = Config.from_env()

        assert config.api_key == VALID_KEY

    def test_from_env_invalid_timeout(self) -> None:
        """Test that a non-numeric timeout raises error."""
        env = {"MERAKI_API_KEY": VALID_KEY, "MERAKI_REQUEST_TIMEOUT": "soon"}

        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ConfigurationError) as exc_info:
                Config.from_env()

        assert "MERAKI_REQUEST_TIMEOUT" in str(exc_info.value)
