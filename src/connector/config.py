"""Configuration management with validation.

Every problem is collected at construction time and reported together so a
misconfigured connector fails before the first remote call is made.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Remote API
DEFAULT_BASE_URL = "https://api.meraki.com/api/v1"
API_VERSION_PATH = "/api/v1"

# Optional caller-imposed deadline for a single remote call
MIN_REQUEST_TIMEOUT_SECONDS = 1.0
MAX_REQUEST_TIMEOUT_SECONDS = 600.0

# Security constraints - enforced limits to prevent abuse
MAX_SPEC_FILE_SIZE_BYTES = 256 * 1024  # 256KB max network definition
MAX_STATE_FILE_SIZE_BYTES = 1024 * 1024  # 1MB max persisted state
MAX_NETWORK_NAME_LENGTH = 255
MAX_TAG_LENGTH = 255
MAX_NOTES_LENGTH = 4096

# Input validation patterns
VALID_API_KEY_PATTERN = r"^[A-Za-z0-9]{20,128}$"
VALID_RESOURCE_NAME_PATTERN = r"^[a-z0-9][a-z0-9_.-]{0,62}$"

DEFAULT_STATE_DIR = ".meraki-state"


@dataclass(frozen=True)
class Config:
    """Connector configuration loaded from environment variables.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError immediately rather than failing mid-apply.
    """

    api_key: str = field(repr=False)
    base_url: str = DEFAULT_BASE_URL

    # None means the gateway call runs to completion or failure
    request_timeout_seconds: float | None = None

    state_dir: Path = field(default_factory=lambda: Path(DEFAULT_STATE_DIR))

    enable_audit_logging: bool = True

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        import re

        errors: list[str] = []

        if not self.api_key:
            errors.append("MERAKI_API_KEY is required")
        elif not re.match(VALID_API_KEY_PATTERN, self.api_key):
            errors.append("MERAKI_API_KEY must be 20-128 alphanumeric characters")

        lower_url = self.base_url.lower()
        if not (lower_url.startswith("https://") or lower_url.startswith("http://")):
            errors.append(f"MERAKI_BASE_URL must be an http(s) URL: {self.base_url}")
        elif not self.base_url.rstrip("/").endswith(API_VERSION_PATH):
            errors.append(f"MERAKI_BASE_URL must end with {API_VERSION_PATH}: {self.base_url}")

        if self.request_timeout_seconds is not None and not (
            MIN_REQUEST_TIMEOUT_SECONDS
            <= self.request_timeout_seconds
            <= MAX_REQUEST_TIMEOUT_SECONDS
        ):
            errors.append(
                f"MERAKI_REQUEST_TIMEOUT must be between {MIN_REQUEST_TIMEOUT_SECONDS:g} "
                f"and {MAX_REQUEST_TIMEOUT_SECONDS:g} seconds"
            )

        if self.state_dir.exists() and not self.state_dir.is_dir():
            errors.append(f"MERAKI_STATE_DIR is not a directory: {self.state_dir}")

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @property
    def api_root(self) -> str:
        """Base URL without a trailing slash."""
        return self.base_url.rstrip("/")

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Environment Variables:
            MERAKI_API_KEY: Dashboard API key (MERAKI_DASHBOARD_API_KEY also accepted)
            MERAKI_BASE_URL: API root (default: https://api.meraki.com/api/v1)
            MERAKI_REQUEST_TIMEOUT: Per-call deadline in seconds (default: none)
            MERAKI_STATE_DIR: Where the CLI persists observed state (default: .meraki-state)
            MERAKI_AUDIT_LOGGING: Enable JSON audit logs (default: true)
        """

        def get_float(key: str) -> float | None:
            value = os.environ.get(key)
            if not value:
                return None
            try:
                return float(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be a number: {value}") from e

        def get_bool(key: str, default: bool) -> bool:
            value = os.environ.get(key, "").lower()
            if not value:
                return default
            return value in ("true", "1", "yes")

        api_key = os.environ.get("MERAKI_API_KEY") or os.environ.get(
            "MERAKI_DASHBOARD_API_KEY", ""
        )

        return cls(
            api_key=api_key,
            base_url=os.environ.get("MERAKI_BASE_URL", DEFAULT_BASE_URL),
            request_timeout_seconds=get_float("MERAKI_REQUEST_TIMEOUT"),
            state_dir=Path(os.environ.get("MERAKI_STATE_DIR", DEFAULT_STATE_DIR)),
            enable_audit_logging=get_bool("MERAKI_AUDIT_LOGGING", True),
        )
