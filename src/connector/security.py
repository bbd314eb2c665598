"""Credential handling for the Dashboard API.

SECURITY INVARIANTS:
1. The API key is supplied once, at initialization, and never mutated
2. The key is never written to logs or reprs in full
3. The key only ever leaves the process inside the Authorization header
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field

from .config import VALID_API_KEY_PATTERN

logger = logging.getLogger(__name__)

# Environment variables consulted for the API key, in order
API_KEY_ENV_VARS: tuple[str, ...] = (
    "MERAKI_API_KEY",
    "MERAKI_DASHBOARD_API_KEY",
)

# Visible prefix when a key has to be referenced in logs
REDACTED_PREFIX_LENGTH = 4


class CredentialError(Exception):
    """Raised when no usable API key can be resolved."""

    pass


def redact(secret: str) -> str:
    """Mask a secret for logging, keeping a short prefix for correlation."""
    if len(secret) <= REDACTED_PREFIX_LENGTH:
        return "****"
    return secret[:REDACTED_PREFIX_LENGTH] + "..."


@dataclass(frozen=True)
class ApiKeyCredential:
    """Opaque bearer token, immutable for the lifetime of a session."""

    token: str = field(repr=False)

    def __post_init__(self) -> None:
        if not self.token:
            raise CredentialError("API key must not be empty")
        if not re.match(VALID_API_KEY_PATTERN, self.token):
            raise CredentialError("API key must be 20-128 alphanumeric characters")

    def __repr__(self) -> str:
        return f"ApiKeyCredential(token={redact(self.token)!r})"

    @property
    def authorization_header(self) -> dict[str, str]:
        """Header injected into every gateway request."""
        return {"Authorization": f"Bearer {self.token}"}


def get_api_key_credential(api_key: str | None = None) -> ApiKeyCredential:
    """Resolve the API key credential.

    Args:
        api_key: Explicit key. If None, the environment is consulted.

    Returns:
        ApiKeyCredential wrapping the key.

    Raises:
        CredentialError: If no key is found or the key is malformed.
    """
    source = "argument"
    if api_key is None:
        for env_var in API_KEY_ENV_VARS:
            value = os.environ.get(env_var)
            if value:
                api_key = value
                source = env_var
                break

    if not api_key:
        logger.error(
            "No API key available",
            extra={"security_event": "credential_missing", "searched": list(API_KEY_ENV_VARS)},
        )
        raise CredentialError(
            "No API key configured. Set one of: " + ", ".join(API_KEY_ENV_VARS)
        )

    credential = ApiKeyCredential(token=api_key)
    logger.info(
        "Using API key credential",
        extra={"security_event": "credential_loaded", "source": source, "key": redact(api_key)},
    )
    return credential


def log_security_audit_event(
    event_type: str,
    target_resource: str | None = None,
    action: str | None = None,
    result: str | None = None,
) -> None:
    """Log a security-relevant audit event.

    Args:
        event_type: Type of security event (auth, mutation, etc.)
        target_resource: Remote resource being accessed.
        action: Action being performed.
        result: Result of the action (success, failure, denied).
    """
    logger.info(
        f"Security audit: {event_type}",
        extra={
            "security_audit": True,
            "event_type": event_type,
            "target_resource": target_resource,
            "action": action,
            "result": result,
        },
    )
