"""Loading of desired network configuration and persisted state files.

SECURITY: All file operations enforce size limits before reading. Input
validation is performed at the boundary.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .config import (
    MAX_SPEC_FILE_SIZE_BYTES,
    MAX_STATE_FILE_SIZE_BYTES,
    VALID_RESOURCE_NAME_PATTERN,
)
from .models import NetworkSpec

logger = logging.getLogger(__name__)

SPEC_API_VERSION = "meraki-connector/v1"
NETWORK_KIND = "Network"


class SpecLoadError(Exception):
    """Raised when spec or state loading or validation fails."""

    pass


def _read_limited(path: Path, limit: int, what: str) -> str:
    if not path.exists():
        raise SpecLoadError(f"{what} file not found: {path}")

    try:
        file_size = path.stat().st_size
    except OSError as e:
        raise SpecLoadError(f"Failed to stat {what} file {path}: {e}") from e

    if file_size > limit:
        raise SpecLoadError(f"{what} file exceeds maximum size of {limit} bytes: {path}")

    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise SpecLoadError(f"Failed to read {what} file {path}: {e}") from e


def validate_resource_name(name: str) -> str:
    """Check a resource name is safe to use as a state file name."""
    if not re.match(VALID_RESOURCE_NAME_PATTERN, name):
        raise SpecLoadError(
            f"Resource name must match pattern {VALID_RESOURCE_NAME_PATTERN}: {name!r}"
        )
    return name


def load_network_spec(spec_path: Path) -> tuple[str, NetworkSpec]:
    """Load and validate a network definition from YAML.

    Both a flat mapping and a Kubernetes-style wrapper are accepted:

        apiVersion: meraki-connector/v1
        kind: Network
        metadata:
          name: branch-01
        spec:
          orgId: "123456"
          name: Branch 01
          timeZone: Europe/Zurich

    A flat file takes its resource name from the file stem.

    Args:
        spec_path: Path to the YAML file.

    Returns:
        Tuple of (resource name, validated NetworkSpec).

    Raises:
        SpecLoadError: If the file cannot be loaded or fails validation.
    """
    content = _read_limited(spec_path, MAX_SPEC_FILE_SIZE_BYTES, "Spec")

    try:
        raw_data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SpecLoadError(f"Invalid YAML in {spec_path}: {e}") from e

    if not isinstance(raw_data, dict):
        raise SpecLoadError(f"Spec file must contain a YAML mapping: {spec_path}")

    resource_name = spec_path.stem
    if "apiVersion" in raw_data and "spec" in raw_data:
        kind = raw_data.get("kind", NETWORK_KIND)
        if kind != NETWORK_KIND:
            raise SpecLoadError(f"Unsupported kind '{kind}' in {spec_path}")
        metadata = raw_data.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise SpecLoadError(f"Metadata section must be a mapping: {spec_path}")
        resource_name = str(metadata.get("name") or resource_name)
        spec_data = raw_data.get("spec", {})
        if not isinstance(spec_data, dict):
            raise SpecLoadError(f"Spec section must be a mapping: {spec_path}")
    else:
        spec_data = raw_data

    validate_resource_name(resource_name)

    try:
        spec = NetworkSpec.model_validate(spec_data)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            msg = error["msg"]
            errors.append(f"  - {loc}: {msg}")

        error_list = "\n".join(errors)
        raise SpecLoadError(f"Validation failed for {spec_path}:\n{error_list}") from e

    logger.info("Loaded network spec '%s' from %s", resource_name, spec_path)
    return resource_name, spec


def load_state_document(state_path: Path) -> dict[str, Any] | None:
    """Load a persisted state document.

    Returns:
        The document, or None if no state has been persisted yet.

    Raises:
        SpecLoadError: If the file exists but cannot be parsed.
    """
    if not state_path.exists():
        return None

    content = _read_limited(state_path, MAX_STATE_FILE_SIZE_BYTES, "State")

    try:
        document = json.loads(content)
    except json.JSONDecodeError as e:
        raise SpecLoadError(f"Invalid JSON in {state_path}: {e}") from e

    if not isinstance(document, dict):
        raise SpecLoadError(f"State file must contain a JSON object: {state_path}")
    return document


def write_state_document(state_path: Path, document: dict[str, Any]) -> None:
    """Atomically persist a state document."""
    state_path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=state_path.parent, prefix=f".{state_path.name}.")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(document, handle, indent=2, sort_keys=True)
            handle.write("\n")
        os.replace(tmp_name, state_path)
    except OSError as e:
        Path(tmp_name).unlink(missing_ok=True)
        raise SpecLoadError(f"Failed to write state file {state_path}: {e}") from e


def remove_state_document(state_path: Path) -> None:
    """Forget persisted state after the resource has been destroyed."""
    state_path.unlink(missing_ok=True)
