"""Audit records for reconciliation transitions.

Every transition (create, read, update, delete, import) is stamped with a
record answering:
- "Which remote resource was touched?"
- "Which fields were submitted?"
- "Did it succeed, and if not, why?"
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

# Version is set at build time or falls back to dev
CONNECTOR_VERSION = os.environ.get("CONNECTOR_VERSION", "dev")


@dataclass
class TransitionRecord:
    """Audit record for a single transition."""

    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    connector_version: str = CONNECTOR_VERSION

    resource_type: str = ""
    resource_name: str = ""
    resource_id: str = ""
    operation: str = ""

    submitted_fields: list[str] = field(default_factory=list)
    remote_call: bool = False

    duration_seconds: float = 0.0

    error: str | None = None
    error_type: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = asdict(self)
        result["timestamp"] = self.timestamp.isoformat()
        return result


class ProvenanceLogger:
    """Logs transition records through the structured logger."""

    def __init__(self) -> None:
        self._instance_id = os.environ.get("CONNECTOR_INSTANCE_ID", "")

    def log_transition(self, record: TransitionRecord) -> None:
        """Log a completed transition record.

        Failures are logged at ERROR, transitions that reached the remote API
        at INFO, local no-ops at DEBUG.
        """
        if record.error:
            log_level = logging.ERROR
        elif record.remote_call:
            log_level = logging.INFO
        else:
            log_level = logging.DEBUG

        logger.log(
            log_level,
            "Reconciliation transition",
            extra={
                "provenance": record.to_dict(),
                "instance_id": self._instance_id,
                "resource_type": record.resource_type,
                "resource_id": record.resource_id,
                "operation": record.operation,
                "submitted_fields": record.submitted_fields,
                "duration_seconds": record.duration_seconds,
            },
        )


# Global singleton for provenance logging
_provenance_logger: ProvenanceLogger | None = None


def get_provenance_logger() -> ProvenanceLogger:
    """Get the global provenance logger instance."""
    global _provenance_logger
    if _provenance_logger is None:
        _provenance_logger = ProvenanceLogger()
    return _provenance_logger
