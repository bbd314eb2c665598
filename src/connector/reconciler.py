"""Reconciliation engine for declaratively managed resources.

Each managed resource instance moves through a three-state machine:

    Absent --create--> Present --delete--> Absent
    Present --update--> Present   (write path, plan differs from state)
    Present --read----> Present   (refresh, remote truth merged into state)

The Reconciler drives one transition per call and converts failures into
diagnostics. A transition either fully succeeds (new state returned) or fully
fails (prior state returned unchanged), so any failed transition can be
retried as-is.

MERGE POLICIES:
- Create and update trust the plan: submitted values are recorded without
  re-reading the remote record, so mid-apply drift shows up on the next refresh.
- Refresh merges remote values except the URL, which is sticky once known.
- Empty product types or tags on refresh mean "not reported", not "cleared".
- Product types are fixed at creation; a planned change is refused locally.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from .diff import FieldChange, NetworkDiff, diff_network, is_zero
from .gateway import DecodeError, GatewayError, MerakiGateway, NotFoundError
from .models import (
    ALL_PRODUCT_TYPES,
    Network,
    NetworkCreateRequest,
    NetworkSpec,
    NetworkState,
)
from .provenance import TransitionRecord, get_provenance_logger
from .security import log_security_audit_event

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    """Transitions the reconciler can perform."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    IMPORT = "import"
    NO_OP = "no-op"


MUTATING_OPERATIONS = frozenset({Operation.CREATE, Operation.UPDATE, Operation.DELETE})


class Severity(str, Enum):
    """Diagnostic severities reported to the host."""

    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Diagnostic:
    """Structured diagnostic handed back to the host orchestrator."""

    severity: Severity
    summary: str
    detail: str = ""


class ConfigurationViolation(Exception):
    """Desired state asks for a change the remote model cannot express.

    Raised before any remote call. Not transient: the desired configuration
    has to change.
    """

    def __init__(self, changes: list[FieldChange]) -> None:
        self.changes = changes
        super().__init__("; ".join(_describe_violation(c) for c in changes))


def _render(value: Any) -> str:
    if isinstance(value, frozenset):
        return str(sorted(value))
    return repr(value)


def _describe_violation(change: FieldChange) -> str:
    if is_zero(change.after):
        return (
            f"cannot clear {change.field} (currently {_render(change.before)}): "
            "empty values are omitted from partial updates"
        )
    return (
        f"cannot change {change.field} from {_render(change.before)} to "
        f"{_render(change.after)}: {change.field} is fixed at creation"
    )


# =============================================================================
# Resource capability
# =============================================================================


class Resource(ABC):
    """A remotely managed resource type with the four lifecycle transitions."""

    type_name: str = ""

    @abstractmethod
    def create_payload(self, plan: Any) -> dict[str, Any]:
        """Wire payload the create transition would submit."""

    @abstractmethod
    def update_payload(self, plan: Any, state: Any) -> dict[str, Any]:
        """Wire payload the update transition would submit.

        Raises:
            ConfigurationViolation: If the plan cannot be applied by an update.
        """

    @abstractmethod
    def create(self, plan: Any) -> Any:
        """Absent -> Present. Returns the new observed state."""

    @abstractmethod
    def read(self, state: Any) -> Any:
        """Present -> Present. Returns state merged with remote truth."""

    @abstractmethod
    def update(self, plan: Any, state: Any) -> Any:
        """Present -> Present. Returns state after the partial update."""

    @abstractmethod
    def delete(self, state: Any) -> None:
        """Present -> Absent."""

    @abstractmethod
    def import_state(self, identifier: str, **scope: str) -> Any:
        """Attach an existing remote resource by identifier and refresh it."""

    @staticmethod
    def identifier(state: Any) -> str | None:
        return getattr(state, "id", None) or None


def merge_observed(state: NetworkState, network: Network) -> NetworkState:
    """Merge a freshly read remote record into observed state.

    Args:
        state: Current observed state.
        network: Record returned by the gateway for the same identifier.

    Returns:
        New state. The identifier and a known URL are never replaced.
    """
    if network.notes:
        notes: str | None = network.notes
    else:
        notes = None if state.notes is None else ""

    return replace(
        state,
        org_id=network.organization_id or state.org_id,
        name=network.name or state.name,
        time_zone=network.time_zone or state.time_zone,
        notes=notes,
        product_types=network.product_types or state.product_types,
        tags=network.tags or state.tags,
        url=state.url or network.url or None,
        enrollment_string=network.enrollment_string,
        is_bound_to_config_template=network.is_bound_to_config_template,
    )


class NetworkResource(Resource):
    """Network lifecycle against the Dashboard API."""

    type_name = "network"

    def __init__(self, gateway: MerakiGateway) -> None:
        self._gateway = gateway

    def build_create_request(self, plan: NetworkSpec) -> NetworkCreateRequest:
        """Build the create request, expanding absent product types to all."""
        product_types = plan.product_types or ALL_PRODUCT_TYPES
        return NetworkCreateRequest(
            name=plan.name,
            time_zone=plan.time_zone,
            product_types=tuple(sorted(product_types)),
            tags=tuple(sorted(plan.tags)) if plan.tags else None,
            notes=plan.notes or None,
        )

    def create_payload(self, plan: NetworkSpec) -> dict[str, Any]:
        return self.build_create_request(plan).to_payload()

    def checked_diff(self, plan: NetworkSpec, state: NetworkState) -> NetworkDiff:
        """Diff plan against state, refusing changes an update cannot carry."""
        diff = diff_network(plan, state)
        violations = diff.immutable + diff.unexpressible
        if violations:
            raise ConfigurationViolation(violations)
        return diff

    def update_payload(self, plan: NetworkSpec, state: NetworkState) -> dict[str, Any]:
        return self.checked_diff(plan, state).to_update_request().to_payload()

    def create(self, plan: NetworkSpec) -> NetworkState:
        request = self.build_create_request(plan)
        logger.info(
            "Creating network",
            extra={
                "org_id": plan.org_id,
                "network_name": plan.name,
                "time_zone": plan.time_zone,
            },
        )

        network = self._gateway.create_network(plan.org_id, request)

        logger.info(
            "Created network",
            extra={"network_id": network.id, "network_url": network.url},
        )
        return NetworkState(
            id=network.id,
            org_id=plan.org_id,
            name=plan.name,
            time_zone=plan.time_zone,
            product_types=frozenset(request.product_types),
            tags=plan.tags,
            notes=plan.notes,
            url=network.url or None,
            enrollment_string=network.enrollment_string,
            is_bound_to_config_template=network.is_bound_to_config_template,
        )

    def read(self, state: NetworkState) -> NetworkState:
        network = self._gateway.get_network(state.id, org_id=state.org_id or None)
        if network.id != state.id:
            raise DecodeError(
                f"Read of network {state.id} returned a different identifier {network.id}"
            )
        return merge_observed(state, network)

    def update(self, plan: NetworkSpec, state: NetworkState) -> NetworkState:
        request = self.checked_diff(plan, state).to_update_request()
        if request.is_empty():
            logger.info("No changes to submit", extra={"network_id": state.id})
            return state

        network = self._gateway.update_network(state.id, request)

        return replace(
            state,
            name=plan.name,
            time_zone=plan.time_zone,
            notes=plan.notes if plan.notes is not None else state.notes,
            tags=plan.tags if plan.tags is not None else state.tags,
            url=state.url or network.url or None,
        )

    def delete(self, state: NetworkState) -> None:
        self._gateway.delete_network(state.id)
        logger.info("Deleted network", extra={"network_id": state.id})

    def import_state(self, identifier: str, **scope: str) -> NetworkState:
        return self.read(NetworkState(id=identifier, org_id=scope.get("org_id", "")))


# =============================================================================
# Reconciliation driver
# =============================================================================


@dataclass
class ReconcileResult:
    """Outcome of a single reconciliation call."""

    operation: Operation
    resource_id: str | None = None
    state: Any = None
    diagnostics: list[Diagnostic] = field(default_factory=list)
    submitted: dict[str, Any] = field(default_factory=dict)
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    error: Exception | None = None

    @property
    def duration_seconds(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    @property
    def success(self) -> bool:
        return not any(d.severity == Severity.ERROR for d in self.diagnostics)


class Reconciler:
    """Drives one resource instance toward its desired configuration.

    The resource (and through it the gateway and credential) is injected once
    and shared by reference. The reconciler holds no per-instance state, so
    independent instances can be reconciled concurrently by the host.
    """

    def __init__(self, resource: Resource, name: str = "") -> None:
        self._resource = resource
        self._name = name
        self._provenance = get_provenance_logger()

    @property
    def resource(self) -> Resource:
        return self._resource

    def decide(self, desired: Any, observed: Any) -> tuple[Operation, dict[str, Any]]:
        """Pick the transition and the payload it would submit.

        Raises:
            ConfigurationViolation: If an update cannot express the plan.
        """
        present = observed is not None and self._resource.identifier(observed)
        if desired is None:
            return (Operation.DELETE, {}) if present else (Operation.NO_OP, {})
        if not present:
            return Operation.CREATE, self._resource.create_payload(desired)
        payload = self._resource.update_payload(desired, observed)
        if not payload:
            return Operation.NO_OP, {}
        return Operation.UPDATE, payload

    def reconcile(self, desired: Any, observed: Any) -> ReconcileResult:
        """Move observed state one transition toward desired configuration.

        Args:
            desired: Desired configuration, or None to delete.
            observed: Last observed state, or None if absent.

        Returns:
            ReconcileResult with the new state, or the unchanged prior state
            and an error diagnostic on failure.
        """
        resource_id = self._resource.identifier(observed) if observed is not None else None
        try:
            operation, payload = self.decide(desired, observed)
        except ConfigurationViolation as e:
            return self._refuse(Operation.UPDATE, resource_id, observed, e)

        if operation == Operation.NO_OP:
            return self._run(operation, resource_id, observed, payload, lambda: observed)
        if operation == Operation.CREATE:
            return self._run(
                operation, None, observed, payload, lambda: self._resource.create(desired)
            )
        if operation == Operation.UPDATE:
            return self._run(
                operation,
                resource_id,
                observed,
                payload,
                lambda: self._resource.update(desired, observed),
            )
        return self._run(operation, resource_id, observed, payload, lambda: self._delete(observed))

    def refresh(self, observed: Any, drop_missing: bool = False) -> ReconcileResult:
        """Re-read remote truth into observed state.

        Args:
            observed: Last observed state.
            drop_missing: If True, a resource that no longer exists remotely
                is reported with a warning and removed from state.
        """
        resource_id = self._resource.identifier(observed)
        result = self._run(
            Operation.READ, resource_id, observed, {}, lambda: self._resource.read(observed)
        )
        if drop_missing and isinstance(result.error, NotFoundError):
            result.state = None
            result.error = None
            result.diagnostics = [
                Diagnostic(
                    Severity.WARNING,
                    f"{self._label} no longer exists",
                    f"{self._label} {resource_id} was not found and has been removed from state",
                )
            ]
        return result

    def import_resource(self, identifier: str, **scope: str) -> ReconcileResult:
        """Attach an existing remote resource by identifier."""
        return self._run(
            Operation.IMPORT,
            identifier,
            None,
            {},
            lambda: self._resource.import_state(identifier, **scope),
        )

    # -------------------------------------------------------------------------

    @property
    def _label(self) -> str:
        return self._resource.type_name.capitalize() or "Resource"

    def _delete(self, observed: Any) -> None:
        self._resource.delete(observed)
        return None

    def _refuse(
        self,
        operation: Operation,
        resource_id: str | None,
        observed: Any,
        error: ConfigurationViolation,
    ) -> ReconcileResult:
        result = ReconcileResult(
            operation=operation, resource_id=resource_id, state=observed, error=error
        )
        result.diagnostics.append(
            Diagnostic(Severity.ERROR, "Invalid configuration change", str(error))
        )
        result.end_time = datetime.now(UTC)
        logger.error(
            "Configuration violation",
            extra={"resource_id": resource_id, "fields": [c.field for c in error.changes]},
        )
        self._record(result, remote_call=False, error=error)
        return result

    def _run(
        self,
        operation: Operation,
        resource_id: str | None,
        observed: Any,
        payload: dict[str, Any],
        transition: Any,
    ) -> ReconcileResult:
        result = ReconcileResult(
            operation=operation, resource_id=resource_id, state=observed, submitted=payload
        )
        started = time.monotonic()
        error: Exception | None = None

        try:
            new_state = transition()
        except ConfigurationViolation as e:
            error = e
            result.diagnostics.append(
                Diagnostic(Severity.ERROR, "Invalid configuration change", str(e))
            )
        except GatewayError as e:
            error = e
            result.diagnostics.append(
                Diagnostic(
                    Severity.ERROR,
                    f"Failed to {operation.value} {self._resource.type_name}",
                    str(e),
                )
            )
        else:
            result.state = new_state
            if operation != Operation.DELETE:
                result.resource_id = self._resource.identifier(new_state) or resource_id

        result.end_time = datetime.now(UTC)
        result.error = error
        if operation in MUTATING_OPERATIONS:
            log_security_audit_event(
                "mutation",
                target_resource=f"{self._resource.type_name}/{result.resource_id or 'new'}",
                action=operation.value,
                result="failure" if error else "success",
            )
        self._record(
            result,
            remote_call=operation != Operation.NO_OP,
            error=error,
            duration=time.monotonic() - started,
        )
        return result

    def _record(
        self,
        result: ReconcileResult,
        *,
        remote_call: bool,
        error: Exception | None,
        duration: float = 0.0,
    ) -> None:
        self._provenance.log_transition(
            TransitionRecord(
                resource_type=self._resource.type_name,
                resource_name=self._name,
                resource_id=result.resource_id or "",
                operation=result.operation.value,
                submitted_fields=sorted(result.submitted),
                remote_call=remote_call,
                duration_seconds=duration,
                error=str(error) if error else None,
                error_type=type(error).__name__ if error else None,
            )
        )
