"""Field-level diffing between desired configuration and observed state.

Each network field carries a rule describing how its values compare and
whether a difference can be submitted, must be refused, or is ignored.

COMPARISON RULES:
- Text: exact equality
- Optional text: None and "" are equivalent
- Unordered set: order-insensitive, None and empty are equivalent
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .models import NetworkSpec, NetworkState, NetworkUpdateRequest

logger = logging.getLogger(__name__)


class ComparisonType(str, Enum):
    """How two values of a field are compared."""

    TEXT = "text"
    OPTIONAL_TEXT = "optional_text"
    UNORDERED_SET = "unordered_set"


class FieldPolicy(str, Enum):
    """What a detected difference leads to."""

    # Placed into the update request
    SUBMIT = "submit"

    # Fixed at creation; a difference is a configuration violation
    IMMUTABLE = "immutable"


@dataclass(frozen=True)
class FieldRule:
    """Diff rule for a single field.

    Attributes:
        name: Field name on NetworkSpec / NetworkState.
        comparison: How values compare.
        policy: What a difference leads to.
        managed_when_absent: If False, a None desired value means the field
            is not managed and never produces a difference.
    """

    name: str
    comparison: ComparisonType
    policy: FieldPolicy
    managed_when_absent: bool = True


NETWORK_FIELD_RULES: tuple[FieldRule, ...] = (
    FieldRule("org_id", ComparisonType.TEXT, FieldPolicy.IMMUTABLE),
    FieldRule("product_types", ComparisonType.UNORDERED_SET, FieldPolicy.IMMUTABLE),
    FieldRule("name", ComparisonType.TEXT, FieldPolicy.SUBMIT),
    FieldRule("time_zone", ComparisonType.TEXT, FieldPolicy.SUBMIT),
    FieldRule(
        "notes", ComparisonType.OPTIONAL_TEXT, FieldPolicy.SUBMIT, managed_when_absent=False
    ),
    FieldRule(
        "tags", ComparisonType.UNORDERED_SET, FieldPolicy.SUBMIT, managed_when_absent=False
    ),
)


def normalize(value: Any, comparison: ComparisonType) -> Any:
    """Normalize a value so equivalent forms compare equal."""
    match comparison:
        case ComparisonType.OPTIONAL_TEXT:
            return value or None
        case ComparisonType.UNORDERED_SET:
            if not value:
                return None
            return frozenset(value)
        case _:
            return value


def is_zero(value: Any) -> bool:
    """True for values the wire encoding omits (None, "", empty collection)."""
    return value is None or value == "" or (hasattr(value, "__len__") and len(value) == 0)


@dataclass(frozen=True)
class FieldChange:
    """A single differing field."""

    field: str
    before: Any
    after: Any
    policy: FieldPolicy


@dataclass
class NetworkDiff:
    """Result of comparing a plan against observed state."""

    changes: list[FieldChange] = field(default_factory=list)

    @property
    def submittable(self) -> list[FieldChange]:
        return [c for c in self.changes if c.policy == FieldPolicy.SUBMIT]

    @property
    def immutable(self) -> list[FieldChange]:
        return [c for c in self.changes if c.policy == FieldPolicy.IMMUTABLE]

    @property
    def unexpressible(self) -> list[FieldChange]:
        """Submittable changes to a zero value, which the payload cannot carry."""
        return [c for c in self.submittable if is_zero(c.after)]

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)

    def to_update_request(self) -> NetworkUpdateRequest:
        """Emit the partial update request for the submittable changes."""
        values: dict[str, Any] = {}
        for change in self.submittable:
            if is_zero(change.after):
                continue
            if isinstance(change.after, frozenset):
                values[change.field] = tuple(sorted(change.after))
            else:
                values[change.field] = change.after
        return NetworkUpdateRequest(**values)


def _desired_value(plan: NetworkSpec, rule: FieldRule) -> Any:
    if rule.name == "product_types":
        return plan.effective_product_types
    return getattr(plan, rule.name)


def diff_network(plan: NetworkSpec, state: NetworkState) -> NetworkDiff:
    """Compute the per-field differences between plan and observed state.

    Fields whose observed value is unknown are only compared when they can be
    submitted; an unknown immutable field cannot be checked.

    Args:
        plan: Desired configuration.
        state: Last observed state.

    Returns:
        NetworkDiff listing every differing field.
    """
    result = NetworkDiff()

    for rule in NETWORK_FIELD_RULES:
        desired = _desired_value(plan, rule)
        observed = getattr(state, rule.name)

        if desired is None and not rule.managed_when_absent:
            continue
        if rule.policy == FieldPolicy.IMMUTABLE and not observed:
            continue

        if normalize(desired, rule.comparison) == normalize(observed, rule.comparison):
            continue

        result.changes.append(
            FieldChange(field=rule.name, before=observed, after=desired, policy=rule.policy)
        )

    if result.has_changes:
        logger.debug(
            "Differences detected",
            extra={
                "network_id": state.id,
                "fields": [c.field for c in result.changes],
            },
        )
    return result
