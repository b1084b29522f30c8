"""
Domain Models - schedule items and their derived summaries.

Items are frozen: every edit produces a new AllocationItem, so the
reconciliation planner can compare old and new values without copies.
"""

import uuid
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from milestones.domain.constants import LOCAL_ID_PREFIX


class AllocationMode(str, Enum):
    """How an item's computed amount is derived."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"
    REMAINING = "remaining"

    @classmethod
    def from_string(cls, value: str) -> "AllocationMode":
        """Create AllocationMode from string (case-insensitive).

        Raises:
            ValueError: If the mode is not supported
        """
        if not value:
            raise ValueError("Invalid allocation mode: empty string")

        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Invalid allocation mode: {value}")

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Check if string is a valid allocation mode (case-insensitive)."""
        if not value:
            return False
        try:
            cls.from_string(value)
            return True
        except ValueError:
            return False


def new_local_id() -> str:
    """Generate an id for an item the store has not seen yet."""
    return f"{LOCAL_ID_PREFIX}{uuid.uuid4().hex}"


def is_local_id(item_id: str) -> bool:
    """True for editor-generated ids; store ids are decimal row ids."""
    return item_id.startswith(LOCAL_ID_PREFIX)


@dataclass(frozen=True)
class AllocationItem:
    """One milestone row: a share of the schedule's grand total."""

    id: str
    label: str
    mode: AllocationMode = AllocationMode.PERCENTAGE
    percent_of_total: Optional[float] = None
    fixed_amount: Optional[float] = None
    computed_amount: float = 0.0
    sort_order: int = 0
    due_on: Optional[str] = None  # ISO date, opaque to the engine
    archived: bool = False
    dirty: bool = False  # Transient, never persisted

    @property
    def is_local(self) -> bool:
        return is_local_id(self.id)

    def persisted_fields(self) -> Tuple[Any, ...]:
        """Values the store keeps for this item, in a comparable form."""
        return (
            self.label,
            self.mode,
            self.percent_of_total,
            self.fixed_amount,
            self.computed_amount,
            self.sort_order,
            self.due_on,
        )

    def differs_from(self, other: "AllocationItem") -> bool:
        return self.persisted_fields() != other.persisted_fields()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["mode"] = self.mode.value
        return data


@dataclass(frozen=True)
class AllocationSummary:
    """Aggregate view of a schedule against its grand total."""

    allocated_total: float
    allocated_percent: float
    remaining: float
    is_complete: bool
    item_count: int
