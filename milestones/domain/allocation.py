"""Allocation math: per-item recompute rules and schedule aggregates.

Everything here is pure and synchronous. Functions return new items and
sets instead of mutating, and are cheap enough to run after every
keystroke.
"""

import math
from dataclasses import dataclass, replace
from typing import Any, Iterable, Optional, Sequence, Tuple

from milestones.domain.constants import (
    ALLOCATION_EPSILON,
    EDITABLE_FIELDS,
    SORT_ORDER_MAX,
    SORT_ORDER_MIN,
)
from milestones.domain.exceptions import ItemNotFoundError, ValidationError
from milestones.domain.models import (
    AllocationItem,
    AllocationMode,
    AllocationSummary,
    new_local_id,
)


def parse_amount(value: Any) -> float:
    """Parse a driving input the way a half-typed form field arrives.

    None, empty text, non-numeric text and non-finite numbers all become
    0.0. Never raises.
    """
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0

    return number if math.isfinite(number) else 0.0


def compute_amount(
    item: AllocationItem, grand_total: float, other_total: float = 0.0
) -> float:
    """Derive an item's amount from its mode and driving input.

    Args:
        item: The item to price
        grand_total: Schedule target total
        other_total: Sum of computed amounts of every other item (remaining mode)
    """
    if item.mode is AllocationMode.PERCENTAGE:
        percent = max(0.0, item.percent_of_total or 0.0)
        return percent / 100.0 * grand_total

    if item.mode is AllocationMode.FIXED:
        return max(0.0, item.fixed_amount or 0.0)

    return max(0.0, grand_total - other_total)


def recompute(
    item: AllocationItem, grand_total: float, other_total: float = 0.0
) -> AllocationItem:
    """Return the item with computed_amount brought up to date."""
    return replace(
        item, computed_amount=compute_amount(item, grand_total, other_total)
    )


def create_item(
    label: str,
    sort_order: int,
    due_on: Optional[str] = None,
) -> AllocationItem:
    """New unsaved item: percentage mode at 0%, dirty, local id."""
    return AllocationItem(
        id=new_local_id(),
        label=label,
        mode=AllocationMode.PERCENTAGE,
        percent_of_total=0.0,
        fixed_amount=None,
        computed_amount=0.0,
        sort_order=sort_order,
        due_on=due_on,
        dirty=True,
    )


def _switch_mode(item: AllocationItem, value: Any) -> AllocationItem:
    if isinstance(value, AllocationMode):
        mode = value
    else:
        try:
            mode = AllocationMode.from_string(str(value) if value is not None else "")
        except ValueError as e:
            raise ValidationError(str(e))

    # Only the new mode's driving field survives a switch
    if mode is AllocationMode.REMAINING:
        return replace(item, mode=mode, percent_of_total=None, fixed_amount=None)
    if mode is AllocationMode.PERCENTAGE:
        percent = item.percent_of_total if item.percent_of_total is not None else 0.0
        return replace(item, mode=mode, percent_of_total=percent, fixed_amount=None)
    fixed = item.fixed_amount if item.fixed_amount is not None else 0.0
    return replace(item, mode=mode, percent_of_total=None, fixed_amount=fixed)


def with_field(
    item: AllocationItem,
    field: str,
    value: Any,
    grand_total: float,
    other_total: float = 0.0,
) -> AllocationItem:
    """Return a copy of ``item`` with one field changed and its amount recomputed.

    The result is always dirty, even when the value did not change; the
    planner drops no-op edits later by comparing persisted fields.

    Raises:
        ValidationError: Unknown field, unparseable mode, or a driving value
            for a mode the item is not in
    """
    if field not in EDITABLE_FIELDS:
        raise ValidationError(f"Field '{field}' cannot be edited")

    if field == "label":
        updated = replace(item, label="" if value is None else str(value))
    elif field == "due_on":
        updated = replace(item, due_on=str(value) if value else None)
    elif field == "sort_order":
        sort_order = int(parse_amount(value))
        updated = replace(
            item, sort_order=max(SORT_ORDER_MIN, min(SORT_ORDER_MAX, sort_order))
        )
    elif field == "mode":
        updated = _switch_mode(item, value)
    elif field == "percent_of_total":
        if item.mode is not AllocationMode.PERCENTAGE:
            raise ValidationError(
                f"percent_of_total only applies in percentage mode, item is {item.mode.value}"
            )
        # Not clamped: out-of-range values are allowed while typing
        updated = replace(item, percent_of_total=parse_amount(value))
    else:
        if item.mode is not AllocationMode.FIXED:
            raise ValidationError(
                f"fixed_amount only applies in fixed mode, item is {item.mode.value}"
            )
        updated = replace(item, fixed_amount=max(0.0, parse_amount(value)))

    return replace(recompute(updated, grand_total, other_total), dirty=True)


def aggregate(
    items: Iterable[AllocationItem], grand_total: float
) -> AllocationSummary:
    """Sum visible items against the grand total."""
    visible = [item for item in items if not item.archived]
    allocated = sum(item.computed_amount for item in visible)
    percent = (allocated / grand_total) * 100.0 if grand_total > 0 else 0.0
    remaining = grand_total - allocated
    return AllocationSummary(
        allocated_total=allocated,
        allocated_percent=percent,
        remaining=remaining,
        is_complete=abs(remaining) < ALLOCATION_EPSILON,
        item_count=len(visible),
    )


@dataclass(frozen=True)
class AllocationSet:
    """Ordered, non-archived items of one schedule plus its grand total."""

    items: Tuple[AllocationItem, ...] = ()
    grand_total: float = 0.0

    @classmethod
    def of(cls, items: Sequence[AllocationItem], grand_total: float) -> "AllocationSet":
        return cls(
            items=tuple(item for item in items if not item.archived),
            grand_total=grand_total,
        )

    def __len__(self) -> int:
        return len(self.items)

    def summary(self) -> AllocationSummary:
        return aggregate(self.items, self.grand_total)

    def get(self, item_id: str) -> AllocationItem:
        for item in self.items:
            if item.id == item_id:
                return item
        raise ItemNotFoundError(item_id)

    def other_total(self, item_id: str) -> float:
        """Sum of computed amounts of every item except ``item_id``."""
        return sum(item.computed_amount for item in self.items if item.id != item_id)

    def remaining_items(self) -> Tuple[AllocationItem, ...]:
        return tuple(
            item for item in self.items if item.mode is AllocationMode.REMAINING
        )

    def with_item(self, updated: AllocationItem) -> "AllocationSet":
        """Replace the item with the same id, keeping its position."""
        self.get(updated.id)
        return replace(
            self,
            items=tuple(updated if item.id == updated.id else item for item in self.items),
        )

    def appended(self, item: AllocationItem) -> "AllocationSet":
        return replace(self, items=self.items + (item,))

    def without(self, item_id: str) -> "AllocationSet":
        self.get(item_id)
        return replace(
            self, items=tuple(item for item in self.items if item.id != item_id)
        )

    def recompute_remaining(self) -> "AllocationSet":
        """Re-derive every remaining-mode item against the current others.

        Items are processed in display order; with several remaining items
        each sees the amounts already assigned to the ones before it. An
        item only turns dirty when its amount actually moves.
        """
        current = self
        for item in self.remaining_items():
            amount = compute_amount(item, self.grand_total, current.other_total(item.id))
            if amount != item.computed_amount:
                current = current.with_item(
                    replace(item, computed_amount=amount, dirty=True)
                )
        return current

    def with_grand_total(self, grand_total: float) -> "AllocationSet":
        """Apply a new grand total: percentage items re-derive, fixed items do not."""
        items = []
        for item in self.items:
            if item.mode is AllocationMode.PERCENTAGE:
                amount = compute_amount(item, grand_total)
                if amount != item.computed_amount:
                    item = replace(item, computed_amount=amount, dirty=True)
            items.append(item)
        return AllocationSet(items=tuple(items), grand_total=grand_total).recompute_remaining()
