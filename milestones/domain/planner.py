"""Reconciliation planning: what the store must do to match the buffer."""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Sequence, Tuple

from milestones.domain.models import AllocationItem


@dataclass(frozen=True)
class ReconciliationPlan:
    """Create/update/archive partition between local items and the baseline.

    ``local_order`` keeps the ids of the local items in display order so the
    post-save baseline can be rebuilt in the order the operator sees.
    """

    to_create: Tuple[AllocationItem, ...] = ()
    to_update: Tuple[AllocationItem, ...] = ()
    to_archive: Tuple[str, ...] = ()
    local_order: Tuple[str, ...] = field(default=(), compare=False)

    @property
    def is_empty(self) -> bool:
        return not (self.to_create or self.to_update or self.to_archive)

    @property
    def needs_save(self) -> bool:
        return not self.is_empty

    def describe(self) -> str:
        return (
            f"create={len(self.to_create)} update={len(self.to_update)} "
            f"archive={len(self.to_archive)}"
        )


def plan(
    local_items: Sequence[AllocationItem], baseline: Sequence[AllocationItem]
) -> ReconciliationPlan:
    """Diff the local items against the last server snapshot.

    Pure and cheap; safe to call on every render to drive a "needs save"
    indicator. Items flagged dirty but equal to their baseline row are not
    updated.
    """
    baseline_by_id: Dict[str, AllocationItem] = {item.id: item for item in baseline}
    local_ids = {item.id for item in local_items}

    to_create: List[AllocationItem] = []
    to_update: List[AllocationItem] = []
    for item in local_items:
        persisted = baseline_by_id.get(item.id)
        if persisted is None:
            to_create.append(item)
        elif item.differs_from(persisted):
            to_update.append(item)

    to_archive = tuple(item.id for item in baseline if item.id not in local_ids)

    return ReconciliationPlan(
        to_create=tuple(to_create),
        to_update=tuple(to_update),
        to_archive=to_archive,
        local_order=tuple(item.id for item in local_items),
    )


def apply_plan(
    baseline: Sequence[AllocationItem], reconciliation: ReconciliationPlan
) -> Tuple[AllocationItem, ...]:
    """Replay a plan against a snapshot, in the plan's local order.

    Created items keep their local ids. Used to check that a plan fully
    describes the move from the baseline to the local state.
    """
    archived = set(reconciliation.to_archive)
    items: Dict[str, AllocationItem] = {
        item.id: item for item in baseline if item.id not in archived
    }
    for item in reconciliation.to_update:
        items[item.id] = item
    for item in reconciliation.to_create:
        items[item.id] = item

    order = reconciliation.local_order or tuple(items)
    return tuple(replace(items[item_id], dirty=False) for item_id in order if item_id in items)
