"""Dirty-tracking edit buffer for one open schedule editor.

The buffer is the single source of truth for what the operator currently
sees. Server refreshes only replace it when doing so cannot discard
unsaved work, and saves only advance it after the store confirmed them.
"""

import logging
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from milestones.domain.allocation import AllocationSet, create_item, with_field
from milestones.domain.exceptions import ValidationError
from milestones.domain.models import AllocationItem, AllocationMode, AllocationSummary

logger = logging.getLogger(__name__)


def _clean(items: Sequence[AllocationItem]) -> Tuple[AllocationItem, ...]:
    return tuple(
        item if not item.dirty else replace(item, dirty=False)
        for item in items
        if not item.archived
    )


class EditBuffer:
    """Local, in-editor copy of a schedule's items.

    Attributes:
        is_dirty: True once anything changed since the last load or save
        revision: Bumped by every mutation and every accepted save; lets
            callers detect changes that landed while an async operation was
            in flight
    """

    def __init__(self, grand_total: float = 0.0, label_prefix: str = "Milestone"):
        self._set = AllocationSet(grand_total=grand_total)
        self._baseline: Tuple[AllocationItem, ...] = ()
        self._label_prefix = label_prefix
        self.is_dirty = False
        self.revision = 0

    @property
    def local_items(self) -> Tuple[AllocationItem, ...]:
        return self._set.items

    @property
    def baseline(self) -> Tuple[AllocationItem, ...]:
        """Last server-confirmed items, the reference point for diffs."""
        return self._baseline

    @property
    def grand_total(self) -> float:
        return self._set.grand_total

    def summary(self) -> AllocationSummary:
        return self._set.summary()

    def get(self, item_id: str) -> AllocationItem:
        return self._set.get(item_id)

    def initialize(self, server_items: Sequence[AllocationItem]) -> None:
        """Load the first server read verbatim."""
        items = _clean(server_items)
        self._set = AllocationSet(items=items, grand_total=self._set.grand_total)
        self._baseline = items
        self.is_dirty = False
        logger.debug(f"Edit buffer initialized with {len(items)} items")

    def merge_server_refresh(
        self,
        server_items: Sequence[AllocationItem],
        read_revision: Optional[int] = None,
    ) -> bool:
        """Adopt a background refetch unless it could clobber local state.

        Skipped when there are unsaved edits, when the refetch came back
        empty while the buffer is not (a transient empty read is not the
        same as every item having been deleted), and when ``read_revision``
        no longer matches: an edit or a save landed while the read was
        pending, so the rows may predate it.

        Args:
            server_items: Rows returned by the store
            read_revision: ``revision`` taken just before the read started

        Returns:
            True if the refresh replaced the buffer
        """
        if self.is_dirty:
            logger.info("Server refresh skipped: buffer has unsaved edits")
            return False

        if read_revision is not None and read_revision != self.revision:
            logger.info(
                f"Server refresh skipped: buffer moved from revision {read_revision} "
                f"to {self.revision} during the read"
            )
            return False

        items = _clean(server_items)
        if not items and self._set.items:
            logger.warning(
                f"Server refresh skipped: empty read while {len(self._set.items)} items are loaded"
            )
            return False

        self._set = AllocationSet(items=items, grand_total=self._set.grand_total)
        self._baseline = items
        self.is_dirty = False
        self.revision += 1
        return True

    def _commit(self, new_set: AllocationSet) -> None:
        self._set = new_set.recompute_remaining()
        self.is_dirty = True
        self.revision += 1

    def add_item(
        self, label: Optional[str] = None, due_on: Optional[str] = None
    ) -> AllocationItem:
        """Append a new unsaved item at the end of the schedule."""
        count = len(self._set)
        if label is None:
            label = f"{self._label_prefix} {count + 1}"
        item = create_item(label=label, sort_order=count, due_on=due_on)
        self._commit(self._set.appended(item))
        return self._set.get(item.id)

    def update_item(self, item_id: str, field: str, value: Any) -> AllocationItem:
        """Set one field on an item and recompute its amount.

        Raises:
            ItemNotFoundError: No item with that id
            ValidationError: The edit is not allowed (see with_field), or it
                would put a second item into remaining mode
        """
        item = self._set.get(item_id)

        if field == "mode" and self._switches_to_second_remaining(item, value):
            raise ValidationError("Only one item per schedule can use remaining mode")

        updated = with_field(
            item,
            field,
            value,
            grand_total=self._set.grand_total,
            other_total=self._set.other_total(item_id),
        )
        self._commit(self._set.with_item(updated))
        return self._set.get(item_id)

    def _switches_to_second_remaining(self, item: AllocationItem, value: Any) -> bool:
        if item.mode is AllocationMode.REMAINING:
            return False
        if not isinstance(value, AllocationMode):
            if not isinstance(value, str) or not AllocationMode.is_valid(value):
                return False
            value = AllocationMode.from_string(value)
        if value is not AllocationMode.REMAINING:
            return False
        return any(other.id != item.id for other in self._set.remaining_items())

    def remove_item(self, item_id: str) -> None:
        """Drop an item; a persisted one gets archived by the next save."""
        self._commit(self._set.without(item_id))

    def set_grand_total(self, grand_total: float) -> bool:
        """Apply a parent total change to percentage and remaining items.

        Returns:
            True if any item amount changed
        """
        if grand_total == self._set.grand_total:
            return False

        updated = self._set.with_grand_total(grand_total)
        changed = any(
            new.computed_amount != old.computed_amount
            for new, old in zip(updated.items, self._set.items)
        )
        self._set = updated
        if changed:
            self.is_dirty = True
            self.revision += 1
        return changed

    def accept_saved(
        self,
        new_baseline: Sequence[AllocationItem],
        id_map: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Advance the baseline after a successful save.

        Local ids are swapped for the server ids in ``id_map``. Items that
        now match the baseline lose their dirty flag. Anything edited while
        the save was in flight, or not confirmed by the store, stays dirty
        and is picked up by the next save.
        """
        id_map = id_map or {}
        self._baseline = _clean(new_baseline)
        baseline_by_id: Dict[str, AllocationItem] = {b.id: b for b in self._baseline}

        items: List[AllocationItem] = []
        for item in self._set.items:
            if item.id in id_map:
                item = replace(item, id=id_map[item.id])
            confirmed = baseline_by_id.get(item.id)
            clean = confirmed is not None and not item.differs_from(confirmed)
            items.append(replace(item, dirty=not clean))

        self._set = replace(self._set, items=tuple(items))
        self.revision += 1
        local_ids = {item.id for item in items}
        self.is_dirty = any(item.dirty for item in items) or any(
            item_id not in local_ids for item_id in baseline_by_id
        )
        if self.is_dirty:
            logger.info("Save accepted with edits still pending")

    def snapshot(self) -> List[Dict[str, Any]]:
        """Plain-dict copy of the local items, for manual recovery."""
        return [item.to_dict() for item in self._set.items]
