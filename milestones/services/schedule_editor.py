"""Editor session for one payment schedule.

Ties the edit buffer, the planner and the persistence coordinator
together behind the operations a form layer calls. One instance per open
editor; instances are never shared between operators.
"""

import json
import logging
from typing import Any, Optional, Tuple

from milestones.config import settings
from milestones.core.events import ScheduleEvent, emit
from milestones.domain import planner
from milestones.domain.edit_buffer import EditBuffer
from milestones.domain.exceptions import (
    EditorLockedError,
    SaveError,
    SaveInProgressError,
)
from milestones.domain.models import AllocationItem, AllocationSummary
from milestones.domain.planner import ReconciliationPlan
from milestones.domain.repositories.protocols import IScheduleItemStore
from milestones.domain.responses import SaveResult
from milestones.services.persistence_coordinator import PersistenceCoordinator

logger = logging.getLogger(__name__)


class ScheduleEditor:
    """Open editor over one schedule's milestone items.

    Attributes:
        is_locked: Locked schedules (e.g. of an approved proposal) reject edits
        is_saving: True while a save is in flight
        last_error: Error of the last failed save; stays until dismissed or
            a later save succeeds
    """

    def __init__(
        self,
        store: IScheduleItemStore,
        schedule_id: str,
        grand_total: float = 0.0,
        is_locked: bool = False,
        label_prefix: Optional[str] = None,
    ):
        self.schedule_id = schedule_id
        self.buffer = EditBuffer(
            grand_total=grand_total,
            label_prefix=label_prefix or settings.default_item_label_prefix,
        )
        self.is_locked = is_locked
        self.is_saving = False
        self.last_error: Optional[SaveError] = None
        self._store = store
        self._coordinator = PersistenceCoordinator(store, schedule_id)

    @classmethod
    async def load(
        cls,
        store: IScheduleItemStore,
        schedule_id: str,
        grand_total: float,
        is_locked: bool = False,
    ) -> "ScheduleEditor":
        """Open an editor on the schedule's current server items."""
        editor = cls(store, schedule_id, grand_total=grand_total, is_locked=is_locked)
        editor.buffer.initialize(await store.list(schedule_id))
        editor._notify_totals()
        return editor

    # Read side

    @property
    def items(self) -> Tuple[AllocationItem, ...]:
        return self.buffer.local_items

    @property
    def grand_total(self) -> float:
        return self.buffer.grand_total

    def summary(self) -> AllocationSummary:
        return self.buffer.summary()

    def plan(self) -> ReconciliationPlan:
        return planner.plan(self.buffer.local_items, self.buffer.baseline)

    @property
    def needs_save(self) -> bool:
        return self.plan().needs_save

    # Write side

    def _check_unlocked(self) -> None:
        if self.is_locked:
            raise EditorLockedError(self.schedule_id)

    def _notify_totals(self) -> None:
        summary = self.buffer.summary()
        emit(
            ScheduleEvent.TOTALS_CHANGED,
            schedule_id=self.schedule_id,
            allocated_total=summary.allocated_total,
            item_count=summary.item_count,
        )

    def add_item(
        self, label: Optional[str] = None, due_on: Optional[str] = None
    ) -> AllocationItem:
        self._check_unlocked()
        item = self.buffer.add_item(label=label, due_on=due_on)
        self._notify_totals()
        return item

    def update_item(self, item_id: str, field: str, value: Any) -> AllocationItem:
        self._check_unlocked()
        item = self.buffer.update_item(item_id, field, value)
        self._notify_totals()
        return item

    def remove_item(self, item_id: str) -> None:
        self._check_unlocked()
        self.buffer.remove_item(item_id)
        self._notify_totals()

    def set_grand_total(self, grand_total: float) -> bool:
        """Parent total changed. Applied even when locked: it is external truth."""
        changed = self.buffer.set_grand_total(grand_total)
        self._notify_totals()
        return changed

    async def refresh(self) -> bool:
        """Refetch from the store and merge if it cannot clobber local edits.

        A failed refetch is logged and leaves the buffer as it was. A read
        that overlapped a save, or any edit, is dropped: its rows may
        predate what the save just wrote.
        """
        read_revision = self.buffer.revision
        try:
            server_items = await self._store.list(self.schedule_id)
        except Exception as e:
            logger.warning(f"Refresh of schedule {self.schedule_id} failed: {e}")
            return False

        if self.is_saving:
            logger.info(f"Refresh of schedule {self.schedule_id} dropped: save in flight")
            applied = False
        else:
            applied = self.buffer.merge_server_refresh(server_items, read_revision)
        if applied:
            emit(ScheduleEvent.REFRESH_MERGED, schedule_id=self.schedule_id)
            self._notify_totals()
        else:
            emit(
                ScheduleEvent.REFRESH_SKIPPED,
                schedule_id=self.schedule_id,
                is_dirty=self.buffer.is_dirty,
                server_count=len(server_items),
            )
        return applied

    async def save(self) -> SaveResult:
        """Persist the current edits.

        The plan is derived here, at save time, from whatever the buffer
        holds now. On failure the buffer is left exactly as it was and the
        error is kept in ``last_error``.

        Raises:
            EditorLockedError: The schedule is locked
            SaveInProgressError: Another save on this editor has not finished
        """
        self._check_unlocked()
        if self.is_saving:
            raise SaveInProgressError(self.schedule_id)

        self.is_saving = True
        try:
            reconciliation = self.plan()
            result = await self._coordinator.save(reconciliation, self.buffer.baseline)
        finally:
            self.is_saving = False

        if result.success:
            self.buffer.accept_saved(result.baseline, result.id_map)
            self.last_error = None
            self._notify_totals()
        else:
            self.last_error = result.error
        return result

    async def retry(self) -> SaveResult:
        """Run the same save path again after a failure."""
        return await self.save()

    def dismiss_error(self) -> None:
        if self.last_error is not None:
            self.last_error = None
            emit(ScheduleEvent.ERROR_CLEARED, schedule_id=self.schedule_id)

    def export_unsaved(self) -> str:
        """JSON dump of the editor state for manual recovery after a failed save."""
        return json.dumps(
            {
                "schedule_id": self.schedule_id,
                "grand_total": self.buffer.grand_total,
                "is_dirty": self.buffer.is_dirty,
                "pending": self.plan().describe(),
                "last_error": self.last_error.message if self.last_error else None,
                "items": self.buffer.snapshot(),
            },
            indent=2,
        )
