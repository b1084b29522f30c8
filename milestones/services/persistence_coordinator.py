"""Executes reconciliation plans against the record store.

Steps run strictly in sequence (archive, create, update), each awaited
before the next. The first store failure stops the save and comes back as
a failed SaveResult; nothing is raised past this boundary and no editor
state is touched here.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Sequence, Tuple

from milestones.core.events import ScheduleEvent, emit
from milestones.core.logging import correlation_scope
from milestones.domain.constants import (
    SAVE_STEP_ARCHIVE,
    SAVE_STEP_CREATE,
    SAVE_STEP_UPDATE,
)
from milestones.domain.exceptions import SaveError
from milestones.domain.models import AllocationItem
from milestones.domain.planner import ReconciliationPlan
from milestones.domain.repositories.protocols import IScheduleItemStore
from milestones.domain.responses import SaveResult
from milestones.repositories.schedule_item import columns_from_item

logger = logging.getLogger(__name__)


def match_created(
    requested: Sequence[AllocationItem], created: Sequence[AllocationItem]
) -> Dict[str, str]:
    """Map local ids of requested items to the ids the store returned.

    Equal counts pair up by position. Otherwise rows are matched on
    (sort_order, label); requested items left unmatched keep their local id
    and get planned again on the next save.
    """
    if len(requested) == len(created):
        return {local.id: stored.id for local, stored in zip(requested, created)}

    pool: Dict[Tuple[int, str], List[AllocationItem]] = {}
    for stored in created:
        pool.setdefault((stored.sort_order, stored.label), []).append(stored)

    id_map: Dict[str, str] = {}
    for local in requested:
        candidates = pool.get((local.sort_order, local.label))
        if candidates:
            id_map[local.id] = candidates.pop(0).id
    return id_map


class PersistenceCoordinator:
    """Saves one schedule's plans through an IScheduleItemStore."""

    def __init__(self, store: IScheduleItemStore, schedule_id: str):
        self._store = store
        self.schedule_id = schedule_id

    async def save(
        self, plan: ReconciliationPlan, baseline: Sequence[AllocationItem]
    ) -> SaveResult:
        """Run ``plan`` against the store.

        Returns:
            On success, the new baseline (server ids substituted, in local
            order) and the local -> server id map. On failure, a SaveError
            carrying the store's original message and the failing step.
        """
        if plan.is_empty:
            return SaveResult(success=True, baseline=tuple(baseline))

        with correlation_scope("save-") as correlation_id:
            logger.info(f"Saving schedule {self.schedule_id}: {plan.describe()}")
            emit(ScheduleEvent.SAVE_START, schedule_id=self.schedule_id)

            step = SAVE_STEP_ARCHIVE
            created: List[AllocationItem] = []
            try:
                if plan.to_archive:
                    await self._store.archive_many(list(plan.to_archive))

                step = SAVE_STEP_CREATE
                if plan.to_create:
                    created = list(
                        await self._store.create_many(self.schedule_id, list(plan.to_create))
                    )

                step = SAVE_STEP_UPDATE
                for item in plan.to_update:
                    await self._store.update_one(item.id, columns_from_item(item))
            except Exception as e:
                message = str(e) or e.__class__.__name__
                logger.error(
                    f"Save of schedule {self.schedule_id} failed during {step}: {message}"
                )
                emit(
                    ScheduleEvent.SAVE_FAILED,
                    schedule_id=self.schedule_id,
                    step=step,
                    message=message,
                )
                return SaveResult(
                    success=False,
                    error=SaveError(message, step=step),
                    metadata={"correlation_id": correlation_id},
                )

            if len(created) != len(plan.to_create):
                # Rows may exist but be invisible to us (authorization/visibility)
                logger.warning(
                    f"Schedule {self.schedule_id}: requested {len(plan.to_create)} "
                    f"new items, store returned {len(created)}"
                )
                emit(
                    ScheduleEvent.CREATE_COUNT_MISMATCH,
                    schedule_id=self.schedule_id,
                    requested=len(plan.to_create),
                    created=len(created),
                )

            id_map = match_created(plan.to_create, created)
            new_baseline = self._reconcile_baseline(plan, baseline, id_map)

            logger.info(
                f"Saved schedule {self.schedule_id}: {len(new_baseline)} items confirmed"
            )
            emit(
                ScheduleEvent.SAVE_COMPLETE,
                schedule_id=self.schedule_id,
                item_count=len(new_baseline),
            )
            return SaveResult(
                success=True,
                baseline=new_baseline,
                id_map=id_map,
                metadata={
                    "correlation_id": correlation_id,
                    "archived": len(plan.to_archive),
                    "created": len(created),
                    "updated": len(plan.to_update),
                },
            )

    @staticmethod
    def _reconcile_baseline(
        plan: ReconciliationPlan,
        baseline: Sequence[AllocationItem],
        id_map: Dict[str, str],
    ) -> Tuple[AllocationItem, ...]:
        archived = set(plan.to_archive)
        confirmed: Dict[str, AllocationItem] = {
            item.id: item for item in baseline if item.id not in archived
        }
        for item in plan.to_update:
            confirmed[item.id] = item

        for local in plan.to_create:
            server_id = id_map.get(local.id)
            if server_id is not None:
                # Local values under the store id; the echo may not carry every field
                confirmed[server_id] = replace(local, id=server_id)

        ordered: List[AllocationItem] = []
        for item_id in plan.local_order:
            item_id = id_map.get(item_id, item_id)
            item = confirmed.pop(item_id, None)
            if item is not None:
                ordered.append(replace(item, dirty=False))
        ordered.extend(replace(item, dirty=False) for item in confirmed.values())
        return tuple(ordered)
