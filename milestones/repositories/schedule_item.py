"""Schedule item repository - operations for payment_schedule_items table."""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Sequence

from milestones.core.database import get_db_manager
from milestones.domain.models import AllocationItem, AllocationMode
from milestones.repositories.base import (
    resolve_db,
    safe_get,
    safe_get_bool,
    safe_get_float,
    safe_get_int,
    transaction_context,
)

logger = logging.getLogger(__name__)

# Columns update_one may touch
UPDATABLE_COLUMNS = frozenset(
    {
        "title",
        "due_on",
        "percent_of_contract",
        "fixed_amount",
        "scheduled_amount",
        "sort_order",
    }
)


def infer_mode(percent: Any, fixed: Any) -> AllocationMode:
    """Recover the allocation mode from which driving column is set."""
    if percent is not None:
        return AllocationMode.PERCENTAGE
    if fixed is not None:
        return AllocationMode.FIXED
    return AllocationMode.REMAINING


def item_from_row(row: Any) -> AllocationItem:
    """Build a clean (non-dirty) item from a payment_schedule_items row."""
    percent = safe_get_float(row, "percent_of_contract")
    fixed = safe_get_float(row, "fixed_amount")
    return AllocationItem(
        id=str(safe_get(row, "id")),
        label=safe_get(row, "title") or "",
        mode=infer_mode(percent, fixed),
        percent_of_total=percent,
        fixed_amount=fixed,
        computed_amount=safe_get_float(row, "scheduled_amount", 0.0),
        sort_order=safe_get_int(row, "sort_order", 0),
        due_on=safe_get(row, "due_on"),
        archived=safe_get_bool(row, "is_archived"),
        dirty=False,
    )


def columns_from_item(item: AllocationItem) -> Dict[str, Any]:
    """Persisted columns of an item (everything except identity and archive flag)."""
    return {
        "title": item.label,
        "due_on": item.due_on or None,
        "percent_of_contract": item.percent_of_total,
        "fixed_amount": item.fixed_amount,
        "scheduled_amount": item.computed_amount,
        "sort_order": item.sort_order,
    }


def _row_id(item_id: str) -> int:
    try:
        return int(item_id)
    except (TypeError, ValueError):
        raise ValueError(f"Not a stored item id: {item_id!r}")


class ScheduleItemRepository:
    """Record store for milestone rows, keyed by payment schedule."""

    def __init__(self, db=None):
        """Initialize repository.

        Args:
            db: Optional database for testing. If None, uses get_db_manager().schedules.
                Can be a Database instance or raw aiosqlite.Connection (will be wrapped)
        """
        self._db = resolve_db(db, lambda: get_db_manager().schedules)

    async def list(self, schedule_id: str) -> List[AllocationItem]:
        """Get non-archived items of a schedule ordered by sort_order."""
        rows = await self._db.fetchall(
            """
            SELECT * FROM payment_schedule_items
            WHERE payment_schedule_id = ? AND is_archived = 0
            ORDER BY sort_order ASC, id ASC
            """,
            (_row_id(schedule_id),),
        )
        return [item_from_row(row) for row in rows]

    async def create_many(
        self, schedule_id: str, items: Sequence[AllocationItem]
    ) -> List[AllocationItem]:
        """Insert items in one transaction; returns them with their new ids."""
        if not items:
            return []

        now = datetime.now().isoformat()
        parent = _row_id(schedule_id)
        created: List[AllocationItem] = []

        async with transaction_context(self._db) as conn:
            for item in items:
                columns = columns_from_item(item)
                cursor = await conn.execute(
                    """
                    INSERT INTO payment_schedule_items
                        (payment_schedule_id, title, due_on, percent_of_contract,
                         fixed_amount, scheduled_amount, sort_order, is_archived,
                         created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
                    """,
                    (
                        parent,
                        columns["title"],
                        columns["due_on"],
                        columns["percent_of_contract"],
                        columns["fixed_amount"],
                        columns["scheduled_amount"],
                        columns["sort_order"],
                        now,
                        now,
                    ),
                )
                created.append(replace(item, id=str(cursor.lastrowid), dirty=False))

        logger.debug(f"Created {len(created)} items in schedule {schedule_id}")
        return created

    async def update_one(self, item_id: str, fields: Dict[str, Any]) -> None:
        """Update persisted columns of one row."""
        unknown = set(fields) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update columns: {sorted(unknown)}")
        if not fields:
            return

        columns = sorted(fields)
        assignments = ", ".join(f"{column} = ?" for column in columns)
        params = tuple(fields[column] for column in columns)

        async with transaction_context(self._db) as conn:
            cursor = await conn.execute(
                f"UPDATE payment_schedule_items SET {assignments}, updated_at = ? WHERE id = ?",
                params + (datetime.now().isoformat(), _row_id(item_id)),
            )
            if cursor.rowcount == 0:
                logger.warning(f"Update matched no row for item {item_id}")

    async def archive_many(self, item_ids: Sequence[str]) -> None:
        """Soft-delete rows by setting is_archived."""
        if not item_ids:
            return

        ids = tuple(_row_id(item_id) for item_id in item_ids)
        placeholders = ", ".join("?" for _ in ids)

        async with transaction_context(self._db) as conn:
            await conn.execute(
                f"""
                UPDATE payment_schedule_items
                SET is_archived = 1, updated_at = ?
                WHERE id IN ({placeholders})
                """,
                (datetime.now().isoformat(),) + ids,
            )
