"""Pytest configuration and fixtures."""

import os
import tempfile
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence

import aiosqlite
import pytest

from milestones.core.database.schemas import SCHEDULES_SCHEMA
from milestones.core.events import clear_all_listeners
from milestones.domain.models import AllocationItem, AllocationMode
from milestones.repositories import PaymentScheduleRepository, ScheduleItemRepository
from milestones.repositories.schedule_item import infer_mode


class InMemoryItemStore:
    """Schedule item store kept in a dict, with switchable failures.

    Set ``fail_on["create_many"] = RuntimeError(...)`` to make a call fail,
    ``drop_created`` to hide the last N created rows from the caller, and
    ``next_list`` to script the result of the next ``list`` call.
    """

    def __init__(self, items: Sequence[AllocationItem] = ()):
        self.rows: Dict[str, AllocationItem] = {item.id: item for item in items}
        self.archived: List[str] = []
        self.calls: List[str] = []
        self.fail_on: Dict[str, Exception] = {}
        self.drop_created = 0
        self.next_list: Optional[List[AllocationItem]] = None
        self._next_id = 100

    async def list(self, schedule_id: str) -> List[AllocationItem]:
        self.calls.append("list")
        if "list" in self.fail_on:
            raise self.fail_on["list"]
        if self.next_list is not None:
            result, self.next_list = self.next_list, None
            return result
        return sorted(self.rows.values(), key=lambda item: item.sort_order)

    async def create_many(
        self, schedule_id: str, items: Sequence[AllocationItem]
    ) -> List[AllocationItem]:
        self.calls.append("create_many")
        if "create_many" in self.fail_on:
            raise self.fail_on["create_many"]
        created = []
        for item in items:
            self._next_id += 1
            stored = replace(item, id=str(self._next_id), dirty=False)
            self.rows[stored.id] = stored
            created.append(stored)
        return created[: len(created) - self.drop_created]

    async def update_one(self, item_id: str, fields: Dict[str, Any]) -> None:
        self.calls.append("update_one")
        if "update_one" in self.fail_on:
            raise self.fail_on["update_one"]
        self.rows[item_id] = replace(
            self.rows[item_id],
            label=fields["title"],
            mode=infer_mode(fields["percent_of_contract"], fields["fixed_amount"]),
            percent_of_total=fields["percent_of_contract"],
            fixed_amount=fields["fixed_amount"],
            computed_amount=fields["scheduled_amount"],
            sort_order=fields["sort_order"],
            due_on=fields["due_on"],
        )

    async def archive_many(self, item_ids: Sequence[str]) -> None:
        self.calls.append("archive_many")
        if "archive_many" in self.fail_on:
            raise self.fail_on["archive_many"]
        for item_id in item_ids:
            self.rows.pop(item_id, None)
            self.archived.append(item_id)


def stored_item(
    item_id: str,
    label: str = "Deposit",
    mode: AllocationMode = AllocationMode.PERCENTAGE,
    percent: Optional[float] = None,
    fixed: Optional[float] = None,
    amount: float = 0.0,
    sort_order: int = 0,
) -> AllocationItem:
    """A clean item as the store returns it."""
    return AllocationItem(
        id=item_id,
        label=label,
        mode=mode,
        percent_of_total=percent,
        fixed_amount=fixed,
        computed_amount=amount,
        sort_order=sort_order,
    )


@pytest.fixture
def make_item():
    """Factory for clean, store-shaped items."""
    return stored_item


@pytest.fixture
def memory_store():
    """Factory for in-memory item stores seeded with the given items."""
    return InMemoryItemStore


@pytest.fixture
async def db():
    """Create a temporary schedules database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    try:
        async with aiosqlite.connect(db_path) as db:
            db.row_factory = aiosqlite.Row
            await db.executescript(SCHEDULES_SCHEMA)
            await db.commit()
            yield db
    finally:
        if os.path.exists(db_path):
            os.unlink(db_path)


@pytest.fixture
async def schedule_repo(db):
    """Create a payment schedule repository instance."""
    return PaymentScheduleRepository(db=db)


@pytest.fixture
async def item_repo(db):
    """Create a schedule item repository instance."""
    return ScheduleItemRepository(db=db)


@pytest.fixture
async def schedule_id(schedule_repo):
    """Id of a freshly created payment schedule."""
    schedule = await schedule_repo.get_or_create_for_proposal("proposal-1", "project-1")
    return schedule["id"]


@pytest.fixture(autouse=True)
def reset_event_listeners():
    """Start every test with no event subscribers."""
    clear_all_listeners()
    yield
    clear_all_listeners()
