"""Repository protocols (interfaces) for dependency injection.

The engine only needs these operations from a store, so any backend
(the bundled SQLite repositories, a remote API client, a test double)
can sit behind an editor.
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence

from milestones.domain.models import AllocationItem


class IScheduleItemStore(Protocol):
    """Record store for milestone rows scoped by a parent schedule id."""

    async def list(self, schedule_id: str) -> List[AllocationItem]:
        """Get non-archived items of a schedule, ordered by sort order."""
        ...

    async def create_many(
        self, schedule_id: str, items: Sequence[AllocationItem]
    ) -> List[AllocationItem]:
        """Insert items and return them with server-assigned ids, in input order."""
        ...

    async def update_one(self, item_id: str, fields: Dict[str, Any]) -> None:
        """Update persisted columns of one row."""
        ...

    async def archive_many(self, item_ids: Sequence[str]) -> None:
        """Soft-delete rows."""
        ...


class IPaymentScheduleRepository(Protocol):
    """Lookup of the schedule record that owns the milestone rows."""

    async def get_for_proposal(self, proposal_id: str) -> Optional[Dict[str, Any]]:
        """Get the schedule row of a proposal, if any."""
        ...

    async def get_or_create_for_proposal(
        self, proposal_id: str, project_id: str
    ) -> Dict[str, Any]:
        """Get the schedule row of a proposal, creating it when missing."""
        ...
