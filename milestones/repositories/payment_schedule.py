"""Payment schedule repository - operations for payment_schedules table."""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from milestones.config import settings
from milestones.core.database import get_db_manager
from milestones.repositories.base import resolve_db, safe_get, transaction_context

logger = logging.getLogger(__name__)


def _schedule_from_row(row: Any) -> Dict[str, Any]:
    return {
        "id": str(safe_get(row, "id")),
        "project_id": safe_get(row, "project_id"),
        "proposal_id": safe_get(row, "proposal_id"),
        "name": safe_get(row, "name"),
        "created_at": safe_get(row, "created_at"),
    }


class PaymentScheduleRepository:
    """Repository for the per-proposal schedule record."""

    def __init__(self, db=None):
        """Initialize repository.

        Args:
            db: Optional database for testing. If None, uses get_db_manager().schedules.
        """
        self._db = resolve_db(db, lambda: get_db_manager().schedules)

    async def get_for_proposal(self, proposal_id: str) -> Optional[Dict[str, Any]]:
        """Get the schedule of a proposal."""
        row = await self._db.fetchone(
            "SELECT * FROM payment_schedules WHERE proposal_id = ?", (proposal_id,)
        )
        return _schedule_from_row(row) if row else None

    async def get_or_create_for_proposal(
        self, proposal_id: str, project_id: str, name: Optional[str] = None
    ) -> Dict[str, Any]:
        """Get the schedule of a proposal, creating an empty one when missing."""
        existing = await self.get_for_proposal(proposal_id)
        if existing:
            return existing

        async with transaction_context(self._db) as conn:
            await conn.execute(
                """
                INSERT INTO payment_schedules (project_id, proposal_id, name, created_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(proposal_id) DO NOTHING
                """,
                (
                    project_id,
                    proposal_id,
                    name or settings.default_schedule_name,
                    datetime.now().isoformat(),
                ),
            )

        logger.info(f"Created payment schedule for proposal {proposal_id}")
        created = await self.get_for_proposal(proposal_id)
        if created is None:
            raise RuntimeError(f"Payment schedule for proposal {proposal_id} was not created")
        return created
