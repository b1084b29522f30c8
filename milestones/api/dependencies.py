"""FastAPI dependency injection for the schedule API.

Repositories are created per request against the global database manager.
Open editors live in a process-wide registry keyed by proposal id, one
editor per proposal.
"""

import logging
from typing import Annotated, Dict, Optional

from fastapi import Depends

from milestones.domain.repositories.protocols import (
    IPaymentScheduleRepository,
    IScheduleItemStore,
)
from milestones.repositories import PaymentScheduleRepository, ScheduleItemRepository
from milestones.services.schedule_editor import ScheduleEditor

logger = logging.getLogger(__name__)


class EditorRegistry:
    """Open editors by proposal id."""

    def __init__(self):
        self._editors: Dict[str, ScheduleEditor] = {}

    def get(self, proposal_id: str) -> Optional[ScheduleEditor]:
        return self._editors.get(proposal_id)

    def put(self, proposal_id: str, editor: ScheduleEditor) -> None:
        self._editors[proposal_id] = editor

    def close(self, proposal_id: str) -> bool:
        editor = self._editors.pop(proposal_id, None)
        if editor is not None and editor.buffer.is_dirty:
            logger.warning(f"Closed editor for proposal {proposal_id} with unsaved edits")
        return editor is not None

    def clear(self) -> None:
        self._editors.clear()

    def __len__(self) -> int:
        return len(self._editors)


_editor_registry = EditorRegistry()


def get_editor_registry() -> EditorRegistry:
    """Get the EditorRegistry singleton."""
    return _editor_registry


def get_schedule_item_repository() -> IScheduleItemStore:
    """Get ScheduleItemRepository instance."""
    return ScheduleItemRepository()


def get_payment_schedule_repository() -> IPaymentScheduleRepository:
    """Get PaymentScheduleRepository instance."""
    return PaymentScheduleRepository()


# Type aliases for use in function signatures
EditorRegistryDep = Annotated[EditorRegistry, Depends(get_editor_registry)]
ScheduleItemStoreDep = Annotated[
    IScheduleItemStore, Depends(get_schedule_item_repository)
]
PaymentScheduleRepositoryDep = Annotated[
    IPaymentScheduleRepository, Depends(get_payment_schedule_repository)
]
