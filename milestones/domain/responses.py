"""Result types for operations that report failure instead of raising."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from milestones.domain.exceptions import SaveError
from milestones.domain.models import AllocationItem


@dataclass
class SaveResult:
    """Outcome of one save attempt.

    Attributes:
        success: Whether every store call succeeded
        baseline: Server-confirmed items after the save (only if success)
        id_map: Local id -> server id for items created by this save
        error: The store failure (only if success=False)
        metadata: Counts and the save's correlation id

    Example:
        result = await coordinator.save(plan, baseline)
        if result.success:
            buffer.accept_saved(result.baseline, result.id_map)
        else:
            show_error(result.error.message)
    """

    success: bool
    baseline: Tuple[AllocationItem, ...] = ()
    id_map: Dict[str, str] = field(default_factory=dict)
    error: Optional[SaveError] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.success and self.error is None:
            raise ValueError("SaveResult with success=False must carry an error")

    @property
    def is_success(self) -> bool:
        return self.success

    @property
    def is_error(self) -> bool:
        return not self.success

    @property
    def message(self) -> Optional[str]:
        return self.error.message if self.error else None
