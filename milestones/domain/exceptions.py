"""Domain-specific exceptions."""

from typing import Optional


class DomainError(Exception):
    """Base exception for domain errors."""

    pass


class ValidationError(DomainError):
    """Raised when an edit is rejected at the field level."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Validation error: {message}")


class ItemNotFoundError(DomainError):
    """Raised when an edit targets an item that is not in the buffer."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Schedule item not found: {item_id}")


class EditorLockedError(DomainError):
    """Raised when a locked schedule is edited."""

    def __init__(self, schedule_id: str):
        self.schedule_id = schedule_id
        super().__init__(f"Schedule {schedule_id} is locked")


class SaveInProgressError(DomainError):
    """Raised when a save is requested while another is still running."""

    def __init__(self, schedule_id: str):
        self.schedule_id = schedule_id
        super().__init__(f"A save is already in progress for schedule {schedule_id}")


class SaveError(DomainError):
    """A store call failed during a save.

    Returned inside SaveResult rather than raised past the save boundary.
    ``message`` is the store's original error text.
    """

    def __init__(self, message: str, step: Optional[str] = None):
        self.message = message
        self.step = step
        super().__init__(message)
