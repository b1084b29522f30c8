"""Event system for decoupled editor notifications.

Parts of the application that care about schedule changes (a proposal
header showing the allocated total, an audit log, a notification toast)
subscribe here instead of being called directly by the editor.

Example usage:
    from milestones.core.events import ScheduleEvent, emit, subscribe

    subscribe(ScheduleEvent.TOTALS_CHANGED, lambda e, **d: print(d["allocated_total"]))

    emit(ScheduleEvent.TOTALS_CHANGED, schedule_id="7", allocated_total=5000.0, item_count=2)
"""

import logging
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class ScheduleEvent(Enum):
    """Events raised by schedule editors."""

    # Allocated total or item count changed (parent totals display)
    TOTALS_CHANGED = "totals_changed"

    # Server refresh handling
    REFRESH_MERGED = "refresh_merged"
    REFRESH_SKIPPED = "refresh_skipped"

    # Save lifecycle
    SAVE_START = "save_start"
    SAVE_COMPLETE = "save_complete"
    SAVE_FAILED = "save_failed"

    # Store anomaly: fewer rows created than requested
    CREATE_COUNT_MISMATCH = "create_count_mismatch"

    # Persisted error panel dismissed by the operator
    ERROR_CLEARED = "error_cleared"


# Event listeners storage
_listeners: dict[ScheduleEvent, list[Callable]] = {event: [] for event in ScheduleEvent}


def emit(event: ScheduleEvent, **data: Any) -> None:
    """Emit an event to all registered listeners.

    Listener exceptions are logged and never propagate to the caller, so a
    broken subscriber cannot fail an edit or a save.

    Args:
        event: The event type to emit
        **data: Additional event data passed to listeners
    """
    for listener in _listeners[event]:
        try:
            listener(event, **data)
        except Exception as e:
            logger.debug(f"Event listener error for {event.value}: {e}")


def subscribe(event: ScheduleEvent, callback: Callable) -> None:
    """Subscribe a callback to an event.

    Args:
        event: The event type to subscribe to
        callback: Called as callback(event, **data)
    """
    _listeners[event].append(callback)


def unsubscribe(event: ScheduleEvent, callback: Callable) -> None:
    """Unsubscribe a callback from an event."""
    try:
        _listeners[event].remove(callback)
    except ValueError:
        pass  # Callback wasn't subscribed


def clear_all_listeners() -> None:
    """Remove all event listeners. Useful for testing."""
    for event in ScheduleEvent:
        _listeners[event].clear()
