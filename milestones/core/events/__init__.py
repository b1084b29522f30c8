"""Event system for decoupled editor notifications."""

from milestones.core.events.events import (
    ScheduleEvent,
    clear_all_listeners,
    emit,
    subscribe,
    unsubscribe,
)

__all__ = ["ScheduleEvent", "clear_all_listeners", "emit", "subscribe", "unsubscribe"]
