"""Application services: persistence and editor sessions."""

from milestones.services.persistence_coordinator import PersistenceCoordinator
from milestones.services.schedule_editor import ScheduleEditor

__all__ = ["PersistenceCoordinator", "ScheduleEditor"]
