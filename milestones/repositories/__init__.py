"""SQLite-backed repositories for payment schedules and their items."""

from milestones.repositories.payment_schedule import PaymentScheduleRepository
from milestones.repositories.schedule_item import ScheduleItemRepository

__all__ = ["PaymentScheduleRepository", "ScheduleItemRepository"]
