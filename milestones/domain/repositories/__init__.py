"""Repository interfaces - contracts for data access."""

from milestones.domain.repositories.protocols import (
    IPaymentScheduleRepository,
    IScheduleItemStore,
)

__all__ = ["IPaymentScheduleRepository", "IScheduleItemStore"]
