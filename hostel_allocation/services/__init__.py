from hostel_allocation.services.allocation_engine import AllocationEngine
from hostel_allocation.services.application_lifecycle import ApplicationLifecycle
from hostel_allocation.services.capacity_ledger import CapacityLedger
from hostel_allocation.services.eligibility import EligibilityEvaluator, evaluate
from hostel_allocation.services.hostel_service import HostelService
from hostel_allocation.services.notifications import (
    LoggingNotificationDispatcher,
    NotificationDispatcher,
    NotificationEvent,
)
from hostel_allocation.services.priority import compute_priority_score
from hostel_allocation.services.service_factory import ServiceFactory
from hostel_allocation.services.window_registry import WindowRegistry

__all__ = [
    "AllocationEngine",
    "ApplicationLifecycle",
    "CapacityLedger",
    "EligibilityEvaluator",
    "evaluate",
    "HostelService",
    "LoggingNotificationDispatcher",
    "NotificationDispatcher",
    "NotificationEvent",
    "compute_priority_score",
    "ServiceFactory",
    "WindowRegistry",
]
