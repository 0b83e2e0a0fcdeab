"""
Notification dispatch for application events.

Delivery (email, SMS, templates) belongs to an external service. The
engine only announces events after the transition has been committed, and
a failing dispatcher never undoes or fails the transition.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict

from hostel_allocation.config.logging import get_logger
from hostel_allocation.config.settings import settings
from hostel_allocation.models.application import Application

logger = get_logger(__name__)


class NotificationEvent(str, Enum):
    """Application events announced to the notification service."""

    APPLICATION_SUBMITTED = "application_submitted"
    APPLICATION_DECIDED = "application_decided"


def application_payload(application: Application) -> Dict[str, Any]:
    return {
        "application_id": application.id,
        "window_id": application.window_id,
        "student_id": application.student_id,
        "status": application.status.value,
        "allocated_bed_id": application.allocated_bed_id,
    }


class NotificationDispatcher(ABC):
    """Interface implemented by notification backends."""

    @abstractmethod
    def application_submitted(self, application: Application) -> None:
        ...

    @abstractmethod
    def application_decided(self, application: Application, outcome: str) -> None:
        ...


class LoggingNotificationDispatcher(NotificationDispatcher):
    """Default backend: writes each event to the application log."""

    def application_submitted(self, application: Application) -> None:
        logger.info(
            f"Notify: {NotificationEvent.APPLICATION_SUBMITTED.value}",
            extra={"event": NotificationEvent.APPLICATION_SUBMITTED.value, **application_payload(application)},
        )

    def application_decided(self, application: Application, outcome: str) -> None:
        logger.info(
            f"Notify: {NotificationEvent.APPLICATION_DECIDED.value}",
            extra={
                "event": NotificationEvent.APPLICATION_DECIDED.value,
                "outcome": outcome,
                **application_payload(application),
            },
        )


class NullNotificationDispatcher(NotificationDispatcher):
    """Used when NOTIFICATIONS_ENABLED is off."""

    def application_submitted(self, application: Application) -> None:
        return None

    def application_decided(self, application: Application, outcome: str) -> None:
        return None


def get_notification_dispatcher() -> NotificationDispatcher:
    if settings.NOTIFICATIONS_ENABLED:
        return LoggingNotificationDispatcher()
    return NullNotificationDispatcher()


def dispatch_safely(dispatcher: NotificationDispatcher, event: NotificationEvent, *args: Any) -> bool:
    """
    Invoke ``dispatcher`` for ``event``; failures are logged and reported as
    ``False``.
    """
    try:
        getattr(dispatcher, event.value)(*args)
        return True
    except Exception as e:
        logger.error(
            f"Notification {event.value} failed: {e}",
            exc_info=True,
            extra={"event": event.value},
        )
        return False
