"""
SQLAlchemy models for the allocation engine.

Importing this package registers every table on ``Base.metadata``.
"""

from hostel_allocation.models.base import Base, BaseModel, SoftDeleteMixin, TimestampMixin
from hostel_allocation.models.hostel import Bed, Hostel, Room
from hostel_allocation.models.window import ApplicationWindow
from hostel_allocation.models.application import Application, ApplicationStatusHistory

__all__ = [
    "Base",
    "BaseModel",
    "SoftDeleteMixin",
    "TimestampMixin",
    "Hostel",
    "Room",
    "Bed",
    "ApplicationWindow",
    "Application",
    "ApplicationStatusHistory",
]
