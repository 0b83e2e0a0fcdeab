"""
Application window model.

Status is intentionally not a column: it is derived from the publish flag,
the suspension override and the clock on every read.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hostel_allocation.models.base import BaseModel, SoftDeleteMixin, TimestampMixin, enum_column
from hostel_allocation.models.enums import WindowStatus, WindowType

__all__ = ["ApplicationWindow"]


class ApplicationWindow(BaseModel, TimestampMixin, SoftDeleteMixin):
    """Time-bounded period during which students may apply."""

    __tablename__ = "application_windows"
    __table_args__ = (
        CheckConstraint("start_date < end_date", name="ck_window_dates"),
        CheckConstraint("max_applications > 0", name="ck_window_max_applications"),
        CheckConstraint(
            "current_applications >= 0 AND current_applications <= max_applications",
            name="ck_window_application_count",
        ),
        CheckConstraint(
            "waitlist_count >= 0 AND waitlist_count <= waitlist_capacity",
            name="ck_window_waitlist_count",
        ),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    window_type: Mapped[WindowType] = mapped_column(
        enum_column(WindowType),
        nullable=False,
        index=True,
    )

    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    early_bird_end_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    max_applications: Mapped[int] = mapped_column(Integer, nullable=False)
    current_applications: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    allow_waitlist: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    waitlist_capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    waitlist_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    # administrator override, reported as WindowStatus.INACTIVE
    suspended: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    eligibility_criteria: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    allocation_rules: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    requires_documents: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    required_documents: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    def compute_status(self, now: datetime) -> WindowStatus:
        """
        Derive the window status at ``now``.

        Expiry wins over everything, the suspension override wins over the
        date-derived states, and a published window inside its range is active.
        """
        if now > self.end_date:
            return WindowStatus.EXPIRED
        if self.suspended:
            return WindowStatus.INACTIVE
        if self.published and self.start_date <= now <= self.end_date:
            return WindowStatus.ACTIVE
        return WindowStatus.DRAFT

    def is_open_at(self, now: datetime) -> bool:
        return self.compute_status(now) is WindowStatus.ACTIVE

    def has_main_pool_room(self) -> bool:
        return self.current_applications < self.max_applications

    def has_waitlist_room(self) -> bool:
        return self.allow_waitlist and self.waitlist_count < self.waitlist_capacity
