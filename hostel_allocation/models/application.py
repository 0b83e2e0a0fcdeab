"""
Hostel application models with an append-only status history.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hostel_allocation.models.base import BaseModel, SoftDeleteMixin, TimestampMixin, enum_column
from hostel_allocation.models.enums import ApplicationStatus, RoomType
from hostel_allocation.utils.datetime_utils import utc_now

__all__ = ["Application", "ApplicationStatusHistory"]

_ACTIVE_APPLICATION_CLAUSE = text(
    "status IN ('pending', 'approved', 'waitlisted') AND is_deleted = false"
)


class Application(BaseModel, TimestampMixin, SoftDeleteMixin):
    """
    A student's request for a bed within one application window.

    Requested hostel/room/bed are preferences; ``allocated_bed_id`` is the
    bed actually bound on approval.
    """

    __tablename__ = "applications"
    __table_args__ = (
        # at most one active application per student per window
        Index(
            "uq_application_active_student_window",
            "window_id",
            "student_id",
            unique=True,
            sqlite_where=_ACTIVE_APPLICATION_CLAUSE,
            postgresql_where=_ACTIVE_APPLICATION_CLAUSE,
        ),
        Index("ix_application_window_status", "window_id", "status"),
    )

    window_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("application_windows.id"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # Preferences
    requested_hostel_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("hostels.id"),
        nullable=False,
    )
    requested_room_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("rooms.id"),
        nullable=True,
    )
    requested_bed_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("beds.id"),
        nullable=True,
    )
    preferred_room_type: Mapped[Optional[RoomType]] = mapped_column(
        enum_column(RoomType),
        nullable=True,
    )
    special_requirements: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    documents: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    profile_snapshot: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    status: Mapped[ApplicationStatus] = mapped_column(
        enum_column(ApplicationStatus),
        nullable=False,
        default=ApplicationStatus.PENDING,
        index=True,
    )
    priority_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    submitted_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    processed_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    withdrawn_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    allocated_bed_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("beds.id"),
        nullable=True,
    )

    history: Mapped[List["ApplicationStatusHistory"]] = relationship(
        back_populates="application",
        order_by="ApplicationStatusHistory.sequence",
        cascade="all, delete-orphan",
    )

    @property
    def is_active(self) -> bool:
        return not self.is_deleted and self.status in (
            ApplicationStatus.PENDING,
            ApplicationStatus.APPROVED,
            ApplicationStatus.WAITLISTED,
        )


class ApplicationStatusHistory(BaseModel):
    """One row per lifecycle transition."""

    __tablename__ = "application_status_history"

    application_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    from_status: Mapped[Optional[ApplicationStatus]] = mapped_column(
        enum_column(ApplicationStatus),
        nullable=True,
    )
    to_status: Mapped[ApplicationStatus] = mapped_column(
        enum_column(ApplicationStatus),
        nullable=False,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    actor_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    changed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)

    application: Mapped["Application"] = relationship(back_populates="history")
