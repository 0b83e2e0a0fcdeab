"""
Hostel inventory models: hostels, rooms and beds.

Total capacity and occupancy are never stored on the hostel; the capacity
ledger derives them from bed rows.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hostel_allocation.models.base import BaseModel, TimestampMixin, enum_column
from hostel_allocation.models.enums import (
    BedStatus,
    GenderPolicy,
    HostelStatus,
    RoomStatus,
    RoomType,
)

__all__ = ["Hostel", "Room", "Bed"]


class Hostel(BaseModel, TimestampMixin):
    """Residential hall owning rooms."""

    __tablename__ = "hostels"

    name: Mapped[str] = mapped_column(String(150), nullable=False, unique=True)
    code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    gender_policy: Mapped[GenderPolicy] = mapped_column(
        enum_column(GenderPolicy),
        nullable=False,
        default=GenderPolicy.MIXED,
    )
    status: Mapped[HostelStatus] = mapped_column(
        enum_column(HostelStatus),
        nullable=False,
        default=HostelStatus.ACTIVE,
        index=True,
    )

    rooms: Mapped[List["Room"]] = relationship(
        back_populates="hostel",
        cascade="all, delete-orphan",
        order_by="Room.number",
    )


class Room(BaseModel, TimestampMixin):
    """Room inside a hostel."""

    __tablename__ = "rooms"
    __table_args__ = (
        UniqueConstraint("hostel_id", "number", name="uq_room_hostel_number"),
    )

    hostel_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("hostels.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    number: Mapped[str] = mapped_column(String(20), nullable=False)
    floor: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    room_type: Mapped[RoomType] = mapped_column(
        enum_column(RoomType),
        nullable=False,
        index=True,
    )
    # kept equal to len(beds) by the capacity ledger
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[RoomStatus] = mapped_column(
        enum_column(RoomStatus),
        nullable=False,
        default=RoomStatus.AVAILABLE,
        index=True,
    )

    hostel: Mapped["Hostel"] = relationship(back_populates="rooms")
    beds: Mapped[List["Bed"]] = relationship(
        back_populates="room",
        cascade="all, delete-orphan",
        order_by="Bed.label",
    )


class Bed(BaseModel, TimestampMixin):
    """
    Individual bed within a room.

    Only the capacity ledger writes ``status``, ``current_student_id`` and
    ``reserved_for_application_id``.
    """

    __tablename__ = "beds"
    __table_args__ = (
        UniqueConstraint("room_id", "label", name="uq_bed_room_label"),
    )

    room_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("rooms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    label: Mapped[str] = mapped_column(String(10), nullable=False)
    status: Mapped[BedStatus] = mapped_column(
        enum_column(BedStatus),
        nullable=False,
        default=BedStatus.AVAILABLE,
        index=True,
    )
    current_student_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        index=True,
    )
    reserved_for_application_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
    )
    occupied_since: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    room: Mapped["Room"] = relationship(back_populates="beds")
