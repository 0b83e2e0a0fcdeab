"""
Hostel, room and bed repositories.
"""

from typing import Dict, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from hostel_allocation.models.enums import UNBOUND_BED_STATUSES, BedStatus, HostelStatus, RoomStatus, RoomType
from hostel_allocation.models.hostel import Bed, Hostel, Room
from hostel_allocation.repositories.base_repository import BaseRepository


class HostelRepository(BaseRepository[Hostel]):
    """Repository for Hostel entities."""

    resource_name = "Hostel"

    def __init__(self, db: Session):
        super().__init__(Hostel, db)

    def find_by_name(self, name: str) -> Optional[Hostel]:
        return self.db.execute(select(Hostel).where(Hostel.name == name)).scalar_one_or_none()

    def list_hostels(self, status: Optional[HostelStatus] = None) -> List[Hostel]:
        return self.find_by_criteria({"status": status}, limit=None, order_by=["name"])


class RoomRepository(BaseRepository[Room]):
    """Repository for Room entities."""

    resource_name = "Room"

    def __init__(self, db: Session):
        super().__init__(Room, db)

    def find_by_number(self, hostel_id: str, number: str) -> Optional[Room]:
        stmt = select(Room).where(Room.hostel_id == hostel_id, Room.number == number)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_for_hostel(self, hostel_id: str) -> List[Room]:
        return self.find_by_criteria({"hostel_id": hostel_id}, limit=None, order_by=["number"])


class BedRepository(BaseRepository[Bed]):
    """
    Repository for Bed entities.

    Handles candidate selection for reservations and the aggregate counts the
    capacity ledger derives occupancy from.
    """

    resource_name = "Bed"

    def __init__(self, db: Session):
        super().__init__(Bed, db)

    def list_for_room(self, room_id: str) -> List[Bed]:
        return self.find_by_criteria({"room_id": room_id}, limit=None, order_by=["label"])

    def find_reservable(
        self,
        hostel_id: Optional[str] = None,
        room_id: Optional[str] = None,
        room_type: Optional[RoomType] = None,
        bed_id: Optional[str] = None,
        limit: int = 25,
    ) -> List[str]:
        """
        Ids of available beds in available rooms of active hostels matching
        the filters, in room number / bed label order.
        """
        stmt = (
            select(Bed.id)
            .join(Room, Bed.room_id == Room.id)
            .join(Hostel, Room.hostel_id == Hostel.id)
            .where(
                Bed.status == BedStatus.AVAILABLE,
                Room.status == RoomStatus.AVAILABLE,
                Hostel.status == HostelStatus.ACTIVE,
            )
            .order_by(Room.number, Bed.label)
            .limit(limit)
        )
        if hostel_id:
            stmt = stmt.where(Room.hostel_id == hostel_id)
        if room_id:
            stmt = stmt.where(Bed.room_id == room_id)
        if room_type:
            stmt = stmt.where(Room.room_type == room_type)
        if bed_id:
            stmt = stmt.where(Bed.id == bed_id)
        return list(self.db.execute(stmt).scalars())

    def status_counts(
        self,
        hostel_id: Optional[str] = None,
        room_id: Optional[str] = None,
        room_type: Optional[RoomType] = None,
    ) -> Dict[BedStatus, int]:
        """Bed counts grouped by status for the given scope."""
        stmt = (
            select(Bed.status, func.count(Bed.id))
            .join(Room, Bed.room_id == Room.id)
            .group_by(Bed.status)
        )
        if hostel_id:
            stmt = stmt.where(Room.hostel_id == hostel_id)
        if room_id:
            stmt = stmt.where(Bed.room_id == room_id)
        if room_type:
            stmt = stmt.where(Room.room_type == room_type)

        counts = {status: 0 for status in BedStatus}
        for status, count in self.db.execute(stmt):
            counts[BedStatus(status)] = count
        return counts

    def status_counts_by_hostel(self) -> Dict[str, Dict[BedStatus, int]]:
        """Bed counts grouped by hostel and status."""
        stmt = (
            select(Room.hostel_id, Bed.status, func.count(Bed.id))
            .join(Room, Bed.room_id == Room.id)
            .group_by(Room.hostel_id, Bed.status)
        )
        result: Dict[str, Dict[BedStatus, int]] = {}
        for hostel_id, status, count in self.db.execute(stmt):
            result.setdefault(hostel_id, {s: 0 for s in BedStatus})[BedStatus(status)] = count
        return result

    def remove_if_unbound(self, bed: Bed) -> bool:
        """Delete the bed only if it is still available or under maintenance; returns whether it was removed."""
        self.db.flush()
        stmt = (
            delete(Bed)
            .where(Bed.id == bed.id, Bed.status.in_(list(UNBOUND_BED_STATUSES)))
            .execution_options(synchronize_session=False)
        )
        removed = self.db.execute(stmt).rowcount == 1
        if removed:
            self.db.expunge(bed)
        return removed

    def transition(
        self,
        bed_id: str,
        expected: Tuple[BedStatus, ...],
        target: BedStatus,
        **values,
    ) -> bool:
        """Compare-and-swap the bed status."""
        return self.compare_and_set(
            bed_id,
            {"status": expected},
            {"status": target, **values},
        )
