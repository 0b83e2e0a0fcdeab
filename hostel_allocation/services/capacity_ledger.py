"""
Capacity ledger: the single writer of bed state and the only place
occupancy figures are derived.
"""

import string
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hostel_allocation.core.context import RequestContext, resolve_context
from hostel_allocation.core.exceptions import (
    CapacityExhaustedError,
    InvalidBedStateError,
    ValidationError,
)
from hostel_allocation.models.enums import (
    BED_TRANSITIONS,
    UNBOUND_BED_STATUSES,
    BedStatus,
    HostelStatus,
    RoomStatus,
    RoomType,
    ensure_transition,
)
from hostel_allocation.models.hostel import Bed, Room
from hostel_allocation.repositories.hostel_repository import (
    BedRepository,
    HostelRepository,
    RoomRepository,
)
from hostel_allocation.schemas.hostel import (
    MAX_BEDS_PER_ROOM,
    AvailabilitySummary,
    HostelOccupancy,
    OccupancyOverview,
)
from hostel_allocation.services.base_service import BaseService

BED_LABELS = string.ascii_uppercase

# candidate refetches after every claimed candidate was lost to another writer
RESERVE_ROUNDS = 3


def summarize_counts(counts: Dict[BedStatus, int], reservable: bool = True) -> AvailabilitySummary:
    """
    Fold per-status bed counts into an availability summary.

    Beds under maintenance are out of service and excluded from capacity,
    reserved beds count as occupied. With ``reservable=False`` (a hostel that
    is not active) free beds are out of service as well, so ``available``
    only ever counts beds ``reserve_bed`` can hand out.
    """
    occupied = counts.get(BedStatus.OCCUPIED, 0) + counts.get(BedStatus.RESERVED, 0)
    free = counts.get(BedStatus.AVAILABLE, 0)
    available = free if reservable else 0
    capacity = occupied + available
    rate = round(occupied / capacity * 100, 2) if capacity else 0.0
    return AvailabilitySummary(
        capacity=capacity,
        occupied=occupied,
        available=available,
        out_of_service=counts.get(BedStatus.MAINTENANCE, 0) + free - available,
        occupancy_rate=rate,
    )


class CapacityLedger(BaseService):
    """
    Bed inventory and atomic bed reservation.

    Every bed status change is a compare-and-swap on the bed row, so two
    sessions racing for the same bed cannot both win. Mutators accept
    ``commit=False`` to join an enclosing unit of work.
    """

    def __init__(
        self,
        db_session: Session,
        hostel_repo: Optional[HostelRepository] = None,
        room_repo: Optional[RoomRepository] = None,
        bed_repo: Optional[BedRepository] = None,
    ):
        super().__init__(db_session)
        self.hostel_repo = hostel_repo or HostelRepository(db_session)
        self.room_repo = room_repo or RoomRepository(db_session)
        self.bed_repo = bed_repo or BedRepository(db_session)

    # -------------------------------------------------------------------------
    # Occupancy
    # -------------------------------------------------------------------------

    def get_availability(
        self,
        hostel_id: str,
        room_type: Optional[RoomType] = None,
        room_id: Optional[str] = None,
    ) -> AvailabilitySummary:
        hostel = self.hostel_repo.get_by_id(hostel_id)
        counts = self.bed_repo.status_counts(hostel_id=hostel_id, room_id=room_id, room_type=room_type)
        return summarize_counts(counts, reservable=hostel.status is HostelStatus.ACTIVE)

    def occupancy_overview(self) -> OccupancyOverview:
        """Totals across all hostels plus a per-hostel breakdown."""
        by_hostel = self.bed_repo.status_counts_by_hostel()
        totals = {"occupied": 0, "available": 0, "out_of_service": 0}
        rows: List[HostelOccupancy] = []

        for hostel in self.hostel_repo.list_hostels():
            summary = summarize_counts(
                by_hostel.get(hostel.id, {}),
                reservable=hostel.status is HostelStatus.ACTIVE,
            )
            for key in totals:
                totals[key] += getattr(summary, key)
            rows.append(
                HostelOccupancy(
                    hostel_id=hostel.id,
                    hostel_name=hostel.name,
                    status=hostel.status,
                    **summary.model_dump(),
                )
            )

        return OccupancyOverview(
            totals=summarize_counts(
                {
                    BedStatus.OCCUPIED: totals["occupied"],
                    BedStatus.AVAILABLE: totals["available"],
                    BedStatus.MAINTENANCE: totals["out_of_service"],
                }
            ),
            hostels=rows,
        )

    def list_beds(self, room_id: str) -> List[Bed]:
        self.room_repo.get_by_id(room_id)
        return self.bed_repo.list_for_room(room_id)

    def get_room(self, room_id: str) -> Room:
        return self.room_repo.get_by_id(room_id)

    # -------------------------------------------------------------------------
    # Reservation
    # -------------------------------------------------------------------------

    def reserve_bed(
        self,
        hostel_id: Optional[str] = None,
        room_id: Optional[str] = None,
        room_type: Optional[RoomType] = None,
        bed_id: Optional[str] = None,
        application_id: Optional[str] = None,
        commit: bool = True,
    ) -> Bed:
        """
        Claim one available bed matching the filters and mark it reserved.

        Candidates are tried in room number / bed label order; a candidate
        taken by a concurrent writer is skipped.

        Raises:
            CapacityExhaustedError: If no matching bed can be claimed
        """
        if not any((hostel_id, room_id, bed_id)):
            raise ValidationError("A hostel, room or bed must be given to reserve a bed")

        filters = {
            "hostel_id": hostel_id,
            "room_id": room_id,
            "room_type": room_type.value if room_type else None,
            "bed_id": bed_id,
        }

        with self.transaction(auto_commit=commit):
            for _ in range(RESERVE_ROUNDS):
                candidates = self.bed_repo.find_reservable(
                    hostel_id=hostel_id,
                    room_id=room_id,
                    room_type=room_type,
                    bed_id=bed_id,
                )
                if not candidates:
                    break

                for candidate_id in candidates:
                    claimed = self._swap(
                        candidate_id,
                        (BedStatus.AVAILABLE,),
                        BedStatus.RESERVED,
                        reserved_for_application_id=application_id,
                    )
                    if claimed:
                        bed = self.bed_repo.get_by_id(candidate_id)
                        self._log_operation(
                            "reserve_bed",
                            bed.id,
                            {"application_id": application_id, **filters},
                        )
                        return bed
                    self._logger.debug(f"Bed {candidate_id} was claimed concurrently, trying next candidate")

            raise CapacityExhaustedError(details=filters)

    def confirm_occupancy(
        self,
        bed_id: str,
        student_id: str,
        ctx: Optional[RequestContext] = None,
        commit: bool = True,
    ) -> Bed:
        """
        Move a reserved bed to occupied and bind the student.

        Raises:
            InvalidBedStateError: If the bed is not reserved
        """
        ctx = resolve_context(ctx)
        with self.transaction(auto_commit=commit):
            self.bed_repo.get_by_id(bed_id)
            confirmed = self._swap(
                bed_id,
                (BedStatus.RESERVED,),
                BedStatus.OCCUPIED,
                current_student_id=student_id,
                occupied_since=ctx.now,
            )
            bed = self.bed_repo.get_by_id(bed_id, refresh=True)
            if not confirmed:
                raise InvalidBedStateError(bed_id, bed.status.value, [BedStatus.RESERVED.value])

            self._log_operation("confirm_occupancy", bed_id, {"student_id": student_id})
            return bed

    def release(self, bed_id: str, commit: bool = True) -> Bed:
        """
        Return an occupied or reserved bed to the pool.

        Releasing an available bed is a no-op, so a retried release after a
        partial failure is safe.

        Raises:
            InvalidBedStateError: If the bed is under maintenance
        """
        with self.transaction(auto_commit=commit):
            bed = self.bed_repo.get_by_id(bed_id)
            if bed.status is BedStatus.AVAILABLE:
                return bed
            if bed.status is BedStatus.MAINTENANCE:
                raise InvalidBedStateError(
                    bed_id,
                    bed.status.value,
                    [BedStatus.OCCUPIED.value, BedStatus.RESERVED.value],
                )

            released = self._swap(
                bed_id,
                (BedStatus.OCCUPIED, BedStatus.RESERVED),
                BedStatus.AVAILABLE,
                current_student_id=None,
                reserved_for_application_id=None,
                occupied_since=None,
            )
            bed = self.bed_repo.get_by_id(bed_id, refresh=True)
            if not released and bed.status is not BedStatus.AVAILABLE:
                raise InvalidBedStateError(
                    bed_id,
                    bed.status.value,
                    [BedStatus.OCCUPIED.value, BedStatus.RESERVED.value],
                )

            if released:
                self._log_operation("release_bed", bed_id)
            return bed

    # -------------------------------------------------------------------------
    # Inventory
    # -------------------------------------------------------------------------

    def add_room(
        self,
        hostel_id: str,
        number: str,
        room_type: RoomType,
        capacity: Optional[int] = None,
        floor: Optional[int] = None,
        commit: bool = True,
    ) -> Room:
        """Create a room and one bed per unit of capacity, labelled A, B, ..."""
        capacity = room_type.default_capacity if capacity is None else capacity
        self._check_capacity(capacity)

        with self.transaction(auto_commit=commit):
            self.hostel_repo.get_by_id(hostel_id)
            if self.room_repo.find_by_number(hostel_id, number):
                raise ValidationError(
                    "Room number already exists in this hostel",
                    {"number": [f"Room '{number}' already exists"]},
                )

            room = Room(
                hostel_id=hostel_id,
                number=number,
                room_type=room_type,
                capacity=capacity,
                floor=floor,
                status=RoomStatus.AVAILABLE,
            )
            try:
                self.room_repo.add(room)
                for label in BED_LABELS[:capacity]:
                    self.bed_repo.add(Bed(room_id=room.id, label=label, status=BedStatus.AVAILABLE))
            except IntegrityError as e:
                raise ValidationError(
                    "Room number already exists in this hostel",
                    {"number": [f"Room '{number}' already exists"]},
                ) from e

            self.db.expire(room, ["beds"])
            self._log_operation(
                "add_room",
                room.id,
                {"hostel_id": hostel_id, "room_number": number, "capacity": capacity},
            )
            return room

    def resize_room(self, room_id: str, capacity: int, commit: bool = True) -> Room:
        """
        Grow a room by adding beds or shrink it by removing beds no student
        holds, highest label first.

        Raises:
            InvalidBedStateError: If shrinking would remove a bed in use
        """
        self._check_capacity(capacity, minimum=0)

        with self.transaction(auto_commit=commit):
            room = self.room_repo.get_by_id(room_id)
            beds = self.bed_repo.list_for_room(room_id)

            if capacity > len(beds):
                # beds added to a room out of service start under maintenance
                status = BedStatus.AVAILABLE if room.status is RoomStatus.AVAILABLE else BedStatus.MAINTENANCE
                used = {bed.label for bed in beds}
                free_labels = [label for label in BED_LABELS if label not in used]
                for label in free_labels[: capacity - len(beds)]:
                    self.bed_repo.add(Bed(room_id=room_id, label=label, status=status))

            elif capacity < len(beds):
                to_remove = len(beds) - capacity
                removable = [bed for bed in reversed(beds) if bed.status in UNBOUND_BED_STATUSES]
                if len(removable) < to_remove:
                    blocking = next(bed for bed in beds if bed.status not in UNBOUND_BED_STATUSES)
                    raise InvalidBedStateError(
                        blocking.id,
                        blocking.status.value,
                        [BedStatus.AVAILABLE.value, BedStatus.MAINTENANCE.value],
                        message=(
                            f"Room {room.number} has {len(beds) - len(removable)} beds in use "
                            f"and cannot shrink to {capacity}"
                        ),
                    )
                for bed in removable[:to_remove]:
                    if not self.bed_repo.remove_if_unbound(bed):
                        raise InvalidBedStateError(
                            bed.id,
                            None,
                            [BedStatus.AVAILABLE.value, BedStatus.MAINTENANCE.value],
                            message=f"Bed {bed.label} was claimed while resizing room {room.number}",
                        )

            self.db.expire(room, ["beds"])
            self.room_repo.apply_changes(room, {"capacity": capacity})
            self._log_operation("resize_room", room_id, {"from_capacity": len(beds), "to_capacity": capacity})
            return room

    def set_room_status(self, room_id: str, status: RoomStatus, commit: bool = True) -> Room:
        """
        Change a room's status.

        Taking a room out of service moves its available beds to maintenance;
        bringing it back restores every bed under maintenance.
        """
        with self.transaction(auto_commit=commit):
            room = self.room_repo.get_by_id(room_id)
            if room.status is status:
                return room

            if status is RoomStatus.AVAILABLE:
                source, target = BedStatus.MAINTENANCE, BedStatus.AVAILABLE
            else:
                source, target = BedStatus.AVAILABLE, BedStatus.MAINTENANCE

            moved = 0
            for bed in self.bed_repo.list_for_room(room_id):
                if bed.status is source and self._swap(bed.id, (source,), target):
                    moved += 1

            self.room_repo.apply_changes(room, {"status": status})
            self._log_operation(
                "set_room_status",
                room_id,
                {"room_status": status.value, "beds_moved": moved},
            )
            return room

    def set_bed_maintenance(self, bed_id: str, under_maintenance: bool, commit: bool = True) -> Bed:
        """
        Move a single bed between available and maintenance.

        Raises:
            InvalidBedStateError: If the bed is occupied or reserved
        """
        source, target = (
            (BedStatus.AVAILABLE, BedStatus.MAINTENANCE)
            if under_maintenance
            else (BedStatus.MAINTENANCE, BedStatus.AVAILABLE)
        )
        with self.transaction(auto_commit=commit):
            bed = self.bed_repo.get_by_id(bed_id)
            if bed.status is target:
                return bed
            if not self._swap(bed_id, (source,), target):
                bed = self.bed_repo.get_by_id(bed_id, refresh=True)
                raise InvalidBedStateError(bed_id, bed.status.value, [source.value])

            self._log_operation("set_bed_maintenance", bed_id, {"under_maintenance": under_maintenance})
            return self.bed_repo.get_by_id(bed_id)

    def _swap(self, bed_id: str, expected: Tuple[BedStatus, ...], target: BedStatus, **values) -> bool:
        """Compare-and-swap a bed status; moves missing from BED_TRANSITIONS are refused."""
        for source in expected:
            ensure_transition(
                BED_TRANSITIONS,
                source,
                target,
                lambda current, wanted: InvalidBedStateError(
                    bed_id,
                    current.value,
                    message=f"Bed {bed_id} cannot move from '{current.value}' to '{wanted.value}'",
                ),
            )
        return self.bed_repo.transition(bed_id, expected, target, **values)

    @staticmethod
    def _check_capacity(capacity: int, minimum: int = 1) -> None:
        if capacity < minimum or capacity > MAX_BEDS_PER_ROOM:
            raise ValidationError(
                "Invalid room capacity",
                {"capacity": [f"Must be between {minimum} and {MAX_BEDS_PER_ROOM}"]},
            )
