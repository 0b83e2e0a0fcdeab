"""
Hostel administration: hostel records and room edits.

Room and bed writes are delegated to the capacity ledger.
"""

from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hostel_allocation.core.exceptions import ValidationError
from hostel_allocation.models.enums import HostelStatus
from hostel_allocation.models.hostel import Hostel, Room
from hostel_allocation.repositories.hostel_repository import HostelRepository, RoomRepository
from hostel_allocation.schemas.hostel import HostelCreate, HostelUpdate, RoomCreate, RoomUpdate
from hostel_allocation.services.base_service import BaseService
from hostel_allocation.services.capacity_ledger import CapacityLedger


class HostelService(BaseService):
    """CRUD for hostels and the room edits administrators perform."""

    def __init__(
        self,
        db_session: Session,
        ledger: Optional[CapacityLedger] = None,
        hostel_repo: Optional[HostelRepository] = None,
        room_repo: Optional[RoomRepository] = None,
    ):
        super().__init__(db_session)
        self.ledger = ledger or CapacityLedger(db_session)
        self.hostel_repo = hostel_repo or HostelRepository(db_session)
        self.room_repo = room_repo or RoomRepository(db_session)

    def create_hostel(self, data: HostelCreate) -> Hostel:
        if self.hostel_repo.find_by_name(data.name):
            raise ValidationError(
                "Hostel name already exists",
                {"name": [f"A hostel named '{data.name}' already exists"]},
            )

        with self.transaction():
            hostel = Hostel(**data.model_dump())
            try:
                self.hostel_repo.add(hostel)
            except IntegrityError as e:
                raise ValidationError(
                    "Hostel name or code already exists",
                    {"name": [data.name], "code": [data.code or ""]},
                ) from e

        self._log_operation("create_hostel", hostel.id, {"hostel_name": hostel.name})
        return hostel

    def update_hostel(self, hostel_id: str, data: HostelUpdate) -> Hostel:
        changes = data.model_dump(exclude_unset=True)
        with self.transaction():
            hostel = self.hostel_repo.get_by_id(hostel_id)
            new_name = changes.get("name")
            if new_name and new_name != hostel.name and self.hostel_repo.find_by_name(new_name):
                raise ValidationError(
                    "Hostel name already exists",
                    {"name": [f"A hostel named '{new_name}' already exists"]},
                )
            try:
                self.hostel_repo.apply_changes(hostel, changes)
            except IntegrityError as e:
                raise ValidationError("Hostel name or code already exists") from e

        self._log_operation("update_hostel", hostel_id, {"fields": sorted(changes)})
        return hostel

    def get_hostel(self, hostel_id: str) -> Hostel:
        return self.hostel_repo.get_by_id(hostel_id)

    def list_hostels(self, status: Optional[HostelStatus] = None) -> List[Hostel]:
        return self.hostel_repo.list_hostels(status)

    def list_rooms(self, hostel_id: str) -> List[Room]:
        self.hostel_repo.get_by_id(hostel_id)
        return self.room_repo.list_for_hostel(hostel_id)

    def add_room(self, hostel_id: str, data: RoomCreate) -> Room:
        return self.ledger.add_room(
            hostel_id,
            number=data.number,
            room_type=data.room_type,
            capacity=data.capacity,
            floor=data.floor,
        )

    def update_room(self, room_id: str, data: RoomUpdate) -> Room:
        """Apply a capacity and/or status change as one unit of work."""
        changes = data.model_dump(exclude_unset=True)
        with self.transaction():
            room = self.ledger.get_room(room_id)
            if changes.get("capacity") is not None:
                room = self.ledger.resize_room(room_id, changes["capacity"], commit=False)
            if changes.get("status") is not None:
                room = self.ledger.set_room_status(room_id, changes["status"], commit=False)
        return room
