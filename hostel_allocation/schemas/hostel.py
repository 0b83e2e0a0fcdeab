"""
Hostel inventory and occupancy schemas.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from hostel_allocation.models.enums import (
    BedStatus,
    GenderPolicy,
    HostelStatus,
    RoomStatus,
    RoomType,
)
from hostel_allocation.schemas.common import (
    BaseCreateSchema,
    BaseResponseSchema,
    BaseSchema,
    BaseUpdateSchema,
)

__all__ = [
    "HostelCreate",
    "HostelUpdate",
    "HostelResponse",
    "RoomCreate",
    "RoomUpdate",
    "RoomResponse",
    "BedResponse",
    "BedMaintenanceRequest",
    "AvailabilitySummary",
    "HostelOccupancy",
    "OccupancyOverview",
]

MAX_BEDS_PER_ROOM = 26


class HostelCreate(BaseCreateSchema):
    name: str = Field(..., min_length=2, max_length=150)
    code: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = None
    gender_policy: GenderPolicy = GenderPolicy.MIXED
    status: HostelStatus = HostelStatus.ACTIVE


class HostelUpdate(BaseUpdateSchema):
    name: Optional[str] = Field(None, min_length=2, max_length=150)
    code: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = None
    gender_policy: Optional[GenderPolicy] = None
    status: Optional[HostelStatus] = None


class HostelResponse(BaseResponseSchema):
    name: str
    code: Optional[str] = None
    description: Optional[str] = None
    gender_policy: GenderPolicy
    status: HostelStatus


class RoomCreate(BaseCreateSchema):
    number: str = Field(..., min_length=1, max_length=20)
    room_type: RoomType
    capacity: Optional[int] = Field(
        None,
        ge=1,
        le=MAX_BEDS_PER_ROOM,
        description="Number of beds; defaults to the room type's occupancy",
    )
    floor: Optional[int] = None


class RoomUpdate(BaseUpdateSchema):
    capacity: Optional[int] = Field(None, ge=0, le=MAX_BEDS_PER_ROOM)
    status: Optional[RoomStatus] = None


class RoomResponse(BaseResponseSchema):
    hostel_id: str
    number: str
    floor: Optional[int] = None
    room_type: RoomType
    capacity: int
    status: RoomStatus


class BedResponse(BaseResponseSchema):
    room_id: str
    label: str
    status: BedStatus
    current_student_id: Optional[str] = None
    reserved_for_application_id: Optional[str] = None


class BedMaintenanceRequest(BaseSchema):
    under_maintenance: bool = True


class AvailabilitySummary(BaseSchema):
    """
    Occupancy figures for a scope of beds.

    ``occupied + available == capacity`` always holds; beds under
    maintenance are reported separately as ``out_of_service``.
    """

    capacity: int = 0
    occupied: int = 0
    available: int = 0
    out_of_service: int = 0
    occupancy_rate: float = 0.0


class HostelOccupancy(AvailabilitySummary):
    hostel_id: str
    hostel_name: str
    status: HostelStatus


class OccupancyOverview(BaseSchema):
    totals: AvailabilitySummary
    hostels: List[HostelOccupancy] = Field(default_factory=list)
