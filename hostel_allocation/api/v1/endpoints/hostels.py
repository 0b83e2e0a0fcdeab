"""
Hostel, room and bed endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from hostel_allocation.api.deps import get_services, require_admin
from hostel_allocation.core.context import RequestContext
from hostel_allocation.models.enums import HostelStatus, RoomType
from hostel_allocation.schemas.hostel import (
    AvailabilitySummary,
    BedMaintenanceRequest,
    BedResponse,
    HostelCreate,
    HostelResponse,
    HostelUpdate,
    OccupancyOverview,
    RoomCreate,
    RoomResponse,
    RoomUpdate,
)
from hostel_allocation.services.service_factory import ServiceFactory

router = APIRouter(tags=["hostels"])


@router.post("/hostels", response_model=HostelResponse, status_code=status.HTTP_201_CREATED)
def create_hostel(
    payload: HostelCreate,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(require_admin),
):
    return services.hostels().create_hostel(payload)


@router.get("/hostels", response_model=List[HostelResponse])
def list_hostels(
    hostel_status: Optional[HostelStatus] = Query(None, alias="status"),
    services: ServiceFactory = Depends(get_services),
):
    return services.hostels().list_hostels(hostel_status)


@router.get("/hostels/{hostel_id}", response_model=HostelResponse)
def get_hostel(hostel_id: str, services: ServiceFactory = Depends(get_services)):
    return services.hostels().get_hostel(hostel_id)


@router.patch("/hostels/{hostel_id}", response_model=HostelResponse)
def update_hostel(
    hostel_id: str,
    payload: HostelUpdate,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(require_admin),
):
    return services.hostels().update_hostel(hostel_id, payload)


@router.get("/hostels/{hostel_id}/availability", response_model=AvailabilitySummary)
def get_availability(
    hostel_id: str,
    room_type: Optional[RoomType] = None,
    room_id: Optional[str] = None,
    services: ServiceFactory = Depends(get_services),
):
    return services.ledger().get_availability(hostel_id, room_type=room_type, room_id=room_id)


@router.get("/hostels/{hostel_id}/rooms", response_model=List[RoomResponse])
def list_rooms(hostel_id: str, services: ServiceFactory = Depends(get_services)):
    return services.hostels().list_rooms(hostel_id)


@router.post("/hostels/{hostel_id}/rooms", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
def add_room(
    hostel_id: str,
    payload: RoomCreate,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(require_admin),
):
    return services.hostels().add_room(hostel_id, payload)


@router.patch("/rooms/{room_id}", response_model=RoomResponse)
def update_room(
    room_id: str,
    payload: RoomUpdate,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(require_admin),
):
    return services.hostels().update_room(room_id, payload)


@router.get("/rooms/{room_id}/beds", response_model=List[BedResponse])
def list_beds(room_id: str, services: ServiceFactory = Depends(get_services)):
    return services.ledger().list_beds(room_id)


@router.post("/beds/{bed_id}/maintenance", response_model=BedResponse)
def set_bed_maintenance(
    bed_id: str,
    payload: BedMaintenanceRequest,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(require_admin),
):
    return services.ledger().set_bed_maintenance(bed_id, payload.under_maintenance)


@router.get("/occupancy", response_model=OccupancyOverview)
def occupancy_overview(services: ServiceFactory = Depends(get_services)):
    return services.ledger().occupancy_overview()
