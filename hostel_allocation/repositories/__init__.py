from hostel_allocation.repositories.base_repository import BaseRepository
from hostel_allocation.repositories.hostel_repository import BedRepository, HostelRepository, RoomRepository
from hostel_allocation.repositories.window_repository import WindowRepository
from hostel_allocation.repositories.application_repository import ApplicationRepository

__all__ = [
    "BaseRepository",
    "HostelRepository",
    "RoomRepository",
    "BedRepository",
    "WindowRepository",
    "ApplicationRepository",
]
