"""
Service factory wiring the allocation services for one database session.
"""

from typing import Dict, Optional

from sqlalchemy.orm import Session

from hostel_allocation.repositories import (
    ApplicationRepository,
    BedRepository,
    HostelRepository,
    RoomRepository,
    WindowRepository,
)
from hostel_allocation.services.allocation_engine import AllocationEngine
from hostel_allocation.services.application_lifecycle import ApplicationLifecycle
from hostel_allocation.services.capacity_ledger import CapacityLedger
from hostel_allocation.services.hostel_service import HostelService
from hostel_allocation.services.notifications import NotificationDispatcher, get_notification_dispatcher
from hostel_allocation.services.window_registry import WindowRegistry


class ServiceFactory:
    """
    Creates services sharing one session and one set of repositories.

    Instances are cached so a request that touches several services works
    against the same identity map.
    """

    def __init__(self, db_session: Session, notifier: Optional[NotificationDispatcher] = None):
        self.db = db_session
        self.notifier = notifier or get_notification_dispatcher()
        self._cache: Dict[str, object] = {}

        self.hostel_repo = HostelRepository(db_session)
        self.room_repo = RoomRepository(db_session)
        self.bed_repo = BedRepository(db_session)
        self.window_repo = WindowRepository(db_session)
        self.application_repo = ApplicationRepository(db_session)

    def ledger(self) -> CapacityLedger:
        if "ledger" not in self._cache:
            self._cache["ledger"] = CapacityLedger(
                self.db,
                hostel_repo=self.hostel_repo,
                room_repo=self.room_repo,
                bed_repo=self.bed_repo,
            )
        return self._cache["ledger"]

    def hostels(self) -> HostelService:
        if "hostels" not in self._cache:
            self._cache["hostels"] = HostelService(
                self.db,
                ledger=self.ledger(),
                hostel_repo=self.hostel_repo,
                room_repo=self.room_repo,
            )
        return self._cache["hostels"]

    def windows(self) -> WindowRegistry:
        if "windows" not in self._cache:
            self._cache["windows"] = WindowRegistry(
                self.db,
                window_repo=self.window_repo,
                application_repo=self.application_repo,
            )
        return self._cache["windows"]

    def engine(self) -> AllocationEngine:
        if "engine" not in self._cache:
            self._cache["engine"] = AllocationEngine(
                self.db,
                ledger=self.ledger(),
                window_repo=self.window_repo,
                application_repo=self.application_repo,
            )
        return self._cache["engine"]

    def lifecycle(self) -> ApplicationLifecycle:
        if "lifecycle" not in self._cache:
            self._cache["lifecycle"] = ApplicationLifecycle(
                self.db,
                engine=self.engine(),
                notifier=self.notifier,
                application_repo=self.application_repo,
                window_repo=self.window_repo,
                hostel_repo=self.hostel_repo,
                room_repo=self.room_repo,
                bed_repo=self.bed_repo,
            )
        return self._cache["lifecycle"]
