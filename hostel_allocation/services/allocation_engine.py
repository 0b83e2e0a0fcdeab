"""
Allocation engine: turns an approval decision into a bed allocation.

Reservation, occupancy confirmation and the status change are committed
together. When no bed can be reserved the decision is reconciled against
the window's waitlist policy instead of failing outright.
"""

from typing import Dict, List, Optional, Union

from sqlalchemy.orm import Session

from hostel_allocation.core.context import RequestContext, resolve_context
from hostel_allocation.core.exceptions import (
    CapacityExhaustedError,
    InvalidStateError,
    WaitlistFullError,
)
from hostel_allocation.models.application import Application
from hostel_allocation.models.enums import DECIDABLE_STATUSES, ApplicationStatus
from hostel_allocation.models.hostel import Bed
from hostel_allocation.repositories.application_repository import ApplicationRepository
from hostel_allocation.repositories.window_repository import WindowRepository
from hostel_allocation.services.application_state import apply_transition
from hostel_allocation.services.base_service import BaseService
from hostel_allocation.services.capacity_ledger import CapacityLedger


class AllocationEngine(BaseService):
    """Approve applications against live bed capacity."""

    def __init__(
        self,
        db_session: Session,
        ledger: Optional[CapacityLedger] = None,
        window_repo: Optional[WindowRepository] = None,
        application_repo: Optional[ApplicationRepository] = None,
    ):
        super().__init__(db_session)
        self.ledger = ledger or CapacityLedger(db_session)
        self.window_repo = window_repo or WindowRepository(db_session)
        self.application_repo = application_repo or ApplicationRepository(db_session)

    # -------------------------------------------------------------------------
    # Bed matching
    # -------------------------------------------------------------------------

    @staticmethod
    def bed_preferences(application: Application) -> List[Dict[str, object]]:
        """
        Reservation filters from most to least specific: the requested bed,
        the requested room, then any bed of the preferred room type in the
        requested hostel.
        """
        hostel_id = application.requested_hostel_id
        attempts: List[Dict[str, object]] = []
        if application.requested_bed_id:
            attempts.append({"hostel_id": hostel_id, "bed_id": application.requested_bed_id})
        if application.requested_room_id:
            attempts.append({"hostel_id": hostel_id, "room_id": application.requested_room_id})
        attempts.append({"hostel_id": hostel_id, "room_type": application.preferred_room_type})
        return attempts

    def has_matching_bed(self, application: Application) -> bool:
        """Whether any bed the application would accept is currently free."""
        return any(
            self.ledger.bed_repo.find_reservable(limit=1, **filters)
            for filters in self.bed_preferences(application)
        )

    def _reserve_for(self, application: Application) -> Bed:
        exhausted: Optional[CapacityExhaustedError] = None
        for filters in self.bed_preferences(application):
            try:
                return self.ledger.reserve_bed(application_id=application.id, commit=False, **filters)
            except CapacityExhaustedError as e:
                exhausted = e
        raise exhausted

    # -------------------------------------------------------------------------
    # Approval
    # -------------------------------------------------------------------------

    def approve(
        self,
        application: Union[Application, str],
        admin_id: str,
        notes: Optional[str] = None,
        ctx: Optional[RequestContext] = None,
    ) -> Application:
        """
        Allocate a bed and mark the application approved.

        If no bed is free a pending application is waitlisted when the
        window has waitlist room; a waitlisted application stays where it is
        and the attempt is added to its history.

        Raises:
            InvalidStateError: If the application is not pending or waitlisted
            WaitlistFullError: If no bed is free and the application cannot be waitlisted
        """
        ctx = resolve_context(ctx)
        application = self._load(application)
        if application.status not in DECIDABLE_STATUSES:
            raise InvalidStateError(
                f"Only pending or waitlisted applications can be approved (status '{application.status.value}')",
                current_state=application.status.value,
                target_state=ApplicationStatus.APPROVED.value,
            )

        previous = application.status
        try:
            with self.transaction():
                bed = self._reserve_for(application)
                self.ledger.confirm_occupancy(bed.id, application.student_id, ctx, commit=False)
                application = apply_transition(
                    self.application_repo,
                    application,
                    ApplicationStatus.APPROVED,
                    ctx,
                    actor_id=admin_id,
                    notes=notes,
                    allocated_bed_id=bed.id,
                    processed_at=ctx.now,
                    processed_by=admin_id,
                    admin_notes=notes,
                )
                if previous is ApplicationStatus.WAITLISTED:
                    self.window_repo.decrement_waitlist(application.window_id)
        except CapacityExhaustedError:
            return self._reconcile_exhausted(application.id, admin_id, notes, ctx)

        self._log_operation(
            "approve_application",
            application.id,
            {"bed_id": application.allocated_bed_id, "previous_status": previous.value, "admin_id": admin_id},
        )
        return application

    def _reconcile_exhausted(
        self,
        application_id: str,
        admin_id: str,
        notes: Optional[str],
        ctx: RequestContext,
    ) -> Application:
        with self.transaction():
            application = self.application_repo.get_by_id(application_id, refresh=True)
            if application.status is ApplicationStatus.WAITLISTED:
                self._logger.info(f"No bed free for waitlisted application {application_id}; it stays waitlisted")
                self.application_repo.add_history(
                    application_id,
                    ApplicationStatus.WAITLISTED,
                    ApplicationStatus.WAITLISTED,
                    admin_id,
                    "Approval attempted; no bed free",
                    ctx.now,
                )
                return self.application_repo.apply_changes(
                    application,
                    {"processed_at": ctx.now, "processed_by": admin_id},
                )

            window = self.window_repo.get_by_id(application.window_id)
            if not self.window_repo.try_increment_waitlist(window.id):
                window = self.window_repo.get_by_id(window.id, refresh=True)
                raise WaitlistFullError(window.id, window.waitlist_capacity, window.allow_waitlist)

            application = apply_transition(
                self.application_repo,
                application,
                ApplicationStatus.WAITLISTED,
                ctx,
                actor_id=admin_id,
                notes=notes,
                processed_at=ctx.now,
                processed_by=admin_id,
                admin_notes=notes,
            )

        self._log_operation(
            "waitlist_application",
            application_id,
            {"reason": "capacity_exhausted", "admin_id": admin_id},
        )
        return application

    # -------------------------------------------------------------------------
    # Release and promotion
    # -------------------------------------------------------------------------

    def release_allocation(self, application: Application, commit: bool = True) -> Optional[Bed]:
        """Return the application's bed to the pool, if it holds one."""
        if not application.allocated_bed_id:
            return None
        bed = self.ledger.release(application.allocated_bed_id, commit=commit)
        self._log_operation("release_allocation", application.id, {"bed_id": bed.id})
        return bed

    def promote_waitlisted(
        self,
        window_id: str,
        admin_id: str,
        ctx: Optional[RequestContext] = None,
    ) -> List[Application]:
        """
        Approve waitlisted applications of a window in queue order until one
        cannot be given a bed. Returns the promoted applications.
        """
        ctx = resolve_context(ctx)
        self.window_repo.get_by_id(window_id)
        promoted: List[Application] = []
        for application in self.application_repo.list_for_window(window_id, [ApplicationStatus.WAITLISTED]):
            result = self.approve(application, admin_id, notes="Promoted from waitlist", ctx=ctx)
            if result.status is not ApplicationStatus.APPROVED:
                break
            promoted.append(result)

        self._log_operation("promote_waitlisted", window_id, {"promoted": len(promoted), "admin_id": admin_id})
        return promoted

    def _load(self, application: Union[Application, str]) -> Application:
        application_id = application if isinstance(application, str) else application.id
        return self.application_repo.get_by_id(application_id, refresh=True)
