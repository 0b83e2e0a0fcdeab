"""
Application lifecycle manager.

Owns every status change of an application after submission. Window
counters move in the same transaction as the status write that causes
them, and notifications go out only after the commit.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hostel_allocation.core.context import ROLE_STUDENT, RequestContext, resolve_context
from hostel_allocation.core.exceptions import (
    AccessDeniedError,
    DuplicateApplicationError,
    IneligibleError,
    InvalidStateError,
    ValidationError,
    WaitlistFullError,
    WindowClosedError,
)
from hostel_allocation.models.application import Application, ApplicationStatusHistory
from hostel_allocation.models.enums import (
    DECIDABLE_STATUSES,
    ApplicationStatus,
    DecisionOutcome,
    HostelStatus,
    WindowStatus,
)
from hostel_allocation.models.hostel import Hostel
from hostel_allocation.models.window import ApplicationWindow
from hostel_allocation.repositories.application_repository import ApplicationRepository
from hostel_allocation.repositories.hostel_repository import BedRepository, HostelRepository, RoomRepository
from hostel_allocation.repositories.window_repository import WindowRepository
from hostel_allocation.schemas.application import ApplicationEdit, ApplicationPreferences
from hostel_allocation.schemas.eligibility import EligibilityCriteria, StudentProfile
from hostel_allocation.services.allocation_engine import AllocationEngine
from hostel_allocation.services.application_state import apply_transition
from hostel_allocation.services.base_service import BaseService
from hostel_allocation.services.eligibility import EligibilityEvaluator
from hostel_allocation.services.notifications import (
    NotificationDispatcher,
    NotificationEvent,
    dispatch_safely,
    get_notification_dispatcher,
)
from hostel_allocation.services.priority import compute_priority_score

# ApplicationEdit field -> Application column
_PREFERENCE_COLUMNS = {
    "hostel_id": "requested_hostel_id",
    "room_id": "requested_room_id",
    "bed_id": "requested_bed_id",
    "room_type": "preferred_room_type",
    "special_requirements": "special_requirements",
    "reason": "reason",
    "documents": "documents",
}

# resulting status -> outcome reported to the notifier
_OUTCOME_BY_STATUS = {
    ApplicationStatus.APPROVED: DecisionOutcome.APPROVE,
    ApplicationStatus.WAITLISTED: DecisionOutcome.WAITLIST,
    ApplicationStatus.REJECTED: DecisionOutcome.REJECT,
}


class ApplicationLifecycle(BaseService):
    """
    Submission, withdrawal, decisions and edits of hostel applications.

    Approval is delegated to the allocation engine; everything else is
    handled here.
    """

    def __init__(
        self,
        db_session: Session,
        engine: Optional[AllocationEngine] = None,
        evaluator: Optional[EligibilityEvaluator] = None,
        notifier: Optional[NotificationDispatcher] = None,
        application_repo: Optional[ApplicationRepository] = None,
        window_repo: Optional[WindowRepository] = None,
        hostel_repo: Optional[HostelRepository] = None,
        room_repo: Optional[RoomRepository] = None,
        bed_repo: Optional[BedRepository] = None,
    ):
        super().__init__(db_session)
        self.application_repo = application_repo or ApplicationRepository(db_session)
        self.window_repo = window_repo or WindowRepository(db_session)
        self.hostel_repo = hostel_repo or HostelRepository(db_session)
        self.room_repo = room_repo or RoomRepository(db_session)
        self.bed_repo = bed_repo or BedRepository(db_session)
        self.engine = engine or AllocationEngine(
            db_session,
            window_repo=self.window_repo,
            application_repo=self.application_repo,
        )
        self.evaluator = evaluator or EligibilityEvaluator()
        self.notifier = notifier or get_notification_dispatcher()

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    def submit(
        self,
        profile: StudentProfile,
        window_id: str,
        preferences: ApplicationPreferences,
        ctx: Optional[RequestContext] = None,
    ) -> Application:
        """
        Submit an application.

        Checks run in order: window open, requested hostel usable,
        eligibility, required documents, duplicates, then capacity. A full
        main pool sends the application straight to the waitlist when the
        window allows it.

        Raises:
            WindowClosedError: If the window is not accepting applications
            ValidationError: If the preferences or documents are invalid
            IneligibleError: If the student fails the window's criteria
            DuplicateApplicationError: If the student already has an active application
        """
        ctx = resolve_context(ctx)
        self._ensure_actor_is(profile.student_id, ctx)

        window = self.window_repo.get_by_id(window_id)
        self._ensure_accepting(window, ctx)

        hostel = self._validate_preferences(
            preferences.hostel_id,
            preferences.room_id,
            preferences.bed_id,
        )
        self._ensure_eligible(profile, window, hostel)
        self._ensure_documents(window, [doc.type for doc in preferences.documents])

        existing = self.application_repo.find_active(window_id, profile.student_id)
        if existing:
            raise DuplicateApplicationError(window_id, profile.student_id, existing.id)

        with self.transaction():
            if self.window_repo.try_increment_applications(window_id):
                status = ApplicationStatus.PENDING
            elif self.window_repo.try_increment_waitlist(window_id):
                status = ApplicationStatus.WAITLISTED
            else:
                raise WindowClosedError(window_id, "capacity_reached")

            application = Application(
                window_id=window_id,
                student_id=profile.student_id,
                requested_hostel_id=hostel.id,
                requested_room_id=preferences.room_id,
                requested_bed_id=preferences.bed_id,
                preferred_room_type=preferences.room_type,
                special_requirements=preferences.special_requirements,
                reason=preferences.reason,
                documents=[doc.model_dump(mode="json") for doc in preferences.documents],
                profile_snapshot=profile.model_dump(mode="json"),
                status=status,
                priority_score=compute_priority_score(profile, window, ctx.now),
                submitted_at=ctx.now,
            )
            try:
                self.application_repo.add(application)
            except IntegrityError as e:
                raise DuplicateApplicationError(window_id, profile.student_id) from e

            self.application_repo.add_history(
                application.id,
                None,
                status,
                ctx.actor_id or profile.student_id,
                "Submitted" if status is ApplicationStatus.PENDING else "Submitted to waitlist",
                ctx.now,
            )

        self._log_operation(
            "submit_application",
            application.id,
            {
                "window_id": window_id,
                "student_id": profile.student_id,
                "application_status": status.value,
                "priority_score": application.priority_score,
            },
        )
        dispatch_safely(self.notifier, NotificationEvent.APPLICATION_SUBMITTED, application)
        return application

    # -------------------------------------------------------------------------
    # Student operations
    # -------------------------------------------------------------------------

    def withdraw(
        self,
        application_id: str,
        student_id: str,
        ctx: Optional[RequestContext] = None,
    ) -> Application:
        """
        Withdraw a pending application and give its window slot back.

        Withdrawing an already withdrawn application is a no-op.

        Raises:
            AccessDeniedError: If the student does not own the application
            InvalidStateError: If the application is not pending
        """
        ctx = resolve_context(ctx)
        with self.transaction():
            application = self.application_repo.get_by_id(application_id, refresh=True)
            self._ensure_owner(application, student_id)

            if application.status is ApplicationStatus.WITHDRAWN:
                return application
            if application.status is not ApplicationStatus.PENDING:
                raise InvalidStateError(
                    f"Only pending applications can be withdrawn (status '{application.status.value}')",
                    current_state=application.status.value,
                    target_state=ApplicationStatus.WITHDRAWN.value,
                )

            self.engine.release_allocation(application, commit=False)
            application = apply_transition(
                self.application_repo,
                application,
                ApplicationStatus.WITHDRAWN,
                ctx,
                actor_id=student_id,
                notes="Withdrawn by student",
                withdrawn_at=ctx.now,
                allocated_bed_id=None,
            )
            self.window_repo.decrement_applications(application.window_id)

        self._log_operation(
            "withdraw_application",
            application_id,
            {"window_id": application.window_id, "student_id": student_id},
        )
        return application

    def edit(
        self,
        application_id: str,
        student_id: str,
        changes: ApplicationEdit,
        ctx: Optional[RequestContext] = None,
    ) -> Application:
        """
        Change preferences, requirements or documents of a pending application.

        A new hostel is re-checked against the window's criteria using the
        profile captured at submission.
        """
        ctx = resolve_context(ctx)
        data = changes.model_dump(exclude_unset=True)

        with self.transaction():
            application = self.application_repo.get_by_id(application_id, refresh=True)
            self._ensure_owner(application, student_id)
            if application.status is not ApplicationStatus.PENDING:
                raise InvalidStateError(
                    f"Only pending applications can be edited (status '{application.status.value}')",
                    current_state=application.status.value,
                )

            values: Dict[str, Any] = {_PREFERENCE_COLUMNS[key]: value for key, value in data.items()}
            if data.get("hostel_id") is None:
                values.pop("requested_hostel_id", None)
            if "documents" in data:
                values["documents"] = [
                    doc.model_dump(mode="json") for doc in (changes.documents or [])
                ]

            hostel_id = values.get("requested_hostel_id", application.requested_hostel_id)
            hostel = self._validate_preferences(
                hostel_id,
                values.get("requested_room_id", application.requested_room_id),
                values.get("requested_bed_id", application.requested_bed_id),
            )

            window = self.window_repo.get_by_id(application.window_id)
            if hostel_id != application.requested_hostel_id:
                profile = StudentProfile.model_validate(application.profile_snapshot)
                self._ensure_eligible(profile, window, hostel)
            if "documents" in values:
                self._ensure_documents(window, [doc.get("type") for doc in values["documents"]])

            self.application_repo.apply_changes(application, values)

        self._log_operation("edit_application", application_id, {"fields": sorted(data)})
        return application

    # -------------------------------------------------------------------------
    # Administrator operations
    # -------------------------------------------------------------------------

    def decide(
        self,
        application_id: str,
        admin_id: str,
        outcome: DecisionOutcome,
        notes: Optional[str] = None,
        ctx: Optional[RequestContext] = None,
    ) -> Application:
        """
        Record an administrator decision on a pending or waitlisted application.

        Raises:
            InvalidStateError: If the application is not pending or waitlisted,
                or a waitlist decision is made while a matching bed is free
            WaitlistFullError: If the application cannot be waitlisted
        """
        ctx = resolve_context(ctx)
        application = self.application_repo.get_by_id(application_id, refresh=True)
        if application.status not in DECIDABLE_STATUSES:
            raise InvalidStateError(
                f"Only pending or waitlisted applications can be decided (status '{application.status.value}')",
                current_state=application.status.value,
            )

        previous = application.status
        if outcome is DecisionOutcome.APPROVE:
            application = self.engine.approve(application, admin_id, notes, ctx)
        elif outcome is DecisionOutcome.REJECT:
            application = self._reject(application, admin_id, notes, ctx)
        else:
            application = self._waitlist(application, admin_id, notes, ctx)

        if application.status is not previous:
            dispatch_safely(
                self.notifier,
                NotificationEvent.APPLICATION_DECIDED,
                application,
                _OUTCOME_BY_STATUS[application.status].value,
            )
        return application

    def revoke(
        self,
        application_id: str,
        admin_id: str,
        notes: Optional[str] = None,
        ctx: Optional[RequestContext] = None,
    ) -> Application:
        """Reject an approved application and free its bed."""
        ctx = resolve_context(ctx)
        with self.transaction():
            application = self.application_repo.get_by_id(application_id, refresh=True)
            if application.status is not ApplicationStatus.APPROVED:
                raise InvalidStateError(
                    f"Only approved applications can be revoked (status '{application.status.value}')",
                    current_state=application.status.value,
                    target_state=ApplicationStatus.REJECTED.value,
                )
            bed = self.engine.release_allocation(application, commit=False)
            application = apply_transition(
                self.application_repo,
                application,
                ApplicationStatus.REJECTED,
                ctx,
                actor_id=admin_id,
                notes=notes or "Allocation revoked",
                processed_at=ctx.now,
                processed_by=admin_id,
                admin_notes=notes,
                allocated_bed_id=None,
            )

        self._log_operation(
            "revoke_application",
            application_id,
            {"bed_id": bed.id if bed else None, "admin_id": admin_id},
        )
        dispatch_safely(
            self.notifier,
            NotificationEvent.APPLICATION_DECIDED,
            application,
            DecisionOutcome.REJECT.value,
        )
        return application

    def archive(self, application_id: str, admin_id: str, ctx: Optional[RequestContext] = None) -> Application:
        """Soft delete a rejected or withdrawn application."""
        ctx = resolve_context(ctx)
        with self.transaction():
            application = self.application_repo.get_by_id(application_id, refresh=True)
            if application.is_active:
                raise InvalidStateError(
                    f"Only rejected or withdrawn applications can be archived (status '{application.status.value}')",
                    current_state=application.status.value,
                )
            application.mark_deleted(ctx.now)
            self.db.flush()

        self._log_operation("archive_application", application_id, {"admin_id": admin_id})
        return application

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, application_id: str, ctx: Optional[RequestContext] = None) -> Application:
        ctx = resolve_context(ctx)
        application = self.application_repo.get_by_id(application_id)
        if ctx.role == ROLE_STUDENT:
            self._ensure_owner(application, ctx.actor_id)
        return application

    def list_for_student(self, student_id: str, ctx: Optional[RequestContext] = None) -> List[Application]:
        self._ensure_actor_is(student_id, resolve_context(ctx))
        return self.application_repo.list_for_student(student_id)

    def list_for_window(
        self,
        window_id: str,
        status: Optional[ApplicationStatus] = None,
    ) -> List[Application]:
        self.window_repo.get_by_id(window_id)
        return self.application_repo.list_for_window(window_id, [status] if status else None)

    def history(self, application_id: str, ctx: Optional[RequestContext] = None) -> List[ApplicationStatusHistory]:
        self.get(application_id, ctx)
        return self.application_repo.list_history(application_id)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _reject(
        self,
        application: Application,
        admin_id: str,
        notes: Optional[str],
        ctx: RequestContext,
    ) -> Application:
        previous = application.status
        with self.transaction():
            self.engine.release_allocation(application, commit=False)
            application = apply_transition(
                self.application_repo,
                application,
                ApplicationStatus.REJECTED,
                ctx,
                actor_id=admin_id,
                notes=notes,
                processed_at=ctx.now,
                processed_by=admin_id,
                admin_notes=notes,
                allocated_bed_id=None,
            )
            if previous is ApplicationStatus.WAITLISTED:
                self.window_repo.decrement_waitlist(application.window_id)

        self._log_operation(
            "reject_application",
            application.id,
            {"previous_status": previous.value, "admin_id": admin_id},
        )
        return application

    def _waitlist(
        self,
        application: Application,
        admin_id: str,
        notes: Optional[str],
        ctx: RequestContext,
    ) -> Application:
        if self.engine.has_matching_bed(application):
            raise InvalidStateError(
                "A matching bed is available; approve the application instead of waitlisting it",
                current_state=application.status.value,
                target_state=ApplicationStatus.WAITLISTED.value,
            )

        with self.transaction():
            window = self.window_repo.get_by_id(application.window_id)
            if application.status is ApplicationStatus.PENDING and not self.window_repo.try_increment_waitlist(
                window.id
            ):
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

        self._log_operation("waitlist_application", application.id, {"admin_id": admin_id})
        return application

    def _ensure_accepting(self, window: ApplicationWindow, ctx: RequestContext) -> None:
        status = window.compute_status(ctx.now)
        if status is not WindowStatus.ACTIVE:
            reason = "suspended" if status is WindowStatus.INACTIVE else status.value
            if status is WindowStatus.DRAFT and window.published:
                reason = "not_started"
            raise WindowClosedError(window.id, reason)
        if not (window.has_main_pool_room() or window.has_waitlist_room()):
            raise WindowClosedError(window.id, "capacity_reached")

    def _validate_preferences(
        self,
        hostel_id: str,
        room_id: Optional[str],
        bed_id: Optional[str],
    ) -> Hostel:
        hostel = self.hostel_repo.find_by_id(hostel_id)
        if hostel is None:
            raise ValidationError("Requested hostel does not exist", {"hostel_id": [hostel_id]})
        if hostel.status is not HostelStatus.ACTIVE:
            raise ValidationError(
                "Requested hostel is not accepting residents",
                {"hostel_id": [f"Hostel status is '{hostel.status.value}'"]},
            )

        room = None
        if room_id:
            room = self.room_repo.find_by_id(room_id)
            if room is None or room.hostel_id != hostel.id:
                raise ValidationError("Requested room is not part of the requested hostel", {"room_id": [room_id]})
        if bed_id:
            bed = self.bed_repo.find_by_id(bed_id)
            bed_room = self.room_repo.find_by_id(bed.room_id) if bed else None
            if bed_room is None or bed_room.hostel_id != hostel.id or (room and bed_room.id != room.id):
                raise ValidationError("Requested bed is not part of the requested room", {"bed_id": [bed_id]})
        return hostel

    def _ensure_eligible(self, profile: StudentProfile, window: ApplicationWindow, hostel: Hostel) -> None:
        criteria = EligibilityCriteria.model_validate(window.eligibility_criteria or {})
        if criteria.exclude_prior_allocation and not profile.has_prior_allocation:
            prior = self.application_repo.has_prior_allocation(profile.student_id, exclude_window_id=window.id)
            profile = profile.model_copy(update={"has_prior_allocation": prior})

        result = self.evaluator.evaluate(profile, criteria, hostel.gender_policy)
        if not result.eligible:
            raise IneligibleError(result.reason_codes, [reason.message for reason in result.reasons])

    @staticmethod
    def _ensure_documents(window: ApplicationWindow, document_types: List[Optional[str]]) -> None:
        if not window.requires_documents:
            return
        provided = {doc_type for doc_type in document_types if doc_type}
        missing = [doc for doc in window.required_documents if doc not in provided]
        if missing:
            raise ValidationError(
                "Required documents are missing",
                {"documents": [f"Missing required document: {doc}" for doc in missing]},
            )

    @staticmethod
    def _ensure_owner(application: Application, student_id: Optional[str]) -> None:
        if application.student_id != student_id:
            raise AccessDeniedError(
                "Application belongs to another student",
                {"application_id": application.id},
            )

    @staticmethod
    def _ensure_actor_is(student_id: str, ctx: RequestContext) -> None:
        if ctx.role == ROLE_STUDENT and ctx.actor_id != student_id:
            raise AccessDeniedError(
                "Students may only act on their own applications",
                {"student_id": student_id},
            )
