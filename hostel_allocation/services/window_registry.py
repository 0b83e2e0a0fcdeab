"""
Application window registry: window CRUD and the publish lifecycle.

Window status is never stored. It is recomputed from the publish flag,
the suspension override and the request clock on every read.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from hostel_allocation.config.settings import settings
from hostel_allocation.core.context import RequestContext, resolve_context
from hostel_allocation.core.exceptions import (
    AlreadyExpiredError,
    InvalidStateError,
    ValidationError,
)
from hostel_allocation.models.enums import WindowStatus, WindowType
from hostel_allocation.models.window import ApplicationWindow
from hostel_allocation.repositories.application_repository import ApplicationRepository
from hostel_allocation.repositories.window_repository import WindowRepository
from hostel_allocation.schemas.window import WindowCreate, WindowStats, WindowUpdate
from hostel_allocation.services.base_service import BaseService
from hostel_allocation.utils.datetime_utils import isoformat_or_none, to_naive_utc, utc_now

_DATE_FIELDS = ("start_date", "end_date", "early_bird_end_date")
_CLEARABLE_FIELDS = ("description", "early_bird_end_date")


class WindowRegistry(BaseService):
    """Manage application windows and answer whether they accept applications."""

    def __init__(
        self,
        db_session: Session,
        window_repo: Optional[WindowRepository] = None,
        application_repo: Optional[ApplicationRepository] = None,
    ):
        super().__init__(db_session)
        self.window_repo = window_repo or WindowRepository(db_session)
        self.application_repo = application_repo or ApplicationRepository(db_session)

    # -------------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------------

    @staticmethod
    def compute_status(window: ApplicationWindow, now: datetime) -> WindowStatus:
        return window.compute_status(to_naive_utc(now))

    @staticmethod
    def is_early_bird(window: ApplicationWindow, at: datetime) -> bool:
        if window.early_bird_end_date is None:
            return False
        return to_naive_utc(at) <= window.early_bird_end_date

    def is_accepting_applications(self, window_id: str, now: Optional[datetime] = None) -> bool:
        """
        True when the window is active at ``now`` and either the main pool or,
        with waitlisting enabled, the waitlist still has room.
        """
        window = self.window_repo.get_by_id(window_id)
        now = to_naive_utc(now) if now is not None else utc_now()
        if not window.is_open_at(now):
            return False
        return window.has_main_pool_room() or window.has_waitlist_room()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, window_id: str) -> ApplicationWindow:
        return self.window_repo.get_by_id(window_id)

    def list_windows(
        self,
        status: Optional[WindowStatus] = None,
        window_type: Optional[WindowType] = None,
        published: Optional[bool] = None,
        ctx: Optional[RequestContext] = None,
    ) -> List[ApplicationWindow]:
        ctx = resolve_context(ctx)
        windows = self.window_repo.list_windows(window_type=window_type, published=published)
        if status is not None:
            windows = [w for w in windows if w.compute_status(ctx.now) is status]
        return windows

    def window_stats(self, window_id: str, ctx: Optional[RequestContext] = None) -> WindowStats:
        ctx = resolve_context(ctx)
        window = self.window_repo.get_by_id(window_id)
        by_status = self.application_repo.count_by_status(window_id)
        return WindowStats(
            window_id=window.id,
            status=window.compute_status(ctx.now),
            accepting_applications=self.is_accepting_applications(window_id, ctx.now),
            max_applications=window.max_applications,
            current_applications=window.current_applications,
            remaining_slots=max(window.max_applications - window.current_applications, 0),
            waitlist_capacity=window.waitlist_capacity,
            waitlist_count=window.waitlist_count,
            remaining_waitlist_slots=(
                max(window.waitlist_capacity - window.waitlist_count, 0) if window.allow_waitlist else 0
            ),
            applications_by_status=by_status,
            total_applications=sum(by_status.values()),
        )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create(self, data: WindowCreate, ctx: Optional[RequestContext] = None) -> ApplicationWindow:
        """
        Create a window in draft: unpublished, not suspended, zero counters.

        Raises:
            ValidationError: If dates or limits are inconsistent
        """
        ctx = resolve_context(ctx)
        fields = data.model_dump(exclude={"eligibility_criteria", "allocation_rules"})
        for key in _DATE_FIELDS:
            fields[key] = to_naive_utc(fields[key])
        if fields["waitlist_capacity"] is None:
            fields["waitlist_capacity"] = settings.DEFAULT_WAITLIST_CAPACITY
        fields["eligibility_criteria"] = data.eligibility_criteria.model_dump(mode="json", exclude_none=True)
        fields["allocation_rules"] = data.allocation_rules.model_dump(mode="json")

        self._validate(fields)

        with self.transaction():
            window = ApplicationWindow(
                **fields,
                current_applications=0,
                waitlist_count=0,
                published=False,
                suspended=False,
                created_by=ctx.actor_id,
            )
            self.window_repo.add(window)

        self._log_operation(
            "create_window",
            window.id,
            {"window_name": window.name, "window_type": window.window_type.value, "actor_id": ctx.actor_id},
        )
        return window

    def update(
        self,
        window_id: str,
        changes: WindowUpdate,
        ctx: Optional[RequestContext] = None,
    ) -> ApplicationWindow:
        """
        Edit a window and re-validate the result.

        Limits cannot drop below the counters already consumed.
        """
        ctx = resolve_context(ctx)
        data = changes.model_dump(exclude_unset=True, exclude={"eligibility_criteria", "allocation_rules"})
        data = {k: v for k, v in data.items() if v is not None or k in _CLEARABLE_FIELDS}
        for key in _DATE_FIELDS:
            if key in data:
                data[key] = to_naive_utc(data[key])
        if changes.eligibility_criteria is not None:
            data["eligibility_criteria"] = changes.eligibility_criteria.model_dump(mode="json", exclude_none=True)
        if changes.allocation_rules is not None:
            data["allocation_rules"] = changes.allocation_rules.model_dump(mode="json")

        with self.transaction():
            window = self.window_repo.get_by_id(window_id)
            merged = {
                "start_date": window.start_date,
                "end_date": window.end_date,
                "early_bird_end_date": window.early_bird_end_date,
                "max_applications": window.max_applications,
                "allow_waitlist": window.allow_waitlist,
                "waitlist_capacity": window.waitlist_capacity,
                "requires_documents": window.requires_documents,
                "required_documents": window.required_documents,
                **data,
            }
            self._validate(merged)

            errors: Dict[str, List[str]] = {}
            if merged["max_applications"] < window.current_applications:
                errors["max_applications"] = [
                    f"Cannot be lower than the {window.current_applications} applications already received"
                ]
            if merged["waitlist_capacity"] < window.waitlist_count:
                errors["waitlist_capacity"] = [
                    f"Cannot be lower than the {window.waitlist_count} applications already waitlisted"
                ]
            if errors:
                raise ValidationError("Window limits are below current usage", errors)

            self.window_repo.apply_changes(window, data)

        self._log_operation("update_window", window_id, {"fields": sorted(data), "actor_id": ctx.actor_id})
        return window

    def publish(self, window_id: str, ctx: Optional[RequestContext] = None) -> ApplicationWindow:
        """
        Publish a window. Its status then follows the date range.

        Raises:
            AlreadyExpiredError: If the end date has passed
        """
        ctx = resolve_context(ctx)
        with self.transaction():
            window = self.window_repo.get_by_id(window_id)
            if ctx.now > window.end_date:
                raise AlreadyExpiredError(window_id, isoformat_or_none(window.end_date))
            if not window.published:
                self.window_repo.apply_changes(window, {"published": True, "published_at": ctx.now})

        self._log_operation(
            "publish_window",
            window_id,
            {"window_status": window.compute_status(ctx.now).value, "actor_id": ctx.actor_id},
        )
        return window

    def unpublish(self, window_id: str, ctx: Optional[RequestContext] = None) -> ApplicationWindow:
        """Hide the window from new submissions; existing applications are untouched."""
        ctx = resolve_context(ctx)
        with self.transaction():
            window = self.window_repo.get_by_id(window_id)
            self.window_repo.apply_changes(window, {"published": False})

        self._log_operation("unpublish_window", window_id, {"actor_id": ctx.actor_id})
        return window

    def suspend(self, window_id: str, ctx: Optional[RequestContext] = None) -> ApplicationWindow:
        return self._set_suspended(window_id, True, resolve_context(ctx))

    def reinstate(self, window_id: str, ctx: Optional[RequestContext] = None) -> ApplicationWindow:
        return self._set_suspended(window_id, False, resolve_context(ctx))

    def delete(self, window_id: str, ctx: Optional[RequestContext] = None) -> None:
        """
        Soft delete a window that has never received an application.

        Raises:
            InvalidStateError: If applications reference the window
        """
        ctx = resolve_context(ctx)
        with self.transaction():
            window = self.window_repo.get_by_id(window_id)
            count = self.application_repo.count_for_window(window_id)
            if count:
                raise InvalidStateError(
                    "Cannot delete a window that has applications",
                    current_state=window.compute_status(ctx.now).value,
                    details={"window_id": window_id, "applications": count},
                )
            window.mark_deleted(ctx.now)
            self.db.flush()

        self._log_operation("delete_window", window_id, {"actor_id": ctx.actor_id})

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _set_suspended(self, window_id: str, suspended: bool, ctx: RequestContext) -> ApplicationWindow:
        with self.transaction():
            window = self.window_repo.get_by_id(window_id)
            self.window_repo.apply_changes(window, {"suspended": suspended})

        self._log_operation(
            "suspend_window" if suspended else "reinstate_window",
            window_id,
            {"window_status": window.compute_status(ctx.now).value, "actor_id": ctx.actor_id},
        )
        return window

    @staticmethod
    def _validate(fields: Dict[str, Any]) -> None:
        errors: Dict[str, List[str]] = {}

        start, end = fields["start_date"], fields["end_date"]
        if start >= end:
            errors["end_date"] = ["End date must be after start date"]

        early_bird = fields.get("early_bird_end_date")
        if early_bird is not None and not (start <= early_bird <= end):
            errors["early_bird_end_date"] = ["Early-bird end date must fall within the window"]

        if fields["max_applications"] <= 0:
            errors["max_applications"] = ["Must be greater than zero"]

        if fields["waitlist_capacity"] < 0:
            errors["waitlist_capacity"] = ["Cannot be negative"]

        if fields["requires_documents"] and not fields["required_documents"]:
            errors["required_documents"] = ["List at least one document type when documents are required"]

        if errors:
            raise ValidationError("Invalid application window", errors)
