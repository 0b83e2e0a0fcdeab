"""
Application repository.
"""

from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from hostel_allocation.models.application import Application, ApplicationStatusHistory
from hostel_allocation.models.enums import ACTIVE_APPLICATION_STATUSES, ApplicationStatus
from hostel_allocation.repositories.base_repository import BaseRepository


class ApplicationRepository(BaseRepository[Application]):
    """Repository for Application entities and their status history."""

    resource_name = "Application"

    def __init__(self, db: Session):
        super().__init__(Application, db)

    def find_active(self, window_id: str, student_id: str) -> Optional[Application]:
        """The student's non-terminal application in the window, if any."""
        stmt = select(Application).where(
            Application.window_id == window_id,
            Application.student_id == student_id,
            Application.status.in_(list(ACTIVE_APPLICATION_STATUSES)),
            Application.is_deleted.is_(False),
        )
        return self.db.execute(stmt).scalars().first()

    def list_for_window(
        self,
        window_id: str,
        statuses: Optional[Iterable[ApplicationStatus]] = None,
    ) -> List[Application]:
        """Applications in queue order: priority desc, then first come first served."""
        stmt = select(Application).where(
            Application.window_id == window_id,
            Application.is_deleted.is_(False),
        )
        if statuses:
            stmt = stmt.where(Application.status.in_(list(statuses)))
        stmt = stmt.order_by(
            Application.priority_score.desc(),
            Application.submitted_at,
            Application.id,
        )
        return list(self.db.execute(stmt).scalars())

    def list_for_student(self, student_id: str) -> List[Application]:
        return self.find_by_criteria(
            {"student_id": student_id},
            limit=None,
            order_by=["-submitted_at"],
        )

    def count_by_status(self, window_id: str) -> Dict[ApplicationStatus, int]:
        stmt = (
            select(Application.status, func.count(Application.id))
            .where(Application.window_id == window_id, Application.is_deleted.is_(False))
            .group_by(Application.status)
        )
        counts = {status: 0 for status in ApplicationStatus}
        for status, count in self.db.execute(stmt):
            counts[ApplicationStatus(status)] = count
        return counts

    def count_for_window(self, window_id: str, include_deleted: bool = True) -> int:
        stmt = select(func.count(Application.id)).where(Application.window_id == window_id)
        if not include_deleted:
            stmt = stmt.where(Application.is_deleted.is_(False))
        return self.db.execute(stmt).scalar_one()

    def has_prior_allocation(self, student_id: str, exclude_window_id: Optional[str] = None) -> bool:
        """Whether the student was ever approved in another window."""
        stmt = select(func.count(Application.id)).where(
            Application.student_id == student_id,
            Application.status == ApplicationStatus.APPROVED,
        )
        if exclude_window_id:
            stmt = stmt.where(Application.window_id != exclude_window_id)
        return self.db.execute(stmt).scalar_one() > 0

    def transition(
        self,
        application_id: str,
        expected: ApplicationStatus,
        target: ApplicationStatus,
        **values,
    ) -> bool:
        """Compare-and-swap the application status."""
        return self.compare_and_set(
            application_id,
            {"status": expected, "is_deleted": False},
            {"status": target, **values},
        )

    # ==================== History ====================

    def add_history(
        self,
        application_id: str,
        from_status: Optional[ApplicationStatus],
        to_status: ApplicationStatus,
        actor_id: Optional[str],
        notes: Optional[str],
        changed_at,
    ) -> ApplicationStatusHistory:
        sequence = self.db.execute(
            select(func.coalesce(func.max(ApplicationStatusHistory.sequence), 0))
            .where(ApplicationStatusHistory.application_id == application_id)
        ).scalar_one() + 1
        entry = ApplicationStatusHistory(
            application_id=application_id,
            from_status=from_status,
            to_status=to_status,
            sequence=sequence,
            actor_id=actor_id,
            notes=notes,
            changed_at=changed_at,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def list_history(self, application_id: str) -> List[ApplicationStatusHistory]:
        stmt = (
            select(ApplicationStatusHistory)
            .where(ApplicationStatusHistory.application_id == application_id)
            .order_by(ApplicationStatusHistory.sequence)
        )
        return list(self.db.execute(stmt).scalars())
