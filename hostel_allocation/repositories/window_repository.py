"""
Application window repository with atomic counter updates.
"""

from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hostel_allocation.core.exceptions import RepositoryError
from hostel_allocation.models.enums import WindowType
from hostel_allocation.models.window import ApplicationWindow
from hostel_allocation.repositories.base_repository import BaseRepository


class WindowRepository(BaseRepository[ApplicationWindow]):
    """
    Repository for ApplicationWindow entities.

    The counter methods are single conditional UPDATE statements so two
    concurrent submissions can never push a counter past its cap.
    """

    resource_name = "ApplicationWindow"

    def __init__(self, db: Session):
        super().__init__(ApplicationWindow, db)

    def list_windows(
        self,
        window_type: Optional[WindowType] = None,
        published: Optional[bool] = None,
    ) -> List[ApplicationWindow]:
        return self.find_by_criteria(
            {"window_type": window_type, "published": published},
            limit=None,
            order_by=["-start_date", "name"],
        )

    def _bump(self, window_id: str, *conditions, **values) -> bool:
        self.db.flush()
        stmt = (
            update(ApplicationWindow)
            .where(ApplicationWindow.id == window_id, *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            changed = self.db.execute(stmt).rowcount == 1
        except SQLAlchemyError as e:
            raise RepositoryError(f"Window counter update failed: {str(e)}") from e
        if changed:
            self.db.get(ApplicationWindow, window_id, populate_existing=True)
        return changed

    def try_increment_applications(self, window_id: str) -> bool:
        """Take a main-pool slot if one is left."""
        return self._bump(
            window_id,
            ApplicationWindow.current_applications < ApplicationWindow.max_applications,
            current_applications=ApplicationWindow.current_applications + 1,
        )

    def decrement_applications(self, window_id: str) -> bool:
        return self._bump(
            window_id,
            ApplicationWindow.current_applications > 0,
            current_applications=ApplicationWindow.current_applications - 1,
        )

    def try_increment_waitlist(self, window_id: str) -> bool:
        """Take a waitlist slot if waitlisting is enabled and one is left."""
        return self._bump(
            window_id,
            ApplicationWindow.allow_waitlist.is_(True),
            ApplicationWindow.waitlist_count < ApplicationWindow.waitlist_capacity,
            waitlist_count=ApplicationWindow.waitlist_count + 1,
        )

    def decrement_waitlist(self, window_id: str) -> bool:
        return self._bump(
            window_id,
            ApplicationWindow.waitlist_count > 0,
            waitlist_count=ApplicationWindow.waitlist_count - 1,
        )
