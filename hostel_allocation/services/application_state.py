"""
Application status transitions shared by the lifecycle manager and the
allocation engine.
"""

from typing import Optional

from hostel_allocation.core.context import RequestContext
from hostel_allocation.core.exceptions import InvalidStateError
from hostel_allocation.models.application import Application
from hostel_allocation.models.enums import APPLICATION_TRANSITIONS, ApplicationStatus, ensure_transition
from hostel_allocation.repositories.application_repository import ApplicationRepository


def _illegal(current: ApplicationStatus, target: ApplicationStatus) -> InvalidStateError:
    return InvalidStateError(
        f"Application cannot move from '{current.value}' to '{target.value}'",
        current_state=current.value,
        target_state=target.value,
    )


def apply_transition(
    repo: ApplicationRepository,
    application: Application,
    target: ApplicationStatus,
    ctx: RequestContext,
    actor_id: Optional[str] = None,
    notes: Optional[str] = None,
    **values,
) -> Application:
    """
    Move ``application`` to ``target`` and append a history row.

    The status write is a compare-and-swap on the status the caller read,
    so a concurrent transition surfaces as ``InvalidStateError`` instead of
    being overwritten. Must run inside the caller's transaction.
    """
    current = application.status
    ensure_transition(APPLICATION_TRANSITIONS, current, target, _illegal)

    if not repo.transition(application.id, current, target, **values):
        fresh = repo.get_by_id(application.id, include_deleted=True, refresh=True)
        raise InvalidStateError(
            f"Application was modified concurrently and is now '{fresh.status.value}'",
            current_state=fresh.status.value,
            target_state=target.value,
        )

    repo.add_history(application.id, current, target, actor_id or ctx.actor_id, notes, ctx.now)
    return repo.get_by_id(application.id, include_deleted=True)
