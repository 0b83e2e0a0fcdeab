"""
FastAPI dependencies: database session, request context and services.

Authentication happens upstream; the gateway forwards the caller identity
as ``X-Actor-Id`` and ``X-Actor-Role`` headers.
"""

from datetime import datetime
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from hostel_allocation.core.context import ROLE_ADMIN, ROLE_STUDENT, ROLE_SYSTEM, RequestContext
from hostel_allocation.core.exceptions import AccessDeniedError, ValidationError
from hostel_allocation.core.middleware import get_request_id
from hostel_allocation.db.session import get_db
from hostel_allocation.services.service_factory import ServiceFactory
from hostel_allocation.utils.datetime_utils import utc_now

VALID_ROLES = (ROLE_STUDENT, ROLE_ADMIN, ROLE_SYSTEM)


def get_clock() -> datetime:
    """Current time for the request; overridden in tests to pin the clock."""
    return utc_now()


def get_request_context(
    request: Request,
    x_actor_id: Optional[str] = Header(default=None),
    x_actor_role: str = Header(default=ROLE_STUDENT),
    now: datetime = Depends(get_clock),
) -> RequestContext:
    role = x_actor_role.strip().lower()
    if role not in VALID_ROLES:
        raise ValidationError(
            "Unknown actor role",
            {"X-Actor-Role": [f"Must be one of: {', '.join(VALID_ROLES)}"]},
        )
    return RequestContext(
        actor_id=x_actor_id,
        role=role,
        request_id=get_request_id(request),
        now=now,
    )


def require_admin(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
    if role_is_staff(ctx):
        return ctx
    raise AccessDeniedError("Administrator role required", {"role": ctx.role})


def require_actor(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
    if not ctx.actor_id:
        raise AccessDeniedError("X-Actor-Id header is required for this operation")
    return ctx


def role_is_staff(ctx: RequestContext) -> bool:
    return ctx.role in (ROLE_ADMIN, ROLE_SYSTEM)


def get_services(db: Session = Depends(get_db)) -> ServiceFactory:
    return ServiceFactory(db)
