"""
Request-scoped context passed explicitly into every engine call.

Carries who is acting and what time it is, so services never reach for
ambient globals and tests can pin the clock.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from hostel_allocation.utils.datetime_utils import to_naive_utc, utc_now


ROLE_STUDENT = "student"
ROLE_ADMIN = "admin"
ROLE_SYSTEM = "system"


@dataclass(frozen=True)
class RequestContext:
    """Identity and clock for a single engine call."""

    actor_id: Optional[str] = None
    role: str = ROLE_SYSTEM
    request_id: Optional[str] = None
    now: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "now", to_naive_utc(self.now))

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @classmethod
    def system(cls, now: Optional[datetime] = None) -> "RequestContext":
        if now is None:
            return cls()
        return cls(now=now)


def resolve_context(ctx: Optional[RequestContext]) -> RequestContext:
    """Fall back to a system context stamped with the current time."""
    return ctx if ctx is not None else RequestContext.system()
