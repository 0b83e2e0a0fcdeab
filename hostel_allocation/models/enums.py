"""
Enum definitions and state transition tables for the allocation models.
"""

import enum
from types import MappingProxyType
from typing import Callable, FrozenSet, Mapping, TypeVar


class GenderPolicy(str, enum.Enum):
    """Who a hostel houses"""
    MALE = "male"
    FEMALE = "female"
    MIXED = "mixed"


class Gender(str, enum.Enum):
    """Student gender as recorded on the profile"""
    MALE = "male"
    FEMALE = "female"


class HostelStatus(str, enum.Enum):
    """Hostel operational status"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"


class RoomType(str, enum.Enum):
    """Room types by number of beds"""
    SINGLE = "single"
    DOUBLE = "double"
    TRIPLE = "triple"
    QUAD = "quad"

    @property
    def default_capacity(self) -> int:
        return ROOM_TYPE_CAPACITY[self]


ROOM_TYPE_CAPACITY = MappingProxyType({
    RoomType.SINGLE: 1,
    RoomType.DOUBLE: 2,
    RoomType.TRIPLE: 3,
    RoomType.QUAD: 4,
})


class RoomStatus(str, enum.Enum):
    """Room availability status"""
    AVAILABLE = "available"
    MAINTENANCE = "maintenance"
    OUT_OF_ORDER = "out_of_order"


class BedStatus(str, enum.Enum):
    """Bed status"""
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    MAINTENANCE = "maintenance"


class WindowType(str, enum.Enum):
    """Category of student an application window serves"""
    FRESHMAN = "freshman"
    RETURNING = "returning"
    TRANSFER = "transfer"
    INTERNATIONAL = "international"
    GRADUATE = "graduate"
    STAFF = "staff"


class WindowStatus(str, enum.Enum):
    """Derived application window status"""
    DRAFT = "draft"
    ACTIVE = "active"
    INACTIVE = "inactive"
    EXPIRED = "expired"


class ApplicationStatus(str, enum.Enum):
    """Hostel application status"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    WAITLISTED = "waitlisted"
    WITHDRAWN = "withdrawn"


class DecisionOutcome(str, enum.Enum):
    """Administrator decision on an application"""
    APPROVE = "approve"
    REJECT = "reject"
    WAITLIST = "waitlist"


# Statuses that count as "holding" a place in a window
ACTIVE_APPLICATION_STATUSES: FrozenSet[ApplicationStatus] = frozenset({
    ApplicationStatus.PENDING,
    ApplicationStatus.APPROVED,
    ApplicationStatus.WAITLISTED,
})

# Statuses an administrator may decide on
DECIDABLE_STATUSES: FrozenSet[ApplicationStatus] = frozenset({
    ApplicationStatus.PENDING,
    ApplicationStatus.WAITLISTED,
})

# beds not bound to any application or student
UNBOUND_BED_STATUSES: FrozenSet[BedStatus] = frozenset({
    BedStatus.AVAILABLE,
    BedStatus.MAINTENANCE,
})


BED_TRANSITIONS: Mapping[BedStatus, FrozenSet[BedStatus]] = MappingProxyType({
    BedStatus.AVAILABLE: frozenset({BedStatus.RESERVED, BedStatus.MAINTENANCE}),
    BedStatus.RESERVED: frozenset({BedStatus.OCCUPIED, BedStatus.AVAILABLE}),
    BedStatus.OCCUPIED: frozenset({BedStatus.AVAILABLE}),
    BedStatus.MAINTENANCE: frozenset({BedStatus.AVAILABLE}),
})

APPLICATION_TRANSITIONS: Mapping[ApplicationStatus, FrozenSet[ApplicationStatus]] = MappingProxyType({
    ApplicationStatus.PENDING: frozenset({
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.WAITLISTED,
        ApplicationStatus.WITHDRAWN,
    }),
    ApplicationStatus.WAITLISTED: frozenset({
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
    }),
    # revocation of an allocation
    ApplicationStatus.APPROVED: frozenset({ApplicationStatus.REJECTED}),
    ApplicationStatus.REJECTED: frozenset(),
    ApplicationStatus.WITHDRAWN: frozenset(),
})


S = TypeVar("S", bound=enum.Enum)


def can_transition(table: Mapping[S, FrozenSet[S]], current: S, target: S) -> bool:
    return target in table.get(current, frozenset())


def ensure_transition(
    table: Mapping[S, FrozenSet[S]],
    current: S,
    target: S,
    error_factory: Callable[[S, S], Exception],
) -> None:
    """
    Raise the error built by ``error_factory`` unless ``current -> target``
    is listed in ``table``.
    """
    if not can_transition(table, current, target):
        raise error_factory(current, target)

