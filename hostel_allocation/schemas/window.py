"""
Application window schemas.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from hostel_allocation.models.enums import ApplicationStatus, WindowStatus, WindowType
from hostel_allocation.schemas.common import (
    BaseCreateSchema,
    BaseResponseSchema,
    BaseSchema,
    BaseUpdateSchema,
)
from hostel_allocation.schemas.eligibility import AllocationRules, EligibilityCriteria

__all__ = [
    "WindowCreate",
    "WindowUpdate",
    "WindowResponse",
    "WindowStats",
]


class WindowCreate(BaseCreateSchema):
    """
    Payload for creating a window.

    Cross-field rules (date ordering, early-bird range, document list) are
    checked by the window registry so direct service callers get the same
    errors as API clients.
    """

    name: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = None
    window_type: WindowType
    start_date: datetime
    end_date: datetime
    early_bird_end_date: Optional[datetime] = None
    max_applications: int
    allow_waitlist: bool = False
    waitlist_capacity: Optional[int] = Field(
        None,
        description="Defaults to DEFAULT_WAITLIST_CAPACITY when omitted",
    )
    eligibility_criteria: EligibilityCriteria = Field(default_factory=EligibilityCriteria)
    allocation_rules: AllocationRules = Field(default_factory=AllocationRules)
    requires_documents: bool = False
    required_documents: List[str] = Field(default_factory=list)


class WindowUpdate(BaseUpdateSchema):
    name: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    early_bird_end_date: Optional[datetime] = None
    max_applications: Optional[int] = None
    allow_waitlist: Optional[bool] = None
    waitlist_capacity: Optional[int] = None
    eligibility_criteria: Optional[EligibilityCriteria] = None
    allocation_rules: Optional[AllocationRules] = None
    requires_documents: Optional[bool] = None
    required_documents: Optional[List[str]] = None


class WindowResponse(BaseResponseSchema):
    name: str
    description: Optional[str] = None
    window_type: WindowType
    status: Optional[WindowStatus] = Field(None, description="Derived at read time")
    start_date: datetime
    end_date: datetime
    early_bird_end_date: Optional[datetime] = None
    max_applications: int
    current_applications: int
    allow_waitlist: bool
    waitlist_capacity: int
    waitlist_count: int
    published: bool
    published_at: Optional[datetime] = None
    suspended: bool
    eligibility_criteria: EligibilityCriteria
    allocation_rules: AllocationRules
    requires_documents: bool
    required_documents: List[str]

    @classmethod
    def from_window(cls, window, now: datetime) -> "WindowResponse":
        response = cls.model_validate(window)
        response.status = window.compute_status(now)
        return response


class WindowStats(BaseSchema):
    window_id: str
    status: WindowStatus
    accepting_applications: bool
    max_applications: int
    current_applications: int
    remaining_slots: int
    waitlist_capacity: int
    waitlist_count: int
    remaining_waitlist_slots: int
    applications_by_status: Dict[ApplicationStatus, int]
    total_applications: int
