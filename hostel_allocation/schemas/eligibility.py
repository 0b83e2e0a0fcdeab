"""
Student profile, eligibility criteria and allocation rule schemas.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import Field, model_validator

from hostel_allocation.models.enums import Gender
from hostel_allocation.schemas.common import BaseSchema

__all__ = [
    "StudentProfile",
    "EligibilityCriteria",
    "AllocationRules",
    "IneligibilityReason",
    "EligibilityResult",
]


class StudentProfile(BaseSchema):
    """
    Student attributes supplied by the caller for one request.

    Student records live in an external service; the engine only sees this
    snapshot.
    """

    student_id: str = Field(..., min_length=1, max_length=64)
    gender: Gender
    level: int = Field(..., ge=0, description="Academic level, e.g. 100, 200, 300")
    gpa: Optional[float] = Field(None, ge=0)
    nationality: Optional[str] = None
    is_international: bool = False
    payment_status: Optional[str] = None
    registration_status: Optional[str] = None
    admission_status: Optional[str] = None
    has_prior_allocation: bool = False


class EligibilityCriteria(BaseSchema):
    """
    Window eligibility criteria. A field left unset imposes no constraint.
    """

    min_level: Optional[int] = Field(None, ge=0)
    max_level: Optional[int] = Field(None, ge=0)
    academic_levels: Optional[List[int]] = None
    gender: Optional[Gender] = None
    match_hostel_gender: Optional[bool] = None
    international: Optional[bool] = None
    nationalities: Optional[List[str]] = None
    minimum_gpa: Optional[float] = Field(None, ge=0)
    payment_status: Optional[str] = None
    registration_status: Optional[str] = None
    admission_status: Optional[str] = None
    exclude_prior_allocation: Optional[bool] = None

    @model_validator(mode="after")
    def check_level_range(self) -> "EligibilityCriteria":
        if self.min_level is not None and self.max_level is not None and self.min_level > self.max_level:
            raise ValueError("min_level cannot exceed max_level")
        return self


class AllocationRules(BaseSchema):
    """How applications in a window are prioritised."""

    priority_by_level: bool = False
    merit_based: bool = False
    first_come_first_serve: bool = True


class IneligibilityReason(BaseSchema):
    code: str
    message: str


class EligibilityResult(BaseSchema):
    reasons: List[IneligibilityReason] = Field(default_factory=list)

    @property
    def eligible(self) -> bool:
        return not self.reasons

    @property
    def reason_codes(self) -> List[str]:
        return [r.code for r in self.reasons]
