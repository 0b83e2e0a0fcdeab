"""
Application submission, decision and response schemas.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from hostel_allocation.models.enums import ApplicationStatus, DecisionOutcome, RoomType
from hostel_allocation.schemas.common import (
    BaseCreateSchema,
    BaseResponseSchema,
    BaseSchema,
    BaseUpdateSchema,
)
from hostel_allocation.schemas.eligibility import StudentProfile

__all__ = [
    "DocumentRef",
    "ApplicationPreferences",
    "ApplicationSubmit",
    "ApplicationEdit",
    "DecisionRequest",
    "RevokeRequest",
    "ApplicationResponse",
    "StatusHistoryResponse",
]


class DocumentRef(BaseSchema):
    """Reference to a document held by the external document store."""

    type: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    url: Optional[str] = None


class ApplicationPreferences(BaseSchema):
    hostel_id: str
    room_id: Optional[str] = None
    bed_id: Optional[str] = None
    room_type: Optional[RoomType] = None
    special_requirements: Optional[str] = Field(None, max_length=1000)
    reason: Optional[str] = Field(None, max_length=2000)
    documents: List[DocumentRef] = Field(default_factory=list)


class ApplicationSubmit(BaseCreateSchema):
    window_id: str
    profile: StudentProfile
    preferences: ApplicationPreferences


class ApplicationEdit(BaseUpdateSchema):
    hostel_id: Optional[str] = None
    room_id: Optional[str] = None
    bed_id: Optional[str] = None
    room_type: Optional[RoomType] = None
    special_requirements: Optional[str] = Field(None, max_length=1000)
    reason: Optional[str] = Field(None, max_length=2000)
    documents: Optional[List[DocumentRef]] = None


class DecisionRequest(BaseSchema):
    outcome: DecisionOutcome
    notes: Optional[str] = Field(None, max_length=2000)


class RevokeRequest(BaseSchema):
    notes: Optional[str] = Field(None, max_length=2000)


class ApplicationResponse(BaseResponseSchema):
    window_id: str
    student_id: str
    status: ApplicationStatus
    priority_score: float
    requested_hostel_id: str
    requested_room_id: Optional[str] = None
    requested_bed_id: Optional[str] = None
    preferred_room_type: Optional[RoomType] = None
    special_requirements: Optional[str] = None
    reason: Optional[str] = None
    documents: List[Dict[str, Any]] = Field(default_factory=list)
    allocated_bed_id: Optional[str] = None
    submitted_at: datetime
    processed_at: Optional[datetime] = None
    processed_by: Optional[str] = None
    admin_notes: Optional[str] = None
    withdrawn_at: Optional[datetime] = None


class StatusHistoryResponse(BaseSchema):
    id: str
    application_id: str
    from_status: Optional[ApplicationStatus] = None
    to_status: ApplicationStatus
    sequence: int
    actor_id: Optional[str] = None
    notes: Optional[str] = None
    changed_at: datetime
