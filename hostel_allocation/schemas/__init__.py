from hostel_allocation.schemas.common import (
    BaseCreateSchema,
    BaseResponseSchema,
    BaseSchema,
    BaseUpdateSchema,
    ErrorResponse,
)
from hostel_allocation.schemas.eligibility import (
    AllocationRules,
    EligibilityCriteria,
    EligibilityResult,
    IneligibilityReason,
    StudentProfile,
)
from hostel_allocation.schemas.hostel import (
    AvailabilitySummary,
    BedMaintenanceRequest,
    BedResponse,
    HostelCreate,
    HostelOccupancy,
    HostelResponse,
    HostelUpdate,
    OccupancyOverview,
    RoomCreate,
    RoomResponse,
    RoomUpdate,
)
from hostel_allocation.schemas.window import WindowCreate, WindowResponse, WindowStats, WindowUpdate
from hostel_allocation.schemas.application import (
    ApplicationEdit,
    ApplicationPreferences,
    ApplicationResponse,
    ApplicationSubmit,
    DecisionRequest,
    DocumentRef,
    RevokeRequest,
    StatusHistoryResponse,
)

__all__ = [
    "BaseSchema",
    "BaseCreateSchema",
    "BaseUpdateSchema",
    "BaseResponseSchema",
    "ErrorResponse",
    "StudentProfile",
    "EligibilityCriteria",
    "AllocationRules",
    "IneligibilityReason",
    "EligibilityResult",
    "HostelCreate",
    "HostelUpdate",
    "HostelResponse",
    "RoomCreate",
    "RoomUpdate",
    "RoomResponse",
    "BedResponse",
    "BedMaintenanceRequest",
    "AvailabilitySummary",
    "HostelOccupancy",
    "OccupancyOverview",
    "WindowCreate",
    "WindowUpdate",
    "WindowResponse",
    "WindowStats",
    "DocumentRef",
    "ApplicationPreferences",
    "ApplicationSubmit",
    "ApplicationEdit",
    "DecisionRequest",
    "RevokeRequest",
    "ApplicationResponse",
    "StatusHistoryResponse",
]
