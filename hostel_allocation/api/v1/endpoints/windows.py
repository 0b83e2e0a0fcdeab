"""
Application window endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from hostel_allocation.api.deps import get_request_context, get_services, require_admin
from hostel_allocation.core.context import ROLE_SYSTEM, RequestContext
from hostel_allocation.models.enums import ApplicationStatus, WindowStatus, WindowType
from hostel_allocation.schemas.application import ApplicationResponse
from hostel_allocation.schemas.window import WindowCreate, WindowResponse, WindowStats, WindowUpdate
from hostel_allocation.services.service_factory import ServiceFactory

router = APIRouter(tags=["windows"])


@router.post("/windows", response_model=WindowResponse, status_code=status.HTTP_201_CREATED)
def create_window(
    payload: WindowCreate,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(require_admin),
):
    window = services.windows().create(payload, ctx)
    return WindowResponse.from_window(window, ctx.now)


@router.get("/windows", response_model=List[WindowResponse])
def list_windows(
    window_status: Optional[WindowStatus] = Query(None, alias="status"),
    window_type: Optional[WindowType] = None,
    published: Optional[bool] = None,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(get_request_context),
):
    windows = services.windows().list_windows(
        status=window_status,
        window_type=window_type,
        published=published,
        ctx=ctx,
    )
    return [WindowResponse.from_window(window, ctx.now) for window in windows]


@router.get("/windows/{window_id}", response_model=WindowResponse)
def get_window(
    window_id: str,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(get_request_context),
):
    return WindowResponse.from_window(services.windows().get(window_id), ctx.now)


@router.patch("/windows/{window_id}", response_model=WindowResponse)
def update_window(
    window_id: str,
    payload: WindowUpdate,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(require_admin),
):
    window = services.windows().update(window_id, payload, ctx)
    return WindowResponse.from_window(window, ctx.now)


@router.delete("/windows/{window_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_window(
    window_id: str,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(require_admin),
):
    services.windows().delete(window_id, ctx)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/windows/{window_id}/publish", response_model=WindowResponse)
def publish_window(
    window_id: str,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(require_admin),
):
    return WindowResponse.from_window(services.windows().publish(window_id, ctx), ctx.now)


@router.post("/windows/{window_id}/unpublish", response_model=WindowResponse)
def unpublish_window(
    window_id: str,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(require_admin),
):
    return WindowResponse.from_window(services.windows().unpublish(window_id, ctx), ctx.now)


@router.post("/windows/{window_id}/suspend", response_model=WindowResponse)
def suspend_window(
    window_id: str,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(require_admin),
):
    return WindowResponse.from_window(services.windows().suspend(window_id, ctx), ctx.now)


@router.post("/windows/{window_id}/reinstate", response_model=WindowResponse)
def reinstate_window(
    window_id: str,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(require_admin),
):
    return WindowResponse.from_window(services.windows().reinstate(window_id, ctx), ctx.now)


@router.get("/windows/{window_id}/stats", response_model=WindowStats)
def window_stats(
    window_id: str,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(get_request_context),
):
    return services.windows().window_stats(window_id, ctx)


@router.get("/windows/{window_id}/applications", response_model=List[ApplicationResponse])
def list_window_applications(
    window_id: str,
    application_status: Optional[ApplicationStatus] = Query(None, alias="status"),
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(require_admin),
):
    return services.lifecycle().list_for_window(window_id, application_status)


@router.post("/windows/{window_id}/promote-waitlist", response_model=List[ApplicationResponse])
def promote_waitlist(
    window_id: str,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(require_admin),
):
    return services.engine().promote_waitlisted(window_id, ctx.actor_id or ROLE_SYSTEM, ctx)
