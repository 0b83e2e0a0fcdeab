"""
Application endpoints for students and administrators.
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status

from hostel_allocation.api.deps import get_request_context, get_services, require_actor, require_admin
from hostel_allocation.core.context import ROLE_SYSTEM, RequestContext
from hostel_allocation.schemas.application import (
    ApplicationEdit,
    ApplicationResponse,
    ApplicationSubmit,
    DecisionRequest,
    RevokeRequest,
    StatusHistoryResponse,
)
from hostel_allocation.services.service_factory import ServiceFactory

router = APIRouter(tags=["applications"])


@router.post("/applications", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
def submit_application(
    payload: ApplicationSubmit,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(get_request_context),
):
    return services.lifecycle().submit(payload.profile, payload.window_id, payload.preferences, ctx)


@router.get("/applications/{application_id}", response_model=ApplicationResponse)
def get_application(
    application_id: str,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(get_request_context),
):
    return services.lifecycle().get(application_id, ctx)


@router.patch("/applications/{application_id}", response_model=ApplicationResponse)
def edit_application(
    application_id: str,
    payload: ApplicationEdit,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(require_actor),
):
    return services.lifecycle().edit(application_id, ctx.actor_id, payload, ctx)


@router.post("/applications/{application_id}/withdraw", response_model=ApplicationResponse)
def withdraw_application(
    application_id: str,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(require_actor),
):
    return services.lifecycle().withdraw(application_id, ctx.actor_id, ctx)


@router.post("/applications/{application_id}/decision", response_model=ApplicationResponse)
def decide_application(
    application_id: str,
    payload: DecisionRequest,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(require_admin),
):
    return services.lifecycle().decide(
        application_id,
        ctx.actor_id or ROLE_SYSTEM,
        payload.outcome,
        payload.notes,
        ctx,
    )


@router.post("/applications/{application_id}/revoke", response_model=ApplicationResponse)
def revoke_application(
    application_id: str,
    payload: RevokeRequest,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(require_admin),
):
    return services.lifecycle().revoke(application_id, ctx.actor_id or ROLE_SYSTEM, payload.notes, ctx)


@router.delete("/applications/{application_id}", status_code=status.HTTP_204_NO_CONTENT)
def archive_application(
    application_id: str,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(require_admin),
):
    services.lifecycle().archive(application_id, ctx.actor_id or ROLE_SYSTEM, ctx)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/applications/{application_id}/history", response_model=List[StatusHistoryResponse])
def application_history(
    application_id: str,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(get_request_context),
):
    return services.lifecycle().history(application_id, ctx)


@router.get("/students/{student_id}/applications", response_model=List[ApplicationResponse])
def list_student_applications(
    student_id: str,
    services: ServiceFactory = Depends(get_services),
    ctx: RequestContext = Depends(get_request_context),
):
    return services.lifecycle().list_for_student(student_id, ctx)
