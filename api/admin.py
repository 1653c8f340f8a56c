from typing import Optional

from fastapi import APIRouter, Depends

from api.deps import get_acting_user, get_services
from schemas.application import ApplicationFilter, ApplicationStatus, LoanApplication
from schemas.user import User
from services.container import Services

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/applications", response_model=list[LoanApplication])
async def list_all_applications(
    status: Optional[ApplicationStatus] = None,
    country: Optional[str] = None,
    actor: User = Depends(get_acting_user),
    services: Services = Depends(get_services),
):
    return await services.admin.list_applications(actor, ApplicationFilter(status=status, country=country))


@router.post("/applications/{application_id}/approve", response_model=LoanApplication)
async def approve_application(
    application_id: str,
    actor: User = Depends(get_acting_user),
    services: Services = Depends(get_services),
):
    return await services.admin.approve(actor, application_id)


@router.post("/applications/{application_id}/reject", response_model=LoanApplication)
async def reject_application(
    application_id: str,
    actor: User = Depends(get_acting_user),
    services: Services = Depends(get_services),
):
    return await services.admin.reject(actor, application_id)


@router.post("/applications/{application_id}/request-documents", response_model=LoanApplication)
async def request_documents(
    application_id: str,
    actor: User = Depends(get_acting_user),
    services: Services = Depends(get_services),
):
    return await services.admin.request_documents(actor, application_id)
