from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from api.deps import get_services
from schemas.application import ApplicationCreate, ApplicationFilter, ApplicationStatus, ContractResponse, LoanApplication
from services.container import Services

router = APIRouter(prefix="/api/applications", tags=["applications"])

DEFAULT_DEVICE_CONTEXT = "Unknown Device"


@router.get("", response_model=list[LoanApplication])
async def list_applications(
    user_id: str = Query(..., alias="userId", min_length=1, description="Owner; unfiltered listing is admin-only"),
    status: Optional[ApplicationStatus] = None,
    country: Optional[str] = None,
    services: Services = Depends(get_services),
):
    flt = ApplicationFilter(user_id=user_id, status=status, country=country)
    return await services.orchestrator.list_applications(flt)


@router.get("/{application_id}", response_model=LoanApplication)
async def get_application(application_id: str, services: Services = Depends(get_services)):
    return await services.orchestrator.get_application(application_id)


@router.post("", status_code=201, response_model=LoanApplication)
async def start_application(body: ApplicationCreate, services: Services = Depends(get_services)):
    return await services.orchestrator.start_application(body.user_id, body.amount, body.months)


@router.post("/{application_id}/documents")
async def submit_documents(
    application_id: str,
    image: UploadFile = File(..., description="Payslip, bank statement or utility bill"),
    device_context: str = Form(DEFAULT_DEVICE_CONTEXT, alias="deviceContext"),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    result = await services.orchestrator.submit_documents(
        application_id, await image.read(), device_context, services.provider_timeout
    )
    app = await services.orchestrator.get_application(application_id)
    return {"result": result, "application": app}


@router.post("/{application_id}/biometrics")
async def submit_biometrics(
    application_id: str,
    id_image: UploadFile = File(..., alias="idImage"),
    selfie_image: UploadFile = File(..., alias="selfieImage"),
    device_context: str = Form(DEFAULT_DEVICE_CONTEXT, alias="deviceContext"),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    result = await services.orchestrator.submit_biometrics(
        application_id,
        await id_image.read(),
        await selfie_image.read(),
        device_context,
        services.provider_timeout,
    )
    app = await services.orchestrator.get_application(application_id)
    return {"result": result, "application": app}


@router.post("/{application_id}/contract", response_model=ContractResponse)
async def generate_contract(application_id: str, services: Services = Depends(get_services)):
    return await services.orchestrator.generate_contract(application_id, services.provider_timeout)


@router.post("/{application_id}/confirm", response_model=LoanApplication)
async def confirm_contract(application_id: str, services: Services = Depends(get_services)):
    return await services.orchestrator.confirm_contract(application_id)
