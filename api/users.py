from fastapi import APIRouter, Depends

from api.deps import get_services
from schemas.user import LoginRequest, OtpVerify, PasswordSet, User, UserCreate
from services.container import Services

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("", status_code=201, response_model=User)
async def register_user(body: UserCreate, services: Services = Depends(get_services)):
    return await services.users.register(body)


@router.post("/login", response_model=User)
async def login(body: LoginRequest, services: Services = Depends(get_services)):
    return await services.users.login(body.mobile, body.password)


@router.get("/{user_id}", response_model=User)
async def get_user(user_id: str, services: Services = Depends(get_services)):
    return await services.users.get(user_id)


@router.post("/{user_id}/verify", response_model=User)
async def verify_otp(user_id: str, body: OtpVerify, services: Services = Depends(get_services)):
    return await services.users.verify_otp(user_id, body.code)


@router.post("/{user_id}/password", response_model=User)
async def set_password(user_id: str, body: PasswordSet, services: Services = Depends(get_services)):
    return await services.users.set_password(user_id, body.password)
