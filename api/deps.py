from fastapi import Depends, Header, Request

from schemas.user import User
from services.container import Services
from services.errors import NotFound, Unauthorized


def get_services(request: Request) -> Services:
    return request.app.state.services


async def get_acting_user(
    x_user_id: str = Header(..., alias="X-User-Id"),
    services: Services = Depends(get_services),
) -> User:
    """Resolve the caller from the X-User-Id header; unknown ids are unauthorized, not missing."""
    try:
        return await services.users.get(x_user_id)
    except NotFound:
        raise Unauthorized(f"Unknown user {x_user_id}") from None
