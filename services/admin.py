"""
Admin Review Gateway: the only caller allowed to issue the terminal decisions
on an application waiting in MATCHING_LENDER.
"""
from __future__ import annotations

import logging
from typing import Optional

from schemas.application import ApplicationFilter, ApplicationStatus, LoanApplication
from schemas.user import User, UserRole
from services import state_machine
from services.errors import Unauthorized
from services.registry import Registry

logger = logging.getLogger(__name__)


class AdminGateway:
    def __init__(self, registry: Registry) -> None:
        self.registry = registry

    def _require_admin(self, actor: User, action: str, app_id: str) -> None:
        if actor.role != UserRole.ADMIN:
            logger.warning("Unauthorized %s on %s by user %s (%s)", action, app_id, actor.id, actor.role.value)
            raise Unauthorized(f"User {actor.id} is not an administrator")

    async def _decide(self, actor: User, app_id: str, target: ApplicationStatus) -> LoanApplication:
        self._require_admin(actor, target.value, app_id)

        def mutate(app: LoanApplication) -> LoanApplication:
            decided = state_machine.transition(app, target, state_machine.Actor.ADMIN)
            return decided.model_copy(update={"decided_by": actor.id})

        app = await self.registry.update_status(app_id, mutate)
        logger.info("Admin %s set application %s to %s", actor.id, app_id, target.value)
        return app

    async def approve(self, actor: User, app_id: str) -> LoanApplication:
        return await self._decide(actor, app_id, ApplicationStatus.APPROVED)

    async def reject(self, actor: User, app_id: str) -> LoanApplication:
        return await self._decide(actor, app_id, ApplicationStatus.REJECTED)

    async def request_documents(self, actor: User, app_id: str) -> LoanApplication:
        return await self._decide(actor, app_id, ApplicationStatus.NEEDS_DOCUMENTS)

    async def list_applications(self, actor: User, flt: Optional[ApplicationFilter] = None) -> list[LoanApplication]:
        self._require_admin(actor, "list", "*")
        return await self.registry.list_applications(flt)
