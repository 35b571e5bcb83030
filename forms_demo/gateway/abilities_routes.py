from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request

from forms_demo.gateway.auth import caller_context, json_body
from forms_demo.policy.policy import CallerContext
from forms_demo.runtime.abilities.registry import AbilityRegistry

ABILITIES_PREFIX = "/api/abilities/v1"


def abilities_router(registry: AbilityRegistry) -> APIRouter:
    """Capability endpoint: discovery plus `POST /abilities/{name}/run`."""
    router = APIRouter(prefix=ABILITIES_PREFIX)

    @router.get("/categories")
    async def list_categories():
        return [c.to_dict() for c in registry.categories()]

    @router.get("/abilities")
    async def list_abilities(category: Optional[str] = None):
        return [a.to_dict() for a in registry.list(category=category)]

    @router.post("/abilities/{name:path}/run")
    async def run_ability(name: str, request: Request, caller: CallerContext = Depends(caller_context)) -> Dict[str, Any]:
        payload = await json_body(request)
        return registry.execute(name, payload, caller)

    @router.get("/abilities/{name:path}")
    async def get_ability(name: str):
        return registry.get(name).to_dict()

    return router
