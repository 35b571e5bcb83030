from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from forms_demo.gateway.auth import caller_context, json_body
from forms_demo.policy.policy import CallerContext
from forms_demo.runtime.abilities.definition import AbilityDefinition
from forms_demo.runtime.abilities.registry import AbilityPermissionDenied, AbilityRegistry

LEGACY_PREFIX = "/api/forms-demo/v1"


def legacy_router(registry: AbilityRegistry) -> APIRouter:
    """
    Plain POST routes for hosts without the abilities endpoint.

    Bodies are not schema-validated: anything that is not a JSON object is
    treated as {} and handed to the operation, which coerces its own inputs.
    """
    router = APIRouter(prefix=LEGACY_PREFIX)

    def _bind(ability: AbilityDefinition) -> None:
        async def _endpoint(request: Request, caller: CallerContext = Depends(caller_context)) -> Dict[str, Any]:
            if not ability.permission(caller):
                raise AbilityPermissionDenied("Sorry, you are not allowed to do that.", code="rest_forbidden")
            body = await json_body(request)
            args: Dict[str, Any] = body if isinstance(body, dict) else {}
            return ability.run_legacy(registry.db, args)

        router.add_api_route(
            f"/{ability.legacy_route}",
            _endpoint,
            methods=["POST"],
            name=f"legacy:{ability.legacy_route}",
        )

    for ability in registry.list():
        _bind(ability)
    return router
