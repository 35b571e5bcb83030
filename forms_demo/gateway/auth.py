from __future__ import annotations

import logging
from typing import Any

from fastapi import Request

from forms_demo.policy.policy import CallerContext, InvalidCredentials, caller_from_authorization
from forms_demo.runtime.abilities.registry import AbilityError

logger = logging.getLogger("forms_demo.gateway")


def caller_context(request: Request) -> CallerContext:
    state = request.app.state
    try:
        return caller_from_authorization(
            request.headers.get("Authorization"),
            username=state.admin_username,
            app_password=state.admin_app_password,
        )
    except InvalidCredentials as e:
        logger.info("rejected credentials from %s", request.client.host if request.client else "unknown")
        raise AbilityError(str(e), code="forms_demo_invalid_credentials", status_code=401) from e


async def json_body(request: Request) -> Any:
    """Decoded JSON body, or None when it is missing or malformed."""
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return await request.json()
    except ValueError:
        return None
