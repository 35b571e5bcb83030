from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from forms_demo import config
from forms_demo.policy.policy import basic_auth_header

logger = logging.getLogger("forms_demo.bridge")

ABILITIES_RUN_PATH = "/api/abilities/v1/abilities/{name}/run"
LEGACY_PATH = "/api/forms-demo/v1/{route}"

# Free-text markers of a host that lacks the abilities endpoint. The service
# does not expose a structured code for this, so matching stays heuristic.
ROUTE_MISSING_MARKERS = (
    "No route was found",
    "rest_no_route",
    "/abilities/v1/",
)


class BridgeConfigError(RuntimeError):
    pass


class UpstreamError(RuntimeError):
    def __init__(self, message: str, *, status_code: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def is_route_missing(error: BaseException) -> bool:
    msg = str(error)
    return any(marker in msg for marker in ROUTE_MISSING_MARKERS)


@dataclass(frozen=True)
class BridgeSettings:
    base_url: str
    username: Optional[str] = None
    app_password: Optional[str] = None
    timeout_s: float = 30.0

    @staticmethod
    def from_env() -> "BridgeSettings":
        base_url = (os.getenv("FORMS_BASE_URL") or "").strip()
        if not base_url:
            raise BridgeConfigError("Missing required env var: FORMS_BASE_URL")
        return BridgeSettings(
            base_url=base_url.rstrip("/"),
            username=os.getenv("FORMS_USERNAME") or None,
            app_password=os.getenv("FORMS_APP_PASSWORD") or None,
            timeout_s=config.bridge_timeout_s(),
        )

    def auth_headers(self) -> Dict[str, str]:
        return basic_auth_header(self.username, self.app_password)


def _decode_body(resp: httpx.Response) -> Any:
    text = resp.text
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return {"raw": text}


def _error_message(resp: httpx.Response, body: Any) -> str:
    if isinstance(body, dict):
        msg = body.get("message") or body.get("code")
        if msg:
            return str(msg)
    return f"HTTP {resp.status_code} {resp.reason_phrase}".rstrip()


class FormsServiceClient:
    """
    HTTP client for the forms service.

    run_tool() calls the abilities endpoint first and, only when that endpoint
    looks absent on the host, repeats the call once against the legacy route.
    """

    def __init__(self, settings: BridgeSettings, *, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = BridgeSettings(
            base_url=settings.base_url.rstrip("/"),
            username=settings.username,
            app_password=settings.app_password,
            timeout_s=settings.timeout_s,
        )
        self._client = httpx.AsyncClient(timeout=self.settings.timeout_s, transport=transport)

    async def close(self) -> None:
        await self._client.aclose()

    async def _post(self, url: str, payload: Optional[Dict[str, Any]], *, failure_prefix: str) -> Any:
        headers = {"Content-Type": "application/json", **self.settings.auth_headers()}
        try:
            resp = await self._client.post(url, headers=headers, content=json.dumps(payload or {}))
        except httpx.HTTPError as e:
            raise UpstreamError(f"{failure_prefix}: {e}") from e

        body = _decode_body(resp)
        if resp.status_code >= 400:
            raise UpstreamError(
                f"{failure_prefix}: {_error_message(resp, body)}",
                status_code=resp.status_code,
                body=body,
            )
        return body

    async def run_ability(self, ability: str, payload: Optional[Dict[str, Any]]) -> Any:
        url = self.settings.base_url + ABILITIES_RUN_PATH.format(name=quote(ability, safe="/"))
        return await self._post(url, payload, failure_prefix=f"Ability run failed: {ability}")

    async def run_legacy(self, tool_name: str, route: str, payload: Optional[Dict[str, Any]]) -> Any:
        url = self.settings.base_url + LEGACY_PATH.format(route=route)
        return await self._post(url, payload, failure_prefix=f"Fallback run failed: {tool_name}")

    async def run_tool(self, *, tool_name: str, ability: str, route: str, payload: Optional[Dict[str, Any]]) -> Any:
        try:
            return await self.run_ability(ability, payload)
        except UpstreamError as e:
            if not is_route_missing(e):
                raise
            logger.info("abilities route unavailable for %s, falling back to %s", ability, route)
        return await self.run_legacy(tool_name, route, payload)
