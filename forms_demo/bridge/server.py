"""
MCP bridge for the forms service.

Advertises one tool per forms ability and forwards tool calls to the service
through FormsServiceClient (abilities endpoint, legacy route as fallback).

Start (stdio, for MCP hosts that spawn the process):
  FORMS_BASE_URL=http://127.0.0.1:8080 forms-demo-bridge

Start (streamable HTTP):
  FORMS_BASE_URL=http://127.0.0.1:8080 forms-demo-bridge --transport http --port 9000
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from forms_demo import __version__
from forms_demo.bridge.client import BridgeConfigError, BridgeSettings, FormsServiceClient
from forms_demo.policy.policy import PUBLIC_CALLER
from forms_demo.protocol import MCP_PROTOCOL_VERSION, RpcErrorCode, rpc_error, rpc_result, text_content
from forms_demo.runtime.abilities.definition import AbilityDefinition
from forms_demo.runtime.abilities.forms import form_abilities

logger = logging.getLogger("forms_demo.bridge")

SERVER_NAME = "forms-demo-bridge"


@dataclass(frozen=True)
class BridgeTool:
    name: str
    description: str
    ability: str
    route: str
    input_schema: Dict[str, Any]

    def to_mcp(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description, "inputSchema": self.input_schema}


def _tool_for(ability: AbilityDefinition) -> BridgeTool:
    access = "public" if ability.permission(PUBLIC_CALLER) else "admin"
    return BridgeTool(
        name="forms_" + ability.legacy_route.replace("-", "_"),
        description=f"Run ability {ability.name} ({access}): {ability.description}",
        ability=ability.name,
        route=ability.legacy_route,
        input_schema={**ability.input_schema, "additionalProperties": False},
    )


def default_tools() -> List[BridgeTool]:
    return [_tool_for(a) for a in form_abilities()]


class BridgeServer:
    def __init__(self, client: FormsServiceClient, tools: Optional[List[BridgeTool]] = None):
        self.client = client
        self.tools = {t.name: t for t in (tools if tools is not None else default_tools())}

    async def close(self) -> None:
        await self.client.close()

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]]) -> Any:
        tool = self.tools.get(name)
        if tool is None:
            raise KeyError(name)
        return await self.client.run_tool(
            tool_name=tool.name,
            ability=tool.ability,
            route=tool.route,
            payload=arguments or {},
        )

    async def handle(self, payload: Any) -> Optional[Dict[str, Any]]:
        """
        Handle one JSON-RPC message. Returns the response, or None for notifications.
        """
        if not isinstance(payload, dict):
            return rpc_error(None, RpcErrorCode.INVALID_REQUEST, "Invalid Request")

        method = str(payload.get("method") or "")
        if "id" not in payload:
            # notifications/initialized and friends need no answer
            logger.debug("notification: %s", method)
            return None

        req_id = payload.get("id")
        params = payload.get("params") or {}
        if not isinstance(params, dict):
            params = {}

        if method == "initialize":
            return rpc_result(
                req_id,
                {
                    "protocolVersion": MCP_PROTOCOL_VERSION,
                    "serverInfo": {"name": SERVER_NAME, "version": __version__},
                    "capabilities": {"tools": {}},
                },
            )

        if method == "ping":
            return rpc_result(req_id, {})

        if method == "tools/list":
            return rpc_result(req_id, {"tools": [t.to_mcp() for t in self.tools.values()]})

        if method == "tools/call":
            name = str(params.get("name") or "")
            arguments = params.get("arguments") or {}
            if not isinstance(arguments, dict):
                return rpc_error(req_id, RpcErrorCode.INVALID_PARAMS, "Tool arguments must be an object")
            if name not in self.tools:
                return rpc_error(req_id, RpcErrorCode.INVALID_PARAMS, f"Unknown tool: {name}")
            try:
                result = await self.call_tool(name, arguments)
            except Exception as e:
                logger.error("tool %s failed: %s", name, e)
                return rpc_error(req_id, RpcErrorCode.INTERNAL_ERROR, str(e))
            return rpc_result(req_id, text_content(result))

        return rpc_error(req_id, RpcErrorCode.METHOD_NOT_FOUND, f"Unknown method: {method}")


async def _stdin_lines(queue: asyncio.Queue[Optional[str]]) -> None:
    loop = asyncio.get_running_loop()
    while True:
        line = await loop.run_in_executor(None, sys.stdin.readline)
        if not line:
            await queue.put(None)
            return
        await queue.put(line)


async def serve_stdio(server: BridgeServer) -> None:
    """Newline-delimited JSON-RPC on stdin/stdout. Logs go to stderr."""
    queue: asyncio.Queue[Optional[str]] = asyncio.Queue()
    reader = asyncio.create_task(_stdin_lines(queue))
    try:
        while True:
            line = await queue.get()
            if line is None:
                return
            if not line.strip():
                continue
            try:
                payload = json.loads(line)
            except ValueError:
                response: Optional[Dict[str, Any]] = rpc_error(None, RpcErrorCode.PARSE_ERROR, "Parse error")
            else:
                response = await server.handle(payload)
            if response is not None:
                sys.stdout.write(json.dumps(response, ensure_ascii=False) + "\n")
                sys.stdout.flush()
    finally:
        reader.cancel()
        await server.close()


def create_http_app(server: BridgeServer) -> FastAPI:
    app = FastAPI(title="Forms Demo MCP Bridge", version=__version__)
    session_id = f"sid_{uuid.uuid4().hex[:12]}"

    @app.on_event("shutdown")
    async def _shutdown():
        await server.close()

    @app.get("/health")
    async def health():
        return {"ok": True}

    @app.post("/mcp")
    async def mcp(request: Request):
        try:
            payload = await request.json()
        except ValueError:
            return JSONResponse(rpc_error(None, RpcErrorCode.PARSE_ERROR, "Parse error"), status_code=200)

        response = await server.handle(payload)
        if response is None:
            return Response(status_code=202)
        headers = {"Mcp-Session-Id": session_id} if isinstance(payload, dict) and payload.get("method") == "initialize" else None
        return JSONResponse(response, headers=headers)

    return app


def main(argv: Optional[list[str]] = None) -> int:
    load_dotenv()
    logging.basicConfig(level=logging.INFO, stream=sys.stderr)

    parser = argparse.ArgumentParser(description="MCP bridge for the forms demo service.")
    parser.add_argument("--transport", choices=["stdio", "http"], default="stdio")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=9000)
    args = parser.parse_args(argv)

    try:
        settings = BridgeSettings.from_env()
    except BridgeConfigError as e:
        logger.error("%s", e)
        return 2

    server = BridgeServer(FormsServiceClient(settings))
    logger.info("bridging %s tools to %s", len(server.tools), settings.base_url)

    if args.transport == "http":
        import uvicorn

        uvicorn.run(create_http_app(server), host=args.host, port=args.port)
        return 0

    asyncio.run(serve_stdio(server))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
