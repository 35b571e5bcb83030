from __future__ import annotations

import asyncio
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from forms_demo.bridge.client import BridgeSettings, FormsServiceClient
from forms_demo.bridge.server import BridgeServer, create_http_app, default_tools
from forms_demo.protocol import RpcErrorCode

from .conftest import ADMIN_PASSWORD, ADMIN_USER

SUBMISSION = {"form_id": 1, "name": "Ann", "email": "ann@example.com", "message": "Hello"}


def _rpc(method, params=None, req_id=1):
    msg = {"jsonrpc": "2.0", "id": req_id, "method": method}
    if params is not None:
        msg["params"] = params
    return msg


def _exchange(transport, *messages, admin=True):
    """Run messages through a BridgeServer whose upstream is `transport`."""

    async def _go():
        settings = BridgeSettings(
            base_url="http://forms.test",
            username=ADMIN_USER if admin else None,
            app_password=ADMIN_PASSWORD if admin else None,
        )
        server = BridgeServer(FormsServiceClient(settings, transport=transport))
        try:
            return [await server.handle(m) for m in messages]
        finally:
            await server.close()

    return asyncio.run(_go())


def _tool_result(response):
    assert "error" not in response, response
    content = response["result"]["content"]
    assert content[0]["type"] == "text"
    return json.loads(content[0]["text"])


class TestToolCatalog:
    def test_four_tools_with_closed_input_schemas(self):
        tools = {t.name: t for t in default_tools()}
        assert set(tools) == {
            "forms_submit_form",
            "forms_get_submission",
            "forms_count_forms",
            "forms_count_submissions",
        }
        for tool in tools.values():
            assert tool.input_schema["additionalProperties"] is False
            assert "outputSchema" not in tool.to_mcp()
        assert tools["forms_get_submission"].input_schema["required"] == ["submission_id"]
        assert "(public)" in tools["forms_submit_form"].description
        assert "(admin)" in tools["forms_count_forms"].description

    def test_initialize_and_list(self):
        init, listed = _exchange(httpx.MockTransport(lambda r: httpx.Response(500)), _rpc("initialize", {}), _rpc("tools/list", req_id=2))
        assert init["result"]["serverInfo"]["name"] == "forms-demo-bridge"
        assert init["result"]["capabilities"] == {"tools": {}}
        assert listed["id"] == 2
        assert len(listed["result"]["tools"]) == 4


class TestAgainstService:
    @pytest.mark.parametrize("abilities_enabled", [True, False])
    def test_submit_then_read_back(self, make_app, abilities_enabled):
        transport = httpx.ASGITransport(app=make_app(abilities_enabled=abilities_enabled))
        submitted, fetched, counted, forms = _exchange(
            transport,
            _rpc("tools/call", {"name": "forms_submit_form", "arguments": SUBMISSION}),
            _rpc("tools/call", {"name": "forms_get_submission", "arguments": {"submission_id": 1}}, req_id=2),
            _rpc("tools/call", {"name": "forms_count_submissions", "arguments": {"form_id": 1}}, req_id=3),
            _rpc("tools/call", {"name": "forms_count_forms", "arguments": {}}, req_id=4),
        )
        assert _tool_result(submitted)["success"] is True
        sub = _tool_result(fetched)["submission"]
        assert (sub["name"], sub["email"], sub["message"], sub["form_id"]) == ("Ann", "ann@example.com", "Hello", 1)
        assert _tool_result(counted) == {"count": 1, "form_id": 1}
        assert _tool_result(forms)["count"] == 1
        assert ("forms" in _tool_result(forms)) is abilities_enabled

    def test_text_is_pretty_printed(self, make_app):
        transport = httpx.ASGITransport(app=make_app())
        (res,) = _exchange(transport, _rpc("tools/call", {"name": "forms_count_submissions", "arguments": {}}))
        assert res["result"]["content"][0]["text"] == json.dumps({"count": 0}, indent=2)

    def test_forbidden_without_credentials(self, make_app):
        transport = httpx.ASGITransport(app=make_app())
        (res,) = _exchange(transport, _rpc("tools/call", {"name": "forms_count_forms", "arguments": {}}), admin=False)
        assert res["error"]["code"] == RpcErrorCode.INTERNAL_ERROR
        assert "does not have necessary permission" in res["error"]["message"]

    def test_fallback_forbidden_without_credentials(self, make_app):
        transport = httpx.ASGITransport(app=make_app(abilities_enabled=False))
        (res,) = _exchange(transport, _rpc("tools/call", {"name": "forms_count_forms", "arguments": {}}), admin=False)
        assert res["error"]["message"] == "Fallback run failed: forms_count_forms: Sorry, you are not allowed to do that."


class TestProtocolErrors:
    def _server(self, *messages):
        return _exchange(httpx.MockTransport(lambda r: httpx.Response(500)), *messages)

    def test_unknown_tool(self):
        (res,) = self._server(_rpc("tools/call", {"name": "forms_delete_everything", "arguments": {}}))
        assert res["error"]["code"] == RpcErrorCode.INVALID_PARAMS

    def test_unknown_method(self):
        (res,) = self._server(_rpc("resources/list"))
        assert res["error"]["code"] == RpcErrorCode.METHOD_NOT_FOUND

    def test_notifications_get_no_reply(self):
        (res,) = self._server({"jsonrpc": "2.0", "method": "notifications/initialized"})
        assert res is None

    def test_non_object_message(self):
        (res,) = self._server(["not", "a", "request"])
        assert res["error"]["code"] == RpcErrorCode.INVALID_REQUEST

    def test_ping(self):
        (res,) = self._server(_rpc("ping"))
        assert res["result"] == {}


class TestHttpTransport:
    def _client(self):
        settings = BridgeSettings(base_url="http://forms.test")
        upstream = httpx.MockTransport(lambda r: httpx.Response(500))
        return TestClient(create_http_app(BridgeServer(FormsServiceClient(settings, transport=upstream))))

    def test_initialize_sets_session_header(self):
        res = self._client().post("/mcp", json=_rpc("initialize", {}))
        assert res.status_code == 200
        assert res.headers["Mcp-Session-Id"].startswith("sid_")

    def test_notification_accepted(self):
        res = self._client().post("/mcp", json={"jsonrpc": "2.0", "method": "notifications/initialized"})
        assert res.status_code == 202

    def test_parse_error(self):
        res = self._client().post("/mcp", content=b"{not json", headers={"Content-Type": "application/json"})
        assert res.json()["error"]["code"] == RpcErrorCode.PARSE_ERROR
