"""Tests for MCP server tool registration and dispatch."""
import json
import time

import httpx
import pytest

from checkout_form.payments.http import HttpPaymentHandler
from checkout_form.server import (
    _CHECKOUT_TTL,
    _handle_open_checkout,
    _handle_secure_field_event,
    _handle_set_consent,
    _handle_submit_payment,
    _handle_update_field,
    _handle_view_checkout,
    _sessions,
    call_tool,
    list_tools,
)
import checkout_form.server as server_module


EXPECTED_TOOLS = [
    "open_checkout",
    "update_field",
    "secure_field_event",
    "set_consent",
    "submit_payment",
    "view_checkout",
    "list_states",
]


def _api(payment_body=None, payment_status=200, price=19.99):
    """Mock checkout API: price lookup plus payment endpoint."""
    calls = []

    def responder(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url.path.startswith("/services/"):
            return httpx.Response(200, json={"price": price})
        return httpx.Response(payment_status, json=payment_body or {"success": True})

    handler = HttpPaymentHandler(base_url="https://api.example", transport=httpx.MockTransport(responder))
    return handler, calls


@pytest.fixture
def api(tmp_path, monkeypatch):
    monkeypatch.setattr(server_module, "_DEBUG_LOG_DIR", tmp_path / "debug")
    handler, calls = _api()
    server_module._payment_handler = handler
    yield calls
    server_module._payment_handler = None
    _sessions.clear()


async def _open_filled_checkout() -> str:
    opened = await _handle_open_checkout({"service_id": "svc_123"})
    checkout_id = opened["checkout_id"]
    for field, value in [("card_holder_name", "Jane Doe"), ("zip_code", "90210"), ("state_code", "CA")]:
        await _handle_update_field({"checkout_id": checkout_id, "field": field, "value": value})
    for kind in ["card_number", "card_expiry", "card_cvc"]:
        await _handle_secure_field_event(
            {"checkout_id": checkout_id, "kind": kind, "complete": True, "handle": f"tok_{kind}"}
        )
    return checkout_id


@pytest.mark.asyncio
async def test_list_tools_returns_all():
    tools = await list_tools()
    names = [t.name for t in tools]
    assert len(tools) == len(EXPECTED_TOOLS)
    for expected in EXPECTED_TOOLS:
        assert expected in names, f"Missing tool: {expected}"


@pytest.mark.asyncio
async def test_all_tools_have_schemas():
    tools = await list_tools()
    for tool in tools:
        assert tool.description, f"{tool.name} missing description"
        assert tool.inputSchema, f"{tool.name} missing inputSchema"
        assert tool.inputSchema["type"] == "object"


@pytest.mark.asyncio
async def test_open_checkout_resolves_price(api):
    result = await _handle_open_checkout({"service_id": "svc_123"})
    assert result["status"] == "opened"
    assert result["checkout"]["amount"] == "$19.99"
    assert result["checkout"]["pay_label"] == "Pay $19.99"
    assert "warning" not in result
    assert result["checkout_id"] in _sessions


@pytest.mark.asyncio
async def test_open_checkout_warns_when_price_unavailable(tmp_path, monkeypatch):
    monkeypatch.setattr(server_module, "_DEBUG_LOG_DIR", tmp_path / "debug")
    handler = HttpPaymentHandler(
        base_url="https://api.example",
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )
    server_module._payment_handler = handler
    try:
        result = await _handle_open_checkout({"service_id": "svc_123"})
        assert result["checkout"]["price_unavailable"] is True
        assert "warning" in result
    finally:
        server_module._payment_handler = None
        _sessions.clear()


@pytest.mark.asyncio
async def test_unknown_checkout_id(api):
    result = await _handle_view_checkout({"checkout_id": "nope"})
    assert result["status"] == "error"


@pytest.mark.asyncio
async def test_consent_rejected_until_form_complete(api):
    opened = await _handle_open_checkout({"service_id": "svc_123"})
    result = await _handle_set_consent({"checkout_id": opened["checkout_id"], "agreed": True})
    assert result["status"] == "rejected"
    assert result["checkout"]["consent_granted"] is False


@pytest.mark.asyncio
async def test_full_purchase_flow(api):
    checkout_id = await _open_filled_checkout()

    consent = await _handle_set_consent({"checkout_id": checkout_id, "agreed": True})
    assert consent["status"] == "ok"
    assert consent["checkout"]["inputs_disabled"] is True
    assert consent["checkout"]["can_submit"] is True

    locked = await _handle_update_field({"checkout_id": checkout_id, "field": "zip_code", "value": "10001"})
    assert locked["status"] == "locked"

    result = await _handle_submit_payment({"checkout_id": checkout_id, "user_id": "user_42"})
    assert result["status"] == "succeeded"
    assert result["checkout"]["completed"] is True

    payment_call = api[-1]
    body = json.loads(payment_call.content)
    assert body["amount_minor_units"] == 1999
    assert body["user_id"] == "user_42"
    assert body["secure_field_handles"] == {
        "card_number": "tok_card_number",
        "card_expiry": "tok_card_expiry",
        "card_cvc": "tok_card_cvc",
    }


@pytest.mark.asyncio
async def test_declined_payment_returns_safe_message(tmp_path, monkeypatch):
    monkeypatch.setattr(server_module, "_DEBUG_LOG_DIR", tmp_path / "debug")
    handler, _ = _api(payment_body={"success": False, "error": {"code": "card_declined"}}, payment_status=402)
    server_module._payment_handler = handler
    try:
        checkout_id = await _open_filled_checkout()
        await _handle_set_consent({"checkout_id": checkout_id, "agreed": True})
        result = await _handle_submit_payment({"checkout_id": checkout_id, "user_id": "user_42"})
        assert result["status"] == "failed"
        assert result["message"] == "Your card was declined. Please use a different card."
        assert "card_declined" not in json.dumps(result)
    finally:
        server_module._payment_handler = None
        _sessions.clear()


@pytest.mark.asyncio
async def test_submit_without_consent_rejected(api):
    checkout_id = await _open_filled_checkout()
    result = await _handle_submit_payment({"checkout_id": checkout_id, "user_id": "user_42"})
    assert result["status"] == "rejected"
    assert all(not call.url.path.startswith("/payments") for call in api)


@pytest.mark.asyncio
async def test_call_tool_dispatch_and_debug_log(api, tmp_path):
    response = await call_tool("list_states", {})
    payload = json.loads(response[0].text)
    assert payload["status"] == "ok"
    assert {"abbreviation": "CA", "name": "California"} in payload["states"]
    assert list((tmp_path / "debug").glob("session_*.log"))


@pytest.mark.asyncio
async def test_call_tool_unknown_tool(api):
    response = await call_tool("not_a_tool", {})
    assert "Unknown tool" in response[0].text


@pytest.mark.asyncio
async def test_call_tool_reports_errors(api):
    response = await call_tool("open_checkout", {})
    assert response[0].text.startswith("Error:")


@pytest.mark.asyncio
async def test_checkout_ids_are_prefixed(api):
    result = await _handle_open_checkout({"service_id": "svc_123"})
    assert result["checkout_id"].startswith("chk_")


@pytest.mark.asyncio
async def test_numeric_identifiers_survive_tool_output(api, monkeypatch):
    monkeypatch.setattr(server_module, "_generate_checkout_id", lambda: "123456789012")

    response = await call_tool("open_checkout", {"service_id": "100200300"})
    payload = json.loads(response[0].text)
    assert payload["checkout_id"] == "123456789012"
    assert payload["checkout"]["service_id"] == "100200300"

    viewed = json.loads((await call_tool("view_checkout", {"checkout_id": payload["checkout_id"]}))[0].text)
    assert viewed["status"] == "ok"
    assert viewed["checkout"]["service_id"] == "100200300"


@pytest.mark.asyncio
async def test_card_number_typed_into_input_is_redacted(api):
    opened = await _handle_open_checkout({"service_id": "svc_123"})
    response = await call_tool(
        "update_field",
        {"checkout_id": opened["checkout_id"], "field": "card_holder_name", "value": "4242 4242 4242 4242"},
    )
    payload = json.loads(response[0].text)
    assert "4242 4242" not in response[0].text
    assert payload["checkout"]["inputs"]["card_holder_name"] == "[CARD REDACTED]"


@pytest.mark.asyncio
async def test_expired_checkout_is_closed_and_evicted(api):
    checkout_id = await _open_filled_checkout()
    await _handle_set_consent({"checkout_id": checkout_id, "agreed": True})
    session = _sessions[checkout_id]["session"]
    assert session.can_submit is True

    _sessions[checkout_id]["created_at"] = time.time() - _CHECKOUT_TTL - 1

    result = await _handle_view_checkout({"checkout_id": checkout_id})
    assert result["status"] == "error"
    assert checkout_id not in _sessions
    assert session.can_submit is False


@pytest.mark.asyncio
async def test_fresh_checkouts_survive_cleanup(api):
    old_id = await _open_filled_checkout()
    _sessions[old_id]["created_at"] = time.time() - _CHECKOUT_TTL - 1

    opened = await _handle_open_checkout({"service_id": "svc_123"})
    assert old_id not in _sessions
    assert opened["checkout_id"] in _sessions
