"""
Checkout Form MCP Server.

Exposes the checkout session over stdio: open a form for a service, type
into the plain-text fields, relay secure-field widget events, give or
withdraw consent, and submit the payment. Card digits never pass through
this server; secure fields are represented only by completeness signals
and opaque handles.
"""
import asyncio
import json
import logging
import os
import secrets
import time
from datetime import datetime
from pathlib import Path

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from .output_sanitizer import sanitize_output
from .payments import HttpPaymentHandler, get_payment_handler
from .session import CheckoutSession, FieldLockedError
from .us_states import state_options
from .widget import InMemorySecureFieldWidget, SecureFieldKind

logger = logging.getLogger(__name__)

# Debug log: records every tool call and response for session review
_DEBUG_LOG_DIR = Path(os.environ.get(
    "CHECKOUT_DEBUG_DIR",
    os.path.expanduser("~/.config/checkout-form/debug"),
))


def _debug_log(tool_name: str, args: dict, result: str) -> None:
    """Append a tool call entry to the debug log file."""
    try:
        _DEBUG_LOG_DIR.mkdir(parents=True, exist_ok=True)
        log_file = _DEBUG_LOG_DIR / f"session_{datetime.now().strftime('%Y-%m-%d')}.log"
        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]

        entry = (
            f"\n{'='*80}\n"
            f"[{timestamp}] TOOL: {tool_name}\n"
            f"ARGS: {sanitize_output(json.dumps(args, indent=2))}\n"
            f"RESPONSE:\n{result}\n"
        )

        with open(log_file, "a") as f:
            f.write(entry)
    except Exception as e:
        logger.debug("Debug log write failed: %s", e)

server = Server("checkout-form")

# Lazy-initialized singleton
_payment_handler: HttpPaymentHandler | None = None

# Open checkout forms (in-memory, single-process): checkout_id -> {"session", "created_at"}
_sessions: dict[str, dict] = {}

# Checkout TTL
_CHECKOUT_TTL = 1800  # 30 minutes


def _get_payment_handler() -> HttpPaymentHandler:
    global _payment_handler
    if _payment_handler is None:
        _payment_handler = get_payment_handler()
    return _payment_handler


def _generate_checkout_id() -> str:
    """Generate a checkout identifier: 'chk_' plus 12 hex characters."""
    return f"chk_{secrets.token_hex(6)}"


def _cleanup_expired_checkouts() -> None:
    """Close and remove checkouts older than the TTL."""
    now = time.time()
    expired = [k for k, v in _sessions.items() if now - v["created_at"] > _CHECKOUT_TTL]
    for k in expired:
        _sessions.pop(k)["session"].close()
        logger.info("Checkout %s expired", k)


def _get_session(args: dict) -> CheckoutSession | None:
    _cleanup_expired_checkouts()
    entry = _sessions.get(str(args.get("checkout_id", "")).strip())
    return entry["session"] if entry else None


def _checkout_view(session: CheckoutSession) -> dict:
    """Session snapshot with the free-text parts (typed inputs, widget messages) redacted."""
    view = session.snapshot()
    view["inputs"] = {k: sanitize_output(v) for k, v in view["inputs"].items()}
    view["card_field_errors"] = {k: sanitize_output(v) for k, v in view["card_field_errors"].items()}
    return view


def _unknown_checkout(args: dict) -> dict:
    return {
        "status": "error",
        "message": f"Unknown checkout_id: {args.get('checkout_id')}. Use open_checkout first.",
    }


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------

_CHECKOUT_ID_PROPERTY = {
    "type": "string",
    "description": "Checkout identifier returned by open_checkout",
}


@server.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name="open_checkout",
            description="Open a payment form for a service. Looks up the price and returns a checkout_id.",
            inputSchema={
                "type": "object",
                "properties": {
                    "service_id": {
                        "type": "string",
                        "description": "Identifier of the service being paid for",
                    },
                },
                "required": ["service_id"],
            },
        ),
        Tool(
            name="update_field",
            description=(
                "Set one plain-text field: card_holder_name, zip_code, or state_code. "
                "Fails while consent is given; withdraw consent first to edit."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "checkout_id": _CHECKOUT_ID_PROPERTY,
                    "field": {
                        "type": "string",
                        "enum": ["card_holder_name", "zip_code", "state_code"],
                    },
                    "value": {"type": "string"},
                },
                "required": ["checkout_id", "field", "value"],
            },
        ),
        Tool(
            name="secure_field_event",
            description=(
                "Relay a change event from the secure card widget. Reports completeness only; "
                "never pass card digits. An optional handle is the tokenizer's reference for the field."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "checkout_id": _CHECKOUT_ID_PROPERTY,
                    "kind": {
                        "type": "string",
                        "enum": [kind.value for kind in SecureFieldKind],
                    },
                    "complete": {"type": "boolean"},
                    "error_message": {
                        "type": "string",
                        "description": "Format error reported by the widget, if any",
                    },
                    "handle": {
                        "type": "string",
                        "description": "Opaque token for this field issued by the widget",
                    },
                },
                "required": ["checkout_id", "kind", "complete"],
            },
        ),
        Tool(
            name="set_consent",
            description=(
                "Check or uncheck the terms agreement. Only takes effect when all fields are valid; "
                "while checked, the form is locked."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "checkout_id": _CHECKOUT_ID_PROPERTY,
                    "agreed": {"type": "boolean"},
                },
                "required": ["checkout_id", "agreed"],
            },
        ),
        Tool(
            name="submit_payment",
            description="Submit the payment. REQUIRES consent to have been given via set_consent.",
            inputSchema={
                "type": "object",
                "properties": {
                    "checkout_id": _CHECKOUT_ID_PROPERTY,
                    "user_id": {
                        "type": "string",
                        "description": "Identifier of the paying user",
                    },
                },
                "required": ["checkout_id", "user_id"],
            },
        ),
        Tool(
            name="view_checkout",
            description="Show the current form state: amount, field errors, consent, and submission status.",
            inputSchema={
                "type": "object",
                "properties": {"checkout_id": _CHECKOUT_ID_PROPERTY},
                "required": ["checkout_id"],
            },
        ),
        Tool(
            name="list_states",
            description="List the US state and territory codes accepted by state_code.",
            inputSchema={"type": "object", "properties": {}},
        ),
    ]


# ---------------------------------------------------------------------------
# Tool dispatch
# ---------------------------------------------------------------------------

@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    try:
        if name == "open_checkout":
            result = await _handle_open_checkout(arguments)
        elif name == "update_field":
            result = await _handle_update_field(arguments)
        elif name == "secure_field_event":
            result = await _handle_secure_field_event(arguments)
        elif name == "set_consent":
            result = await _handle_set_consent(arguments)
        elif name == "submit_payment":
            result = await _handle_submit_payment(arguments)
        elif name == "view_checkout":
            result = await _handle_view_checkout(arguments)
        elif name == "list_states":
            result = {"status": "ok", "states": state_options()}
        else:
            return [TextContent(type="text", text=f"Unknown tool: {name}")]

        text = json.dumps(result, indent=2)

        _debug_log(name, arguments, sanitize_output(text))
        return [TextContent(type="text", text=text)]

    except Exception as e:
        logger.exception("Tool %s failed", name)
        error_text = sanitize_output(f"Error: {str(e)}")
        _debug_log(name, arguments, error_text)
        return [TextContent(type="text", text=error_text)]


# ---------------------------------------------------------------------------
# Tool implementations
# ---------------------------------------------------------------------------

async def _handle_open_checkout(args: dict) -> dict:
    """Create a form session and resolve its price."""
    handler = _get_payment_handler()
    session = CheckoutSession(
        service_id=args["service_id"],
        payment_service=handler,
        price_lookup=handler,
        widget=InMemorySecureFieldWidget(),
    )
    _cleanup_expired_checkouts()
    await session.mount()

    checkout_id = _generate_checkout_id()
    _sessions[checkout_id] = {"session": session, "created_at": time.time()}

    result = {"status": "opened", "checkout_id": checkout_id, "checkout": _checkout_view(session)}
    if session.price_unavailable:
        result["warning"] = "The price for this service could not be loaded; payment cannot be submitted."
    return result


async def _handle_update_field(args: dict) -> dict:
    session = _get_session(args)
    if session is None:
        return _unknown_checkout(args)

    try:
        session.update_field(args["field"], args["value"])
    except FieldLockedError:
        return {
            "status": "locked",
            "message": "The form is locked while consent is given. Use set_consent(agreed=false) to edit.",
        }
    except KeyError:
        return {"status": "error", "message": f"Unknown field: {args['field']}"}

    return {"status": "ok", "checkout": _checkout_view(session)}


async def _handle_secure_field_event(args: dict) -> dict:
    session = _get_session(args)
    if session is None:
        return _unknown_checkout(args)

    widget = session.widget
    if not isinstance(widget, InMemorySecureFieldWidget):
        return {"status": "error", "message": "This checkout's card fields are driven by an external widget."}

    widget.change(
        SecureFieldKind(args["kind"]),
        complete=bool(args["complete"]),
        error_message=args.get("error_message") or None,
        handle=args.get("handle") or None,
    )
    return {"status": "ok", "checkout": _checkout_view(session)}


async def _handle_set_consent(args: dict) -> dict:
    session = _get_session(args)
    if session is None:
        return _unknown_checkout(args)

    agreed = bool(args["agreed"])
    consent = session.set_consent(agreed)
    result = {"status": "ok", "checkout": _checkout_view(session)}
    if agreed and not consent.granted:
        result["status"] = "rejected"
        result["message"] = "Consent cannot be given until every field is filled in without errors."
    return result


async def _handle_submit_payment(args: dict) -> dict:
    session = _get_session(args)
    if session is None:
        return _unknown_checkout(args)

    if not session.can_submit:
        return {
            "status": "rejected",
            "message": "Payment cannot be submitted now. Give consent first, and wait for any submission in progress.",
            "checkout": _checkout_view(session),
        }

    state = await session.submit(args["user_id"])
    return {
        "status": state.status.value,
        "message": state.message or None,
        "checkout": _checkout_view(session),
    }


async def _handle_view_checkout(args: dict) -> dict:
    session = _get_session(args)
    if session is None:
        return _unknown_checkout(args)
    return {"status": "ok", "checkout": _checkout_view(session)}


# ---------------------------------------------------------------------------
# Server entry point
# ---------------------------------------------------------------------------

async def main():
    """Run the MCP server over stdio."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    logger.info("Checkout Form MCP server starting...")

    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        for entry in _sessions.values():
            entry["session"].close()
        if _payment_handler:
            await _payment_handler.close()


def run():
    """Sync entry point for console_scripts."""
    asyncio.run(main())
