"""Request context population tests."""

from __future__ import annotations

import re
from unittest.mock import MagicMock

import pytest
import structlog
from starlette.responses import Response

from cspolicy.middleware.context_injector import ContextInjector
from cspolicy.middleware.format_negotiator import FormatNegotiator
from cspolicy.middleware.pipeline import RequestContext


class _MockHeaders(dict):
    """Dict subclass that supports case-insensitive get like Starlette Headers."""

    def __init__(self, raw: dict[str, str] | None = None):
        super().__init__()
        for k, v in (raw or {}).items():
            self[k.lower()] = v

    def get(self, key, default=None):
        return super().get(key.lower(), default)


def _make_request(
    headers: dict[str, str] | None = None,
    cookies: dict[str, str] | None = None,
    path: str = "/",
):
    """Create a mock Starlette Request."""
    request = MagicMock()
    request.headers = _MockHeaders(headers)
    request.cookies = dict(cookies or {})
    request.url = MagicMock()
    request.url.path = path
    return request


# ── ContextInjector ─────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_generates_request_id():
    """Generates an 8-char hex request ID."""
    context = RequestContext()
    await ContextInjector().process_request(_make_request(), context)

    assert re.match(r"^[0-9a-f]{8}$", context.request_id)


@pytest.mark.asyncio
async def test_unique_request_ids():
    injector = ContextInjector()
    ids = set()
    for _ in range(100):
        context = RequestContext()
        await injector.process_request(_make_request(), context)
        ids.add(context.request_id)
    assert len(ids) == 100


@pytest.mark.asyncio
async def test_preserves_original_request_id():
    context = RequestContext()
    await ContextInjector().process_request(_make_request(headers={"X-Request-ID": "client-123"}), context)

    assert context.extra["original_request_id"] == "client-123"
    assert context.request_id != "client-123"


@pytest.mark.asyncio
async def test_original_request_id_sanitized():
    context = RequestContext()
    raw = "abc\r\ninjected" + "x" * 400
    await ContextInjector().process_request(_make_request(headers={"X-Request-ID": raw}), context)

    original = context.extra["original_request_id"]
    assert "\r" not in original and "\n" not in original
    assert len(original) <= 256


@pytest.mark.asyncio
async def test_reads_session_cookie():
    context = RequestContext()
    await ContextInjector().process_request(_make_request(cookies={"session": "sess-1"}), context)
    assert context.session_id == "sess-1"


@pytest.mark.asyncio
async def test_custom_session_cookie_name():
    context = RequestContext()
    request = _make_request(cookies={"session": "wrong", "_app_session": "right"})
    await ContextInjector("_app_session").process_request(request, context)
    assert context.session_id == "right"


@pytest.mark.asyncio
async def test_session_cookie_name_from_settings(monkeypatch):
    monkeypatch.setenv("CSP_SESSION_COOKIE_NAME", "sid")
    context = RequestContext()
    await ContextInjector().process_request(_make_request(cookies={"sid": "abc"}), context)
    assert context.session_id == "abc"


@pytest.mark.asyncio
async def test_no_session_cookie():
    context = RequestContext()
    await ContextInjector().process_request(_make_request(), context)
    assert context.session_id == ""


@pytest.mark.asyncio
async def test_binds_request_id_to_log_context():
    context = RequestContext()
    await ContextInjector().process_request(_make_request(), context)
    bound = structlog.contextvars.get_contextvars()
    assert bound["request_id"] == context.request_id
    assert bound["has_session"] is False
    structlog.contextvars.clear_contextvars()


@pytest.mark.asyncio
async def test_echoes_request_id():
    context = RequestContext(request_id="abcd1234")
    response = await ContextInjector().process_response(Response(content="ok"), context)
    assert response.headers["x-request-id"] == "abcd1234"


# ── FormatNegotiator ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_format_from_path_extension():
    context = RequestContext()
    request = _make_request(headers={"Accept": "text/html"}, path="/reports/1.json")
    await FormatNegotiator().process_request(request, context)
    assert context.requested_format == "json"


@pytest.mark.asyncio
async def test_format_from_accept_header():
    context = RequestContext()
    await FormatNegotiator().process_request(_make_request(headers={"Accept": "application/json"}), context)
    assert context.requested_format == "json"


@pytest.mark.asyncio
async def test_no_requested_format():
    context = RequestContext()
    await FormatNegotiator().process_request(_make_request(headers={"Accept": "*/*"}), context)
    assert context.requested_format is None
    assert context.format is None
