"""Context injector middleware — request ID and session identifier."""

from __future__ import annotations

import re
from uuid import uuid4

import structlog
from starlette.requests import Request
from starlette.responses import Response

from cspolicy.config.loader import get_settings
from cspolicy.middleware.pipeline import Middleware, RequestContext

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f-\x9f\u2028\u2029]")

_MAX_REQUEST_ID_LENGTH = 256


class ContextInjector(Middleware):
    """Populate the request context before any policy work happens.

    - Generates a request ID (uuid4, first 8 chars), echoed as X-Request-ID
    - Keeps a client supplied X-Request-ID as ``original_request_id``
    - Reads the session cookie into ``context.session_id``
    - Binds request_id to structlog contextvars for the rest of the request
    """

    def __init__(self, session_cookie_name: str | None = None) -> None:
        self._session_cookie_name = session_cookie_name

    async def process_request(self, request: Request, context: RequestContext) -> Request | Response | None:
        context.request_id = uuid4().hex[:8]

        client_request_id = request.headers.get("x-request-id")
        if client_request_id:
            context.extra["original_request_id"] = _CONTROL_CHARS_RE.sub(
                "", client_request_id[:_MAX_REQUEST_ID_LENGTH]
            )

        cookie_name = self._session_cookie_name or get_settings().session_cookie_name
        context.session_id = request.cookies.get(cookie_name, "")

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=context.request_id,
            has_session=bool(context.session_id),
        )
        return None

    async def process_response(self, response: Response, context: RequestContext) -> Response:
        response.headers["x-request-id"] = context.request_id
        return response
