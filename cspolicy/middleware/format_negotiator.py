"""Request-side format negotiation."""

from __future__ import annotations

from starlette.requests import Request
from starlette.responses import Response

from cspolicy.formats import format_for_accept, format_for_path
from cspolicy.middleware.pipeline import Middleware, RequestContext


class FormatNegotiator(Middleware):
    """Record the format the client asked for.

    The path extension wins over the Accept header. The response content type,
    when known, takes precedence later on.
    """

    async def process_request(self, request: Request, context: RequestContext) -> Request | Response | None:
        context.requested_format = format_for_path(request.url.path) or format_for_accept(
            request.headers.get("accept")
        )
        return None
