"""Content-Security-Policy header emission."""

from __future__ import annotations

import structlog
from starlette.requests import Request
from starlette.responses import Response

from cspolicy.config.policy_config import ContentSecurityPolicyConfig
from cspolicy.formats import format_for_media_type
from cspolicy.handlers import get_policy_override
from cspolicy.middleware.pipeline import Middleware, RequestContext
from cspolicy.policy.resolver import HEADER, REPORT_ONLY_HEADER, resolve_policy

logger = structlog.get_logger()


def _response_format(response: Response, context: RequestContext) -> str | None:
    if context.format:
        return context.format
    return format_for_media_type(response.headers.get("content-type")) or context.requested_format


class ContentSecurityPolicyHeader(Middleware):
    """Resolve the policy for each response and write exactly one CSP header.

    - Writes Content-Security-Policy or Content-Security-Policy-Report-Only, never both
    - Writes nothing when no policy applies to the request
    - Leaves responses that already carry either header untouched
    - Skips 304 Not Modified, whose cached body nonces could not match a new header
    """

    def __init__(self, config: ContentSecurityPolicyConfig) -> None:
        self._config = config

    async def process_request(self, request: Request, context: RequestContext) -> Request | Response | None:
        return None

    async def process_response(self, response: Response, context: RequestContext) -> Response:
        if response.status_code == 304:
            return response
        if HEADER in response.headers or REPORT_ONLY_HEADER in response.headers:
            logger.debug("csp_header_already_present", request_id=context.request_id)
            return response

        context.format = _response_format(response, context)
        override = get_policy_override(context.endpoint)
        resolved = resolve_policy(self._config, override, context)
        if not resolved.emit:
            return response

        response.headers[resolved.header_name] = resolved.header_value
        logger.debug(
            "csp_header_emitted",
            header=resolved.header_name,
            format=context.format,
            override=override is not None,
            nonce=resolved.nonce is not None,
        )
        return response
