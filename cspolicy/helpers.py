"""Template-side access to the request's nonce."""

from __future__ import annotations

from html import escape

from starlette.requests import HTTPConnection

from cspolicy.middleware.pipeline import RequestContext

CONTEXT_STATE_KEY = "csp_context"


def get_request_context(request: HTTPConnection) -> RequestContext | None:
    """The pipeline context attached to ``request`` by ``PolicyMiddleware``."""
    return getattr(request.state, CONTEXT_STATE_KEY, None)


def content_security_policy_nonce(request: HTTPConnection) -> str | None:
    """Nonce to put on inline ``<script>``/``<style>`` tags; matches the header."""
    context = get_request_context(request)
    if context is None:
        return None
    return context.content_security_policy_nonce()


def csp_meta_tag(request: HTTPConnection) -> str:
    """``<meta name="csp-nonce">`` tag for scripts that read the nonce at runtime."""
    nonce = content_security_policy_nonce(request)
    if nonce is None:
        return ""
    return f'<meta name="csp-nonce" content="{escape(nonce, quote=True)}" />'


def set_response_format(request: HTTPConnection, fmt: str) -> None:
    """Pin the format the policy is resolved for, ahead of content negotiation."""
    context = get_request_context(request)
    if context is not None:
        context.format = fmt.lower()
