"""Per-request nonce generation with a request-scoped memoization slot."""

from __future__ import annotations

import base64
import hashlib
import re
import secrets
from typing import TYPE_CHECKING, Callable, Optional

import structlog

from cspolicy.policy.sources import PolicyConfigurationError

if TYPE_CHECKING:
    from cspolicy.middleware.pipeline import RequestContext

logger = structlog.get_logger()

NonceGenerator = Callable[["RequestContext"], Optional[str]]

# base64 / base64url alphabet; anything else could break out of the quoted source
_NONCE_RE = re.compile(r"^[A-Za-z0-9+/_=-]+$")

_NONCE_BYTES = 16


def random_nonce(context: RequestContext) -> str:
    """Fresh 128-bit base64 value per request."""
    return base64.b64encode(secrets.token_bytes(_NONCE_BYTES)).decode("ascii")


_SESSION_NONCE_PREFIX = b"cspolicy-session-nonce:"


def session_nonce(context: RequestContext) -> str | None:
    """Stable per-session nonce: base64 SHA-256 digest of the session identifier.

    The raw cookie never appears in the header or the page.
    """
    if not context.session_id:
        return None
    digest = hashlib.sha256(_SESSION_NONCE_PREFIX + context.session_id.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


NONCE_GENERATORS: dict[str, NonceGenerator] = {
    "random": random_nonce,
    "session": session_nonce,
}


def get_generator(name: str) -> NonceGenerator | None:
    """Look up a built-in generator by name; an empty name means no generator."""
    if not name:
        return None
    try:
        return NONCE_GENERATORS[name]
    except KeyError:
        raise PolicyConfigurationError(
            f"Unknown nonce generator {name!r}; expected one of {sorted(NONCE_GENERATORS)}"
        ) from None


class NonceProvider:
    """Produces at most one nonce per request.

    The value lives on the request context, so the header and any template
    reading it within the same request see the same string, and nothing is
    shared between requests.
    """

    def __init__(self, generator: NonceGenerator | None = None) -> None:
        self._generator = generator

    @property
    def configured(self) -> bool:
        return self._generator is not None

    def nonce_for(self, context: RequestContext) -> str | None:
        if context.csp_nonce_generated:
            return context.csp_nonce
        context.csp_nonce_generated = True
        if self._generator is None:
            return None

        try:
            value = self._generator(context)
        except Exception:
            logger.exception("csp_nonce_generator_error", request_id=context.request_id)
            return None
        if value is None or value == "":
            logger.debug("csp_nonce_skipped", reason="empty")
            return None
        value = str(value)
        if not _NONCE_RE.match(value):
            logger.warning("csp_nonce_skipped", reason="unsafe_characters")
            return None
        context.csp_nonce = value
        return value
