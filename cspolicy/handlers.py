"""Per-handler policy overrides, declared as endpoint decorators.

Decorators stack onto a single ``PolicyOverride`` stored on the endpoint::

    def _embed_policy(p):
        p.default_src("https://example.com")

    @content_security_policy(_embed_policy)
    @content_security_policy_report_only()
    async def embed(request): ...

    @content_security_policy(False)
    async def raw(request): ...

An endpoint without any of these inherits the global configuration.
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar

from cspolicy.policy.resolver import PolicyOverride
from cspolicy.policy.sources import PolicyConfigurationError
from cspolicy.policy.table import ConfigureBlock, FormatDispatch, FormatPolicyTable

OVERRIDE_ATTRIBUTE = "__content_security_policy__"

Endpoint = TypeVar("Endpoint")


def get_policy_override(endpoint: Any) -> PolicyOverride | None:
    if endpoint is None:
        return None
    return getattr(endpoint, OVERRIDE_ATTRIBUTE, None)


def _override_for(endpoint: Any) -> PolicyOverride:
    # Copy instead of mutating so a subclass never edits its parent's override
    existing = endpoint.__dict__.get(OVERRIDE_ATTRIBUTE) if hasattr(endpoint, "__dict__") else None
    if existing is None:
        inherited = get_policy_override(endpoint)
        existing = PolicyOverride(
            table=inherited.table if inherited else None,
            report_only=inherited.report_only if inherited else None,
            disabled=inherited.disabled if inherited else False,
        )
        setattr(endpoint, OVERRIDE_ATTRIBUTE, existing)
    return existing


def content_security_policy(block: ConfigureBlock | bool) -> Callable[[Endpoint], Endpoint]:
    """Replace the global policy for this endpoint.

    ``block`` receives a builder shared by every format. ``False`` disables
    the header for the endpoint entirely.
    """
    if block is False:
        def disable(endpoint: Endpoint) -> Endpoint:
            override = _override_for(endpoint)
            override.disabled = True
            override.table = None
            return endpoint

        return disable
    if block is True or not callable(block):
        raise PolicyConfigurationError(
            "content_security_policy expects a configuration callable or False"
        )

    table = FormatPolicyTable()
    table.configure_default(block)

    def decorate(endpoint: Endpoint) -> Endpoint:
        override = _override_for(endpoint)
        override.table = table
        override.disabled = False
        return endpoint

    return decorate


def content_security_policy_by_format(
    block: Callable[[FormatDispatch], object],
) -> Callable[[Endpoint], Endpoint]:
    """Replace the global policy for this endpoint with per-format branches.

    Formats without a branch get no header.
    """
    table = FormatPolicyTable()
    table.configure_by_format(block)

    def decorate(endpoint: Endpoint) -> Endpoint:
        override = _override_for(endpoint)
        override.table = table
        override.disabled = False
        return endpoint

    return decorate


def content_security_policy_report_only(enabled: bool = True) -> Callable[[Endpoint], Endpoint]:
    """Force report-only mode on (or off) for this endpoint."""

    def decorate(endpoint: Endpoint) -> Endpoint:
        _override_for(endpoint).report_only = bool(enabled)
        return endpoint

    return decorate
