"""Per-request policy resolution across global and handler-level configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from cspolicy.policy.directives import DirectiveSet
from cspolicy.policy.sources import nonce_source

if TYPE_CHECKING:
    from cspolicy.config.policy_config import ContentSecurityPolicyConfig
    from cspolicy.middleware.pipeline import RequestContext
    from cspolicy.policy.table import FormatPolicyTable

logger = structlog.get_logger()

HEADER = "Content-Security-Policy"
REPORT_ONLY_HEADER = "Content-Security-Policy-Report-Only"


@dataclass
class PolicyOverride:
    """Handler-level override.

    ``table`` replaces the global table outright when set; ``None`` inherits
    it. ``report_only`` of ``None`` inherits the global flag. ``disabled``
    suppresses the header entirely.
    """

    table: FormatPolicyTable | None = None
    report_only: bool | None = None
    disabled: bool = False


@dataclass(frozen=True)
class ResolvedPolicy:
    """What to emit for one request."""

    directives: DirectiveSet | None = None
    report_only: bool = False
    nonce: str | None = None

    @property
    def emit(self) -> bool:
        return self.directives is not None

    @property
    def header_name(self) -> str:
        return REPORT_ONLY_HEADER if self.report_only else HEADER

    @property
    def header_value(self) -> str:
        if self.directives is None:
            return ""
        return self.directives.serialize()


NO_POLICY = ResolvedPolicy()


def resolve_policy(
    config: ContentSecurityPolicyConfig,
    override: PolicyOverride | None,
    context: RequestContext,
) -> ResolvedPolicy:
    """Compute the directive set and report-only flag for ``context``.

    An override with its own table wins entirely: there is no directive level
    merge with the global policy.
    """
    if override is not None and override.disabled:
        logger.debug("csp_policy_disabled", request_id=context.request_id)
        return NO_POLICY

    if override is not None and override.table is not None:
        table = override.table
        source = "handler"
    else:
        table = config.table
        source = "global"

    builder = table.for_format(context.format) if table is not None else None
    if builder is None:
        logger.debug("csp_policy_absent", source=source, format=context.format)
        return NO_POLICY

    directives = builder.freeze().resolve(context)

    nonce = None
    if builder.nonce_enabled and config.nonce_provider.configured:
        targets = [name for name in config.nonce_directives if name in directives]
        if targets:
            nonce = config.nonce_provider.nonce_for(context)
        if nonce is not None:
            for name in targets:
                directives = directives.with_token(name, nonce_source(nonce))

    report_only = config.report_only
    if override is not None and override.report_only is not None:
        report_only = override.report_only

    return ResolvedPolicy(directives=directives, report_only=report_only, nonce=nonce)
