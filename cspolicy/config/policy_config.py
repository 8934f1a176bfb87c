"""Global content security policy configuration surface."""

from __future__ import annotations

from typing import Callable, Iterable

import structlog

from cspolicy.config.loader import DEFAULT_NONCE_DIRECTIVES, PolicySettings, get_settings
from cspolicy.policy.directives import validate_directive_name
from cspolicy.policy.nonce import NonceGenerator, NonceProvider, get_generator
from cspolicy.policy.resolver import PolicyOverride, ResolvedPolicy, resolve_policy
from cspolicy.policy.table import ConfigureBlock, FormatDispatch, FormatPolicyTable

logger = structlog.get_logger()


class ContentSecurityPolicyConfig:
    """Application-wide policy, report-only flag and nonce settings.

    Populated once at startup and only read afterwards, so one instance is
    shared by every request::

        config = ContentSecurityPolicyConfig()

        @config.content_security_policy
        def _(p):
            p.default_src(SELF, HTTPS)

        config.nonce_generator = random_nonce
        config.nonce_directives = ["script-src"]
    """

    def __init__(
        self,
        *,
        report_only: bool = False,
        nonce_generator: NonceGenerator | None = None,
        nonce_directives: Iterable[str] | None = None,
    ) -> None:
        self.table: FormatPolicyTable | None = None
        self.report_only = report_only
        self.nonce_generator = nonce_generator
        if nonce_directives is None:
            nonce_directives = DEFAULT_NONCE_DIRECTIVES.split(",")
        self.nonce_directives = nonce_directives

    @classmethod
    def from_settings(cls, settings: PolicySettings | None = None) -> ContentSecurityPolicyConfig:
        settings = settings or get_settings()
        return cls(
            report_only=settings.report_only,
            nonce_generator=get_generator(settings.nonce_generator),
            nonce_directives=settings.nonce_directive_list(),
        )

    @property
    def nonce_directives(self) -> list[str]:
        return list(self._nonce_directives)

    @nonce_directives.setter
    def nonce_directives(self, names: Iterable[str]) -> None:
        if isinstance(names, str):
            names = [names]
        normalized: list[str] = []
        for name in names:
            name = validate_directive_name(name)
            if name not in normalized:
                normalized.append(name)
        self._nonce_directives = tuple(normalized)

    @property
    def nonce_generator(self) -> NonceGenerator | None:
        return self._nonce_generator

    @nonce_generator.setter
    def nonce_generator(self, generator: NonceGenerator | None) -> None:
        if generator is not None and not callable(generator):
            raise TypeError("nonce_generator must be callable or None")
        self._nonce_generator = generator
        self._nonce_provider = NonceProvider(generator)

    @property
    def nonce_provider(self) -> NonceProvider:
        return self._nonce_provider

    def content_security_policy(self, block: ConfigureBlock) -> ConfigureBlock:
        """Replace the global policy with one builder shared by every format."""
        table = FormatPolicyTable()
        table.configure_default(block)
        self.table = table
        logger.debug("csp_global_policy_registered", scoped=False)
        return block

    def content_security_policy_by_format(
        self, block: Callable[[FormatDispatch], object]
    ) -> Callable[[FormatDispatch], object]:
        """Replace the global policy with per-format branches."""
        table = FormatPolicyTable()
        table.configure_by_format(block)
        self.table = table
        logger.debug("csp_global_policy_registered", scoped=True, formats=list(table.formats))
        return block

    def clear(self) -> None:
        """Drop the global policy; requests without an override get no header."""
        self.table = None

    def resolve(self, context, override: PolicyOverride | None = None) -> ResolvedPolicy:
        return resolve_policy(self, override, context)
