"""Ordered directive set and its CSP header serialization."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Callable, Iterable, Iterator

import structlog

from cspolicy.policy.sources import (
    Dynamic,
    PolicyConfigurationError,
    Source,
    Token,
    resolve_dynamic,
)

if TYPE_CHECKING:
    from cspolicy.middleware.pipeline import RequestContext

logger = structlog.get_logger()


# Directives that take a list of sources. Each gets a named setter on the builder.
SOURCE_DIRECTIVES = (
    "base-uri",
    "child-src",
    "connect-src",
    "default-src",
    "font-src",
    "form-action",
    "frame-ancestors",
    "frame-src",
    "img-src",
    "manifest-src",
    "media-src",
    "object-src",
    "prefetch-src",
    "require-trusted-types-for",
    "script-src",
    "script-src-attr",
    "script-src-elem",
    "style-src",
    "style-src-attr",
    "style-src-elem",
    "trusted-types",
    "worker-src",
    "plugin-types",
    "report-uri",
    "report-to",
    "require-sri-for",
)

# Directives that are either present (bare name) or absent, never valued.
BOOLEAN_DIRECTIVES = frozenset({
    "upgrade-insecure-requests",
    "block-all-mixed-content",
})

# Directives that are valid both bare and with values.
OPTIONAL_VALUE_DIRECTIVES = frozenset({"sandbox"})

_DIRECTIVE_NAME_RE = re.compile(r"^[a-z][a-z0-9-]*$")


def validate_directive_name(name: str) -> str:
    """Return the normalized directive name or raise for malformed names."""
    normalized = name.strip().lower() if isinstance(name, str) else ""
    if not _DIRECTIVE_NAME_RE.match(normalized):
        raise PolicyConfigurationError(f"Invalid Content Security Policy directive name: {name!r}")
    return normalized


class DirectiveSet:
    """Ordered mapping of directive name to its source tokens.

    Each name appears at most once. Reassigning a name replaces its tokens and
    keeps its original position, so output order is insertion order.
    Boolean directives hold an empty token tuple.
    """

    def __init__(self, directives: Iterable[tuple[str, Iterable[Source]]] = ()) -> None:
        self._directives: dict[str, tuple[Source, ...]] = {}
        for name, tokens in directives:
            self.assign(name, tokens)

    def assign(self, name: str, tokens: Iterable[Source]) -> None:
        """Replace the tokens for ``name``."""
        name = validate_directive_name(name)
        tokens = tuple(tokens)
        if name in BOOLEAN_DIRECTIVES and tokens:
            raise PolicyConfigurationError(
                f"{name} is a boolean directive and does not accept sources"
            )
        if not tokens and name not in BOOLEAN_DIRECTIVES and name not in OPTIONAL_VALUE_DIRECTIVES:
            raise PolicyConfigurationError(f"{name} requires at least one source")
        self._directives[name] = tokens

    def remove(self, name: str) -> None:
        self._directives.pop(validate_directive_name(name), None)

    def get(self, name: str) -> tuple[Source, ...] | None:
        return self._directives.get(validate_directive_name(name))

    def items(self) -> Iterator[tuple[str, tuple[Source, ...]]]:
        return iter(self._directives.items())

    def copy(self) -> DirectiveSet:
        clone = DirectiveSet()
        clone._directives = dict(self._directives)
        return clone

    def with_token(self, name: str, token: Token) -> DirectiveSet:
        """Return a copy with ``token`` appended to an existing directive."""
        if name not in self._directives:
            raise KeyError(name)
        clone = self.copy()
        clone._directives[name] = self._directives[name] + (token,)
        return clone

    def resolve(self, context: RequestContext) -> DirectiveSet:
        """Return a copy with every dynamic source evaluated for ``context``.

        A valued directive whose sources all resolve to nothing is dropped. A
        source that raises is logged and dropped; the rest of the policy stands.
        """
        resolved = DirectiveSet()
        for name, tokens in self._directives.items():
            if not any(isinstance(t, Dynamic) for t in tokens):
                resolved._directives[name] = tokens
                continue
            expanded: list[Source] = []
            for token in tokens:
                if isinstance(token, Dynamic):
                    try:
                        expanded.extend(resolve_dynamic(name, token, context))
                    except Exception:
                        logger.exception(
                            "csp_dynamic_source_error",
                            directive=name,
                            source=token.describe(),
                            request_id=context.request_id,
                        )
                else:
                    expanded.append(token)
            if expanded:
                resolved._directives[name] = tuple(expanded)
        return resolved

    def serialize(self) -> str:
        """Render the header value, e.g. ``default-src 'self' https:; upgrade-insecure-requests``."""
        return self._format(lambda token: token.render())

    def _format(self, render: Callable[[Source], str]) -> str:
        parts = []
        for name, tokens in self._directives.items():
            if tokens:
                parts.append(f"{name} {' '.join(render(token) for token in tokens)}")
            else:
                parts.append(name)
        return "; ".join(parts)

    def __contains__(self, name: object) -> bool:
        return name in self._directives

    def __iter__(self) -> Iterator[str]:
        return iter(self._directives)

    def __len__(self) -> int:
        return len(self._directives)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DirectiveSet):
            return NotImplemented
        return list(self._directives.items()) == list(other._directives.items())

    def __repr__(self) -> str:
        return f"DirectiveSet({self._format(_describe)!r})"


def _describe(token: Source) -> str:
    # Unresolved dynamic sources have no header form yet
    if isinstance(token, Dynamic):
        return token.describe()
    return token.render()
