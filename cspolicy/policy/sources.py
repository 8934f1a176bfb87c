"""CSP source tokens and the quoting rule for each kind."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Union

if TYPE_CHECKING:
    from cspolicy.middleware.pipeline import RequestContext


class PolicyConfigurationError(ValueError):
    """Raised when a policy is configured in a way that can never be emitted."""


# Whitespace, semicolons and commas would split one source into several
# directives or several sources once serialized.
_UNSAFE_SOURCE_RE = re.compile(r"[\s;,]")


@dataclass(frozen=True, slots=True)
class Keyword:
    """Keyword source, rendered single-quoted (``'self'``)."""

    value: str

    def render(self) -> str:
        return f"'{self.value}'"


@dataclass(frozen=True, slots=True)
class Scheme:
    """Scheme source, rendered with a trailing colon (``https:``)."""

    value: str

    def render(self) -> str:
        return f"{self.value}:"


@dataclass(frozen=True, slots=True)
class Literal:
    """Host, URL or any other source rendered verbatim."""

    value: str

    def render(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Dynamic:
    """Source computed per request from the request context."""

    fn: Callable[[RequestContext], Any]

    def render(self) -> str:
        raise PolicyConfigurationError(
            "Missing context for the dynamic content security policy source"
        )

    def describe(self) -> str:
        """Placeholder shown in reprs before the source is resolved."""
        name = getattr(self.fn, "__name__", type(self.fn).__name__)
        return f"<dynamic {name}>"


Token = Union[Keyword, Scheme, Literal]
Source = Union[Keyword, Scheme, Literal, Dynamic]

SELF = Keyword("self")
NONE = Keyword("none")
UNSAFE_INLINE = Keyword("unsafe-inline")
UNSAFE_EVAL = Keyword("unsafe-eval")
UNSAFE_HASHES = Keyword("unsafe-hashes")
STRICT_DYNAMIC = Keyword("strict-dynamic")
REPORT_SAMPLE = Keyword("report-sample")
WASM_UNSAFE_EVAL = Keyword("wasm-unsafe-eval")
ALLOW_DUPLICATES = Keyword("allow-duplicates")
SCRIPT = Keyword("script")

HTTP = Scheme("http")
HTTPS = Scheme("https")
DATA = Scheme("data")
BLOB = Scheme("blob")
MEDIASTREAM = Scheme("mediastream")
FILESYSTEM = Scheme("filesystem")
WS = Scheme("ws")
WSS = Scheme("wss")

HASH_ALGORITHMS = frozenset({"sha256", "sha384", "sha512"})


def nonce_source(value: str) -> Keyword:
    """Build the ``'nonce-<value>'`` keyword."""
    return Keyword(f"nonce-{value}")


def hash_source(algorithm: str, digest: str) -> Keyword:
    """Build a ``'sha256-<digest>'`` style keyword."""
    algorithm = algorithm.lower()
    if algorithm not in HASH_ALGORITHMS:
        raise PolicyConfigurationError(f"Unsupported hash algorithm: {algorithm!r}")
    return Keyword(f"{algorithm}-{digest}")


def coerce_source(directive: str, value: Any) -> Source:
    """Map a value passed to a builder setter onto a source token.

    Tokens pass through, strings become literals, callables become dynamic
    sources. Anything else is a configuration error.
    """
    if isinstance(value, (Keyword, Scheme, Literal, Dynamic)):
        return value
    if isinstance(value, str):
        if not value or _UNSAFE_SOURCE_RE.search(value):
            raise PolicyConfigurationError(
                f"Invalid Content Security Policy {directive}: {value!r}. "
                "Directive values must not contain whitespace, commas or semicolons. "
                "Please use multiple arguments instead."
            )
        return Literal(value)
    if callable(value):
        return Dynamic(value)
    raise PolicyConfigurationError(
        f"Unexpected content security policy source for {directive}: {value!r}"
    )


def resolve_dynamic(directive: str, source: Dynamic, context: RequestContext) -> list[Token]:
    """Evaluate a dynamic source against the request context."""
    value = source.fn(context)
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        values = value
    else:
        values = [value]
    tokens: list[Token] = []
    for item in values:
        token = coerce_source(directive, item)
        if isinstance(token, Dynamic):
            raise PolicyConfigurationError(
                f"Dynamic source for {directive} returned another callable"
            )
        tokens.append(token)
    return tokens
