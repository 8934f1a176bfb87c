"""Per-format policy table with explicit default and format-scoped registration."""

from __future__ import annotations

from typing import Callable

from cspolicy.policy.builder import PolicyBuilder
from cspolicy.policy.directives import SOURCE_DIRECTIVES, BOOLEAN_DIRECTIVES
from cspolicy.policy.sources import PolicyConfigurationError

ConfigureBlock = Callable[[PolicyBuilder], object]

_DEFAULT_MODE = "default"
_FORMAT_MODE = "format"

# Names a caller might reach for on the dispatcher when it meant a builder.
_BUILDER_ATTRIBUTES = frozenset(
    {d.replace("-", "_") for d in SOURCE_DIRECTIVES}
    | {d.replace("-", "_") for d in BOOLEAN_DIRECTIVES}
    | {"directive", "sandbox", "nonce"}
)


def _check_block(block: object) -> None:
    if not callable(block):
        raise PolicyConfigurationError(
            f"Content security policy configuration must be callable, got {type(block).__name__}"
        )


class FormatDispatch:
    """Handed to ``configure_by_format`` blocks to register one branch per format::

        @table.configure_by_format
        def _(formats):
            @formats.html
            def _(p):
                p.default_src(SELF, HTTPS)

            formats.on_format("json", lambda p: p.default_src(NONE))
    """

    def __init__(self, table: FormatPolicyTable) -> None:
        self._table = table

    def on_format(self, name: str, block: ConfigureBlock | None = None):
        """Register ``block`` for ``name``; usable as a decorator when ``block`` is omitted."""
        if block is None:
            return lambda fn: self.on_format(name, fn)
        _check_block(block)
        self._table._add_format(name, block)
        return block

    def html(self, block: ConfigureBlock):
        return self.on_format("html", block)

    def json(self, block: ConfigureBlock):
        return self.on_format("json", block)

    def xml(self, block: ConfigureBlock):
        return self.on_format("xml", block)

    def js(self, block: ConfigureBlock):
        return self.on_format("js", block)

    def text(self, block: ConfigureBlock):
        return self.on_format("text", block)

    def __getattr__(self, item: str):
        if item in _BUILDER_ATTRIBUTES:
            raise PolicyConfigurationError(
                f"Cannot call {item}() on a format-scoped policy; "
                "assign directives inside a format branch"
            )
        raise AttributeError(item)


class FormatPolicyTable:
    """Associates a policy builder with each response format.

    A table is configured either once for every format (``configure_default``)
    or branch by branch (``configure_by_format``). The two styles cannot be
    combined on one table.
    """

    def __init__(self) -> None:
        self._default: PolicyBuilder | None = None
        self._formats: dict[str, PolicyBuilder] = {}
        self._mode: str | None = None

    @property
    def configured(self) -> bool:
        return self._mode is not None

    @property
    def scoped(self) -> bool:
        return self._mode == _FORMAT_MODE

    @property
    def formats(self) -> tuple[str, ...]:
        return tuple(self._formats)

    def configure_default(self, block: ConfigureBlock) -> ConfigureBlock:
        """Run ``block`` against a fresh builder that applies to every format."""
        _check_block(block)
        if self._mode == _FORMAT_MODE:
            raise PolicyConfigurationError(
                "Policy is already configured per format; cannot add an unscoped policy"
            )
        builder = PolicyBuilder()
        block(builder)
        self._default = builder
        self._mode = _DEFAULT_MODE
        return block

    def configure_by_format(self, block: Callable[[FormatDispatch], object]) -> Callable:
        """Run ``block`` against a dispatcher exposing one registration per format."""
        _check_block(block)
        if self._mode == _DEFAULT_MODE:
            raise PolicyConfigurationError(
                "Policy is already configured for every format; cannot add format branches"
            )
        self._mode = _FORMAT_MODE
        block(FormatDispatch(self))
        return block

    def for_format(self, name: str | None) -> PolicyBuilder | None:
        """Builder for ``name``, else the unscoped builder, else ``None``."""
        if name is not None:
            builder = self._formats.get(name.lower())
            if builder is not None:
                return builder
        return self._default

    def _add_format(self, name: str, block: ConfigureBlock) -> None:
        key = name.strip().lower()
        if not key:
            raise PolicyConfigurationError("Format name must not be empty")
        if key in self._formats:
            raise PolicyConfigurationError(f"Format {key!r} is already configured")
        builder = PolicyBuilder()
        block(builder)
        self._formats[key] = builder

    def __repr__(self) -> str:
        if self._mode == _FORMAT_MODE:
            return f"FormatPolicyTable(formats={list(self._formats)!r})"
        return f"FormatPolicyTable(default={self._default!r})"
