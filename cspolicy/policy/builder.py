"""Mutable construction surface used by configuration code."""

from __future__ import annotations

from typing import Any

from cspolicy.policy.directives import (
    BOOLEAN_DIRECTIVES,
    SOURCE_DIRECTIVES,
    DirectiveSet,
    validate_directive_name,
)
from cspolicy.policy.sources import PolicyConfigurationError, coerce_source


class PolicyBuilder:
    """Accumulates directive assignments for one configuration scope.

    Every name in ``SOURCE_DIRECTIVES`` has a setter named after it with
    dashes replaced by underscores::

        p.default_src(SELF, HTTPS)
        p.script_src(SELF, "https://cdn.example.com")
        p.object_src(None)  # removes object-src

    ``directive(name, *sources)`` covers anything not in the table.
    """

    def __init__(self) -> None:
        self._directives = DirectiveSet()
        self._nonce = True

    def directive(self, name: str, *sources: Any) -> PolicyBuilder:
        """Set ``name`` to ``sources``; no sources, ``None`` or ``False`` removes it."""
        name = validate_directive_name(name)
        if name in BOOLEAN_DIRECTIVES:
            return self._toggle(name, sources)
        if not sources or sources[0] is None or sources[0] is False:
            self._directives.remove(name)
            return self
        self._directives.assign(name, [coerce_source(name, source) for source in sources])
        return self

    def upgrade_insecure_requests(self, enabled: bool = True) -> PolicyBuilder:
        return self._toggle("upgrade-insecure-requests", (enabled,))

    def block_all_mixed_content(self, enabled: bool = True) -> PolicyBuilder:
        return self._toggle("block-all-mixed-content", (enabled,))

    def sandbox(self, *values: Any) -> PolicyBuilder:
        """Bare ``sandbox`` with no values (or ``True``), removed with ``False``."""
        if not values or values[0] is True:
            self._directives.assign("sandbox", ())
        elif values[0] is False or values[0] is None:
            self._directives.remove("sandbox")
        else:
            self._directives.assign("sandbox", [coerce_source("sandbox", v) for v in values])
        return self

    def nonce(self, enabled: bool = True) -> PolicyBuilder:
        """Opt this scope in or out of per-request nonce injection."""
        self._nonce = bool(enabled)
        return self

    @property
    def nonce_enabled(self) -> bool:
        return self._nonce

    @property
    def directives(self) -> DirectiveSet:
        return self._directives.copy()

    def freeze(self) -> DirectiveSet:
        """Snapshot the current assignments as a standalone directive set."""
        return self._directives.copy()

    def copy(self) -> PolicyBuilder:
        clone = PolicyBuilder()
        clone._directives = self._directives.copy()
        clone._nonce = self._nonce
        return clone

    def _toggle(self, name: str, values: tuple) -> PolicyBuilder:
        if not values or values == (True,):
            self._directives.assign(name, ())
        elif values[0] is False or values[0] is None:
            self._directives.remove(name)
        else:
            raise PolicyConfigurationError(
                f"{name} is a boolean directive and does not accept sources"
            )
        return self

    def __len__(self) -> int:
        return len(self._directives)

    def __repr__(self) -> str:
        return f"PolicyBuilder({self._directives!r})"


def _make_setter(name: str):
    def setter(self: PolicyBuilder, *sources: Any) -> PolicyBuilder:
        return self.directive(name, *sources)

    setter.__name__ = name.replace("-", "_")
    setter.__qualname__ = f"PolicyBuilder.{setter.__name__}"
    setter.__doc__ = f"Set the ``{name}`` directive."
    return setter


for _name in SOURCE_DIRECTIVES:
    setattr(PolicyBuilder, _name.replace("-", "_"), _make_setter(_name))
del _name
