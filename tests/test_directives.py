"""Tests for source tokens and DirectiveSet serialization."""

from __future__ import annotations

import pytest

from cspolicy.middleware.pipeline import RequestContext
from cspolicy.policy.directives import DirectiveSet
from cspolicy.policy.sources import (
    BLOB,
    DATA,
    HTTPS,
    NONE,
    SELF,
    STRICT_DYNAMIC,
    UNSAFE_INLINE,
    WSS,
    Dynamic,
    Keyword,
    Literal,
    PolicyConfigurationError,
    coerce_source,
    hash_source,
    nonce_source,
)


# ── Token rendering ─────────────────────────────────────────────────────


class TestTokenRendering:
    def test_keyword_is_single_quoted(self):
        assert SELF.render() == "'self'"
        assert UNSAFE_INLINE.render() == "'unsafe-inline'"
        assert STRICT_DYNAMIC.render() == "'strict-dynamic'"

    def test_scheme_gets_trailing_colon(self):
        assert HTTPS.render() == "https:"
        assert DATA.render() == "data:"
        assert WSS.render() == "wss:"

    def test_literal_is_verbatim(self):
        assert Literal("https://cdn.example.com").render() == "https://cdn.example.com"
        assert Literal("*.example.com").render() == "*.example.com"

    def test_nonce_source(self):
        assert nonce_source("abc123").render() == "'nonce-abc123'"

    def test_hash_source(self):
        assert hash_source("SHA256", "dGVzdA==").render() == "'sha256-dGVzdA=='"

    def test_hash_source_rejects_unknown_algorithm(self):
        with pytest.raises(PolicyConfigurationError):
            hash_source("md5", "abc")

    def test_dynamic_cannot_render_without_context(self):
        with pytest.raises(PolicyConfigurationError, match="Missing context"):
            Dynamic(lambda ctx: "https://a.com").render()


class TestCoerceSource:
    def test_string_becomes_literal(self):
        assert coerce_source("default-src", "https://example.com") == Literal("https://example.com")

    def test_tokens_pass_through(self):
        assert coerce_source("default-src", SELF) is SELF

    def test_callable_becomes_dynamic(self):
        fn = lambda ctx: "https://a.com"  # noqa: E731
        assert coerce_source("script-src", fn) == Dynamic(fn)

    @pytest.mark.parametrize("value", ["https://a.com https://b.com", "'self';", "a.com,b.com", ""])
    def test_unsafe_strings_rejected(self, value):
        with pytest.raises(PolicyConfigurationError):
            coerce_source("script-src", value)

    @pytest.mark.parametrize("value", [42, 1.5, object()])
    def test_unexpected_types_rejected(self, value):
        with pytest.raises(PolicyConfigurationError, match="Unexpected"):
            coerce_source("script-src", value)


# ── DirectiveSet ────────────────────────────────────────────────────────


class TestDirectiveSet:
    def test_empty_serializes_to_empty_string(self):
        assert DirectiveSet().serialize() == ""

    def test_single_directive(self):
        ds = DirectiveSet([("default-src", [SELF, HTTPS])])
        assert ds.serialize() == "default-src 'self' https:"

    def test_directives_joined_in_insertion_order(self):
        ds = DirectiveSet()
        ds.assign("script-src", [SELF])
        ds.assign("default-src", [NONE])
        ds.assign("img-src", [SELF, DATA, BLOB])
        assert ds.serialize() == "script-src 'self'; default-src 'none'; img-src 'self' data: blob:"

    def test_reassignment_replaces_tokens_in_place(self):
        ds = DirectiveSet()
        ds.assign("default-src", [SELF])
        ds.assign("script-src", [SELF])
        ds.assign("default-src", [Literal("https://example.com")])
        assert ds.serialize() == "default-src https://example.com; script-src 'self'"
        assert len(ds) == 2

    def test_boolean_directive_renders_bare(self):
        ds = DirectiveSet([("default-src", [SELF]), ("upgrade-insecure-requests", [])])
        assert ds.serialize() == "default-src 'self'; upgrade-insecure-requests"

    def test_boolean_directive_rejects_tokens(self):
        with pytest.raises(PolicyConfigurationError, match="boolean"):
            DirectiveSet().assign("upgrade-insecure-requests", [SELF])

    def test_value_directive_requires_tokens(self):
        with pytest.raises(PolicyConfigurationError, match="at least one"):
            DirectiveSet().assign("script-src", [])

    def test_sandbox_may_be_bare(self):
        ds = DirectiveSet([("sandbox", [])])
        assert ds.serialize() == "sandbox"

    def test_unknown_directive_names_accepted(self):
        ds = DirectiveSet([("fenced-frame-src", [SELF])])
        assert ds.serialize() == "fenced-frame-src 'self'"

    @pytest.mark.parametrize("name", ["", "script src", "script-src;", "1src"])
    def test_malformed_names_rejected(self, name):
        with pytest.raises(PolicyConfigurationError):
            DirectiveSet().assign(name, [SELF])

    def test_names_are_lowercased(self):
        ds = DirectiveSet([("Default-Src", [SELF])])
        assert "default-src" in ds

    def test_remove(self):
        ds = DirectiveSet([("default-src", [SELF]), ("script-src", [SELF])])
        ds.remove("default-src")
        ds.remove("img-src")  # absent is fine
        assert ds.serialize() == "script-src 'self'"

    def test_with_token_returns_copy(self):
        ds = DirectiveSet([("script-src", [SELF])])
        extended = ds.with_token("script-src", nonce_source("abc"))
        assert extended.serialize() == "script-src 'self' 'nonce-abc'"
        assert ds.serialize() == "script-src 'self'"

    def test_with_token_missing_directive(self):
        with pytest.raises(KeyError):
            DirectiveSet().with_token("script-src", SELF)

    def test_copy_is_independent(self):
        ds = DirectiveSet([("default-src", [SELF])])
        clone = ds.copy()
        clone.assign("img-src", [DATA])
        assert "img-src" not in ds
        assert clone != ds

    def test_equality(self):
        assert DirectiveSet([("default-src", [SELF])]) == DirectiveSet([("default-src", [SELF])])

    def test_get_normalizes_name(self):
        ds = DirectiveSet([("script-src", [SELF])])
        assert ds.get("Script-Src") == (SELF,)
        assert ds.get(" script-src ") == (SELF,)
        assert ds.get("img-src") is None

    def test_repr_with_dynamic_source(self):
        def cdn_host(ctx):
            return "https://cdn.example.com"

        ds = DirectiveSet([("script-src", [SELF, Dynamic(cdn_host)])])
        assert repr(ds) == "DirectiveSet(\"script-src 'self' <dynamic cdn_host>\")"


class TestDirectiveSetResolve:
    def test_dynamic_sources_expanded(self):
        ds = DirectiveSet([
            ("script-src", [SELF, Dynamic(lambda ctx: f"https://{ctx.extra['host']}")]),
        ])
        ctx = RequestContext(extra={"host": "cdn.example.com"})
        assert ds.resolve(ctx).serialize() == "script-src 'self' https://cdn.example.com"

    def test_dynamic_source_may_return_several_tokens(self):
        ds = DirectiveSet([("img-src", [Dynamic(lambda ctx: [SELF, "https://img.example.com"])])])
        assert ds.resolve(RequestContext()).serialize() == "img-src 'self' https://img.example.com"

    def test_directive_dropped_when_nothing_resolves(self):
        ds = DirectiveSet([
            ("default-src", [SELF]),
            ("connect-src", [Dynamic(lambda ctx: None)]),
        ])
        assert ds.resolve(RequestContext()).serialize() == "default-src 'self'"

    def test_invalid_dynamic_result_dropped(self):
        ds = DirectiveSet([("script-src", [SELF, Dynamic(lambda ctx: "a.com; b.com")])])
        assert ds.resolve(RequestContext()).serialize() == "script-src 'self'"

    def test_failing_dynamic_source_keeps_static_directives(self):
        def ws_host(ctx):
            return f"wss://{ctx.extra['ws_host']}"

        ds = DirectiveSet([
            ("default-src", [SELF]),
            ("connect-src", [SELF, Dynamic(ws_host)]),
            ("img-src", [Dynamic(ws_host)]),
        ])
        resolved = ds.resolve(RequestContext())
        assert resolved.serialize() == "default-src 'self'; connect-src 'self'"

    def test_unresolved_dynamic_cannot_serialize(self):
        ds = DirectiveSet([("script-src", [Dynamic(lambda ctx: "a.com")])])
        with pytest.raises(PolicyConfigurationError):
            ds.serialize()

    def test_resolve_without_dynamic_keeps_everything(self):
        ds = DirectiveSet([("default-src", [SELF]), ("block-all-mixed-content", [])])
        assert ds.resolve(RequestContext()) == ds

    def test_keyword_from_callable(self):
        ds = DirectiveSet([("script-src", [Dynamic(lambda ctx: Keyword("unsafe-hashes"))])])
        assert ds.resolve(RequestContext()).serialize() == "script-src 'unsafe-hashes'"
