"""Content Security Policy model: tokens, directive sets, builders and resolution."""

from cspolicy.policy.builder import PolicyBuilder
from cspolicy.policy.directives import DirectiveSet
from cspolicy.policy.nonce import NonceProvider, random_nonce, session_nonce
from cspolicy.policy.resolver import PolicyOverride, ResolvedPolicy, resolve_policy
from cspolicy.policy.sources import (
    ALLOW_DUPLICATES,
    BLOB,
    DATA,
    FILESYSTEM,
    HTTP,
    HTTPS,
    MEDIASTREAM,
    NONE,
    REPORT_SAMPLE,
    SCRIPT,
    SELF,
    STRICT_DYNAMIC,
    UNSAFE_EVAL,
    UNSAFE_HASHES,
    UNSAFE_INLINE,
    WASM_UNSAFE_EVAL,
    WS,
    WSS,
    Keyword,
    Literal,
    PolicyConfigurationError,
    Scheme,
    hash_source,
    nonce_source,
)
from cspolicy.policy.table import FormatPolicyTable

__all__ = [
    "ALLOW_DUPLICATES",
    "BLOB",
    "DATA",
    "FILESYSTEM",
    "HTTP",
    "HTTPS",
    "MEDIASTREAM",
    "NONE",
    "REPORT_SAMPLE",
    "SCRIPT",
    "SELF",
    "STRICT_DYNAMIC",
    "UNSAFE_EVAL",
    "UNSAFE_HASHES",
    "UNSAFE_INLINE",
    "WASM_UNSAFE_EVAL",
    "WS",
    "WSS",
    "DirectiveSet",
    "FormatPolicyTable",
    "Keyword",
    "Literal",
    "NonceProvider",
    "PolicyBuilder",
    "PolicyConfigurationError",
    "PolicyOverride",
    "ResolvedPolicy",
    "Scheme",
    "hash_source",
    "nonce_source",
    "random_nonce",
    "resolve_policy",
    "session_nonce",
]
