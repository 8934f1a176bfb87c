"""
cspolicy - Content Security Policy builder, resolver and header middleware
"""

__version__ = "0.1.0"

from cspolicy.app import PolicyMiddleware, create_app
from cspolicy.config.policy_config import ContentSecurityPolicyConfig
from cspolicy.handlers import (
    content_security_policy,
    content_security_policy_by_format,
    content_security_policy_report_only,
)
from cspolicy.helpers import content_security_policy_nonce, csp_meta_tag
from cspolicy.policy import *  # noqa: F401,F403
from cspolicy.policy import __all__ as _policy_all

__all__ = [
    "ContentSecurityPolicyConfig",
    "PolicyMiddleware",
    "content_security_policy",
    "content_security_policy_by_format",
    "content_security_policy_nonce",
    "content_security_policy_report_only",
    "create_app",
    "csp_meta_tag",
    *_policy_all,
]
