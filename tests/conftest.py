"""Shared test fixtures."""

from __future__ import annotations

import pytest

from cspolicy.config.policy_config import ContentSecurityPolicyConfig
from tests.helpers.policy import fixed_generator


@pytest.fixture(autouse=True)
def _mock_settings(monkeypatch):
    """Provide default settings for all tests."""
    for name in ("CSP_REPORT_ONLY", "CSP_NONCE_GENERATOR", "CSP_NONCE_DIRECTIVES", "CSP_SESSION_COOKIE_NAME"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CSP_LOG_JSON", "false")
    monkeypatch.setenv("CSP_LOG_LEVEL", "debug")

    # Reset cached settings
    import cspolicy.config.loader as loader
    loader._settings = None
    yield
    loader._settings = None


@pytest.fixture
def config() -> ContentSecurityPolicyConfig:
    """Global configuration with no policy registered."""
    return ContentSecurityPolicyConfig()


@pytest.fixture
def fixed_nonce():
    return fixed_generator
