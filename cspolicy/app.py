"""ASGI integration: runs the policy pipeline around any Starlette/FastAPI app."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Sequence

import structlog
from fastapi import FastAPI
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import BaseRoute
from starlette.types import ASGIApp

from cspolicy.config.loader import PolicySettings, get_settings
from cspolicy.config.policy_config import ContentSecurityPolicyConfig
from cspolicy.helpers import CONTEXT_STATE_KEY
from cspolicy.logging_config import setup_logging
from cspolicy.middleware.context_injector import ContextInjector
from cspolicy.middleware.csp_header import ContentSecurityPolicyHeader
from cspolicy.middleware.format_negotiator import FormatNegotiator
from cspolicy.middleware.pipeline import MiddlewarePipeline, RequestContext

logger = structlog.get_logger()


def build_pipeline(config: ContentSecurityPolicyConfig, settings: PolicySettings | None = None) -> MiddlewarePipeline:
    """Build the ordered middleware pipeline.

    Responses run in reverse, so the CSP header is written before the
    request ID is echoed.
    """
    settings = settings or get_settings()
    pipeline = MiddlewarePipeline()
    pipeline.add(ContextInjector(settings.session_cookie_name))  # 0: request id, session
    pipeline.add(FormatNegotiator())                             # 1: requested format
    pipeline.add(ContentSecurityPolicyHeader(config))            # 2: resolve + emit
    return pipeline


class PolicyMiddleware(BaseHTTPMiddleware):
    """Wrap every request in a ``RequestContext`` and run the pipeline.

    The header is written here rather than by the endpoint, so bare ASGI apps
    mounted under the router get the global policy too.
    """

    def __init__(
        self,
        app: ASGIApp,
        config: ContentSecurityPolicyConfig,
        pipeline: MiddlewarePipeline | None = None,
    ) -> None:
        super().__init__(app)
        self.config = config
        self.pipeline = pipeline or build_pipeline(config)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        context = RequestContext(request=request, nonce_provider=self.config.nonce_provider)
        setattr(request.state, CONTEXT_STATE_KEY, context)

        short_circuit = await self.pipeline.process_request(request, context)
        if short_circuit is not None:
            return await self.pipeline.process_response(short_circuit, context)

        response = await call_next(request)
        # The router records the matched endpoint in the shared scope
        context.endpoint = request.scope.get("endpoint")
        return await self.pipeline.process_response(response, context)


def create_app(
    config: ContentSecurityPolicyConfig,
    routes: Sequence[BaseRoute] | None = None,
    settings: PolicySettings | None = None,
    **kwargs,
) -> FastAPI:
    """FastAPI application with logging configured and ``PolicyMiddleware`` installed."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(log_level=settings.log_level, json_format=settings.log_json)
        logger.info(
            "csp_app_started",
            policy_configured=config.table is not None,
            report_only=config.report_only,
            nonce=config.nonce_provider.configured,
        )
        yield
        logger.info("csp_app_stopped")

    app = FastAPI(routes=list(routes or []), lifespan=lifespan, **kwargs)
    app.add_middleware(PolicyMiddleware, config=config, pipeline=build_pipeline(config, settings))
    return app
