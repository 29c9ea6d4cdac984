# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Starlette ASGI application for the didanchor HTTP server.

Serves the certificate issuance endpoint and the DID create/resolve/update
API. Services are built from configuration at startup unless supplied to
:func:`create_app` directly.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from typing import Any

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from .. import __version__
from ..core.config import get_config
from ..core.logging import configure_logging, correlation_context
from .certificate_endpoints import sign_certificate_endpoint
from .did_endpoints import create_did_endpoint, resolve_did_endpoint, update_did_endpoint
from .services import Services, build_services

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Runs each request inside a correlation id scope.

    Uses the caller's ``X-Correlation-ID`` when present and echoes the id
    back on the response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        with correlation_context(request.headers.get(CORRELATION_HEADER)) as cid:
            response = await call_next(request)
            response.headers[CORRELATION_HEADER] = cid
            return response


async def health_endpoint(request: Request) -> JSONResponse:
    """Health check endpoint."""
    services: Services = request.app.state.services
    health_data: dict[str, Any] = {
        "status": "healthy",
        "version": __version__,
        "scheme": services.registry.scheme,
        "topic": services.registry.topic,
        "overlay": "configured" if services.registry.lookup_client is not None else "disabled",
        "certifier": await services.issuer.wallet.get_public_key(identity_key=True),
    }
    return JSONResponse(health_data)


@asynccontextmanager
async def lifespan(app: Starlette):
    """Application lifespan handler."""
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services()
    services: Services = app.state.services
    logger.info(f"Starting didanchor server for did:{services.registry.scheme}:{services.registry.topic}")

    yield

    logger.info("didanchor server shutting down")


def create_app(services: Services | None = None) -> Starlette:
    """Create the Starlette ASGI application."""
    API_V1 = "/api/v1"

    routes = [
        Route("/signCertificate", sign_certificate_endpoint, methods=["POST"]),
        Route(f"{API_V1}/health", health_endpoint, methods=["GET"]),
        Route(f"{API_V1}/dids", create_did_endpoint, methods=["POST"]),
        Route(f"{API_V1}/dids/{{did}}", resolve_did_endpoint, methods=["GET"]),
        Route(f"{API_V1}/dids/{{did}}", update_did_endpoint, methods=["PUT"]),
    ]

    middleware = [Middleware(CorrelationMiddleware)]

    app = Starlette(routes=routes, middleware=middleware, lifespan=lifespan)
    app.state.services = services
    return app


# Global app instance for uvicorn
app = create_app()


def run() -> None:
    """Run the server using uvicorn."""
    import uvicorn

    config = get_config()
    configure_logging()

    logger.info(f"Starting didanchor HTTP server on {config.host}:{config.port}")

    uvicorn.run(
        "didanchor.server.app:app",
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    run()
