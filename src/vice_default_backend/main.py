"""Default-backend FastAPI application factory.

The create_app() factory is the single entry point for building the ASGI
application. It selects the address resolver and existence lookup strategies
from settings (or accepts injected ones), wires observability middleware,
and registers routes in priority order:

    /healthz[/...]  ->  /metrics  ->  /static/*  ->  everything else (planner)

Usage:
    # Production
    settings = BackendSettings.from_env()
    app = create_app(settings)

    # Testing (full DI control)
    app = create_app(settings, existence_lookup=InMemoryExistenceLookup({"job123"}))
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse, Response
from fastapi.staticfiles import StaticFiles

from .lookup import build_existence_lookup
from .observability.logging import get_logger
from .observability.metrics import metrics_text
from .observability.middleware import (
    MetricsMiddleware,
    RequestIdMiddleware,
    RequestLoggingMiddleware,
)
from .protocols import AddressResolver, ExistenceLookup
from .routing.address import select_address_resolver
from .routing.handler import create_default_backend_router
from .routing.planner import RedirectPlanner
from .settings import BackendSettings

logger = get_logger(__name__)

HEALTHY_BODY = "I'm healthy."


def create_app(
    settings: BackendSettings | None = None,
    *,
    existence_lookup: ExistenceLookup | None = None,
    address_resolver: AddressResolver | None = None,
) -> FastAPI:
    """Create a configured default-backend FastAPI application.

    Args:
        settings: Application settings. Defaults to BackendSettings().
        existence_lookup: Lookup override. When None, the backend named by
            ``settings.lookup_backend`` is built and closed on shutdown.
        address_resolver: Resolver override. When None, chosen by
            ``settings.disable_custom_header_match``.

    Raises:
        ValueError: If settings validation fails.
    """
    if settings is None:
        settings = BackendSettings()

    errors = settings.validate()
    if errors:
        raise ValueError(
            "Default backend settings validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    owns_lookup = existence_lookup is None
    lookup = existence_lookup or build_existence_lookup(settings)
    resolver = address_resolver or select_address_resolver(settings)
    planner = RedirectPlanner.from_settings(
        settings,
        address_resolver=resolver,
        existence_lookup=lookup,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "default_backend_startup",
            listen_address=settings.listen_address,
            vice_domain=settings.vice_domain,
            base_url=settings.base_url,
            loading_page_url=settings.loading_page_url,
            landing_page_url=settings.landing_page_url,
            loading_url_style=settings.loading_url_style,
            lookup_backend=settings.lookup_backend,
            graphql_url=settings.graphql_url if settings.lookup_backend == "graphql" else None,
            check_domain=settings.check_domain,
            disable_custom_header_match=settings.disable_custom_header_match,
        )
        yield
        close = getattr(lookup, "aclose", None)
        if owns_lookup and close is not None:
            await close()
        logger.info("default_backend_shutdown")

    # The default backend answers every path, so FastAPI's own docs routes
    # are disabled.
    app = FastAPI(
        title="VICE Default Backend",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.state.settings = settings
    app.state.planner = planner

    # ── Middleware stack (applied in reverse order) ──────────────
    # Order of execution: RequestID -> Metrics -> RequestLogging -> route
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIdMiddleware)

    # ── Routes ──────────────────────────────────────────────────

    @app.api_route("/healthz", methods=["GET", "HEAD"], include_in_schema=False)
    @app.api_route("/healthz/{rest:path}", methods=["GET", "HEAD"], include_in_schema=False)
    async def healthz() -> PlainTextResponse:
        return PlainTextResponse(HEALTHY_BODY)

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        body, content_type = metrics_text()
        return Response(content=body, media_type=content_type)

    if os.path.isdir(settings.static_file_path):
        app.mount(
            "/static",
            StaticFiles(directory=settings.static_file_path),
            name="static",
        )
    else:
        logger.warning("static_dir_missing", static_file_path=settings.static_file_path)

    # Catch-all goes last so the routes above take precedence.
    app.include_router(create_default_backend_router(planner, settings))

    return app


def create_app_from_env() -> FastAPI:
    """Build the app from environment variables (uvicorn factory entry)."""
    return create_app(BackendSettings.from_env())


# For uvicorn, use --factory flag:
#   uvicorn vice_default_backend.main:create_app_from_env --factory
# This avoids executing create_app() at import time.
