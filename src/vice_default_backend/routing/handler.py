"""HTTP surface of the redirect planner.

``create_default_backend_router`` registers a catch-all route that snapshots
the request, asks the planner for an outcome, and renders it:

  - ``LOADING`` / ``LANDING``: 307 redirect.
  - ``NOT_FOUND``: the static ``404.html`` page with status 404.
  - ``ERROR``: JSON error body with the error's status code.
"""

from __future__ import annotations

import os

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse, RedirectResponse
from starlette.responses import Response

from ..errors import RoutingError
from ..observability.logging import get_logger
from ..observability.metrics import ROUTING_OUTCOMES_TOTAL
from ..settings import BackendSettings
from .address import InboundRequest
from .planner import OutcomeKind, RedirectPlanner, RoutingOutcome

logger = get_logger(__name__)

ROUTED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def render_outcome(
    outcome: RoutingOutcome,
    settings: BackendSettings,
    request_id: str | None = None,
) -> Response:
    """Turn a planner outcome into an HTTP response."""
    if outcome.kind in (OutcomeKind.LOADING, OutcomeKind.LANDING):
        return RedirectResponse(outcome.redirect_url or "", status_code=307)

    if outcome.kind == OutcomeKind.NOT_FOUND:
        not_found_path = settings.not_found_path
        if os.path.isfile(not_found_path):
            return FileResponse(not_found_path, status_code=404, media_type="text/html")
        return PlainTextResponse("404 page not found", status_code=404)

    error = outcome.error or RoutingError("routing failed")
    return JSONResponse(
        status_code=error.status_code,
        content={
            "code": error.code,
            "message": str(error),
            "request_id": request_id,
        },
    )


def create_default_backend_router(
    planner: RedirectPlanner,
    settings: BackendSettings,
) -> APIRouter:
    """Create the catch-all router. Must be included after all other routes."""
    router = APIRouter(tags=["default-backend"])

    @router.api_route("/{path:path}", methods=ROUTED_METHODS, include_in_schema=False)
    async def route_request(request: Request, path: str) -> Response:
        request_id = getattr(request.state, "request_id", None)
        inbound = InboundRequest.from_request(request)
        outcome = await planner.plan(inbound)

        ROUTING_OUTCOMES_TOTAL.labels(outcome=outcome.kind.value).inc()
        if outcome.error is not None:
            cause = outcome.error.__cause__
            logger.warning(
                "routing_error",
                code=outcome.error.code,
                error=str(outcome.error),
                cause=repr(cause) if cause is not None else None,
                subdomain=outcome.subdomain or None,
                host=inbound.host,
                frontend_url=inbound.frontend_url,
            )
        else:
            logger.info(
                "request_routed",
                outcome=outcome.kind.value,
                subdomain=outcome.subdomain or None,
                redirect_url=outcome.redirect_url,
            )

        return render_outcome(outcome, settings, request_id)

    return router
