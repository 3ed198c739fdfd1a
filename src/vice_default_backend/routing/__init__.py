"""Request classification and URL rewriting for the default backend."""

from .address import (
    FRONTEND_URL_HEADER,
    FrontendHeaderResolver,
    HostHeaderResolver,
    InboundRequest,
    ResolvedAddress,
    select_address_resolver,
)
from .domain import DomainMatcher
from .planner import OutcomeKind, RedirectPlanner, RoutingOutcome
from .subdomain import extract_subdomain

__all__ = [
    "DomainMatcher",
    "FRONTEND_URL_HEADER",
    "FrontendHeaderResolver",
    "HostHeaderResolver",
    "InboundRequest",
    "OutcomeKind",
    "RedirectPlanner",
    "ResolvedAddress",
    "RoutingOutcome",
    "extract_subdomain",
    "select_address_resolver",
]
