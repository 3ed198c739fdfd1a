"""Redirect planner: decide what to do with an unclaimed request.

Every request that reaches the default backend ends in exactly one outcome:

    resolve address -> [check domain] -> extract subdomain -> look up
        -> LOADING | LANDING | NOT_FOUND

``ERROR`` is reachable from every step before a terminal outcome and is
itself terminal. An empty subdomain short-circuits to ``LANDING`` without a
lookup. No step is retried.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

from ..errors import (
    AddressResolutionError,
    DomainMismatchError,
    ExistenceLookupError,
    RoutingError,
)
from ..observability.metrics import LOOKUP_DURATION_SECONDS
from ..protocols import AddressResolver, ExistenceLookup
from ..settings import BackendSettings
from .address import InboundRequest, ResolvedAddress
from .domain import DomainMatcher
from .subdomain import extract_subdomain

# Query parameter carrying the app URL to the loading page.
LOADING_URL_PARAM = "url"


class OutcomeKind(str, Enum):
    LOADING = "loading"
    LANDING = "landing"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class RoutingOutcome:
    """Result of planning a single request.

    Attributes:
        kind: Which terminal state was reached.
        redirect_url: Where to send the client (``LOADING``/``LANDING``).
        app_url: Reconstructed app URL (``LOADING`` only).
        subdomain: Extracted subdomain, when extraction was reached.
        error: The failure (``ERROR`` only).
    """

    kind: OutcomeKind
    redirect_url: str | None = None
    app_url: str | None = None
    subdomain: str = ""
    error: RoutingError | None = None

    @classmethod
    def loading(cls, *, app_url: str, redirect_url: str, subdomain: str) -> RoutingOutcome:
        return cls(OutcomeKind.LOADING, redirect_url=redirect_url, app_url=app_url, subdomain=subdomain)

    @classmethod
    def landing(cls, redirect_url: str) -> RoutingOutcome:
        return cls(OutcomeKind.LANDING, redirect_url=redirect_url)

    @classmethod
    def not_found(cls, subdomain: str) -> RoutingOutcome:
        return cls(OutcomeKind.NOT_FOUND, subdomain=subdomain)

    @classmethod
    def failed(cls, error: RoutingError, subdomain: str = "") -> RoutingOutcome:
        return cls(OutcomeKind.ERROR, subdomain=subdomain, error=error)


class RedirectPlanner:
    """Classify requests and build their redirect targets.

    Args:
        settings: Immutable process configuration.
        address_resolver: Strategy producing the frontend address.
        existence_lookup: Backend answering whether a subdomain is live.
        domain_matcher: Parent-domain check; ``None`` skips the check.
    """

    def __init__(
        self,
        settings: BackendSettings,
        *,
        address_resolver: AddressResolver,
        existence_lookup: ExistenceLookup,
        domain_matcher: DomainMatcher | None = None,
    ) -> None:
        self._settings = settings
        self._resolver = address_resolver
        self._lookup = existence_lookup
        self._domain_matcher = domain_matcher

    @classmethod
    def from_settings(
        cls,
        settings: BackendSettings,
        *,
        address_resolver: AddressResolver,
        existence_lookup: ExistenceLookup,
    ) -> RedirectPlanner:
        matcher = DomainMatcher(settings.vice_domain) if settings.check_domain else None
        return cls(
            settings,
            address_resolver=address_resolver,
            existence_lookup=existence_lookup,
            domain_matcher=matcher,
        )

    async def plan(self, request: InboundRequest) -> RoutingOutcome:
        subdomain = ""
        try:
            address = self._resolver.resolve(request)

            if self._domain_matcher is not None and not self._domain_matcher.matches(address.host):
                raise DomainMismatchError(address.host, self._domain_matcher.domain)

            subdomain = extract_subdomain(address.host)
            if not subdomain:
                return RoutingOutcome.landing(self._settings.landing_page_url)

            if not await self._exists(subdomain):
                return RoutingOutcome.not_found(subdomain)

            app_url = self.build_app_url(address, subdomain)
            return RoutingOutcome.loading(
                app_url=app_url,
                redirect_url=self.build_loading_url(app_url),
                subdomain=subdomain,
            )
        except RoutingError as exc:
            return RoutingOutcome.failed(exc, subdomain=subdomain)

    async def _exists(self, subdomain: str) -> bool:
        backend = getattr(self._lookup, "name", type(self._lookup).__name__)
        start = time.perf_counter()
        try:
            return await self._lookup.exists(subdomain)
        except ExistenceLookupError:
            raise
        except asyncio.TimeoutError as exc:
            raise ExistenceLookupError(subdomain, "lookup timed out") from exc
        except Exception as exc:
            raise ExistenceLookupError(subdomain, repr(exc)) from exc
        finally:
            LOOKUP_DURATION_SECONDS.labels(backend=backend).observe(
                time.perf_counter() - start
            )

    def build_app_url(self, address: ResolvedAddress, subdomain: str) -> str:
        """Return the URL of the app that owns ``subdomain``.

        With a base URL configured, its scheme is kept and the subdomain is
        prefixed to its host; the request's path and raw query are carried
        over unchanged. Without one, the frontend address is used as-is.
        """
        base_url = self._settings.base_url
        if not base_url:
            return address.url

        try:
            base = urlsplit(base_url)
        except ValueError as exc:
            raise AddressResolutionError(f"error parsing base URL {base_url}: {exc}") from exc
        if not base.scheme or not base.netloc:
            raise AddressResolutionError(f"base URL {base_url!r} must include scheme and host")

        netloc = f"{subdomain}.{base.netloc}"
        return urlunsplit((base.scheme, netloc, address.path, address.raw_query, ""))

    def build_loading_url(self, app_url: str) -> str:
        """Attach ``app_url`` to the configured loading page URL."""
        loading_page_url = self._settings.loading_page_url

        if self._settings.loading_url_style == "path":
            return f"{loading_page_url.rstrip('/')}/{quote(app_url, safe='')}"

        try:
            parts = urlsplit(loading_page_url)
        except ValueError as exc:
            raise AddressResolutionError(
                f"error parsing loading page URL {loading_page_url}: {exc}"
            ) from exc

        params = [
            (key, value)
            for key, value in parse_qsl(parts.query, keep_blank_values=True)
            if key != LOADING_URL_PARAM
        ]
        params.append((LOADING_URL_PARAM, app_url))
        params.sort(key=lambda kv: kv[0])
        return urlunsplit(
            (parts.scheme, parts.netloc, parts.path or "/", urlencode(params), parts.fragment)
        )
