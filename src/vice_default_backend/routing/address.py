"""Frontend address resolution.

The default backend sits behind the ingress, so the address the client
actually typed is not always the address this process sees. Two strategies
are supported:

  - ``FrontendHeaderResolver``: trust the ``X-Frontend-Url`` header set by the
    front-end proxy and use its value verbatim.
  - ``HostHeaderResolver``: rebuild the address from the transport Host
    header, the TLS state, and the request path and query. Selected with
    ``--disable-custom-header-match``.

Both are pure functions of the request snapshot; neither performs I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlsplit

from starlette.requests import Request

from ..errors import AddressResolutionError
from ..protocols import AddressResolver
from ..settings import BackendSettings

FRONTEND_URL_HEADER = "X-Frontend-Url"


@dataclass(frozen=True, slots=True)
class InboundRequest:
    """The request fields consulted by the router.

    Attributes:
        host: Value of the transport ``Host`` header (may include a port).
        tls: Whether the connection to this process is TLS.
        path: Percent-encoded request path as received.
        raw_query: Query string without the leading ``?``.
        frontend_url: ``X-Frontend-Url`` header value, if sent.
    """

    host: str
    tls: bool = False
    path: str = "/"
    raw_query: str = ""
    frontend_url: str | None = None

    @classmethod
    def from_request(cls, request: Request) -> InboundRequest:
        scope = request.scope
        raw_path = scope.get("raw_path")
        if raw_path:
            path = raw_path.decode("latin-1").split("?", 1)[0]
        else:
            path = scope.get("path", "/")
        return cls(
            host=request.headers.get("host", ""),
            tls=scope.get("scheme") in ("https", "wss"),
            path=path or "/",
            raw_query=scope.get("query_string", b"").decode("latin-1"),
            frontend_url=request.headers.get(FRONTEND_URL_HEADER),
        )


@dataclass(frozen=True, slots=True)
class ResolvedAddress:
    """Externally visible address of a request.

    ``url`` is the exact string the address was parsed from (or built as);
    the other fields are its components. ``host`` keeps any ``:port`` suffix.
    """

    scheme: str = ""
    host: str = ""
    path: str = ""
    raw_query: str = ""
    url: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.url

    @classmethod
    def parse(cls, url: str) -> ResolvedAddress:
        """Parse an absolute URL string.

        Raises:
            AddressResolutionError: If the string cannot be split into URL
                components or carries an invalid port.
        """
        if not url:
            return cls()
        try:
            parts = urlsplit(url)
            # Accessing .port validates the port suffix.
            parts.port
        except ValueError as exc:
            raise AddressResolutionError(f"error checking URL {url}: {exc}") from exc

        host = parts.netloc.rpartition("@")[2]
        return cls(
            scheme=parts.scheme,
            host=host,
            path=parts.path,
            raw_query=parts.query,
            url=url,
        )


class FrontendHeaderResolver:
    """Use the ``X-Frontend-Url`` header as the address.

    A missing header yields an empty address, which downstream treats as
    "no match" rather than as an error.
    """

    def resolve(self, request: InboundRequest) -> ResolvedAddress:
        return ResolvedAddress.parse(request.frontend_url or "")


class HostHeaderResolver:
    """Rebuild the address from the request's own Host, TLS state, path and query."""

    def resolve(self, request: InboundRequest) -> ResolvedAddress:
        scheme = "https" if request.tls else "http"
        url = f"{scheme}://{request.host}{request.path}"
        if request.raw_query:
            url = f"{url}?{request.raw_query}"
        return ResolvedAddress.parse(url)


def select_address_resolver(settings: BackendSettings) -> AddressResolver:
    """Return the resolver strategy configured for this process."""
    if settings.disable_custom_header_match:
        return HostHeaderResolver()
    return FrontendHeaderResolver()
