"""Error hierarchy for request routing.

Each error carries the HTTP status and machine-readable code used when the
planner's ``ERROR`` outcome is rendered. A missing workload is not an error;
it is the ``NOT_FOUND`` outcome.
"""

from __future__ import annotations


class RoutingError(Exception):
    """Base class for failures that terminate routing of a single request."""

    status_code: int = 500
    code: str = "routing_failed"


class AddressResolutionError(RoutingError):
    """The request address or the configured base URL could not be parsed."""

    code = "address_resolution_failed"


class DomainMismatchError(RoutingError):
    """The resolved host is outside the configured parent domain."""

    status_code = 400
    code = "address_outside_domain"

    def __init__(self, host: str, domain: str) -> None:
        self.host = host
        self.domain = domain
        super().__init__(f"URL {host} is not in the domain of {domain}")


class ExistenceLookupError(RoutingError):
    """The existence backend failed to answer for a subdomain.

    The underlying exception is chained as ``__cause__``.
    """

    code = "lookup_failed"

    def __init__(self, subdomain: str, message: str) -> None:
        self.subdomain = subdomain
        super().__init__(f"lookup for subdomain {subdomain!r} failed: {message}")
