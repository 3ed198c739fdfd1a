"""Strategy interfaces injected into the redirect planner.

These protocols define the contracts that concrete implementations must
satisfy. The app factory selects one implementation of each at startup from
BackendSettings; tests pass their own.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .routing.address import InboundRequest, ResolvedAddress


@runtime_checkable
class AddressResolver(Protocol):
    """Produce the address the client originally requested."""

    def resolve(self, request: InboundRequest) -> ResolvedAddress: ...


@runtime_checkable
class ExistenceLookup(Protocol):
    """Answer whether a live VICE workload owns a subdomain.

    Implementations return ``False`` when nothing matches and raise
    ``ExistenceLookupError`` when the backend cannot answer.
    """

    async def exists(self, subdomain: str) -> bool: ...
