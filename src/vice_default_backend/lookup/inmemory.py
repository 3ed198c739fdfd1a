"""In-memory existence lookup for local development.

Used when LOOKUP_BACKEND=memory. Reports a fixed set of subdomains as live
and records every subdomain it was asked about.
"""

from __future__ import annotations

from typing import Iterable


class InMemoryExistenceLookup:
    name = "memory"

    def __init__(self, subdomains: Iterable[str] = ()) -> None:
        self._subdomains: frozenset[str] = frozenset(subdomains)
        self.calls: list[str] = []

    async def exists(self, subdomain: str) -> bool:
        self.calls.append(subdomain)
        return subdomain in self._subdomains
