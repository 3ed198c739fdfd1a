"""Subdomain existence backends."""

from __future__ import annotations

from ..protocols import ExistenceLookup
from ..settings import BackendSettings
from .graphql import GraphQLExistenceLookup
from .inmemory import InMemoryExistenceLookup
from .sql import SQLExistenceLookup


def build_existence_lookup(settings: BackendSettings) -> ExistenceLookup:
    """Construct the lookup backend named by ``settings.lookup_backend``."""
    if settings.lookup_backend == "graphql":
        return GraphQLExistenceLookup(
            settings.graphql_url,
            timeout_seconds=settings.lookup_timeout_seconds,
        )
    if settings.lookup_backend == "sql":
        return SQLExistenceLookup(
            settings.database_url,
            timeout_seconds=settings.lookup_timeout_seconds,
        )
    if settings.lookup_backend == "memory":
        return InMemoryExistenceLookup(settings.known_subdomains)
    raise ValueError(f"unknown lookup backend {settings.lookup_backend!r}")


__all__ = [
    "GraphQLExistenceLookup",
    "InMemoryExistenceLookup",
    "SQLExistenceLookup",
    "build_existence_lookup",
]
