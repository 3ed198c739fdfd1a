"""Subdomain extraction from a resolved host."""

from __future__ import annotations

# Subdomain that names the landing site rather than an app.
RESERVED_LABEL = "www"


def strip_port(host: str) -> str:
    """Remove a ``:port`` suffix from a host string.

    Handles IPv6 bracket notation (``[::1]:8080``).
    """
    if host.startswith("["):
        bracket_end = host.find("]")
        if bracket_end >= 0:
            return host[1:bracket_end]
        return host.strip("[]")

    colon = host.rfind(":")
    if colon >= 0:
        maybe_port = host[colon + 1:]
        if maybe_port.isdigit() or not maybe_port:
            return host[:colon]

    return host


def strip_root_label(host: str) -> str:
    """Drop the trailing root-label dot of a fully qualified host.

    ``job123.cyverse.run.`` and ``job123.cyverse.run.:443`` name the same
    host as their undotted forms.
    """
    if host.endswith("."):
        return host[:-1]
    head, sep, port = host.rpartition(":")
    if sep and port.isdigit() and head.endswith(".") and not head.startswith("["):
        return f"{head[:-1]}:{port}"
    return host


def extract_subdomain(host: str) -> str:
    """Return the subdomain part of ``host``.

    The two right-most labels are the registrable parent domain; everything
    before them is the subdomain, so ``a.b.cyverse.run`` yields ``a.b``.
    Bare domains, single labels and ``www`` yield ``""``.
    """
    fields = strip_port(strip_root_label(host)).split(".")
    if len(fields) < 3:
        return ""
    subdomain = ".".join(fields[:-2])
    if subdomain == RESERVED_LABEL:
        return ""
    return subdomain
