"""Parent-domain containment check.

A host matches when it is the configured domain itself or any subdomain of
it, optionally followed by ``:port``. Matching is anchored on label
boundaries, so ``notcyverse.run`` does not match ``cyverse.run``. A trailing
root-label dot on the host is ignored.
"""

from __future__ import annotations

import re

from .subdomain import strip_root_label


class DomainMatcher:
    """Match hosts against a configured parent domain.

    Args:
        domain: Parent domain, e.g. ``cyverse.run``. Treated literally;
            regex metacharacters are escaped.

    Raises:
        ValueError: If ``domain`` is empty.
    """

    def __init__(self, domain: str) -> None:
        if not domain:
            raise ValueError("domain is required")
        self._domain = domain
        self._pattern = re.compile(
            rf"^(?:[^.:/]+\.)*{re.escape(domain)}(?::[0-9]+)?$",
            re.IGNORECASE,
        )

    @property
    def domain(self) -> str:
        return self._domain

    def matches(self, host: str) -> bool:
        return self._pattern.match(strip_root_label(host)) is not None
