"""Default-backend configuration settings.

BackendSettings is the single configuration object accepted by create_app().
It is a plain frozen dataclass (not env-coupled) so tests can inject config
without touching os.environ. The CLI builds it from environment variables and
flags once at startup; nothing mutates it afterwards.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal, Mapping
from urllib.parse import urlsplit

LookupBackend = Literal["graphql", "sql", "memory"]
LoadingUrlStyle = Literal["query", "path"]

LOOKUP_BACKENDS: tuple[str, ...] = ("graphql", "sql", "memory")
LOADING_URL_STYLES: tuple[str, ...] = ("query", "path")

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _env_flag(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key, "").strip().lower()
    if not raw:
        return default
    return raw in _TRUTHY


def _split_csv(raw: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _is_absolute_url(url: str) -> bool:
    try:
        parsed = urlsplit(url)
    except ValueError:
        return False
    return bool(parsed.scheme and parsed.netloc)


@dataclass(frozen=True, slots=True)
class BackendSettings:
    """Configuration for the default-backend FastAPI application.

    All fields default to the values used by the cyverse.run deployment.
    """

    # ── Routing ────────────────────────────────────────────────────
    base_url: str = "https://cyverse.run"
    """Template for app URLs; the subdomain is prefixed to its host.
    Empty means the frontend address is forwarded verbatim."""

    vice_domain: str = "cyverse.run"
    """Parent domain that VICE app subdomains live under."""

    landing_page_url: str = "https://cyverse.run"
    loading_page_url: str = "https://loading.cyverse.run"

    loading_url_style: LoadingUrlStyle = "query"
    """``query`` appends ``?url=<app url>``, ``path`` appends ``/<app url>``."""

    disable_custom_header_match: bool = False
    """Use the Host header instead of X-Frontend-Url. Useful during development."""

    check_domain: bool = True
    """Reject addresses outside ``vice_domain`` with a 400."""

    static_file_path: str = "./static"

    # ── Existence lookup ───────────────────────────────────────────
    lookup_backend: LookupBackend = "graphql"
    graphql_url: str = "http://graphql-de/v1alpha1/graphql"
    database_url: str = ""
    """PostgreSQL DSN for the ``sql`` backend. Never log this."""

    lookup_timeout_seconds: float = 10.0
    known_subdomains: tuple[str, ...] = ()
    """Subdomains reported as live by the ``memory`` backend."""

    # ── Server ─────────────────────────────────────────────────────
    listen_address: str = "0.0.0.0:60000"
    ssl_cert: str = ""
    ssl_key: str = ""

    # ── Logging ────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def not_found_path(self) -> str:
        return os.path.join(self.static_file_path, "404.html")

    @property
    def listen_host(self) -> str:
        host, _, _ = self.listen_address.rpartition(":")
        return host or "0.0.0.0"

    @property
    def listen_port(self) -> int:
        _, _, port = self.listen_address.rpartition(":")
        return int(port)

    @property
    def use_ssl(self) -> bool:
        return bool(self.ssl_cert or self.ssl_key)

    def validate(self) -> list[str]:
        """Return a list of configuration errors. Empty means valid."""
        errors: list[str] = []

        if self.base_url and not _is_absolute_url(self.base_url):
            errors.append(f"base_url must include scheme and host, got {self.base_url!r}")
        if not _is_absolute_url(self.landing_page_url):
            errors.append(
                f"landing_page_url must include scheme and host, got {self.landing_page_url!r}"
            )
        if not _is_absolute_url(self.loading_page_url):
            errors.append(
                f"loading_page_url must include scheme and host, got {self.loading_page_url!r}"
            )
        if self.loading_url_style not in LOADING_URL_STYLES:
            errors.append(
                f"loading_url_style must be one of {', '.join(LOADING_URL_STYLES)}, "
                f"got {self.loading_url_style!r}"
            )
        if self.check_domain and not self.vice_domain:
            errors.append("vice_domain is required when the domain check is enabled")

        if self.lookup_backend not in LOOKUP_BACKENDS:
            errors.append(
                f"lookup_backend must be one of {', '.join(LOOKUP_BACKENDS)}, "
                f"got {self.lookup_backend!r}"
            )
        elif self.lookup_backend == "graphql" and not _is_absolute_url(self.graphql_url):
            errors.append(f"graphql_url must include scheme and host, got {self.graphql_url!r}")
        elif self.lookup_backend == "sql" and not self.database_url:
            errors.append("database_url is required for the sql lookup backend")
        if self.lookup_timeout_seconds <= 0:
            errors.append("lookup_timeout_seconds must be positive")

        _, sep, port = self.listen_address.rpartition(":")
        if not sep or not port.isdigit():
            errors.append(f"listen_address must be host:port, got {self.listen_address!r}")
        if self.ssl_key and not self.ssl_cert:
            errors.append("--ssl-cert is required with --ssl-key.")
        if self.ssl_cert and not self.ssl_key:
            errors.append("--ssl-key is required with --ssl-cert.")
        return errors

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> BackendSettings:
        """Build settings from environment variables.

        This is a convenience factory for production use. Tests should
        construct BackendSettings directly.
        """
        if env is None:
            env = dict(os.environ)

        defaults = cls()
        timeout_raw = env.get("LOOKUP_TIMEOUT_SECONDS", "").strip()

        return cls(
            base_url=env.get("VICE_BASE_URL", defaults.base_url).strip(),
            vice_domain=env.get("VICE_DOMAIN", defaults.vice_domain).strip(),
            landing_page_url=env.get("LANDING_PAGE_URL", defaults.landing_page_url).strip(),
            loading_page_url=env.get("LOADING_PAGE_URL", defaults.loading_page_url).strip(),
            loading_url_style=env.get("LOADING_URL_STYLE", defaults.loading_url_style).strip().lower(),  # type: ignore[arg-type]
            disable_custom_header_match=_env_flag(
                env, "DISABLE_CUSTOM_HEADER_MATCH", defaults.disable_custom_header_match
            ),
            check_domain=_env_flag(env, "CHECK_DOMAIN", defaults.check_domain),
            static_file_path=env.get("STATIC_FILE_PATH", defaults.static_file_path),
            lookup_backend=env.get("LOOKUP_BACKEND", defaults.lookup_backend).strip().lower(),  # type: ignore[arg-type]
            graphql_url=env.get("GRAPHQL_URL", defaults.graphql_url).strip(),
            database_url=env.get("DATABASE_URL", defaults.database_url).strip(),
            lookup_timeout_seconds=float(timeout_raw) if timeout_raw else defaults.lookup_timeout_seconds,
            known_subdomains=_split_csv(env.get("KNOWN_SUBDOMAINS", "")),
            listen_address=env.get("LISTEN", defaults.listen_address).strip(),
            ssl_cert=env.get("SSL_CERT", defaults.ssl_cert),
            ssl_key=env.get("SSL_KEY", defaults.ssl_key),
            log_level=env.get("LOG_LEVEL", defaults.log_level).strip().upper(),
            log_format=env.get("LOG_FORMAT", defaults.log_format).strip().lower(),
        )
