"""Run the default backend.

Usage:
    python -m vice_default_backend --vice-domain cyverse.run \
        --graphql http://graphql-de/v1alpha1/graphql

Every flag defaults to its environment variable (see BackendSettings.from_env),
then to the built-in default.
"""

from __future__ import annotations

import argparse
import dataclasses
import sys
from typing import Mapping, Sequence

import uvicorn

from .main import create_app
from .observability.logging import configure_logging, get_logger
from .settings import LOADING_URL_STYLES, LOOKUP_BACKENDS, BackendSettings

logger = get_logger(__name__)


def build_parser(defaults: BackendSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vice-default-backend",
        description="Ingress default backend for VICE apps.",
    )
    parser.add_argument("--listen", dest="listen_address", default=defaults.listen_address,
                        help="The listen address.")
    parser.add_argument("--ssl-cert", default=defaults.ssl_cert,
                        help="The path to the SSL .crt file.")
    parser.add_argument("--ssl-key", default=defaults.ssl_key,
                        help="The path to the SSL .key file.")
    parser.add_argument("--lookup-backend", choices=LOOKUP_BACKENDS, default=defaults.lookup_backend,
                        help="Where to check whether a subdomain belongs to a running app.")
    parser.add_argument("--graphql", dest="graphql_url", default=defaults.graphql_url,
                        help="The base URL for the graphql provider.")
    parser.add_argument("--db", dest="database_url", default=defaults.database_url,
                        help="PostgreSQL connection URL for the sql lookup backend.")
    parser.add_argument("--lookup-timeout", dest="lookup_timeout_seconds", type=float,
                        default=defaults.lookup_timeout_seconds,
                        help="Seconds to wait for a subdomain lookup.")
    parser.add_argument("--known-subdomain", dest="known_subdomains", action="append",
                        default=None,
                        help="Subdomain reported as live by the memory backend (repeatable).")
    parser.add_argument("--vice-domain", default=defaults.vice_domain,
                        help="The domain and port for VICE apps.")
    parser.add_argument("--vice-base-url", dest="base_url", default=defaults.base_url,
                        help="Base URL that app subdomains are prefixed to. "
                             "Empty forwards the frontend address unchanged.")
    parser.add_argument("--landing-page-url", default=defaults.landing_page_url,
                        help="The URL for the landing page service.")
    parser.add_argument("--loading-page-url", default=defaults.loading_page_url,
                        help="The URL for the loading page service.")
    parser.add_argument("--loading-url-style", choices=LOADING_URL_STYLES,
                        default=defaults.loading_url_style,
                        help="Pass the app URL to the loading page as ?url= or as a path segment.")
    parser.add_argument("--static-file-path", default=defaults.static_file_path,
                        help="Path to static file assets.")
    parser.add_argument("--disable-custom-header-match", action="store_true",
                        default=defaults.disable_custom_header_match,
                        help="Disables usage of the X-Frontend-Url header for subdomain matching. "
                             "Use Host header instead. Useful during development.")
    parser.add_argument("--skip-domain-check", dest="check_domain", action="store_false",
                        default=defaults.check_domain,
                        help="Do not reject addresses outside --vice-domain.")
    parser.add_argument("--log-level", default=defaults.log_level,
                        help="DEBUG, INFO, WARNING or ERROR.")
    return parser


def build_settings(
    argv: Sequence[str] | None = None,
    env: Mapping[str, str] | None = None,
) -> BackendSettings:
    """Overlay command-line flags on environment-derived settings."""
    defaults = BackendSettings.from_env(env)
    args = build_parser(defaults).parse_args(argv)

    overrides = vars(args)
    if overrides["known_subdomains"] is None:
        overrides["known_subdomains"] = defaults.known_subdomains
    else:
        overrides["known_subdomains"] = tuple(overrides["known_subdomains"])
    overrides["log_level"] = overrides["log_level"].upper()
    return dataclasses.replace(defaults, **overrides)


def main(argv: Sequence[str] | None = None) -> int:
    settings = build_settings(argv)
    configure_logging(level=settings.log_level, json_output=settings.log_format == "json")

    try:
        app = create_app(settings)
    except ValueError as exc:
        logger.error("invalid_configuration", error=str(exc))
        return 1

    uvicorn.run(
        app,
        host=settings.listen_host,
        port=settings.listen_port,
        ssl_certfile=settings.ssl_cert or None,
        ssl_keyfile=settings.ssl_key or None,
        log_config=None,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
