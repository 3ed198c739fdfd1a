"""Unit tests for the redirect planner state machine.

Uses spy/fake ExistenceLookup implementations so every branch can be driven
without a backend.
"""

from __future__ import annotations

import asyncio
import dataclasses
from urllib.parse import parse_qs, urlsplit

import pytest

from vice_default_backend.errors import (
    AddressResolutionError,
    DomainMismatchError,
    ExistenceLookupError,
)
from vice_default_backend.routing.address import (
    FrontendHeaderResolver,
    HostHeaderResolver,
    InboundRequest,
)
from vice_default_backend.routing.domain import DomainMatcher
from vice_default_backend.routing.planner import OutcomeKind, RedirectPlanner


class SpyLookup:
    """Records every subdomain it is asked about."""

    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.calls: list[str] = []

    async def exists(self, subdomain: str) -> bool:
        self.calls.append(subdomain)
        return self.result


class FailingLookup:
    def __init__(self, exc: Exception) -> None:
        self.exc = exc
        self.calls: list[str] = []

    async def exists(self, subdomain: str) -> bool:
        self.calls.append(subdomain)
        raise self.exc


def _planner(settings, lookup, *, header_mode: bool = False, check_domain: bool = True) -> RedirectPlanner:
    resolver = FrontendHeaderResolver() if header_mode else HostHeaderResolver()
    return RedirectPlanner(
        settings,
        address_resolver=resolver,
        existence_lookup=lookup,
        domain_matcher=DomainMatcher(settings.vice_domain) if check_domain else None,
    )


# ── Landing ─────────────────────────────────────────────────────────


class TestLanding:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("host", ["cyverse.run", "www.cyverse.run", "cyverse.run:443"])
    async def test_empty_subdomain_lands_without_lookup(self, settings, host):
        spy = SpyLookup()
        outcome = await _planner(settings, spy).plan(InboundRequest(host=host))

        assert outcome.kind == OutcomeKind.LANDING
        assert outcome.redirect_url == "https://cyverse.run"
        assert spy.calls == []

    @pytest.mark.asyncio
    async def test_missing_frontend_header_without_domain_check_lands(self, settings):
        spy = SpyLookup()
        planner = _planner(settings, spy, header_mode=True, check_domain=False)
        outcome = await planner.plan(InboundRequest(host="job123.cyverse.run"))

        assert outcome.kind == OutcomeKind.LANDING
        assert spy.calls == []


# ── Loading ─────────────────────────────────────────────────────────


class TestLoading:
    @pytest.mark.asyncio
    async def test_live_subdomain_builds_app_url_on_base_host(self, settings):
        spy = SpyLookup(True)
        req = InboundRequest(host="job123.cyverse.run", path="/lab/tree", raw_query="token=abc&x=1")
        outcome = await _planner(settings, spy).plan(req)

        assert outcome.kind == OutcomeKind.LOADING
        assert spy.calls == ["job123"]
        app = urlsplit(outcome.app_url)
        assert app.scheme == "https"
        assert app.netloc == "job123.cyverse.run"
        assert app.path == "/lab/tree"
        assert app.query == "token=abc&x=1"

    @pytest.mark.asyncio
    async def test_loading_redirect_carries_encoded_app_url(self, settings):
        outcome = await _planner(settings, SpyLookup(True)).plan(
            InboundRequest(host="job123.cyverse.run", path="/")
        )

        assert outcome.redirect_url == (
            "https://loading.cyverse.run/?url=https%3A%2F%2Fjob123.cyverse.run%2F"
        )
        query = parse_qs(urlsplit(outcome.redirect_url).query)
        assert query["url"] == ["https://job123.cyverse.run/"]

    @pytest.mark.asyncio
    async def test_multi_level_subdomain_is_looked_up_whole(self, settings):
        spy = SpyLookup(True)
        outcome = await _planner(settings, spy).plan(InboundRequest(host="a.b.cyverse.run"))

        assert spy.calls == ["a.b"]
        assert urlsplit(outcome.app_url).netloc == "a.b.cyverse.run"

    @pytest.mark.asyncio
    async def test_subdomain_passed_to_lookup_unnormalized(self, settings):
        spy = SpyLookup(False)
        await _planner(settings, spy).plan(InboundRequest(host="Job123.cyverse.run"))
        assert spy.calls == ["Job123"]

    @pytest.mark.asyncio
    async def test_base_url_port_is_kept(self, settings):
        settings = dataclasses.replace(settings, base_url="https://cyverse.run:8443")
        outcome = await _planner(settings, SpyLookup(True)).plan(
            InboundRequest(host="job123.cyverse.run", path="/x")
        )
        assert outcome.app_url == "https://job123.cyverse.run:8443/x"

    @pytest.mark.asyncio
    async def test_empty_base_url_forwards_frontend_address(self, settings):
        settings = dataclasses.replace(settings, base_url="")
        req = InboundRequest(
            host="default-backend",
            frontend_url="https://job123.cyverse.run/lab?x=1",
        )
        outcome = await _planner(settings, SpyLookup(True), header_mode=True).plan(req)

        assert outcome.kind == OutcomeKind.LOADING
        assert outcome.app_url == "https://job123.cyverse.run/lab?x=1"

    @pytest.mark.asyncio
    async def test_path_style_loading_url(self, settings):
        settings = dataclasses.replace(settings, loading_url_style="path")
        outcome = await _planner(settings, SpyLookup(True)).plan(
            InboundRequest(host="job123.cyverse.run", path="/")
        )
        assert outcome.redirect_url == (
            "https://loading.cyverse.run/https%3A%2F%2Fjob123.cyverse.run%2F"
        )

    @pytest.mark.asyncio
    async def test_existing_loading_query_is_kept_and_url_replaced(self, settings):
        settings = dataclasses.replace(
            settings,
            loading_page_url="https://loading.cyverse.run/wait?theme=dark&url=stale",
        )
        outcome = await _planner(settings, SpyLookup(True)).plan(
            InboundRequest(host="job123.cyverse.run", path="/")
        )
        parts = urlsplit(outcome.redirect_url)
        assert parts.path == "/wait"
        assert parse_qs(parts.query) == {
            "theme": ["dark"],
            "url": ["https://job123.cyverse.run/"],
        }


# ── Not found ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_unknown_subdomain_is_not_found(settings):
    spy = SpyLookup(False)
    outcome = await _planner(settings, spy).plan(InboundRequest(host="ghost99.cyverse.run"))

    assert outcome.kind == OutcomeKind.NOT_FOUND
    assert outcome.subdomain == "ghost99"
    assert outcome.redirect_url is None
    assert spy.calls == ["ghost99"]


# ── Errors ──────────────────────────────────────────────────────────


class TestErrors:
    @pytest.mark.asyncio
    async def test_lookup_error_is_error_outcome(self, settings):
        cause = ExistenceLookupError("job123", "connection refused")
        outcome = await _planner(settings, FailingLookup(cause)).plan(
            InboundRequest(host="job123.cyverse.run")
        )

        assert outcome.kind == OutcomeKind.ERROR
        assert outcome.error is cause
        assert outcome.subdomain == "job123"
        assert outcome.error.status_code == 500

    @pytest.mark.asyncio
    async def test_lookup_timeout_is_error_outcome(self, settings):
        outcome = await _planner(settings, FailingLookup(asyncio.TimeoutError())).plan(
            InboundRequest(host="job123.cyverse.run")
        )

        assert outcome.kind == OutcomeKind.ERROR
        assert isinstance(outcome.error, ExistenceLookupError)

    @pytest.mark.asyncio
    async def test_foreign_lookup_exception_is_error_outcome(self, settings):
        cause = ConnectionError("refused")
        lookup = FailingLookup(cause)
        outcome = await _planner(settings, lookup).plan(InboundRequest(host="job123.cyverse.run"))

        assert outcome.kind == OutcomeKind.ERROR
        assert isinstance(outcome.error, ExistenceLookupError)
        assert outcome.error.subdomain == "job123"
        assert outcome.error.__cause__ is cause
        assert lookup.calls == ["job123"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("check_domain", [True, False])
    async def test_fully_qualified_host_is_looked_up_without_root_dot(self, settings, check_domain):
        spy = SpyLookup(False)
        outcome = await _planner(settings, spy, check_domain=check_domain).plan(
            InboundRequest(host="job123.cyverse.run.")
        )

        assert outcome.kind == OutcomeKind.NOT_FOUND
        assert spy.calls == ["job123"]

    @pytest.mark.asyncio
    async def test_host_outside_domain_is_rejected_before_lookup(self, settings):
        spy = SpyLookup()
        outcome = await _planner(settings, spy).plan(InboundRequest(host="job123.evilcyverse.run"))

        assert outcome.kind == OutcomeKind.ERROR
        assert isinstance(outcome.error, DomainMismatchError)
        assert outcome.error.status_code == 400
        assert spy.calls == []

    @pytest.mark.asyncio
    async def test_domain_check_can_be_skipped(self, settings):
        spy = SpyLookup(False)
        outcome = await _planner(settings, spy, check_domain=False).plan(
            InboundRequest(host="job123.example.com")
        )

        assert outcome.kind == OutcomeKind.NOT_FOUND
        assert spy.calls == ["job123"]

    @pytest.mark.asyncio
    async def test_missing_frontend_header_fails_domain_check(self, settings):
        outcome = await _planner(settings, SpyLookup(), header_mode=True).plan(
            InboundRequest(host="job123.cyverse.run")
        )
        assert isinstance(outcome.error, DomainMismatchError)

    @pytest.mark.asyncio
    async def test_unparsable_frontend_header_is_resolution_error(self, settings):
        spy = SpyLookup()
        outcome = await _planner(settings, spy, header_mode=True).plan(
            InboundRequest(host="x", frontend_url="http://[::1")
        )

        assert outcome.kind == OutcomeKind.ERROR
        assert isinstance(outcome.error, AddressResolutionError)
        assert spy.calls == []

    @pytest.mark.asyncio
    async def test_malformed_base_url_is_resolution_error(self, settings):
        settings = dataclasses.replace(settings, base_url="not-a-url")
        outcome = await _planner(settings, SpyLookup(True)).plan(
            InboundRequest(host="job123.cyverse.run")
        )

        assert outcome.kind == OutcomeKind.ERROR
        assert isinstance(outcome.error, AddressResolutionError)

    @pytest.mark.asyncio
    async def test_error_never_yields_redirect(self, settings):
        outcome = await _planner(settings, FailingLookup(ExistenceLookupError("x", "boom"))).plan(
            InboundRequest(host="job123.cyverse.run")
        )
        assert outcome.redirect_url is None
        assert outcome.app_url is None


def test_from_settings_respects_check_domain(settings):
    lookup = SpyLookup()
    with_check = RedirectPlanner.from_settings(
        settings, address_resolver=HostHeaderResolver(), existence_lookup=lookup,
    )
    without_check = RedirectPlanner.from_settings(
        dataclasses.replace(settings, check_domain=False),
        address_resolver=HostHeaderResolver(),
        existence_lookup=lookup,
    )

    assert with_check._domain_matcher is not None
    assert without_check._domain_matcher is None
