"""GraphQL-backed subdomain existence lookup.

Queries the Hasura-style GraphQL endpoint that fronts the jobs table. A job
row with a matching ``subdomain`` means a live VICE app owns it.
"""

from __future__ import annotations

from typing import Any

import httpx

from ..errors import ExistenceLookupError

SUBDOMAIN_LOOKUP_QUERY = """
query Subdomain($subdomain: String) {
  jobs(where: {subdomain: {_eq: $subdomain}}) {
    id
  }
}
"""


class GraphQLExistenceLookup:
    """ExistenceLookup that POSTs a GraphQL query over httpx.

    Args:
        graphql_url: Full URL of the GraphQL endpoint.
        http_client: Client to send requests with. When omitted, one is
            created and owned by this instance (closed by ``aclose``).
        timeout_seconds: Deadline for each lookup request.
    """

    name = "graphql"

    def __init__(
        self,
        graphql_url: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        if not graphql_url:
            raise ValueError("graphql_url is required")
        self._graphql_url = graphql_url
        self._timeout_seconds = float(timeout_seconds)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient()

    async def exists(self, subdomain: str) -> bool:
        payload = {
            "query": SUBDOMAIN_LOOKUP_QUERY,
            "variables": {"subdomain": subdomain},
        }
        try:
            resp = await self._client.post(
                self._graphql_url,
                json=payload,
                headers={"Accept": "application/json"},
                timeout=self._timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise ExistenceLookupError(subdomain, f"graphql request failed: {exc!r}") from exc

        if resp.status_code >= 400:
            raise ExistenceLookupError(
                subdomain, f"graphql endpoint returned status {resp.status_code}"
            )

        try:
            body = resp.json()
        except ValueError as exc:
            raise ExistenceLookupError(subdomain, "graphql response is not JSON") from exc

        jobs = self._extract_jobs(subdomain, body)
        return len(jobs) > 0

    @staticmethod
    def _extract_jobs(subdomain: str, body: Any) -> list[Any]:
        if not isinstance(body, dict):
            raise ExistenceLookupError(subdomain, "graphql response is not an object")

        errors = body.get("errors")
        if errors and not isinstance(errors, list):
            raise ExistenceLookupError(subdomain, "graphql errors field is malformed")
        if errors:
            messages = "; ".join(
                str(e.get("message", e)) if isinstance(e, dict) else str(e)
                for e in errors
            )
            raise ExistenceLookupError(subdomain, f"graphql: {messages}")

        data = body.get("data")
        jobs = data.get("jobs") if isinstance(data, dict) else None
        if not isinstance(jobs, list):
            raise ExistenceLookupError(
                subdomain,
                f"missing jobs from graphql query for '{subdomain}' subdomain",
            )
        return jobs

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
