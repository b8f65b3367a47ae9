"""
Sahayak — HTTP Opportunity Store Provider
Reads jobs, schemes and programs from an external opportunity store over
its REST API:

  GET {base}/opportunities?category=scheme&tag=...&keyword=...&limit=20
  GET {base}/opportunities/{id}

Records are validated into Job | Scheme | Program. Transport failures and
malformed bodies are raised as UpstreamUnavailableError; retries and the
latency budget are applied by the caller (services/upstream.py).
"""

import time

import httpx
import pydantic

from sahayak.errors import OpportunityNotFoundError, UpstreamUnavailableError
from sahayak.models.opportunity import OpportunityCategory
from sahayak.models.results import SearchCriteria
from sahayak.services.providers.base import OpportunitySearchProvider
from sahayak.services.providers.memory_provider import load_opportunities
from sahayak.utils.logger import logger


class HttpOpportunityProvider(OpportunitySearchProvider):
    """Opportunity store behind a JSON HTTP API."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._transport = transport

    @property
    def name(self) -> str:
        return "opportunity-store"

    def is_available(self) -> bool:
        return bool(self.base_url)

    def _client(self) -> httpx.AsyncClient:
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else None
        return httpx.AsyncClient(base_url=self.base_url, headers=headers, transport=self._transport)

    def _decode(self, response: httpx.Response, single: bool = False) -> list:
        try:
            data = response.json()
            if single:
                return load_opportunities([data])
            records = data.get("results", []) if isinstance(data, dict) else data
            if not isinstance(records, list):
                raise ValueError(f"expected a list of records, got {type(records).__name__}")
            return load_opportunities(records)
        except (ValueError, pydantic.ValidationError) as e:
            logger.warning(f"⚠️ Opportunity store sent a malformed body: {e}")
            raise UpstreamUnavailableError(self.name, e) from e

    async def search(
        self, category: OpportunityCategory, criteria: SearchCriteria, limit: int = 20
    ) -> list:
        params: list[tuple[str, str]] = [("category", category.value), ("limit", str(limit))]
        params += [("tag", t) for t in criteria.tags]
        params += [("keyword", k) for k in criteria.keywords]
        if criteria.location:
            params.append(("location", criteria.location))

        start = time.monotonic()
        try:
            async with self._client() as client:
                response = await client.get("/opportunities", params=params)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(self.name, e) from e

        opportunities = self._decode(response)

        latency = (time.monotonic() - start) * 1000
        logger.info(f"🔍 Opportunity store: {len(opportunities)} {category.value} candidates in {latency:.0f}ms")
        return opportunities[:limit]

    async def get(self, opportunity_id: str):
        try:
            async with self._client() as client:
                response = await client.get(f"/opportunities/{opportunity_id}")
                if response.status_code == 404:
                    raise OpportunityNotFoundError(opportunity_id)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(self.name, e) from e

        return self._decode(response, single=True)[0]
