"""Threat-intelligence lookups through the Tavily search API."""
from __future__ import annotations

import logging

import httpx

from .models import ThreatIntelHit

logger = logging.getLogger(__name__)

TAVILY_SEARCH_URL = "https://api.tavily.com/search"


def threat_query(domain: str) -> str:
    return f"{domain} phishing scam malicious threat"


class ThreatIntelClient:
    def __init__(self, api_key: str | None, client: httpx.AsyncClient, *, max_results: int = 3) -> None:
        self._api_key = api_key
        self._client = client
        self._max_results = max_results

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    async def search(self, domain: str) -> list[ThreatIntelHit]:
        """Search for reports about ``domain``.

        Provider failures are logged and yield no hits so that verification can
        continue without threat context.
        """
        if not self.enabled:
            return []

        try:
            res = await self._client.post(
                TAVILY_SEARCH_URL,
                json={"query": threat_query(domain), "max_results": self._max_results},
                headers={"authorization": f"Bearer {self._api_key}"},
            )
            res.raise_for_status()
            data = res.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Tavily search failed for %s: %s", domain, e)
            return []

        results = data.get("results") if isinstance(data, dict) else None
        hits: list[ThreatIntelHit] = []
        for item in results or []:
            if not isinstance(item, dict) or not item.get("url"):
                continue
            hits.append(ThreatIntelHit(
                title=str(item.get("title") or ""),
                url=str(item["url"]),
                content=str(item.get("content") or ""),
            ))
        return hits[: self._max_results]
