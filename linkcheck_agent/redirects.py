"""Hop-by-hop redirect resolution.

Redirects are followed manually so every hop is observed. Runaway chains
(including loops) are bounded by the hop budget, not by cycle detection.
"""
from __future__ import annotations

import logging

import httpx

from .models import FailedHop, RedirectChain, RedirectHop, RedirectingHop, TerminalHop

logger = logging.getLogger(__name__)

MAX_HOPS = 10


async def resolve_redirects(
    url: str,
    client: httpx.AsyncClient,
    *,
    max_hops: int = MAX_HOPS,
    user_agent: str | None = None,
) -> RedirectChain:
    current = url
    hops = 0
    chain: list[RedirectHop] = []
    headers = {"user-agent": user_agent} if user_agent else None

    while hops < max_hops:
        try:
            res = await client.head(current, headers=headers, follow_redirects=False)
            if 300 <= res.status_code < 400 and res.headers.get("location"):
                next_url = str(httpx.URL(current).join(res.headers["location"]))
            else:
                next_url = None
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.info("Redirect resolution stopped at %s: %s", current, e)
            chain.append(FailedHop(url=current, error=str(e) or e.__class__.__name__))
            break

        if next_url is None:
            # Non-redirect, or a 3xx without Location.
            chain.append(TerminalHop(status=res.status_code, url=current))
            break

        chain.append(RedirectingHop(status=res.status_code, url=current, next=next_url))
        current = next_url
        hops += 1

    limit_reached = hops >= max_hops
    if limit_reached:
        logger.info("Redirect hop limit (%d) reached for %s", max_hops, url)

    return RedirectChain(final_url=current, chain=chain, hop_limit_reached=limit_reached)
