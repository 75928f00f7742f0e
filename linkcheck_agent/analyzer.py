from __future__ import annotations

import logging
import time
from typing import Any, Sequence

import httpx

from .ai_judge import ClassificationGateway, apply_threat_sources, build_fact_bundle
from .concurrency import run_in_waves
from .config import Settings
from .dns_check import DNSVerifier
from .errors import BatchSizeError, InvalidURLError
from .models import BatchItemError, BatchVerifyResponse, DNSReport, ThreatIntelHit, VerifyResponse
from .normalizer import hostname_of, normalize_url
from .redirects import resolve_redirects
from .threat_intel import ThreatIntelClient

logger = logging.getLogger(__name__)


class URLVerifier:
    """Runs the verification pipeline for one URL or a batch of URLs.

    Per URL the steps are strictly sequential: normalize, resolve redirects,
    check DNS of the final host, optionally search threat intel, classify.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        dns_verifier: DNSVerifier,
        gateway: ClassificationGateway,
        threat_intel: ThreatIntelClient | None = None,
    ) -> None:
        self.settings = settings
        self._http = http_client
        self._dns = dns_verifier
        self._gateway = gateway
        self._threat_intel = threat_intel

    @property
    def threat_intel_enabled(self) -> bool:
        return self._threat_intel is not None and self._threat_intel.enabled

    async def verify(
        self,
        raw_url: str,
        context: str | None = None,
        *,
        include_threat_intel: bool = True,
    ) -> VerifyResponse:
        t0 = time.perf_counter()

        normalized_url = normalize_url(raw_url)
        if normalized_url is None:
            raise InvalidURLError("Invalid URL format")

        redirects = await resolve_redirects(
            normalized_url,
            self._http,
            max_hops=self.settings.max_redirect_hops,
            user_agent=self.settings.user_agent,
        )
        hostname = hostname_of(redirects.final_url)
        if hostname:
            dns_report = await self._dns.verify(hostname)
        else:
            # Redirect landed on a hostless scheme such as mailto:.
            dns_report = DNSReport(valid=False, error=f"No hostname in final URL {redirects.final_url}")

        hits: list[ThreatIntelHit] = []
        if hostname and include_threat_intel and self.threat_intel_enabled:
            hits = await self._threat_intel.search(hostname)

        facts = build_fact_bundle(
            normalized_url,
            redirects,
            dns_report.valid,
            context=context,
            threat_intel=hits,
        )
        verdict = apply_threat_sources(await self._gateway.classify(facts), hits)

        logger.info(
            "Verified %s -> %s (%s) in %dms",
            normalized_url,
            redirects.final_url,
            verdict.risk_level,
            int((time.perf_counter() - t0) * 1000),
        )

        return VerifyResponse(
            url=normalized_url,
            final_url=redirects.final_url,
            redirects=redirects.chain,
            redirect_limit_reached=redirects.hop_limit_reached,
            dns=dns_report,
            risk_level=verdict.risk_level,
            verdict=verdict.verdict,
            reasons=verdict.reasons,
            tips=verdict.tips,
            sources=verdict.sources,
        )

    async def _verify_batch_item(self, raw_url: Any) -> VerifyResponse | BatchItemError:
        if not isinstance(raw_url, str):
            return BatchItemError(url=str(raw_url), error="Invalid URL format")
        # Threat intel is skipped in batch mode to keep latency and cost down.
        try:
            return await self.verify(raw_url, include_threat_intel=False)
        except Exception as e:
            logger.warning("Batch item %r failed: %s", raw_url, e)
            return BatchItemError(url=raw_url, error=str(e) or e.__class__.__name__)

    def check_batch_size(self, urls: Sequence[Any]) -> None:
        if len(urls) == 0:
            raise BatchSizeError("URLs array cannot be empty")
        if len(urls) > self.settings.batch_max_urls:
            raise BatchSizeError(f"Maximum {self.settings.batch_max_urls} URLs allowed per batch")

    async def verify_batch(self, urls: Sequence[Any], concurrency: int | None = None) -> BatchVerifyResponse:
        self.check_batch_size(urls)
        size = concurrency or self.settings.batch_concurrency

        results = await run_in_waves(list(urls), self._verify_batch_item, size)
        failed = sum(1 for r in results if isinstance(r, BatchItemError))
        logger.info("Batch of %d URLs done (%d failed, wave size %d)", len(urls), failed, size)

        return BatchVerifyResponse(total=len(urls), processed=len(results), results=results)
