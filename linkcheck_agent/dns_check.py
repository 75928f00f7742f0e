from __future__ import annotations

import logging
from typing import Any

import dns.asyncresolver
import dns.name

from .concurrency import settle_all
from .models import DNSRecords, DNSReport, MXRecord

logger = logging.getLogger(__name__)


def _strip_root(value: Any) -> str:
    return str(value).rstrip(".")


class DNSVerifier:
    """Check the DNS posture of a hostname.

    A, MX and NS lookups run concurrently and fail independently; a failed
    lookup leaves that record list empty. Only the A lookup decides ``valid``.
    """

    def __init__(self, resolver: Any | None = None, *, lifetime: float = 5.0) -> None:
        if resolver is None:
            resolver = dns.asyncresolver.Resolver()
            resolver.lifetime = lifetime
        self._resolver = resolver

    async def _lookup(self, hostname: str, rdtype: str) -> list[Any]:
        answer = await self._resolver.resolve(hostname, rdtype)
        return list(answer)

    async def verify(self, hostname: str) -> DNSReport:
        try:
            dns.name.from_text(hostname)

            a, mx, ns = await settle_all(
                self._lookup(hostname, "A"),
                self._lookup(hostname, "MX"),
                self._lookup(hostname, "NS"),
            )
            for rdtype, outcome in (("A", a), ("MX", mx), ("NS", ns)):
                if not outcome.ok:
                    logger.debug("%s lookup for %s failed: %r", rdtype, hostname, outcome.error)

            records = DNSRecords(
                a=[str(r) for r in a.value] if a.ok else [],
                mx=[
                    MXRecord(exchange=_strip_root(r.exchange), priority=int(r.preference))
                    for r in mx.value
                ] if mx.ok else [],
                ns=[_strip_root(r) for r in ns.value] if ns.ok else [],
            )
            return DNSReport(valid=a.ok, records=records)
        except Exception as e:
            logger.warning("DNS verification failed for %s: %s", hostname, e)
            return DNSReport(valid=False, error=str(e) or e.__class__.__name__)
