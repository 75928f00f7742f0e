from __future__ import annotations

import asyncio
from types import SimpleNamespace

import dns.exception
import dns.resolver

from linkcheck_agent.dns_check import DNSVerifier

from .fakes import FakeResolver, healthy_dns


def test_records_are_collected_for_every_type() -> None:
    resolver = healthy_dns("example.com")

    report = asyncio.run(DNSVerifier(resolver).verify("example.com"))

    assert report.valid is True
    assert report.error is None
    assert report.records.a == ["93.184.216.34"]
    assert report.records.mx[0].exchange == "mx.example.com"
    assert report.records.mx[0].priority == 10
    assert report.records.ns == ["ns1.example.com"]
    assert sorted(t for _, t in resolver.calls) == ["A", "MX", "NS"]


def test_missing_mx_does_not_flip_valid() -> None:
    resolver = FakeResolver({
        ("shop.example", "A"): ["10.0.0.1", "10.0.0.2"],
        ("shop.example", "MX"): dns.resolver.NoAnswer(),
        ("shop.example", "NS"): dns.exception.Timeout(),
    })

    report = asyncio.run(DNSVerifier(resolver).verify("shop.example"))

    assert report.valid is True
    assert report.records.a == ["10.0.0.1", "10.0.0.2"]
    assert report.records.mx == []
    assert report.records.ns == []


def test_failed_a_lookup_marks_invalid_but_keeps_other_records() -> None:
    resolver = FakeResolver({
        ("mail-only.example", "MX"): [SimpleNamespace(exchange="mx.mail-only.example.", preference=5)],
        ("mail-only.example", "NS"): ["ns.mail-only.example."],
    })

    report = asyncio.run(DNSVerifier(resolver).verify("mail-only.example"))

    assert report.valid is False
    assert report.records.a == []
    assert report.records.mx[0].priority == 5
    assert report.records.ns == ["ns.mail-only.example"]


def test_unknown_host_is_invalid_with_empty_records() -> None:
    report = asyncio.run(DNSVerifier(FakeResolver()).verify("nope.invalid"))

    assert report.valid is False
    assert report.records is not None
    assert report.records.a == report.records.ns == []


def test_structurally_invalid_hostname_reports_error() -> None:
    resolver = FakeResolver()

    report = asyncio.run(DNSVerifier(resolver).verify("a" * 70 + ".example"))

    assert report.valid is False
    assert report.records is None
    assert report.error
    assert resolver.calls == []


def test_lookups_run_concurrently() -> None:
    class SlowResolver:
        def __init__(self) -> None:
            self.in_flight = 0
            self.peak = 0

        async def resolve(self, hostname: str, rdtype: str):
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
            await asyncio.sleep(0.01)
            self.in_flight -= 1
            return ["1.2.3.4"] if rdtype == "A" else []

    resolver = SlowResolver()
    report = asyncio.run(DNSVerifier(resolver).verify("example.com"))

    assert report.valid is True
    assert resolver.peak == 3
