from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace
from typing import Any, Callable

import dns.resolver
import httpx

from linkcheck_agent.ai_judge import ClassificationGateway, CredentialRing
from linkcheck_agent.analyzer import URLVerifier
from linkcheck_agent.config import Settings
from linkcheck_agent.dns_check import DNSVerifier
from linkcheck_agent.threat_intel import ThreatIntelClient

LOW_VERDICT = {
    "riskLevel": "LOW",
    "verdict": "Looks safe",
    "reasons": "Well-known domain with valid DNS.",
    "tips": "Stay alert anyway.",
    "sources": ["https://model-made-this-up.example"],
}


class FakeResolver:
    """Async stand-in for ``dns.asyncresolver.Resolver``.

    ``answers`` maps ``(hostname, rdtype)`` to a list of rdata or an exception.
    Anything missing raises NXDOMAIN.
    """

    def __init__(self, answers: dict[tuple[str, str], Any] | None = None) -> None:
        self.answers = answers or {}
        self.calls: list[tuple[str, str]] = []

    async def resolve(self, hostname: str, rdtype: str):
        self.calls.append((hostname, rdtype))
        await asyncio.sleep(0)
        value = self.answers.get((hostname, rdtype))
        if value is None:
            raise dns.resolver.NXDOMAIN()
        if isinstance(value, Exception):
            raise value
        return value


def healthy_dns(*hosts: str) -> FakeResolver:
    answers: dict[tuple[str, str], Any] = {}
    for host in hosts:
        answers[(host, "A")] = ["93.184.216.34"]
        answers[(host, "MX")] = [SimpleNamespace(exchange=f"mx.{host}.", preference=10)]
        answers[(host, "NS")] = [f"ns1.{host}."]
    return FakeResolver(answers)


class FakeGemini:
    """Records calls and hands back a canned JSON payload."""

    def __init__(self, payload: Any = None, *, delay: float = 0.0, error: Exception | None = None) -> None:
        self.payload = LOW_VERDICT if payload is None else payload
        self.delay = delay
        self.error = error
        self.keys: list[str] = []
        self.clients_created: list[str] = []
        self.prompts: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def factory(self, api_key: str):
        self.clients_created.append(api_key)

        async def generate_content(**kwargs):
            self.keys.append(api_key)
            return await self._generate(**kwargs)

        return SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate_content)))

    async def _generate(self, *, model: str, contents: str, config: Any):
        self.prompts.append(contents)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            text = self.payload if isinstance(self.payload, str) else json.dumps(self.payload)
            return SimpleNamespace(text=text)
        finally:
            self.in_flight -= 1


class CountingHandler:
    """MockTransport handler that serves 200 for every HEAD unless overridden."""

    def __init__(self, routes: dict[str, Callable[[httpx.Request], httpx.Response]] | None = None) -> None:
        self.routes = routes or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is not None:
            return route(request)
        return httpx.Response(200)


def make_verifier(
    *,
    handler: Callable[[httpx.Request], httpx.Response] | None = None,
    resolver: FakeResolver | None = None,
    gemini: FakeGemini | None = None,
    keys: tuple[str, ...] = ("key-1",),
    tavily_key: str | None = None,
    settings: Settings | None = None,
) -> URLVerifier:
    settings = settings or Settings(gemini_api_keys=list(keys), tavily_api_key=tavily_key)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler or CountingHandler()))
    gemini = gemini or FakeGemini()
    gateway = ClassificationGateway(CredentialRing(settings.gemini_api_keys), client_factory=gemini.factory)
    return URLVerifier(
        settings,
        client,
        DNSVerifier(resolver or healthy_dns("example.com")),
        gateway,
        ThreatIntelClient(settings.tavily_api_key, client, max_results=settings.tavily_max_results),
    )
