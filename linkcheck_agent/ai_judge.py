"""
Gemini-backed threat classifier.
The pipeline hands this module a fact bundle; Gemini returns the risk verdict.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Callable, Sequence

from google import genai
from google.genai import types
from pydantic import ValidationError

from .errors import ClassificationError
from .models import FactBundle, RedirectChain, RedirectHop, RedirectingHop, TerminalHop, ThreatIntelHit, ThreatVerdict

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"

_RISK_MAP = {
    "high": "HIGH",
    "critical": "HIGH",
    "severe": "HIGH",
    "dangerous": "HIGH",
    "malicious": "HIGH",
    "medium": "MEDIUM",
    "moderate": "MEDIUM",
    "med": "MEDIUM",
    "suspicious": "MEDIUM",
    "low": "LOW",
    "safe": "LOW",
    "minimal": "LOW",
    "none": "LOW",
}


class CredentialRing:
    """Round-robin over the configured API keys.

    The index lives only in memory and starts over on restart.
    """

    def __init__(self, keys: Sequence[str]) -> None:
        self._keys = tuple(k for k in keys if k)
        self._index = 0

    def __len__(self) -> int:
        return len(self._keys)

    def next_credential(self) -> str:
        if not self._keys:
            raise ClassificationError("No Gemini API key configured (set GEMINI_API_KEY).")
        key = self._keys[self._index]
        self._index = (self._index + 1) % len(self._keys)
        return key


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return "\n".join(str(v).strip() for v in value if v is not None and str(v).strip())
    return str(value).strip()


def _as_str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    s = str(value).strip()
    return [s] if s else []


def _normalize_ai_output(raw: Any) -> dict[str, Any]:
    """Clamp Gemini output to the verdict schema.

    Risk-level synonyms are mapped and list-valued text fields joined. A reply
    without a recognised risk level or a verdict raises ClassificationError.
    """
    if not isinstance(raw, dict):
        raise ClassificationError("Classifier returned an unexpected payload.")

    risk_raw = str(raw.get("riskLevel") or raw.get("risk_level") or "").strip().lower()
    risk = _RISK_MAP.get(risk_raw)
    if risk is None:
        raise ClassificationError(f"Classifier returned an unknown risk level: {risk_raw or 'missing'}")

    verdict = _as_text(raw.get("verdict"))
    if not verdict:
        raise ClassificationError("Classifier returned no verdict.")

    return {
        "riskLevel": risk,
        "verdict": verdict,
        "reasons": _as_text(raw.get("reasons")),
        "tips": _as_text(raw.get("tips")),
        "sources": _as_str_list(raw.get("sources")),
    }


def summarize_hop(hop: RedirectHop) -> str:
    if isinstance(hop, RedirectingHop):
        return f"{hop.status} -> {hop.next}"
    if isinstance(hop, TerminalHop):
        return f"{hop.status} -> Final"
    return hop.error


def summarize_chain(chain: Sequence[RedirectHop]) -> list[str]:
    return [summarize_hop(hop) for hop in chain]


def build_fact_bundle(
    url: str,
    redirects: RedirectChain,
    dns_valid: bool,
    *,
    context: str | None = None,
    threat_intel: Sequence[ThreatIntelHit] = (),
) -> FactBundle:
    return FactBundle(
        url=url,
        final_url=redirects.final_url,
        redirect_chain=summarize_chain(redirects.chain),
        redirect_limit_reached=redirects.hop_limit_reached,
        dns_valid=dns_valid,
        context=(context or "").strip() or None,
        threat_intel=list(threat_intel),
    )


_FORMAT_INSTRUCTIONS = """Respond with ONLY valid JSON (no markdown, no code blocks):

{
  "riskLevel": "<HIGH|MEDIUM|LOW>",
  "verdict": "<A brief summary of the threat assessment>",
  "reasons": "<Detailed explanation of why this URL is risky or safe>",
  "tips": "<Safety recommendations for the user>",
  "sources": ["<optional sources or evidence>"]
}"""


def build_prompt(facts: FactBundle) -> str:
    """Render the analyst prompt for ``facts``."""
    redirect_chain = json.dumps(facts.redirect_chain)
    if facts.redirect_limit_reached:
        redirect_chain += " (stopped at the redirect hop limit)"

    threat_section = ""
    if facts.threat_intel:
        lines = "\n".join(f"{hit.title}: {hit.content}" for hit in facts.threat_intel)
        threat_section = f"\nThreat Intelligence:\n{lines}\n"

    return f"""You are an expert cybersecurity analyst. Analyze this URL for threats.

URL: {facts.url}
Final Destination: {facts.final_url}
Redirect Chain: {redirect_chain}
DNS Status: {"Valid DNS Records" if facts.dns_valid else "Missing/Invalid DNS Records"}
Context: {facts.context or "None"}
{threat_section}
Classify risk (HIGH/MEDIUM/LOW), provide verdict, reasons, and tips.
{_FORMAT_INSTRUCTIONS}"""


def _parse_json_text(text: str) -> Any:
    text = text.strip()
    # The SDK may still return fenced JSON sometimes.
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return json.loads(text.strip())


def _default_client_factory(api_key: str) -> Any:
    return genai.Client(api_key=api_key)


class ClassificationGateway:
    def __init__(
        self,
        credentials: CredentialRing,
        *,
        model: str = DEFAULT_MODEL,
        client_factory: Callable[[str], Any] = _default_client_factory,
    ) -> None:
        self._credentials = credentials
        self._model = model
        self._client_factory = client_factory
        # One client per key; the ring holds at most a handful.
        self._clients: dict[str, Any] = {}

    def _client_for(self, api_key: str) -> Any:
        client = self._clients.get(api_key)
        if client is None:
            client = self._clients[api_key] = self._client_factory(api_key)
        return client

    async def classify(self, facts: FactBundle) -> ThreatVerdict:
        """Ask Gemini for a verdict on ``facts``; raises ClassificationError on failure."""
        api_key = self._credentials.next_credential()
        prompt = build_prompt(facts)

        try:
            client = self._client_for(api_key)
            resp = await client.aio.models.generate_content(
                model=self._model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    temperature=0.3,
                ),
            )
        except Exception as e:
            logger.warning("Gemini call failed for %s: %s", facts.url, e)
            raise ClassificationError(f"Classifier request failed: {e}") from e

        text = (getattr(resp, "text", None) or "").strip()
        if not text:
            raise ClassificationError("Classifier returned an empty response.")

        try:
            raw = _parse_json_text(text)
        except json.JSONDecodeError as e:
            raise ClassificationError(f"Classifier returned invalid JSON: {e}") from e

        normalized = _normalize_ai_output(raw)
        try:
            return ThreatVerdict.model_validate(normalized)
        except ValidationError as e:
            raise ClassificationError(f"Classifier output failed validation: {e}") from e


def apply_threat_sources(verdict: ThreatVerdict, hits: Sequence[ThreatIntelHit]) -> ThreatVerdict:
    """Replace the classifier's self-reported sources with the search-result URLs."""
    if not hits:
        return verdict
    return verdict.model_copy(update={"sources": [hit.url for hit in hits]})
