"""Runtime settings for the LinkCheck agent, read from the environment."""
from __future__ import annotations

import os
from typing import Mapping

from pydantic import BaseModel, Field

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 LinkCheckAgent/1.0"
)

# Rotation slots, tried round-robin by the classifier.
GEMINI_KEY_VARS = ("GEMINI_API_KEY", "GEMINI_API_KEY_2", "GEMINI_API_KEY_3", "GEMINI_API_KEY_4")


class Settings(BaseModel):
    gemini_api_keys: list[str] = Field(default_factory=list)
    gemini_model: str = "gemini-2.5-flash"
    tavily_api_key: str | None = None
    tavily_max_results: int = Field(3, ge=1, le=20)

    max_redirect_hops: int = Field(10, ge=1, le=50)
    batch_concurrency: int = Field(3, ge=1, le=50)
    batch_max_urls: int = Field(100, ge=1, le=100)

    http_timeout_s: float = Field(10.0, gt=0)
    dns_lifetime_s: float = Field(5.0, gt=0)
    user_agent: str = DEFAULT_USER_AGENT
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ

        def _int(name: str, default: int) -> int:
            raw = (env.get(name) or "").strip()
            if not raw:
                return default
            try:
                return int(raw)
            except ValueError as exc:
                raise ValueError(f"{name} must be an integer, got {raw!r}") from exc

        def _float(name: str, default: float) -> float:
            raw = (env.get(name) or "").strip()
            if not raw:
                return default
            try:
                return float(raw)
            except ValueError as exc:
                raise ValueError(f"{name} must be a number, got {raw!r}") from exc

        keys = [env[name].strip() for name in GEMINI_KEY_VARS if (env.get(name) or "").strip()]

        origins_raw = (env.get("LINKCHECK_CORS_ORIGINS") or "").strip()
        origins = [o.strip() for o in origins_raw.split(",") if o.strip()] or ["*"]

        return cls(
            gemini_api_keys=keys,
            gemini_model=(env.get("GEMINI_MODEL") or "").strip() or "gemini-2.5-flash",
            tavily_api_key=(env.get("TAVILY_API_KEY") or "").strip() or None,
            tavily_max_results=_int("TAVILY_MAX_RESULTS", 3),
            max_redirect_hops=_int("MAX_REDIRECT_HOPS", 10),
            batch_concurrency=_int("BATCH_CONCURRENCY", 3),
            batch_max_urls=_int("BATCH_MAX_URLS", 100),
            http_timeout_s=_float("HTTP_TIMEOUT_S", 10.0),
            dns_lifetime_s=_float("DNS_LIFETIME_S", 5.0),
            user_agent=(env.get("LINKCHECK_USER_AGENT") or "").strip() or DEFAULT_USER_AGENT,
            cors_origins=origins,
        )
