from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

RiskLevel = Literal["HIGH", "MEDIUM", "LOW"]


class _CamelModel(BaseModel):
    # Python code uses field names, JSON uses the camelCase aliases.
    model_config = ConfigDict(populate_by_name=True)


class VerifyRequest(BaseModel):
    url: str | None = None
    context: str | None = Field(None, max_length=4000)


class BatchVerifyRequest(BaseModel):
    # Left loose so a non-array gets the API's own 400 and bad items are itemized.
    urls: Any = None
    # Wave size; the server default applies when omitted.
    concurrency: int | None = Field(None, ge=1, le=10)


class RedirectingHop(BaseModel):
    kind: Literal["redirect"] = "redirect"
    status: int
    url: str
    next: str


class TerminalHop(BaseModel):
    kind: Literal["final"] = "final"
    status: int
    url: str
    final: Literal[True] = True


class FailedHop(BaseModel):
    kind: Literal["error"] = "error"
    url: str
    error: str


RedirectHop = Annotated[Union[RedirectingHop, TerminalHop, FailedHop], Field(discriminator="kind")]


class RedirectChain(BaseModel):
    final_url: str
    chain: list[RedirectHop] = Field(default_factory=list)
    hop_limit_reached: bool = False


class MXRecord(BaseModel):
    exchange: str
    priority: int


class DNSRecords(BaseModel):
    a: list[str] = Field(default_factory=list)
    mx: list[MXRecord] = Field(default_factory=list)
    ns: list[str] = Field(default_factory=list)


class DNSReport(BaseModel):
    valid: bool
    records: DNSRecords | None = None
    error: str | None = None


class ThreatIntelHit(BaseModel):
    title: str = ""
    url: str
    content: str = ""


class ThreatVerdict(_CamelModel):
    risk_level: RiskLevel = Field(..., alias="riskLevel")
    verdict: str
    reasons: str
    tips: str
    sources: list[str] = Field(default_factory=list)


class FactBundle(_CamelModel):
    url: str
    final_url: str = Field(..., alias="finalUrl")
    redirect_chain: list[str] = Field(default_factory=list, alias="redirectChain")
    redirect_limit_reached: bool = Field(False, alias="redirectLimitReached")
    dns_valid: bool = Field(..., alias="dnsValid")
    context: str | None = None
    threat_intel: list[ThreatIntelHit] = Field(default_factory=list, alias="threatIntel")


class VerifyResponse(_CamelModel):
    url: str
    final_url: str = Field(..., alias="finalUrl")
    redirects: list[RedirectHop]
    redirect_limit_reached: bool = Field(False, alias="redirectLimitReached")
    dns: DNSReport
    risk_level: RiskLevel = Field(..., alias="riskLevel")
    verdict: str
    reasons: str
    tips: str
    sources: list[str] = Field(default_factory=list)


class BatchItemError(BaseModel):
    url: str
    error: str


class BatchVerifyResponse(BaseModel):
    total: int
    processed: int
    results: list[Union[VerifyResponse, BatchItemError]]


class HealthResponse(BaseModel):
    status: Literal["healthy"] = "healthy"
    version: str
