from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .ai_judge import ClassificationGateway, CredentialRing
from .analyzer import URLVerifier
from .config import Settings
from .dns_check import DNSVerifier
from .errors import BatchSizeError, ClassificationError, InvalidURLError
from .models import BatchVerifyRequest, BatchVerifyResponse, HealthResponse, VerifyRequest, VerifyResponse
from .threat_intel import ThreatIntelClient


# Load environment variables from the repo root .env (so GEMINI_API_KEY works in local dev)
_HERE = Path(__file__).resolve()
_REPO_ROOT = _HERE.parents[1]
load_dotenv(_REPO_ROOT / ".env", override=False)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

settings = Settings.from_env()


def build_verifier(settings: Settings, http_client: httpx.AsyncClient) -> URLVerifier:
    credentials = CredentialRing(settings.gemini_api_keys)
    threat_intel = ThreatIntelClient(
        settings.tavily_api_key,
        http_client,
        max_results=settings.tavily_max_results,
    )
    logger.info(
        "Threat intel %s; %d Gemini key(s) configured",
        "enabled" if threat_intel.enabled else "disabled (no TAVILY_API_KEY)",
        len(credentials),
    )
    return URLVerifier(
        settings,
        http_client,
        DNSVerifier(lifetime=settings.dns_lifetime_s),
        ClassificationGateway(credentials, model=settings.gemini_model),
        threat_intel,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with httpx.AsyncClient(timeout=settings.http_timeout_s, follow_redirects=False) as client:
        app.state.verifier = build_verifier(settings, client)
        yield


app = FastAPI(title="LinkCheck Agent", version=__version__, lifespan=lifespan)

# Browser extensions call from arbitrary origins, so everything is allowed unless
# LINKCHECK_CORS_ORIGINS narrows it.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_verifier(request: Request) -> URLVerifier:
    return request.app.state.verifier


@app.get("/")
def index():
    return {
        "service": "LinkCheck Agent",
        "version": __version__,
        "features": [
            "AI-powered threat detection",
            "Redirect chain resolution",
            "DNS verification",
            f"Batch processing (up to {settings.batch_max_urls} URLs)",
            "Browser extension support (CORS enabled)",
        ],
        "endpoints": {
            "verify": "POST /api/verify",
            "batch": "POST /api/verify/batch",
            "health": "GET /health",
        },
    }


@app.get("/health", response_model=HealthResponse)
@app.get("/healthz", response_model=HealthResponse)
def health():
    return HealthResponse(version=__version__)


@app.post("/api/verify", response_model=VerifyResponse)
async def verify_endpoint(req: VerifyRequest, verifier: URLVerifier = Depends(get_verifier)):
    if not req.url or not req.url.strip():
        raise HTTPException(status_code=400, detail="URL is required")

    try:
        return await verifier.verify(req.url, req.context)
    except InvalidURLError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ClassificationError as e:
        raise HTTPException(status_code=502, detail=f"Threat classification failed: {e}")
    except Exception:
        logger.exception("Verification failed for %r", req.url)
        raise HTTPException(status_code=500, detail="Internal server error")


@app.post("/api/verify/batch", response_model=BatchVerifyResponse)
async def verify_batch_endpoint(req: BatchVerifyRequest, verifier: URLVerifier = Depends(get_verifier)):
    if not isinstance(req.urls, list):
        raise HTTPException(status_code=400, detail="URLs array is required")

    try:
        return await verifier.verify_batch(req.urls, req.concurrency)
    except BatchSizeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("Batch verification failed")
        raise HTTPException(status_code=500, detail="Internal server error")
