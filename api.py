"""
FastAPI server for the location personalization engine.

Serves visitor location, per-city marketing copy and SEO metadata to the
marketing site. Loads the profile catalog once at startup.
"""

import logging
import os
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from location_engine.config import Config
from location_engine.engine import PersonalizationEngine
from location_engine.seo import build_seo

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("api")

# ---------------------------------------------------------------------------
# Global engine (loaded once at startup)
# ---------------------------------------------------------------------------
engine: Optional[PersonalizationEngine] = None


def load_config() -> Config:
    """Config defaults overlaid with environment variables (and .env if present)."""
    env_path = Path(__file__).parent / ".env"
    if env_path.exists():
        for line in env_path.read_text().splitlines():
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, val = line.split("=", 1)
                os.environ.setdefault(key.strip(), val.strip())

    config = Config()
    if os.environ.get("IP_LOOKUP_URL"):
        config.ip_lookup_url = os.environ["IP_LOOKUP_URL"]
    if os.environ.get("IP_LOOKUP_TIMEOUT"):
        config.ip_lookup_timeout = float(os.environ["IP_LOOKUP_TIMEOUT"])
    if os.environ.get("DISABLE_IP_LOOKUP", "").lower() in ("1", "true", "yes"):
        config.ip_lookup_enabled = False
    if os.environ.get("TRUSTED_PROXY_HOPS"):
        config.trusted_proxy_hops = int(os.environ["TRUSTED_PROXY_HOPS"])
    if os.environ.get("CATALOG_FILE"):
        config.catalog_file = Path(os.environ["CATALOG_FILE"])
    if os.environ.get("SITE_URL"):
        config.site_url = os.environ["SITE_URL"]
    return config


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the engine on startup."""
    global engine
    logger.info("Loading personalization engine...")
    t0 = time.time()
    engine = PersonalizationEngine(load_config())
    logger.info(f"Engine ready in {time.time() - t0:.2f}s")

    yield

    logger.info(f"Shutdown complete. Resolution stats: {engine.stats}")


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Location Personalization API",
    description="Visitor location and per-city marketing copy for the agency site.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------
class LocationResponse(BaseModel):
    city: str
    state: str
    country: str
    outcome: str
    source: str
    reason: Optional[str] = None
    timezone: str = ""
    lookup_time_ms: int = 0


class ServiceResponse(BaseModel):
    title: str
    description: str
    local_focus: str


class ProfileResponse(BaseModel):
    city: str
    state: str
    areas: List[str]
    services: List[ServiceResponse]
    seo_keywords: List[str]
    business_hours: str
    phone_number: str
    marketing_message: str


class ProfileMatchResponse(BaseModel):
    match_method: str
    profile: ProfileResponse


class SEOResponse(BaseModel):
    meta: Dict[str, str]
    structured_data: dict


class PersonalizeResponse(BaseModel):
    location: LocationResponse
    profile: ProfileResponse
    match_method: str
    seo: SEOResponse
    timestamp: str


class ProfilesResponse(BaseModel):
    default_city: str
    cities: List[str]
    state_aliases: Dict[str, str] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    status: str
    engine_loaded: bool
    uptime_seconds: float


_start_time = time.time()


def _require_engine() -> PersonalizationEngine:
    if not engine:
        raise HTTPException(status_code=503, detail="Engine is still loading. Try again shortly.")
    return engine


def _client_ip(request: Request, trusted_hops: int = 1) -> Optional[str]:
    """Visitor address as seen by the outermost trusted proxy.

    Each trusted proxy appends the address it received the request from, so the
    entry ``trusted_hops`` from the right is the last one a visitor cannot forge;
    anything left of it is client-supplied. Falls back to the socket peer when
    the header is absent, too short, or trusted_hops is 0.
    """
    forwarded = request.headers.get("x-forwarded-for", "")
    hops = [h.strip() for h in forwarded.split(",") if h.strip()]
    if trusted_hops > 0 and len(hops) >= trusted_hops:
        return hops[-trusted_hops]
    return request.client.host if request.client else None


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@app.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(
        status="ok" if engine else "loading",
        engine_loaded=engine is not None,
        uptime_seconds=round(time.time() - _start_time, 1),
    )


# Plain def: the IP lookup blocks, so FastAPI runs these in its threadpool
@app.get("/location", response_model=LocationResponse)
def location(
    request: Request,
    tz: Optional[str] = Query(None, description="Browser IANA timezone, e.g. America/Chicago"),
):
    """Resolve the visitor's city/state/country. Never fails; degrades to timezone, then default."""
    eng = _require_engine()
    # No host lookup: from here the requesting host is this server, not the visitor
    return eng.resolve(
        client_ip=_client_ip(request, eng.config.trusted_proxy_hops), timezone=tz, use_host_lookup=False
    ).to_dict()


@app.get("/personalize", response_model=PersonalizeResponse)
def personalize(
    request: Request,
    tz: Optional[str] = Query(None, description="Browser IANA timezone, e.g. America/Chicago"),
    path: str = Query("/", description="Page path for canonical URL"),
):
    """Resolved location, matching marketing profile and SEO metadata in one payload."""
    eng = _require_engine()
    try:
        content = eng.personalize(
            client_ip=_client_ip(request, eng.config.trusted_proxy_hops),
            timezone=tz,
            page_path=path,
            use_host_lookup=False,
        )
    except Exception as e:
        logger.error(f"Personalization error: {e}")
        raise HTTPException(status_code=500, detail=f"Personalization failed: {str(e)}")
    return content.to_dict()


@app.get("/profile", response_model=ProfileMatchResponse)
async def profile(
    city: str = Query("", description="City name, e.g. Chicago"),
    state: str = Query("", description="State name or abbreviation, e.g. Illinois or IL"),
):
    """Marketing profile for a city/state (city, then state alias, then default)."""
    eng = _require_engine()
    prof, method = eng.profile_for(city, state)
    return {"match_method": method, "profile": prof.to_dict()}


@app.get("/profiles", response_model=ProfilesResponse)
async def profiles():
    eng = _require_engine()
    return ProfilesResponse(
        default_city=eng.catalog.default_city,
        cities=eng.catalog.cities,
        state_aliases=eng.catalog.state_aliases,
    )


@app.get("/seo", response_model=SEOResponse)
async def seo(
    city: str = Query("", description="City name"),
    state: str = Query("", description="State name or abbreviation"),
    path: str = Query("/", description="Page path for canonical URL"),
):
    """Head tags and JSON-LD for the profile matching city/state."""
    eng = _require_engine()
    prof, _ = eng.profile_for(city, state)
    return build_seo(prof, eng.config, path)
