"""PersonalizationEngine — orchestrates visitor geolocation, catalog lookup and SEO metadata."""

import logging
import threading
import time
from typing import Optional, Tuple

import requests

from .catalog import LocationCatalog
from .config import Config
from .geolocator import create_resolver
from .models import DEFAULT, HEURISTIC, RESOLVED, LocationProfile, PersonalizedContent, Resolution
from .seo import build_seo

logger = logging.getLogger(__name__)


class PersonalizationEngine:
    """
    Location personalization engine.

    Resolves where a visitor is (IP lookup, then timezone, then default),
    maps the result to a marketing profile and attaches SEO metadata.
    Each resolution is a fresh one-shot attempt; nothing is cached.
    Safe to share across request threads: without an injected session every
    IP lookup uses its own connection, and the outcome counters are locked.
    """

    def __init__(self, config: Optional[Config] = None, session: Optional[requests.Session] = None):
        self.config = config or Config()
        self.session = session

        t0 = time.time()
        self.catalog = LocationCatalog(str(self.config.catalog_file))
        self._outcomes = {RESOLVED: 0, HEURISTIC: 0, DEFAULT: 0}
        self._lock = threading.Lock()

        logger.info(
            f"PersonalizationEngine ready in {time.time() - t0:.2f}s: "
            f"profiles={self.catalog.size}, ip_lookup={'on' if self.config.ip_lookup_enabled else 'off'}"
        )

    def resolve(self, client_ip: Optional[str] = None, timezone: Optional[str] = None,
                use_host_lookup: bool = True) -> Resolution:
        """Resolve a visitor location. Always returns; failures degrade to heuristic or default.

        Pass use_host_lookup=False when running as a server: a visitor without a
        public client_ip then falls through to the timezone heuristic.
        """
        resolver = create_resolver(
            self.config, client_ip=client_ip, timezone=timezone, session=self.session,
            use_host_lookup=use_host_lookup,
        )
        resolution = resolver.resolve()
        with self._lock:
            self._outcomes[resolution.outcome] += 1
        if resolution.degraded:
            logger.info(
                f"Location degraded to {resolution.outcome}: "
                f"{resolution.location.city}, {resolution.location.state}"
            )
        return resolution

    def profile_for(self, city: Optional[str], state: Optional[str]) -> Tuple[LocationProfile, str]:
        return self.catalog.match(city, state)

    def personalize(self, client_ip: Optional[str] = None, timezone: Optional[str] = None,
                    page_path: str = "/", use_host_lookup: bool = True) -> PersonalizedContent:
        """
        Build personalized copy for a visitor.

        1. Resolve location
        2. Match catalog profile (city, state alias, default)
        3. Attach SEO metadata for the profile
        """
        resolution = self.resolve(client_ip=client_ip, timezone=timezone, use_host_lookup=use_host_lookup)
        profile, method = self.profile_for(resolution.location.city, resolution.location.state)
        logger.debug(
            f"Personalized for {resolution.location.city}, {resolution.location.state} "
            f"-> {profile.city} ({method})"
        )
        return PersonalizedContent(
            resolution=resolution,
            profile=profile,
            match_method=method,
            seo=build_seo(profile, self.config, page_path),
        )

    @property
    def stats(self) -> dict:
        with self._lock:
            outcomes = dict(self._outcomes)
        total = sum(outcomes.values())
        return {
            "total": total,
            **outcomes,
            "resolved_rate": f"{outcomes[RESOLVED] / total * 100:.1f}%" if total else "N/A",
        }
