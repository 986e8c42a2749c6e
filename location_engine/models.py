"""Data models for the location personalization engine."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

# Resolution outcomes, most to least specific
RESOLVED = "resolved"
HEURISTIC = "heuristic"
DEFAULT = "default"


@dataclass(frozen=True)
class ResolvedLocation:
    city: str
    state: str
    country: str = "United States"

    def to_dict(self) -> dict:
        return {"city": self.city, "state": self.state, "country": self.country}


@dataclass(frozen=True)
class ServiceOffering:
    title: str
    description: str
    local_focus: str


@dataclass(frozen=True)
class LocationProfile:
    city: str
    state: str
    areas: Tuple[str, ...]
    services: Tuple[ServiceOffering, ...]
    seo_keywords: Tuple[str, ...]
    business_hours: str
    phone_number: str
    marketing_message: str

    def to_dict(self) -> dict:
        return {
            "city": self.city,
            "state": self.state,
            "areas": list(self.areas),
            "services": [
                {"title": s.title, "description": s.description, "local_focus": s.local_focus}
                for s in self.services
            ],
            "seo_keywords": list(self.seo_keywords),
            "business_hours": self.business_hours,
            "phone_number": self.phone_number,
            "marketing_message": self.marketing_message,
        }


@dataclass(frozen=True)
class Resolution:
    """Outcome of one resolution attempt.

    ``outcome`` is one of RESOLVED, HEURISTIC or DEFAULT. ``reason`` holds why the
    IP lookup did not produce a location (None if it did, or if it was disabled).
    """

    location: ResolvedLocation
    outcome: str
    source: str
    reason: Optional[str] = None
    timezone: str = ""
    lookup_time_ms: int = 0

    @property
    def degraded(self) -> bool:
        return self.outcome != RESOLVED

    def to_dict(self) -> dict:
        return {
            **self.location.to_dict(),
            "outcome": self.outcome,
            "source": self.source,
            "reason": self.reason,
            "timezone": self.timezone,
            "lookup_time_ms": self.lookup_time_ms,
        }


@dataclass
class PersonalizedContent:
    resolution: Resolution
    profile: LocationProfile
    match_method: str
    seo: Dict = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict:
        """Serialize to dict for JSON output."""
        return {
            "location": self.resolution.to_dict(),
            "profile": self.profile.to_dict(),
            "match_method": self.match_method,
            "seo": self.seo,
            "timestamp": self.timestamp,
        }
