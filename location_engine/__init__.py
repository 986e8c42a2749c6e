"""Location personalization engine — visitor geolocation mapped to per-city marketing copy."""

from .catalog import LocationCatalog
from .engine import PersonalizationEngine
from .geolocator import LocationResolver
from .models import LocationProfile, Resolution, ResolvedLocation

__all__ = [
    "LocationCatalog",
    "LocationProfile",
    "LocationResolver",
    "PersonalizationEngine",
    "Resolution",
    "ResolvedLocation",
]
