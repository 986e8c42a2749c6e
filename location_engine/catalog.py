"""Per-city marketing profiles.

Lookup order:
    exact city key → state alias (full name or abbreviation) → default city

The catalog is validated when it is loaded, so lookups never fail.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .models import LocationProfile, ServiceOffering

logger = logging.getLogger(__name__)

_PROFILE_STRING_FIELDS = ("city", "state", "business_hours", "phone_number", "marketing_message")


class CatalogError(ValueError):
    """Catalog data is missing entries or fields."""


class LocationCatalog:
    """Static city → LocationProfile table with state-alias fallback."""

    def __init__(self, data_file: str = None, data: dict = None):
        self._profiles: Dict[str, LocationProfile] = {}
        self._state_aliases: Dict[str, str] = {}
        self._default_city = ""
        if data is None:
            if data_file is None:
                data_file = str(Path(__file__).parent / "data" / "location_profiles.json")
            data = self._load(data_file)
        self._populate(data)
        logger.info(f"Location catalog: {len(self._profiles)} profiles, {len(self._state_aliases)} state aliases")

    @staticmethod
    def _load(data_file: str) -> dict:
        try:
            with open(Path(data_file)) as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            raise CatalogError(f"Failed to load location catalog {data_file}: {e}") from e

    def _populate(self, data: dict):
        if not isinstance(data, dict):
            raise CatalogError("Location catalog must be a JSON object")
        profiles = data.get("profiles") or {}
        if not isinstance(profiles, dict):
            raise CatalogError("'profiles' must map city names to profiles")
        for key, entry in profiles.items():
            self._profiles[key] = _parse_profile(key, entry)

        self._default_city = data.get("default_city", "")
        if self._default_city not in self._profiles:
            raise CatalogError(f"Default city '{self._default_city}' has no profile")

        aliases = data.get("state_aliases") or {}
        for state, city in aliases.items():
            if city not in self._profiles:
                raise CatalogError(f"State alias '{state}' points to unknown city '{city}'")
        self._state_aliases = dict(aliases)

    def match(self, city: Optional[str], state: Optional[str]) -> Tuple[LocationProfile, str]:
        """
        Find the profile for a city/state pair.

        Returns:
            (profile, match_method) where match_method is "city", "state_alias" or "default"
        """
        if city and city in self._profiles:
            return self._profiles[city], "city"

        alias = self._state_aliases.get(state or "")
        if alias:
            logger.debug(f"Catalog: state match '{state}' -> {alias}")
            return self._profiles[alias], "state_alias"

        return self._profiles[self._default_city], "default"

    def lookup(self, city: Optional[str], state: Optional[str]) -> LocationProfile:
        profile, _ = self.match(city, state)
        return profile

    def get(self, city: str) -> Optional[LocationProfile]:
        return self._profiles.get(city)

    @property
    def default(self) -> LocationProfile:
        return self._profiles[self._default_city]

    @property
    def default_city(self) -> str:
        return self._default_city

    @property
    def cities(self) -> List[str]:
        return list(self._profiles)

    @property
    def state_aliases(self) -> Dict[str, str]:
        return dict(self._state_aliases)

    @property
    def size(self) -> int:
        return len(self._profiles)

    def __contains__(self, city: str) -> bool:
        return city in self._profiles


def _string_list(key: str, entry: dict, name: str) -> List[str]:
    value = entry.get(name) or []
    if not isinstance(value, list) or not all(isinstance(v, str) and v.strip() for v in value):
        raise CatalogError(f"Profile '{key}': '{name}' must be a list of non-empty strings")
    return value


def _parse_profile(key: str, entry: dict) -> LocationProfile:
    if not isinstance(entry, dict):
        raise CatalogError(f"Profile '{key}' must be an object, got {type(entry).__name__}")

    for name in _PROFILE_STRING_FIELDS:
        value = entry.get(name)
        if not isinstance(value, str) or not value.strip():
            raise CatalogError(f"Profile '{key}' is missing '{name}'")
    if entry["city"] != key:
        raise CatalogError(f"Profile '{key}' has city '{entry['city']}'; the key must match")

    areas = tuple(_string_list(key, entry, "areas"))
    keywords = tuple(dict.fromkeys(_string_list(key, entry, "seo_keywords")))
    raw_services = entry.get("services") or []
    if not isinstance(raw_services, list):
        raise CatalogError(f"Profile '{key}': 'services' must be a list")
    services = []
    for svc in raw_services:
        try:
            services.append(ServiceOffering(
                title=svc["title"],
                description=svc["description"],
                local_focus=svc["local_focus"],
            ))
        except (KeyError, TypeError) as e:
            raise CatalogError(f"Profile '{key}' has an incomplete service: {e}") from e

    if not areas or not services or not keywords:
        raise CatalogError(f"Profile '{key}' needs at least one area, service and SEO keyword")

    return LocationProfile(
        city=entry["city"],
        state=entry["state"],
        areas=areas,
        services=tuple(services),
        seo_keywords=keywords,
        business_hours=entry["business_hours"],
        phone_number=entry["phone_number"],
        marketing_message=entry["marketing_message"],
    )
