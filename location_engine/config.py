"""Configuration for the location personalization engine."""

from dataclasses import dataclass, field
from pathlib import Path


_PACKAGE = Path(__file__).parent


@dataclass
class Config:
    # IP geolocation (ipapi.co): the first URL geolocates the requesting host,
    # the second a given visitor IP
    ip_lookup_url: str = "https://ipapi.co/json/"
    ip_lookup_ip_url: str = "https://ipapi.co/{ip}/json/"
    ip_lookup_timeout: float = 10.0
    ip_lookup_enabled: bool = True

    # Reverse proxies in front of the API that append to X-Forwarded-For.
    # 0 ignores the header and uses the socket peer.
    trusted_proxy_hops: int = 1

    # Fallback when neither the IP lookup nor the timezone table produce a location
    default_city: str = "Minneapolis"
    default_state: str = "Minnesota"
    default_country: str = "United States"

    # Catalog of per-city marketing profiles
    catalog_file: Path = _PACKAGE / "data" / "location_profiles.json"

    # Site constants used for SEO metadata
    site_name: str = "WebNaster.com"
    site_url: str = "https://webnaster.com"
    site_tagline: str = "Premium Web Design & Development"
    og_image: str = "/og-image.jpg"
    twitter_handle: str = "@webnaster"
    site_keywords: list = field(default_factory=lambda: [
        "web design",
        "web development",
        "UI/UX design",
        "mobile apps",
        "e-commerce",
        "SEO services",
    ])
