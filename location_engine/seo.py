"""SEO metadata for location-personalized pages.

Builds the head tags (title, description, keywords, canonical, Open Graph,
Twitter card) and a schema.org JSON-LD block for a LocationProfile.
"""

from typing import Dict, List, Optional

from .config import Config
from .models import LocationProfile


def page_title(profile: LocationProfile, config: Config, title: Optional[str] = None) -> str:
    title = title or f"{profile.city} Web Design & Local SEO"
    return f"{title} | {config.site_name} - {config.site_tagline}"


def page_keywords(profile: LocationProfile, config: Config) -> str:
    keywords: List[str] = []
    for kw in list(config.site_keywords) + list(profile.seo_keywords):
        if kw not in keywords:
            keywords.append(kw)
    return ", ".join(keywords)


def canonical_url(config: Config, page_path: str = "/") -> str:
    base = config.site_url.rstrip("/")
    if not page_path or page_path == "/":
        return base
    return f"{base}/{page_path.lstrip('/')}"


def build_page_metadata(
    profile: LocationProfile,
    config: Optional[Config] = None,
    page_path: str = "/",
    title: Optional[str] = None,
) -> Dict[str, str]:
    """Head tags for a page personalized to ``profile``, keyed by tag name/property."""
    config = config or Config()
    full_title = page_title(profile, config, title)
    description = profile.marketing_message
    url = canonical_url(config, page_path)
    image = f"{config.site_url.rstrip('/')}{config.og_image}"

    return {
        "title": full_title,
        "description": description,
        "keywords": page_keywords(profile, config),
        "author": config.site_name,
        "robots": "index, follow",
        "canonical_url": url,
        "og:title": full_title,
        "og:description": description,
        "og:type": "website",
        "og:url": url,
        "og:image": image,
        "og:site_name": config.site_name,
        "og:locale": "en_US",
        "twitter:card": "summary_large_image",
        "twitter:title": full_title,
        "twitter:description": description,
        "twitter:image": image,
        "twitter:site": config.twitter_handle,
    }


def local_business_schema(profile: LocationProfile, config: Optional[Config] = None) -> dict:
    """schema.org JSON-LD describing the agency's presence in ``profile``'s metro."""
    config = config or Config()
    base = config.site_url.rstrip("/")
    return {
        "@context": "https://schema.org",
        "@type": "WebDesignCompany",
        "name": config.site_name,
        "url": base,
        "logo": f"{base}/logo.png",
        "image": f"{base}{config.og_image}",
        "description": profile.marketing_message,
        "telephone": profile.phone_number,
        "openingHours": profile.business_hours,
        "address": {
            "@type": "PostalAddress",
            "addressLocality": profile.city,
            "addressRegion": profile.state,
            "addressCountry": "US",
        },
        "areaServed": [{"@type": "City", "name": area} for area in profile.areas],
        "makesOffer": [
            {
                "@type": "Offer",
                "itemOffered": {
                    "@type": "Service",
                    "name": svc.title,
                    "description": svc.description,
                },
            }
            for svc in profile.services
        ],
    }


def build_seo(profile: LocationProfile, config: Optional[Config] = None, page_path: str = "/") -> dict:
    return {
        "meta": build_page_metadata(profile, config, page_path),
        "structured_data": local_business_schema(profile, config),
    }
