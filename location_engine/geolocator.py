"""Visitor geolocation — IP lookup (ipapi.co), timezone heuristic, fixed default."""

import ipaddress
import logging
import os
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional

import requests

from .config import Config
from .models import DEFAULT, HEURISTIC, RESOLVED, Resolution, ResolvedLocation

logger = logging.getLogger(__name__)

# Checked in order, substring match against the IANA identifier
_TIMEZONE_CITIES = [
    ("Chicago", ResolvedLocation("Chicago", "Illinois")),
    ("New_York", ResolvedLocation("New York", "New York")),
    ("Los_Angeles", ResolvedLocation("Los Angeles", "California")),
    ("Denver", ResolvedLocation("Denver", "Colorado")),
]


class GeolocationUnavailable(Exception):
    """The IP lookup produced no usable location."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class Geolocator(ABC):
    @abstractmethod
    def locate(self) -> ResolvedLocation:
        """Return the visitor's location or raise GeolocationUnavailable."""
        ...


class IpapiGeolocator(Geolocator):
    """ipapi.co JSON endpoint. No API key needed for the free tier."""

    BASE_URL = "https://ipapi.co/json/"
    IP_URL = "https://ipapi.co/{ip}/json/"

    def __init__(
        self,
        client_ip: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 10,
        base_url: Optional[str] = None,
        ip_url: Optional[str] = None,
        host_lookup: bool = True,
    ):
        self.client_ip = client_ip.strip() if is_public_ip(client_ip) else None
        # None: module-level requests.get, one connection per call
        self.session = session
        self.host_lookup = host_lookup
        self.timeout = timeout
        self.base_url = base_url or self.BASE_URL
        self.ip_url = ip_url or self.IP_URL

    @property
    def url(self) -> str:
        if self.client_ip:
            return self.ip_url.format(ip=self.client_ip)
        return self.base_url

    def locate(self) -> ResolvedLocation:
        if not self.client_ip and not self.host_lookup:
            # The requesting host is this server, not the visitor
            raise GeolocationUnavailable("no public client IP")

        http = self.session or requests
        try:
            t0 = time.time()
            resp = http.get(
                self.url, headers={"Accept": "application/json"}, timeout=self.timeout
            )
            elapsed_ms = int((time.time() - t0) * 1000)
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as e:
            raise GeolocationUnavailable(f"request failed: {e}") from e
        except ValueError as e:
            raise GeolocationUnavailable(f"malformed response: {e}") from e

        if not isinstance(data, dict):
            raise GeolocationUnavailable("malformed response: expected a JSON object")
        if data.get("error"):
            # ipapi reports rate limits and reserved ranges with a 200 and an error body
            raise GeolocationUnavailable(f"service error: {data.get('reason', 'unknown')}")

        city = (data.get("city") or "").strip()
        region = (data.get("region") or "").strip()
        if not city or not region:
            raise GeolocationUnavailable("response missing city or region")

        result = ResolvedLocation(
            city=city,
            state=region,
            country=(data.get("country_name") or "").strip() or "United States",
        )
        logger.debug(f"ipapi: {self.client_ip or 'host'} -> {result.city}, {result.state} ({elapsed_ms}ms)")
        return result


def guess_from_timezone(tz_name: str) -> Optional[ResolvedLocation]:
    """Map an IANA timezone identifier to one of the known metro areas."""
    if not tz_name:
        return None
    for needle, location in _TIMEZONE_CITIES:
        if needle in tz_name:
            return location
    return None


def system_timezone() -> str:
    """IANA identifier of the host timezone, or "" if it cannot be determined."""
    tz_env = os.environ.get("TZ", "").lstrip(":").strip()
    if tz_env:
        return tz_env

    tz_file = Path("/etc/timezone")
    if tz_file.exists():
        name = tz_file.read_text().strip()
        if name:
            return name

    localtime = Path("/etc/localtime")
    if localtime.is_symlink():
        target = str(localtime.resolve())
        if "zoneinfo/" in target:
            return target.split("zoneinfo/", 1)[1]
    return ""


def is_public_ip(value: Optional[str]) -> bool:
    """True for a globally routable address; loopback and private ranges are not sent."""
    if not value:
        return False
    try:
        return ipaddress.ip_address(value.strip()).is_global
    except ValueError:
        return False


class LocationResolver:
    """IP lookup → timezone heuristic → default. ``resolve`` never raises."""

    def __init__(
        self,
        ip_geolocator: Optional[Geolocator],
        timezone_provider: Callable[[], str] = system_timezone,
        default: ResolvedLocation = ResolvedLocation("Minneapolis", "Minnesota"),
    ):
        self.ip_geolocator = ip_geolocator
        self.timezone_provider = timezone_provider
        self.default = default
        self.ip_hits = 0
        self.heuristic_hits = 0
        self.default_hits = 0

    def resolve(self) -> Resolution:
        t0 = time.time()
        reason = None

        if self.ip_geolocator is not None:
            try:
                location = self.ip_geolocator.locate()
                self.ip_hits += 1
                return Resolution(
                    location=location,
                    outcome=RESOLVED,
                    source="ipapi",
                    lookup_time_ms=int((time.time() - t0) * 1000),
                )
            except GeolocationUnavailable as e:
                reason = e.reason
            except Exception as e:
                reason = f"unexpected error: {e}"
            logger.info(f"IP geolocation unavailable ({reason}), trying timezone")

        try:
            tz_name = self.timezone_provider() or ""
        except Exception as e:
            logger.warning(f"Timezone provider failed: {e}")
            tz_name = ""

        location = guess_from_timezone(tz_name)
        if location is not None:
            self.heuristic_hits += 1
            logger.debug(f"Timezone heuristic matched: '{tz_name}' -> {location.city}")
            return Resolution(
                location=location,
                outcome=HEURISTIC,
                source="timezone",
                reason=reason,
                timezone=tz_name,
                lookup_time_ms=int((time.time() - t0) * 1000),
            )

        self.default_hits += 1
        logger.debug(f"No timezone match for '{tz_name}', using default {self.default.city}")
        return Resolution(
            location=self.default,
            outcome=DEFAULT,
            source="default",
            reason=reason,
            timezone=tz_name,
            lookup_time_ms=int((time.time() - t0) * 1000),
        )

    @property
    def stats(self) -> dict:
        total = self.ip_hits + self.heuristic_hits + self.default_hits
        return {
            "total": total,
            "ip_hits": self.ip_hits,
            "heuristic_hits": self.heuristic_hits,
            "default_hits": self.default_hits,
            "ip_rate": f"{self.ip_hits / total * 100:.1f}%" if total else "N/A",
        }


def create_resolver(
    config: Optional[Config] = None,
    client_ip: Optional[str] = None,
    timezone: Optional[str] = None,
    session: Optional[requests.Session] = None,
    use_host_lookup: bool = True,
) -> LocationResolver:
    """Factory for a resolver wired from config.

    Args:
        client_ip: visitor address to geolocate; None geolocates the requesting host
        timezone: IANA identifier reported by the client; None reads the host timezone
        session: requests session used for the IP lookup (injected in tests)
        use_host_lookup: when client_ip is missing or not public, geolocate the
            requesting host. Servers pass False so that lookup falls through to
            the timezone heuristic instead of reporting the server's location.
    """
    config = config or Config()
    geolocator = None
    if config.ip_lookup_enabled:
        geolocator = IpapiGeolocator(
            client_ip=client_ip,
            session=session,
            timeout=config.ip_lookup_timeout,
            base_url=config.ip_lookup_url,
            ip_url=config.ip_lookup_ip_url,
            host_lookup=use_host_lookup,
        )
    provider = (lambda: timezone) if timezone is not None else system_timezone
    return LocationResolver(
        geolocator,
        timezone_provider=provider,
        default=ResolvedLocation(config.default_city, config.default_state, config.default_country),
    )
