#!/usr/bin/env python3
"""
CLI for the location personalization engine.

Usage:
    python run_engine.py                              # geolocate this host, print personalized copy
    python run_engine.py --ip 8.8.8.8 --timezone America/Chicago
    python run_engine.py --no-ip-lookup --timezone America/New_York
    python run_engine.py --city "Unknown City" --state CA
    python run_engine.py --list
"""

import argparse
import json
import logging
import sys

from location_engine.config import Config
from location_engine.engine import PersonalizationEngine


def setup_logging(verbose: bool = False):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def profile_lookup(engine: PersonalizationEngine, city: str, state: str):
    """Print the catalog profile for a city/state pair."""
    profile, method = engine.profile_for(city, state)
    print(json.dumps({"match_method": method, "profile": profile.to_dict()}, indent=2))


def list_profiles(engine: PersonalizationEngine):
    catalog = engine.catalog
    for city in catalog.cities:
        marker = " (default)" if city == catalog.default_city else ""
        profile = catalog.get(city)
        print(f"{city}, {profile.state}{marker}")
    print()
    for state, city in catalog.state_aliases.items():
        print(f"  {state:<12} -> {city}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Location Personalization Engine")
    parser.add_argument("--ip", help="Visitor IP to geolocate (default: this host)")
    parser.add_argument("--timezone", help="IANA timezone for the fallback heuristic (default: host timezone)")
    parser.add_argument("--no-ip-lookup", action="store_true", help="Skip the IP lookup, use timezone/default only")
    parser.add_argument("--timeout", type=float, default=10.0, help="IP lookup timeout (seconds)")
    parser.add_argument("--city", help="Catalog lookup only: city name")
    parser.add_argument("--state", help="Catalog lookup only: state name or abbreviation")
    parser.add_argument("--catalog", help="Alternative catalog JSON file")
    parser.add_argument("--list", action="store_true", help="List catalog profiles and state aliases")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    config = Config(
        ip_lookup_enabled=not args.no_ip_lookup,
        ip_lookup_timeout=args.timeout,
    )
    if args.catalog:
        config.catalog_file = args.catalog

    engine = PersonalizationEngine(config)

    if args.list:
        list_profiles(engine)
    elif args.city is not None or args.state is not None:
        profile_lookup(engine, args.city or "", args.state or "")
    else:
        content = engine.personalize(client_ip=args.ip, timezone=args.timezone)
        print(json.dumps(content.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
