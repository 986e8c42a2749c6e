"""Tests for the PersonalizationEngine."""

import threading

import pytest

from fakes import FakeResponse, FakeSession
from location_engine.config import Config
from location_engine.engine import PersonalizationEngine
from location_engine.models import DEFAULT, HEURISTIC, RESOLVED


def test_personalize_resolved(ok_session):
    engine = PersonalizationEngine(session=ok_session)
    content = engine.personalize(client_ip="8.8.8.8", timezone="Europe/London")
    assert content.resolution.outcome == RESOLVED
    assert content.profile.city == "Chicago"
    assert content.match_method == "city"
    assert content.seo["meta"]["title"].startswith("Chicago Web Design")
    assert ok_session.calls[0]["url"] == "https://ipapi.co/8.8.8.8/json/"


def test_personalize_state_alias_from_ip():
    session = FakeSession(FakeResponse({"city": "San Diego", "region": "California"}))
    content = PersonalizationEngine(session=session).personalize()
    assert content.resolution.location.city == "San Diego"
    assert content.profile.city == "Los Angeles"
    assert content.match_method == "state_alias"


def test_personalize_heuristic(failing_session):
    content = PersonalizationEngine(session=failing_session).personalize(timezone="America/New_York")
    assert content.resolution.outcome == HEURISTIC
    assert content.profile.city == "New York"


def test_denver_heuristic_falls_to_default_profile(failing_session):
    content = PersonalizationEngine(session=failing_session).personalize(timezone="America/Denver")
    assert content.resolution.location.city == "Denver"
    assert content.profile.city == "Minneapolis"
    assert content.match_method == "default"


def test_personalize_default(failing_session):
    content = PersonalizationEngine(session=failing_session).personalize(timezone="Europe/London")
    assert content.resolution.outcome == DEFAULT
    assert content.profile.city == "Minneapolis"


def test_each_resolve_is_one_request(failing_session):
    engine = PersonalizationEngine(session=failing_session)
    engine.resolve(timezone="UTC")
    engine.resolve(timezone="UTC")
    assert len(failing_session.calls) == 2


def test_ip_lookup_disabled(ok_session):
    engine = PersonalizationEngine(Config(ip_lookup_enabled=False), session=ok_session)
    res = engine.resolve(timezone="America/Los_Angeles")
    assert ok_session.calls == []
    assert res.outcome == HEURISTIC


def test_to_dict_shape(failing_session):
    d = PersonalizationEngine(session=failing_session).personalize(timezone="America/Chicago").to_dict()
    assert d["location"]["city"] == "Chicago"
    assert d["location"]["outcome"] == "heuristic"
    assert d["location"]["reason"].startswith("request failed")
    assert d["profile"]["phone_number"] == "312-555-0199"
    assert d["match_method"] == "city"
    assert set(d["seo"]) == {"meta", "structured_data"}
    assert d["timestamp"]


def test_stats(ok_session, failing_session):
    engine = PersonalizationEngine(session=ok_session)
    engine.resolve()
    engine.session = failing_session
    engine.resolve(timezone="America/Chicago")
    engine.resolve(timezone="Asia/Tokyo")
    assert engine.stats == {
        "total": 3, RESOLVED: 1, HEURISTIC: 1, DEFAULT: 1, "resolved_rate": "33.3%",
    }


@pytest.mark.parametrize("city,state,expected,method", [
    ("Chicago", "Illinois", "Chicago", "city"),
    ("Unknown City", "California", "Los Angeles", "state_alias"),
    ("Unknown City", "Unknown State", "Minneapolis", "default"),
])
def test_profile_for(city, state, expected, method):
    profile, got = PersonalizationEngine(Config(ip_lookup_enabled=False)).profile_for(city, state)
    assert (profile.city, got) == (expected, method)


def test_resolve_without_host_lookup(ok_session):
    engine = PersonalizationEngine(session=ok_session)
    content = engine.personalize(client_ip="127.0.0.1", timezone="America/Los_Angeles", use_host_lookup=False)
    assert ok_session.calls == []
    assert content.resolution.outcome == HEURISTIC
    assert content.profile.city == "Los Angeles"


def test_no_shared_session_by_default():
    assert PersonalizationEngine(Config(ip_lookup_enabled=False)).session is None


def test_stats_consistent_across_threads():
    engine = PersonalizationEngine(Config(ip_lookup_enabled=False))

    def worker():
        for _ in range(50):
            engine.resolve(timezone="America/Chicago")

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert engine.stats["total"] == 400
    assert engine.stats[HEURISTIC] == 400
