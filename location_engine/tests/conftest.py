"""Shared fixtures."""

import pytest
import requests

from fakes import IPAPI_CHICAGO, FakeResponse, FakeSession
from location_engine.config import Config


@pytest.fixture
def ok_session():
    return FakeSession(FakeResponse(dict(IPAPI_CHICAGO)))


@pytest.fixture
def failing_session():
    return FakeSession(exc=requests.ConnectionError("connection refused"))


@pytest.fixture
def config():
    return Config()
