from typing import Callable

import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_intake_app, create_transit_app

ORIGIN = "https://www.example.com"
OTHER_ORIGIN = "https://evil.example.net"


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """
    Return a helper to build Settings for a test app. Rate limiting is off unless
    a test turns it back on.
    Usage: settings = make_settings(service="join", transit_url="https://t.example.com")
    """
    def _make(**overrides) -> Settings:
        values = {
            "service": "contact",
            "allowed_origins": (ORIGIN,),
            "asset_id": "ops-contact-intake",
            "rate_limit_enabled": False,
        }
        values.update(overrides)
        return Settings(**values)
    return _make


@pytest.fixture
def contact_client(make_settings) -> TestClient:
    return TestClient(create_intake_app("contact", make_settings()))


@pytest.fixture
def join_client(make_settings) -> TestClient:
    settings = make_settings(service="join", asset_id="ops-join-intake")
    return TestClient(create_intake_app("join", settings))


@pytest.fixture
def transit_client(make_settings) -> TestClient:
    settings = make_settings(service="transit", asset_id="ops-transit-broker")
    return TestClient(create_transit_app(settings))


@pytest.fixture
def join_payload() -> dict:
    return {
        "Name": "Jo",
        "Email": "a@b.co",
        "What are you interested in?": "IT Support",
    }


@pytest.fixture
def contact_payload() -> dict:
    return {
        "Name": "Ada Lovelace",
        "Email": "ada@example.org",
        "Contact Number": "+1 (555) 010-2000",
        "Preferred Date": "2026-11-02",
        "Preferred Time": "14:30",
        "What are you interested in?": "Contact Center",
        "Comments": "Please call after lunch.",
    }
