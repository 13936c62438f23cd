"""Shared fixtures: settings pointed at a fake API and a mocked requests.Session."""

import json
from typing import Any, Optional
from unittest.mock import Mock

import pytest
import requests
from requests.cookies import RequestsCookieJar

from vlossom_client.api.http import ApiClient
from vlossom_client.cache import QueryCache
from vlossom_client.config.settings import Settings

API_URL = "http://api.test"


def build_response(
    status: int = 200,
    payload: Any = None,
    url: str = f"{API_URL}/api/v1/test",
    reason: str = "OK",
    body: Optional[bytes] = None,
) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response.url = url
    response.reason = reason
    if body is not None:
        response._content = body
    elif payload is not None:
        response._content = json.dumps(payload).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    else:
        response._content = b""
    return response


@pytest.fixture
def make_response():
    return build_response


@pytest.fixture
def settings(tmp_path, monkeypatch):
    for key in ("VLOSSOM_API_URL", "VLOSSOM_REQUEST_TIMEOUT", "VLOSSOM_CONFIG_FILE"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("VLOSSOM_SESSION_FILE", str(tmp_path / "session.json"))
    return Settings(api_url=API_URL, config_path=str(tmp_path / "missing.yaml"))


@pytest.fixture
def http_session():
    session = Mock(spec=requests.Session)
    session.cookies = RequestsCookieJar()
    return session


@pytest.fixture
def api(settings, http_session):
    return ApiClient(settings, session=http_session)


@pytest.fixture
def cache():
    return QueryCache()


@pytest.fixture
def no_sleep(monkeypatch):
    """Skip query retry backoff."""
    sleeps = []
    monkeypatch.setattr("vlossom_client.cache.time.sleep", sleeps.append)
    return sleeps


def booking_data(**overrides: Any) -> dict:
    data = {
        "id": "b-1",
        "status": "CONFIRMED",
        "stylist": {"id": "st-1", "displayName": "Naledi"},
        "service": {"id": "sv-1", "name": "Box braids", "priceAmountCents": "35000", "estimatedDurationMin": 180},
        "scheduledStartTime": "2025-03-10T09:00:00.000Z",
        "locationType": "STYLIST_BASE",
        "locationAddress": "12 Long St, Cape Town",
        "totalAmountCents": "35000",
        "platformFeeCents": "3500",
        "createdAt": "2025-03-01T08:00:00.000Z",
    }
    data.update(overrides)
    return data


@pytest.fixture
def booking_payload():
    return booking_data
