"""
Unit tests for SessionManager and the Session model.
"""

import json
import os
import stat
import time
from datetime import datetime, timezone

import pytest
import requests
from requests.cookies import RequestsCookieJar

from vlossom_client.auth.session_manager import SessionManager
from vlossom_client.domain.session import Session

API_URL = "http://api.test"


def cookie(name, value, expires=None):
    return {"name": name, "value": value, "domain": "api.test", "path": "/", "expires": expires, "secure": False}


@pytest.fixture
def manager(tmp_path):
    return SessionManager(str(tmp_path / "state" / "session.json"))


class TestSessionModel:
    def test_from_cookie_jar(self):
        jar = RequestsCookieJar()
        jar.set("vlossom_csrf", "abc%3D", domain="api.test", path="/")
        session = Session.from_cookie_jar(API_URL, jar, email="owner@example.com")
        assert session.cookies[0]["name"] == "vlossom_csrf"
        assert session.email == "owner@example.com"
        assert session.saved_at is not None

    def test_apply_to_jar(self):
        jar = RequestsCookieJar()
        Session(API_URL, [cookie("access_token", "t1")]).apply_to(jar)
        assert jar.get("access_token") == "t1"

    def test_expiry(self):
        now = datetime(2025, 3, 10, tzinfo=timezone.utc)
        past = now.timestamp() - 60
        future = now.timestamp() + 60
        assert Session(API_URL, []).is_expired(now)
        assert not Session(API_URL, [cookie("a", "1")]).is_expired(now)
        assert Session(API_URL, [cookie("a", "1", past)]).is_expired(now)
        assert not Session(API_URL, [cookie("a", "1", past), cookie("b", "2", future)]).is_expired(now)

    def test_cookies_must_be_list(self):
        with pytest.raises(ValueError):
            Session.from_dict({"api_url": API_URL, "cookies": "nope"})


class TestSessionManager:
    def test_save_and_load(self, manager):
        manager.save_session(Session(API_URL, [cookie("access_token", "t1")], email="a@example.com"))
        loaded = manager.load_session(API_URL)
        assert loaded.email == "a@example.com"
        assert loaded.cookies[0]["value"] == "t1"

    @pytest.mark.skipif(os.name != "posix", reason="POSIX file modes")
    def test_file_is_owner_only(self, manager):
        manager.save_session(Session(API_URL, [cookie("a", "1")]))
        assert stat.S_IMODE(manager.path.stat().st_mode) == 0o600

    def test_missing_file(self, manager):
        assert manager.load_session(API_URL) is None

    def test_other_api_url_ignored_but_kept(self, manager):
        manager.save_session(Session("https://api.vlossom.example", [cookie("a", "1")]))
        assert manager.load_session(API_URL) is None
        assert manager.path.exists()

    def test_expired_session_cleared(self, manager):
        manager.save_session(Session(API_URL, [cookie("a", "1", time.time() - 10)]))
        assert manager.load_session(API_URL) is None
        assert not manager.path.exists()

    def test_corrupt_file_cleared(self, manager):
        manager.path.parent.mkdir(parents=True)
        manager.path.write_text("{not json")
        assert manager.load_session(API_URL) is None
        assert not manager.path.exists()

    def test_clear(self, manager):
        assert manager.clear_session() is False
        manager.save_session(Session(API_URL, [cookie("a", "1")]))
        assert manager.clear_session() is True

    def test_apply_to_requests_session(self, manager):
        manager.save_session(Session(API_URL, [cookie("vlossom_csrf", "tok")], email="a@example.com"))
        http = requests.Session()
        assert manager.apply_to(http, API_URL).email == "a@example.com"
        assert http.cookies.get("vlossom_csrf") == "tok"

    def test_apply_to_without_stored_session(self, manager):
        http = requests.Session()
        assert manager.apply_to(http, API_URL) is None
        assert len(http.cookies) == 0

    def test_written_json_shape(self, manager):
        manager.save_session(Session(API_URL, [cookie("a", "1")], email="a@example.com"))
        data = json.loads(manager.path.read_text())
        assert set(data) == {"api_url", "cookies", "email", "saved_at"}
