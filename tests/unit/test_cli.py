"""
Unit tests for the command line front end (vlossom_client/cli.py).
"""

from datetime import datetime, timedelta, timezone

import pytest
import requests

from vlossom_client import cli
from vlossom_client.client import VlossomClient
from vlossom_client.utils import logger as logger_module
from vlossom_client.utils.timezone import to_iso

USER = {"id": "u-1", "email": "owner@example.com", "roles": ["CUSTOMER"], "displayName": "Ama"}


@pytest.fixture
def run(settings, http_session, monkeypatch, tmp_path):
    """Run main() against the mocked session; returns the exit code."""
    monkeypatch.setattr(cli, "VlossomClient", lambda s: VlossomClient(s, session=http_session))
    before = list(logger_module._shared_filters)

    def invoke(*argv):
        return cli.main(["--api-url", "http://api.test", "--config", str(tmp_path / "none.yaml"), *argv])

    yield invoke
    for log_filter in [f for f in logger_module._shared_filters if f not in before]:
        logger_module.remove_log_filter(log_filter)


def in_hours(hours):
    return to_iso(datetime.now(timezone.utc) + timedelta(hours=hours))


def test_requires_command():
    with pytest.raises(SystemExit):
        cli.parse_args([])


def test_rejects_unknown_status():
    with pytest.raises(SystemExit):
        cli.parse_args(["bookings", "list", "--status", "LOST"])


def test_login_saves_session(run, http_session, make_response, monkeypatch, capsys):
    monkeypatch.setattr(cli.getpass, "getpass", lambda prompt: "hunter2")

    def login(method, url, **kwargs):
        http_session.cookies.set("vlossom_csrf", "tok")
        return make_response(payload={"user": USER})

    http_session.request.side_effect = login

    assert run("login", "--email", "owner@example.com") == 0
    assert "Logged in as Ama (CUSTOMER)" in capsys.readouterr().out
    assert any("hunter2" in f.redacted_values for f in logger_module._shared_filters)

    restored = VlossomClient(cli.Settings(api_url="http://api.test"), session=http_session)
    http_session.cookies.clear()
    assert restored.restore_session() is True
    assert restored.email == "owner@example.com"


def test_login_from_environment(run, http_session, make_response, monkeypatch):
    monkeypatch.setenv("VLOSSOM_EMAIL", "env@example.com")
    monkeypatch.setenv("VLOSSOM_PASSWORD", "from-env")
    http_session.request.return_value = make_response(payload={"user": USER})

    assert run("login") == 0
    assert http_session.request.call_args.kwargs["json"] == {"email": "env@example.com", "password": "from-env"}


def test_bookings_list(run, http_session, make_response, booking_payload, capsys):
    http_session.request.return_value = make_response(
        payload={"bookings": [booking_payload()], "total": 7, "page": 1, "limit": 20}
    )
    assert run("bookings", "list", "--status", "CONFIRMED") == 0
    out = capsys.readouterr().out
    assert "Box braids with Naledi" in out
    assert "1 of 7 bookings (page 1)" in out


def test_bookings_show(run, http_session, make_response, booking_payload, capsys):
    http_session.request.return_value = make_response(payload=booking_payload())
    assert run("bookings", "show", "b-1") == 0
    out = capsys.readouterr().out
    assert "Duration:" in out
    assert "IN_PROGRESS, CANCELLED" in out


def test_cancel_quote(run, http_session, make_response, booking_payload, capsys):
    http_session.request.return_value = make_response(payload=booking_payload(scheduledStartTime=in_hours(72)))
    assert run("bookings", "cancel-quote", "b-1") == 0
    out = capsys.readouterr().out
    assert "Refund:      100%" in out


def test_cancel_quote_for_finished_booking(run, http_session, make_response, booking_payload, capsys):
    http_session.request.return_value = make_response(payload=booking_payload(status="SETTLED"))
    assert run("bookings", "cancel-quote", "b-1") == 0
    assert "cannot be cancelled (SETTLED)" in capsys.readouterr().out


def test_cancel(run, http_session, make_response, booking_payload, capsys):
    start = in_hours(6)
    http_session.request.side_effect = [
        make_response(payload=booking_payload(scheduledStartTime=start)),
        make_response(payload=booking_payload(status="CANCELLED", scheduledStartTime=start)),
    ]
    assert run("bookings", "cancel", "b-1", "--reason", "Sick") == 0
    assert http_session.request.call_args.kwargs["json"] == {"reason": "Sick"}
    assert "Cancelled b-1" in capsys.readouterr().out


def test_api_error_exit_code(run, http_session, make_response, no_sleep, capsys):
    http_session.request.return_value = make_response(status=404, payload={"error": "Booking not found"})
    assert run("bookings", "show", "missing") == 1
    assert "[ERROR] Booking not found" in capsys.readouterr().err
    # reads are retried twice before giving up
    assert http_session.request.call_count == 3


def test_properties_list(run, http_session, make_response, capsys):
    http_session.request.return_value = make_response(
        payload={"properties": [{"id": "p-1", "name": "Crown Studio", "category": "LUXURY", "_count": {"chairs": 4}}]}
    )
    assert run("properties", "list") == 0
    out = capsys.readouterr().out
    assert "Luxury Venue" in out
    assert "chairs: 4" in out


def test_rentals_decline(run, http_session, make_response, capsys):
    http_session.request.return_value = make_response(payload={"success": True})
    assert run("rentals", "decline", "r-1", "--reason", "Closed for renovation") == 0
    call = http_session.request.call_args
    assert call.args[1].endswith("/properties/rentals/requests/r-1/decline")
    assert "Declined r-1" in capsys.readouterr().out


def test_live_follows_until_session_end(run, http_session, capsys):
    response = http_session.request.return_value
    response.status_code = 200
    response.iter_lines.return_value = iter(["event: arrived", "data: {}", "", "event: session_ended", "data: {}", ""])

    assert run("live", "b-1") == 0
    captured = capsys.readouterr()
    assert "arrived" in captured.out
    assert "Session ended" in captured.out
    assert "Connected" in captured.err


def test_live_unreachable(run, http_session, monkeypatch, capsys):
    http_session.request.side_effect = requests.ConnectionError("refused")
    monkeypatch.setattr("vlossom_client.live.updates.LiveUpdatesClient._wait", lambda self, seconds: True)

    assert run("live", "b-1") == 1
    assert "[ERROR] Connection lost" in capsys.readouterr().err
