"""
Live session tracker for a booking.

Follows GET /bookings/:id/live (server-sent events) and keeps a small state
record: connection flags, reconnect attempts, the last event and the latest
session progress. A dropped stream is reopened with exponential backoff,
`min(1000 * 2**attempts, max_delay)` ms, up to `max_reconnect_attempts`
consecutive failures. A successful open resets the attempt counter.
"""

import json
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional

import requests

from ..api.exceptions import ApiError
from ..api.http import ApiClient, TOKEN_EXPIRED, extract_error
from ..config.settings import LIVE_BASE_DELAY_MS
from ..domain.progress import SessionProgress
from ..utils.logger import get_logger
from ..utils.timezone import now_utc
from .sse import ServerSentEvent, parse_sse

logger = get_logger(__name__)

# The server sends heartbeats well inside this window
READ_TIMEOUT_SECONDS = 60.0


class LiveEventType(str, Enum):
    CONNECTED = "connected"
    PROGRESS = "progress"
    ARRIVED = "arrived"
    SESSION_ENDED = "session_ended"
    STATUS_CHANGED = "status_changed"
    ERROR = "error"


HANDLED_EVENTS = frozenset(e.value for e in LiveEventType)


class LiveUpdatesError(ApiError):
    """The live stream could not be opened (non-200 answer)."""

    pass


@dataclass(frozen=True)
class LiveUpdateEvent:
    type: LiveEventType
    data: Dict[str, Any]
    timestamp: datetime


@dataclass(frozen=True)
class LiveUpdatesState:
    is_connected: bool = False
    is_reconnecting: bool = False
    reconnect_attempts: int = 0
    error: Optional[str] = None
    last_event: Optional[LiveUpdateEvent] = None
    session_progress: Optional[SessionProgress] = None


def reconnect_delay_ms(attempts: int, max_delay_ms: int) -> int:
    return min(LIVE_BASE_DELAY_MS * 2**attempts, max_delay_ms)


class LiveUpdatesClient:
    """
    Server-sent events consumer for one booking.

    `connect()` follows the stream in the calling thread until the session
    ends, reconnects are exhausted, or `disconnect()` is called. `start()`
    does the same in a daemon thread.

    Args:
        api: Authenticated transport (its session carries the auth cookies)
        booking_id: Booking to follow
        on_update: Called with every parsed LiveUpdateEvent
        on_progress: Called with SessionProgress on `progress`
        on_arrived: Called when the stylist arrives
        on_session_ended: Called when the session ends
        on_connection_change: Called with True/False on open/drop
        max_reconnect_attempts: Defaults to the configured value (5)
        max_delay_ms: Backoff cap, defaults to the configured value (30000)
    """

    def __init__(
        self,
        api: ApiClient,
        booking_id: str,
        on_update: Optional[Callable[[LiveUpdateEvent], None]] = None,
        on_progress: Optional[Callable[[SessionProgress], None]] = None,
        on_arrived: Optional[Callable[[], None]] = None,
        on_session_ended: Optional[Callable[[], None]] = None,
        on_connection_change: Optional[Callable[[bool], None]] = None,
        max_reconnect_attempts: Optional[int] = None,
        max_delay_ms: Optional[int] = None,
    ):
        if not booking_id:
            raise ValueError("booking_id is required")
        self.api = api
        self.booking_id = booking_id
        self.on_update = on_update
        self.on_progress = on_progress
        self.on_arrived = on_arrived
        self.on_session_ended = on_session_ended
        self.on_connection_change = on_connection_change
        settings = api.settings
        self.max_reconnect_attempts = (
            settings.live_max_reconnect_attempts if max_reconnect_attempts is None else max_reconnect_attempts
        )
        self.max_delay_ms = settings.live_max_delay_ms if max_delay_ms is None else max_delay_ms

        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._state = LiveUpdatesState()
        self._running = False
        self._response: Optional[requests.Response] = None
        self._thread: Optional[threading.Thread] = None
        self._last_event_id: Optional[str] = None

    # ------------------------------------------------------------------ #
    # State
    # ------------------------------------------------------------------ #
    @property
    def state(self) -> LiveUpdatesState:
        with self._lock:
            return self._state

    def _update(self, **changes: Any) -> LiveUpdatesState:
        with self._lock:
            self._state = replace(self._state, **changes)
            return self._state

    def _notify_connection(self, connected: bool) -> None:
        if self.on_connection_change:
            self.on_connection_change(connected)

    @property
    def url(self) -> str:
        return self.api.build_url(f"/bookings/{self.booking_id}/live")

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #
    def start(self) -> threading.Thread:
        """
        Follow the stream in a daemon thread; returns the running thread.

        Raises:
            RuntimeError: connect() is already following in the foreground
        """
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return self._thread
            if not self._claim():
                raise RuntimeError("Live updates are already being followed")
            self._thread = threading.Thread(
                target=self._run, name=f"live-updates-{self.booking_id}", daemon=True
            )
            thread = self._thread
        thread.start()
        return thread

    def connect(self) -> bool:
        """
        Follow the stream, reconnecting on drops.

        Returns:
            False when a connection loop is already running, else True once
            the loop has finished
        """
        with self._lock:
            if not self._claim():
                return False
        return self._run()

    def _claim(self) -> bool:
        # Caller holds self._lock. A disconnect() after this point sticks.
        if self._running:
            return False
        self._running = True
        self._stop.clear()
        return True

    def _run(self) -> bool:
        try:
            while not self._stop.is_set():
                if self._follow_once():
                    break
                if self._stop.is_set():
                    break

                state = self._update(is_connected=False, error="Connection lost")
                self._notify_connection(False)

                if state.reconnect_attempts >= self.max_reconnect_attempts:
                    self._update(is_reconnecting=False)
                    logger.warning(
                        "Giving up on live updates",
                        operation="live_updates",
                        context={"booking_id": self.booking_id, "attempts": state.reconnect_attempts},
                    )
                    break

                delay = reconnect_delay_ms(state.reconnect_attempts, self.max_delay_ms)
                self._update(is_reconnecting=True)
                logger.info(
                    "Live stream dropped; reconnecting",
                    operation="live_updates",
                    context={"booking_id": self.booking_id, "attempt": state.reconnect_attempts + 1, "delay_ms": delay},
                )
                if not self._wait(delay / 1000):
                    break
                self._update(reconnect_attempts=state.reconnect_attempts + 1)
        finally:
            self._close_response()
            with self._lock:
                self._running = False
        return True

    def disconnect(self) -> None:
        """Stop following, cancel any pending reconnect and reset the attempt counter."""
        self._stop.set()
        self._close_response()
        self._update(is_connected=False, is_reconnecting=False, reconnect_attempts=0)
        self._notify_connection(False)

        thread = self._thread
        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=5)

    def _wait(self, seconds: float) -> bool:
        """Sleep unless disconnected meanwhile; False means stop."""
        return not self._stop.wait(seconds)

    def _close_response(self) -> None:
        with self._lock:
            response, self._response = self._response, None
        if response is not None:
            response.close()

    # ------------------------------------------------------------------ #
    # Stream
    # ------------------------------------------------------------------ #
    def _open(self) -> requests.Response:
        headers = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}
        if self._last_event_id:
            headers["Last-Event-ID"] = self._last_event_id
        response = self.api.session.request(
            "GET",
            self.url,
            headers=headers,
            stream=True,
            timeout=(self.api.timeout, READ_TIMEOUT_SECONDS),
        )
        if response.status_code != 200:
            try:
                payload = response.json()
            except ValueError:
                payload = None
            message, code = extract_error(payload, "Failed to open live updates stream")
            response.close()
            if response.status_code == 401 and code == TOKEN_EXPIRED:
                # Next reconnect goes out with the refreshed cookie
                self.api.refresh()
            raise LiveUpdatesError(message, response.status_code, code)
        return response

    def _follow_once(self) -> bool:
        """
        Open the stream and dispatch events until it ends.

        Returns:
            True when the session ended (no reconnect wanted)
        """
        try:
            response = self._open()
        except (LiveUpdatesError, requests.RequestException) as e:
            logger.warning(
                "Could not open live stream",
                operation="live_updates",
                context={"booking_id": self.booking_id},
                error=str(e),
            )
            return False

        with self._lock:
            self._response = response
        self._update(is_connected=True, is_reconnecting=False, reconnect_attempts=0, error=None)
        self._notify_connection(True)
        logger.info("Live stream connected", operation="live_updates", context={"booking_id": self.booking_id})

        try:
            for event in parse_sse(response.iter_lines()):
                if self._stop.is_set():
                    return False
                if event.id is not None:
                    self._last_event_id = event.id
                if self._dispatch(event):
                    return True
        except (requests.RequestException, AttributeError) as e:
            # AttributeError: urllib3 raises it when the socket is closed under it by disconnect()
            if not self._stop.is_set():
                logger.warning(
                    "Live stream read failed",
                    operation="live_updates",
                    context={"booking_id": self.booking_id},
                    error=str(e),
                )
        return False

    def _dispatch(self, sse: ServerSentEvent) -> bool:
        """Apply one event; True when it ends the session."""
        if sse.event not in HANDLED_EVENTS:
            logger.debug(
                f"Ignoring live event '{sse.event}'",
                operation="live_updates",
                context={"booking_id": self.booking_id},
            )
            return False

        try:
            data = json.loads(sse.data)
        except ValueError as e:
            logger.warning(
                "Skipping malformed live event",
                operation="live_updates",
                context={"booking_id": self.booking_id, "event": sse.event},
                error=str(e),
            )
            return False
        if not isinstance(data, dict):
            data = {"value": data}

        event_type = LiveEventType(sse.event)
        event = LiveUpdateEvent(type=event_type, data=data, timestamp=now_utc())
        self._update(last_event=event)
        if self.on_update:
            self.on_update(event)

        if event_type is LiveEventType.PROGRESS:
            progress = SessionProgress.from_dict(data)
            self._update(session_progress=progress)
            if self.on_progress:
                self.on_progress(progress)
        elif event_type is LiveEventType.ARRIVED:
            if self.on_arrived:
                self.on_arrived()
        elif event_type is LiveEventType.SESSION_ENDED:
            self._update(session_progress=None)
            if self.on_session_ended:
                self.on_session_ended()
            return True
        elif event_type is LiveEventType.ERROR:
            self._update(error=str(data.get("message") or data.get("error") or "Live updates error"))
        return False
