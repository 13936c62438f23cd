"""
Booking API Client - booking reads, lifecycle mutations, tips and progress.

Reads go through the shared QueryCache; every mutation invalidates the
cached booking queries so the next read reflects the server.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Union

from ..cache import QueryCache
from ..domain.booking import Booking, BookingPage, BookingStatus, CreateBookingRequest
from ..domain.lifecycle import validate_transition
from ..domain.progress import SessionProgress
from ..utils.logger import get_logger, log_operation, mask_token
from ..utils.timezone import now_utc, to_iso
from .http import ApiClient

logger = get_logger(__name__)

BOOKINGS_KEY = ("bookings",)
DEFAULT_CANCEL_REASON = "customer_requested"
CALENDAR_LIMIT = 100
UPCOMING_STATUSES = (
    BookingStatus.CONFIRMED,
    BookingStatus.IN_PROGRESS,
    BookingStatus.PENDING_STYLIST_APPROVAL,
    BookingStatus.PENDING_CUSTOMER_PAYMENT,
)


@dataclass
class PaymentConfirmation:
    booking: Booking
    message: str
    escrow: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PaymentConfirmation":
        return cls(
            booking=Booking.from_dict(data["booking"]),
            message=data.get("message", ""),
            escrow=data.get("escrow"),
        )


class BookingClient:
    """
    Client for /bookings endpoints.

    Args:
        api: Authenticated transport
        cache: Shared query cache (a private one is created when omitted)
    """

    def __init__(self, api: ApiClient, cache: Optional[QueryCache] = None):
        self.api = api
        self.cache = cache or QueryCache()

    def _invalidate(self) -> None:
        self.cache.invalidate(BOOKINGS_KEY)

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #
    def list_bookings(
        self,
        status: Optional[Union[BookingStatus, str]] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> BookingPage:
        status_value = BookingStatus(status).value if status else None
        params = {"status": status_value, "page": page, "limit": limit}

        def load() -> BookingPage:
            data = self.api.get("/bookings", params=params, error_message="Failed to fetch bookings")
            return BookingPage.from_dict(data)

        return self.cache.fetch(BOOKINGS_KEY + ("list", status_value, page, limit), load, stale="dynamic")

    def get_booking(self, booking_id: str) -> Booking:
        """
        Raises:
            NotFoundError: Unknown booking id
        """

        def load() -> Booking:
            data = self.api.get(f"/bookings/{booking_id}", error_message="Failed to fetch booking")
            return Booking.from_dict(data)

        return self.cache.fetch(BOOKINGS_KEY + ("detail", booking_id), load, stale="dynamic")

    def get_calendar_bookings(
        self, start: datetime, end: datetime, role: Optional[str] = None
    ) -> BookingPage:
        """
        Bookings in a date range for calendar views.

        Args:
            start: Range start
            end: Range end
            role: "customer", "stylist" or "all"
        """
        if role is not None and role not in ("customer", "stylist", "all"):
            raise ValueError(f"Unknown calendar role: {role}")
        params = {"from": to_iso(start), "to": to_iso(end), "role": role, "limit": CALENDAR_LIMIT}

        def load() -> BookingPage:
            data = self.api.get("/bookings", params=params, error_message="Failed to fetch bookings")
            return BookingPage.from_dict(data)

        return self.cache.fetch(
            BOOKINGS_KEY + ("calendar", params["from"], params["to"], role), load, stale="dynamic"
        )

    def get_upcoming_bookings(self, limit: int = 10) -> BookingPage:
        params = {
            "from": to_iso(now_utc()),
            "status": ",".join(s.value for s in UPCOMING_STATUSES),
            "limit": limit,
        }

        def load() -> BookingPage:
            data = self.api.get("/bookings", params=params, error_message="Failed to fetch upcoming bookings")
            return BookingPage.from_dict(data)

        return self.cache.fetch(BOOKINGS_KEY + ("upcoming", limit), load, stale="dynamic")

    def get_session_progress(self, booking_id: str) -> Optional[SessionProgress]:
        """Polling fallback for the live stream; None when no session is active."""
        data = self.api.get(
            f"/bookings/{booking_id}/session/progress",
            error_message="Failed to fetch session progress",
        )
        if not data or not data.get("hasActiveSession") or not data.get("progress"):
            return None
        return SessionProgress.from_dict(data["progress"])

    # ------------------------------------------------------------------ #
    # Mutations (never retried)
    # ------------------------------------------------------------------ #
    @log_operation("create_booking")
    def create_booking(self, request: CreateBookingRequest) -> Booking:
        data = self.api.post("/bookings", json=request.to_payload(), error_message="Failed to create booking")
        self._invalidate()
        return Booking.from_dict(data)

    @log_operation("update_booking_status")
    def update_status(
        self,
        booking_id: str,
        status: Union[BookingStatus, str],
        escrow_tx_hash: Optional[str] = None,
        current_status: Optional[Union[BookingStatus, str]] = None,
    ) -> Booking:
        """
        Move a booking to a new status.

        Args:
            booking_id: Booking id
            status: Target status
            escrow_tx_hash: Escrow transaction, for payment-driven transitions
            current_status: Known current status; when given, the transition is
                checked locally before any request is sent

        Raises:
            InvalidTransitionError: Transition not allowed from current_status
        """
        new_status = BookingStatus(status)
        if current_status is not None:
            validate_transition(current_status, new_status)

        payload: Dict[str, Any] = {"status": new_status.value}
        if escrow_tx_hash:
            payload["escrowTxHash"] = escrow_tx_hash
        data = self.api.patch(
            f"/bookings/{booking_id}/status",
            json=payload,
            error_message="Failed to update booking status",
        )
        self._invalidate()
        return Booking.from_dict(data)

    @log_operation("confirm_payment")
    def confirm_payment(
        self,
        booking_id: str,
        escrow_tx_hash: str,
        skip_on_chain_verification: bool = False,
    ) -> PaymentConfirmation:
        """Confirm escrow funding; the API verifies the transaction on-chain unless told to skip."""
        logger.info(
            "Confirming escrow payment",
            operation="confirm_payment",
            context={"booking_id": booking_id, "escrow_tx": mask_token(escrow_tx_hash, visible=6)},
        )
        data = self.api.post(
            f"/bookings/{booking_id}/confirm-payment",
            json={
                "escrowTxHash": escrow_tx_hash,
                "skipOnChainVerification": skip_on_chain_verification,
            },
            error_message="Failed to confirm payment",
        )
        self._invalidate()
        return PaymentConfirmation.from_dict(data)

    @log_operation("cancel_booking")
    def cancel_booking(self, booking_id: str, reason: Optional[str] = None) -> Booking:
        data = self.api.post(
            f"/bookings/{booking_id}/cancel",
            json={"reason": reason or DEFAULT_CANCEL_REASON},
            error_message="Failed to cancel booking",
        )
        self._invalidate()
        return Booking.from_dict(data)

    @log_operation("reschedule_booking")
    def reschedule(self, booking_id: str, new_start: datetime) -> Any:
        data = self.api.post(
            f"/bookings/{booking_id}/reschedule",
            json={"scheduledStartTime": to_iso(new_start)},
            error_message="Failed to reschedule",
        )
        self._invalidate()
        return data

    @log_operation("send_tip")
    def send_tip(self, booking_id: str, amount: Union[int, float]) -> Any:
        if amount <= 0:
            raise ValueError("Tip amount must be greater than zero")
        data = self.api.post(
            f"/bookings/{booking_id}/tip",
            json={"amount": amount},
            error_message="Failed to send tip",
        )
        self._invalidate()
        return data
