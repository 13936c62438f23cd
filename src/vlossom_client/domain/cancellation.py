"""
Cancellation refund policy.

Refund tiers by hours until the appointment:

    more than 24h  -> 100%
    more than 12h  ->  75%
    more than 2h   ->  50%
    otherwise      ->   0%

A boundary value belongs to the lower tier (exactly 24h refunds 75%).
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from ..utils.money import round_half_up
from ..utils.timezone import now_utc, parse_timestamp
from .booking import Booking, BookingStatus

CANCELLABLE_STATUSES = frozenset(
    {
        BookingStatus.CONFIRMED,
        BookingStatus.PENDING_PAYMENT,
        BookingStatus.PENDING_CUSTOMER_PAYMENT,
        BookingStatus.PENDING_STYLIST_APPROVAL,
    }
)

# (exclusive lower bound in hours, refund percentage, message)
REFUND_TIERS = (
    (24, 100, "Full refund - cancelling more than 24 hours before appointment"),
    (12, 75, "75% refund - cancelling 12-24 hours before appointment"),
    (2, 50, "50% refund - cancelling less than 12 hours before appointment"),
)
NO_REFUND_MESSAGE = "No refund - cancelling less than 2 hours before appointment"


@dataclass(frozen=True)
class CancellationPolicy:
    hours_until_appointment: float
    refund_percentage: int
    message: str


@dataclass(frozen=True)
class RefundBreakdown:
    refund_amount: int
    stylist_fee: int


@dataclass(frozen=True)
class CancellationQuote:
    booking_id: str
    policy: CancellationPolicy
    refund: RefundBreakdown
    can_cancel: bool


def get_cancellation_policy(
    scheduled: Union[datetime, str], now: Optional[datetime] = None
) -> CancellationPolicy:
    """
    Work out the refund tier for an appointment.

    Args:
        scheduled: Appointment start (datetime or ISO string)
        now: Reference time, defaults to the current UTC time

    Returns:
        CancellationPolicy
    """
    start = parse_timestamp(scheduled)
    now = parse_timestamp(now) if now else now_utc()
    hours_until = (start - now).total_seconds() / 3600

    for threshold, percentage, message in REFUND_TIERS:
        if hours_until > threshold:
            return CancellationPolicy(hours_until, percentage, message)
    return CancellationPolicy(hours_until, 0, NO_REFUND_MESSAGE)


def calculate_refund(total_amount_cents: int, refund_percentage: int) -> RefundBreakdown:
    """Split a total into the customer refund and the stylist's kept fee."""
    refund_amount = round_half_up(total_amount_cents * refund_percentage / 100)
    return RefundBreakdown(
        refund_amount=refund_amount,
        stylist_fee=total_amount_cents - refund_amount,
    )


def can_cancel_booking(booking: Booking, now: Optional[datetime] = None) -> bool:
    if booking.status not in CANCELLABLE_STATUSES:
        return False
    now = parse_timestamp(now) if now else now_utc()
    return booking.scheduled_start_time >= now


def quote_cancellation(booking: Booking, now: Optional[datetime] = None) -> CancellationQuote:
    """Policy plus refund split for a booking, as shown before the user confirms."""
    now = parse_timestamp(now) if now else now_utc()
    policy = get_cancellation_policy(booking.scheduled_start_time, now)
    return CancellationQuote(
        booking_id=booking.id,
        policy=policy,
        refund=calculate_refund(booking.total_amount_cents, policy.refund_percentage),
        can_cancel=can_cancel_booking(booking, now),
    )
