"""Calendar projections of bookings and date-range helpers for calendar queries."""

import calendar as _calendar
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Iterable, List, Tuple

from ..utils.timezone import to_iso
from .booking import Booking, BookingStatus

HIGH_LOAD_MINUTES = 120
MEDIUM_LOAD_MINUTES = 60
REST_BUFFER_MINUTES = 120


class LoadLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class CalendarStatus(str, Enum):
    PLANNED = "PLANNED"
    DUE = "DUE"
    COMPLETED = "COMPLETED"
    MISSED = "MISSED"


_STATUS_MAP = {
    BookingStatus.PENDING_STYLIST_APPROVAL: CalendarStatus.PLANNED,
    BookingStatus.PENDING_CUSTOMER_PAYMENT: CalendarStatus.PLANNED,
    BookingStatus.PENDING_PAYMENT: CalendarStatus.PLANNED,
    BookingStatus.CONFIRMED: CalendarStatus.PLANNED,
    BookingStatus.IN_PROGRESS: CalendarStatus.DUE,
    BookingStatus.COMPLETED: CalendarStatus.COMPLETED,
    BookingStatus.AWAITING_CUSTOMER_CONFIRMATION: CalendarStatus.COMPLETED,
    BookingStatus.SETTLED: CalendarStatus.COMPLETED,
    BookingStatus.CANCELLED: CalendarStatus.MISSED,
    BookingStatus.DECLINED: CalendarStatus.MISSED,
    BookingStatus.DISPUTED: CalendarStatus.MISSED,
}


@dataclass
class CalendarBookingEvent:
    id: str
    title: str
    scheduled_start: datetime
    scheduled_end: datetime
    load_level: LoadLevel
    status: CalendarStatus
    requires_rest_buffer: bool
    booking: Booking
    event_category: str = "BOOKING_SERVICE"
    event_type: str = "BOOKING"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "eventCategory": self.event_category,
            "eventType": self.event_type,
            "scheduledStart": to_iso(self.scheduled_start),
            "scheduledEnd": to_iso(self.scheduled_end),
            "loadLevel": self.load_level.value,
            "status": self.status.value,
            "requiresRestBuffer": self.requires_rest_buffer,
            "booking": {
                "stylist": self.booking.stylist.to_dict(),
                "service": self.booking.service.to_dict(),
                "location": self.booking.location_type.value,
                "status": self.booking.status.value,
            },
        }


def get_load_level(duration_min: int) -> LoadLevel:
    if duration_min >= HIGH_LOAD_MINUTES:
        return LoadLevel.HIGH
    if duration_min >= MEDIUM_LOAD_MINUTES:
        return LoadLevel.MEDIUM
    return LoadLevel.LOW


def map_booking_status(status: BookingStatus) -> CalendarStatus:
    return _STATUS_MAP[BookingStatus(status)]


def transform_bookings_to_calendar_events(bookings: Iterable[Booking]) -> List[CalendarBookingEvent]:
    events = []
    for booking in bookings:
        duration = booking.service.estimated_duration_min
        events.append(
            CalendarBookingEvent(
                id=booking.id,
                title=f"{booking.service.name} with {booking.stylist.display_name}",
                scheduled_start=booking.scheduled_start_time,
                scheduled_end=booking.scheduled_end_time,
                load_level=get_load_level(duration),
                status=map_booking_status(booking.status),
                requires_rest_buffer=duration >= REST_BUFFER_MINUTES,
                booking=booking,
            )
        )
    return events


# Ranges keep the tzinfo of the input; end bounds are inclusive to the microsecond.


def get_day_range(day: datetime) -> Tuple[datetime, datetime]:
    start = day.replace(hour=0, minute=0, second=0, microsecond=0)
    end = day.replace(hour=23, minute=59, second=59, microsecond=999999)
    return start, end


def get_week_range(day: datetime) -> Tuple[datetime, datetime]:
    """Sunday 00:00 to Saturday 23:59:59.999999 of the week containing `day`."""
    # weekday(): Monday=0 .. Sunday=6
    days_since_sunday = (day.weekday() + 1) % 7
    start, _ = get_day_range(day - timedelta(days=days_since_sunday))
    _, end = get_day_range(start + timedelta(days=6))
    return start, end


def get_month_range(day: datetime) -> Tuple[datetime, datetime]:
    last_day = _calendar.monthrange(day.year, day.month)[1]
    start, _ = get_day_range(day.replace(day=1))
    _, end = get_day_range(day.replace(day=last_day))
    return start, end
