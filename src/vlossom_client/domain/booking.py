"""
Booking domain model.

Mirrors the backend's booking record: a status enum, money in integer cents,
ISO timestamps and relational ids. Unknown keys from newer API versions are
kept in `extra_fields` so a round trip through the client never drops data.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time as dt_time, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from ..utils.money import round_half_up, to_cents
from ..utils.timezone import parse_timestamp, to_iso


class BookingStatus(str, Enum):
    PENDING_STYLIST_APPROVAL = "PENDING_STYLIST_APPROVAL"
    PENDING_CUSTOMER_PAYMENT = "PENDING_CUSTOMER_PAYMENT"
    PENDING_PAYMENT = "PENDING_PAYMENT"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    AWAITING_CUSTOMER_CONFIRMATION = "AWAITING_CUSTOMER_CONFIRMATION"
    SETTLED = "SETTLED"
    CANCELLED = "CANCELLED"
    DECLINED = "DECLINED"
    DISPUTED = "DISPUTED"


class LocationType(str, Enum):
    STYLIST_BASE = "STYLIST_BASE"
    CUSTOMER_HOME = "CUSTOMER_HOME"


# Flat fee for travel to the customer (R50)
TRAVEL_FEE_CENTS = 5000
PLATFORM_FEE_RATE = 0.10

# Bookable day window for slot generation
SLOT_DAY_START_HOUR = 8
SLOT_DAY_END_HOUR = 18
SLOT_STEP_MINUTES = 30


@dataclass
class BookingStylist:
    id: str
    display_name: str
    avatar_url: Optional[str] = None
    verification_status: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookingStylist":
        return cls(
            id=data["id"],
            display_name=data.get("displayName", ""),
            avatar_url=data.get("avatarUrl"),
            verification_status=data.get("verificationStatus"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "displayName": self.display_name,
            "avatarUrl": self.avatar_url,
            "verificationStatus": self.verification_status,
        }


@dataclass
class BookingService:
    id: str
    name: str
    price_amount_cents: int
    estimated_duration_min: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookingService":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            price_amount_cents=to_cents(data.get("priceAmountCents")) or 0,
            estimated_duration_min=int(data.get("estimatedDurationMin", 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "priceAmountCents": str(self.price_amount_cents),
            "estimatedDurationMin": self.estimated_duration_min,
        }


@dataclass
class Booking:
    """
    A scheduled service appointment between a customer and a stylist.

    Attributes:
        id: Booking id
        status: Lifecycle status (see domain.lifecycle for transitions)
        stylist: Stylist summary
        service: Booked service with price and duration
        scheduled_start_time: Aware UTC start time
        location_type: Stylist base or customer home
        total_amount_cents: Amount held in escrow (platform fee included)
        platform_fee_cents: Platform share of the total
        escrow_tx_hash: Escrow funding transaction, once paid
    """

    id: str
    status: BookingStatus
    stylist: BookingStylist
    service: BookingService
    scheduled_start_time: datetime
    location_type: LocationType
    location_address: str = ""
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    notes: Optional[str] = None
    total_amount_cents: int = 0
    platform_fee_cents: int = 0
    escrow_tx_hash: Optional[str] = None
    created_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    extra_fields: Dict[str, Any] = field(default_factory=dict)

    CORE_KEYS = frozenset(
        {
            "id",
            "status",
            "stylist",
            "service",
            "scheduledStartTime",
            "locationType",
            "locationAddress",
            "locationLat",
            "locationLng",
            "notes",
            "totalAmountCents",
            "platformFeeCents",
            "escrowTxHash",
            "createdAt",
            "cancelledAt",
            "completedAt",
        }
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Booking":
        """
        Create Booking from an API payload.

        Args:
            data: Booking JSON object (camelCase keys)

        Returns:
            Booking instance
        """
        extra = {k: v for k, v in data.items() if k not in cls.CORE_KEYS}
        return cls(
            id=data["id"],
            status=BookingStatus(data["status"]),
            stylist=BookingStylist.from_dict(data.get("stylist") or {"id": ""}),
            service=BookingService.from_dict(data.get("service") or {"id": ""}),
            scheduled_start_time=parse_timestamp(data["scheduledStartTime"]),
            location_type=LocationType(data.get("locationType", LocationType.STYLIST_BASE.value)),
            location_address=data.get("locationAddress") or "",
            location_lat=data.get("locationLat"),
            location_lng=data.get("locationLng"),
            notes=data.get("notes"),
            total_amount_cents=to_cents(data.get("totalAmountCents")) or 0,
            platform_fee_cents=to_cents(data.get("platformFeeCents")) or 0,
            escrow_tx_hash=data.get("escrowTxHash"),
            created_at=parse_timestamp(data.get("createdAt")),
            cancelled_at=parse_timestamp(data.get("cancelledAt")),
            completed_at=parse_timestamp(data.get("completedAt")),
            extra_fields=extra,
        )

    def to_dict(self, include_extra: bool = True) -> Dict[str, Any]:
        """
        Convert back to the API's camelCase shape.

        Args:
            include_extra: If True, flatten extra_fields into the output
        """
        data: Dict[str, Any] = {
            "id": self.id,
            "status": self.status.value,
            "stylist": self.stylist.to_dict(),
            "service": self.service.to_dict(),
            "scheduledStartTime": to_iso(self.scheduled_start_time),
            "locationType": self.location_type.value,
            "locationAddress": self.location_address,
            "locationLat": self.location_lat,
            "locationLng": self.location_lng,
            "notes": self.notes,
            "totalAmountCents": str(self.total_amount_cents),
            "platformFeeCents": str(self.platform_fee_cents),
            "escrowTxHash": self.escrow_tx_hash,
            "createdAt": to_iso(self.created_at) if self.created_at else None,
            "cancelledAt": to_iso(self.cancelled_at) if self.cancelled_at else None,
            "completedAt": to_iso(self.completed_at) if self.completed_at else None,
        }
        if include_extra:
            data.update(self.extra_fields)
        return data

    @property
    def scheduled_end_time(self) -> datetime:
        return self.scheduled_start_time + timedelta(minutes=self.service.estimated_duration_min)


@dataclass
class BookingPage:
    bookings: List[Booking]
    total: int
    page: int = 1
    limit: int = 20
    has_more: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookingPage":
        bookings = [Booking.from_dict(item) for item in data.get("bookings", [])]
        return cls(
            bookings=bookings,
            total=int(data.get("total", len(bookings))),
            page=int(data.get("page", 1)),
            limit=int(data.get("limit", len(bookings))),
            has_more=bool(data.get("hasMore", False)),
        )


@dataclass
class CreateBookingRequest:
    stylist_id: str
    service_id: str
    scheduled_start_time: datetime
    location_type: LocationType
    location_address: str
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    notes: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "stylistId": self.stylist_id,
            "serviceId": self.service_id,
            "scheduledStartTime": to_iso(self.scheduled_start_time),
            "locationType": LocationType(self.location_type).value,
            "locationAddress": self.location_address,
        }
        if self.location_lat is not None:
            payload["locationLat"] = self.location_lat
        if self.location_lng is not None:
            payload["locationLng"] = self.location_lng
        if self.notes:
            payload["notes"] = self.notes
        return payload


@dataclass(frozen=True)
class PriceBreakdown:
    service_amount: int
    travel_fee: int
    platform_fee: int
    total_amount: int


def calculate_price_breakdown(service_price_cents: int, has_travel_fee: bool = False) -> PriceBreakdown:
    """
    Price a booking.

    The platform fee is carved out of the service price, so it is reported
    but not added to the total.
    """
    travel_fee = TRAVEL_FEE_CENTS if has_travel_fee else 0
    platform_fee = round_half_up(service_price_cents * PLATFORM_FEE_RATE)
    return PriceBreakdown(
        service_amount=service_price_cents,
        travel_fee=travel_fee,
        platform_fee=platform_fee,
        total_amount=service_price_cents + travel_fee,
    )


@dataclass(frozen=True)
class TimeSlot:
    time: str
    available: bool = True


def generate_time_slots(day: date, duration_min: int, now: Optional[datetime] = None) -> List[TimeSlot]:
    """
    List 30-minute start slots between 08:00 and 18:00 that fit the service.

    Slots are in the customer's wall-clock time. When `day` is today
    (relative to `now`), slots at or before the current minute are skipped.
    """
    now = now or datetime.now()
    is_today = day == now.date()
    current = dt_time(now.hour, now.minute)
    day_end_minutes = SLOT_DAY_END_HOUR * 60

    slots: List[TimeSlot] = []
    for hour in range(SLOT_DAY_START_HOUR, SLOT_DAY_END_HOUR):
        for minute in range(0, 60, SLOT_STEP_MINUTES):
            if hour * 60 + minute + duration_min > day_end_minutes:
                continue
            if is_today and dt_time(hour, minute) <= current:
                continue
            slots.append(TimeSlot(time=f"{hour:02d}:{minute:02d}"))
    return slots
