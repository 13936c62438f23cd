"""
Property owner domain: properties, chairs, chair rental requests.

Rates and rental amounts are integer cents. Rental approval follows the
property's approval mode:

    NO_APPROVAL    instant booking for every stylist
    CONDITIONAL    automatic when the stylist meets the minimum rating
    FULL_APPROVAL  the owner decides every request
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from ..utils.money import to_cents
from ..utils.timezone import now_utc, parse_timestamp


class PropertyCategory(str, Enum):
    LUXURY = "LUXURY"
    BOUTIQUE = "BOUTIQUE"
    STANDARD = "STANDARD"
    HOME_BASED = "HOME_BASED"


class ApprovalMode(str, Enum):
    FULL_APPROVAL = "FULL_APPROVAL"
    NO_APPROVAL = "NO_APPROVAL"
    CONDITIONAL = "CONDITIONAL"


class ChairType(str, Enum):
    BRAID_CHAIR = "BRAID_CHAIR"
    BARBER_CHAIR = "BARBER_CHAIR"
    STYLING_STATION = "STYLING_STATION"
    NAIL_STATION = "NAIL_STATION"
    LASH_BED = "LASH_BED"
    FACIAL_BED = "FACIAL_BED"
    GENERAL = "GENERAL"


class ChairStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    MAINTENANCE = "MAINTENANCE"
    BLOCKED = "BLOCKED"


class RentalMode(str, Enum):
    PER_BOOKING = "PER_BOOKING"
    PER_HOUR = "PER_HOUR"
    PER_DAY = "PER_DAY"
    PER_WEEK = "PER_WEEK"
    PER_MONTH = "PER_MONTH"


class RentalStatus(str, Enum):
    # PENDING and DECLINED are the older names for PENDING_APPROVAL and REJECTED
    PENDING = "PENDING"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"
    DECLINED = "DECLINED"


CATEGORY_NAMES = {
    PropertyCategory.LUXURY: "Luxury Venue",
    PropertyCategory.BOUTIQUE: "Boutique Salon",
    PropertyCategory.STANDARD: "Standard Salon",
    PropertyCategory.HOME_BASED: "Home-Based",
}

APPROVAL_MODE_DESCRIPTIONS = {
    ApprovalMode.FULL_APPROVAL: "Manual approval required for all bookings",
    ApprovalMode.NO_APPROVAL: "Instant booking enabled for all stylists",
    ApprovalMode.CONDITIONAL: "Auto-approve stylists meeting minimum rating",
}

CHAIR_TYPE_NAMES = {
    ChairType.BRAID_CHAIR: "Braid Chair",
    ChairType.BARBER_CHAIR: "Barber Chair",
    ChairType.STYLING_STATION: "Styling Station",
    ChairType.NAIL_STATION: "Nail Station",
    ChairType.LASH_BED: "Lash Bed",
    ChairType.FACIAL_BED: "Facial Bed",
    ChairType.GENERAL: "General",
}

CHAIR_STATUS_NAMES = {
    ChairStatus.AVAILABLE: "Available",
    ChairStatus.OCCUPIED: "Occupied",
    ChairStatus.MAINTENANCE: "Under Maintenance",
    ChairStatus.BLOCKED: "Blocked",
}

RENTAL_MODE_NAMES = {
    RentalMode.PER_BOOKING: "Per Booking",
    RentalMode.PER_HOUR: "Per Hour",
    RentalMode.PER_DAY: "Per Day",
    RentalMode.PER_WEEK: "Per Week",
    RentalMode.PER_MONTH: "Per Month",
}

RENTAL_PLATFORM_FEE_DIVISOR = 10


def get_category_display_name(category: str) -> str:
    return CATEGORY_NAMES[PropertyCategory(category)]


def get_approval_mode_description(mode: str) -> str:
    return APPROVAL_MODE_DESCRIPTIONS[ApprovalMode(mode)]


def get_chair_type_display_name(chair_type: str) -> str:
    return CHAIR_TYPE_NAMES[ChairType(chair_type)]


def get_chair_status_display_name(status: str) -> str:
    return CHAIR_STATUS_NAMES[ChairStatus(status)]


def get_rental_mode_display_name(mode: str) -> str:
    return RENTAL_MODE_NAMES[RentalMode(mode)]


@dataclass
class Chair:
    id: str
    name: str
    type: ChairType
    status: ChairStatus
    property_id: str
    amenities: List[str] = field(default_factory=list)
    rental_modes_enabled: List[RentalMode] = field(default_factory=list)
    hourly_rate_cents: Optional[int] = None
    daily_rate_cents: Optional[int] = None
    weekly_rate_cents: Optional[int] = None
    monthly_rate_cents: Optional[int] = None
    per_booking_fee_cents: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Chair":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            type=ChairType(data.get("type", ChairType.GENERAL.value)),
            status=ChairStatus(data.get("status", ChairStatus.AVAILABLE.value)),
            property_id=data.get("propertyId", ""),
            amenities=list(data.get("amenities") or []),
            rental_modes_enabled=[RentalMode(m) for m in data.get("rentalModesEnabled") or []],
            hourly_rate_cents=to_cents(data.get("hourlyRateCents")),
            daily_rate_cents=to_cents(data.get("dailyRateCents")),
            weekly_rate_cents=to_cents(data.get("weeklyRateCents")),
            monthly_rate_cents=to_cents(data.get("monthlyRateCents")),
            per_booking_fee_cents=to_cents(data.get("perBookingFeeCents")),
        )

    def rate_for(self, mode: str) -> Optional[int]:
        return {
            RentalMode.PER_BOOKING: self.per_booking_fee_cents,
            RentalMode.PER_HOUR: self.hourly_rate_cents,
            RentalMode.PER_DAY: self.daily_rate_cents,
            RentalMode.PER_WEEK: self.weekly_rate_cents,
            RentalMode.PER_MONTH: self.monthly_rate_cents,
        }[RentalMode(mode)]


@dataclass
class Property:
    """
    A rentable salon location.

    Attributes:
        approval_mode: How chair rental requests are approved
        min_stylist_rating: Threshold for CONDITIONAL approval (0..5)
        operating_hours: Day name -> {"open": "HH:MM", "close": "HH:MM"}
        chair_count: Server-side count when the chair list was not expanded
    """

    id: str
    name: str
    category: PropertyCategory
    address: str
    city: str
    country: str
    approval_mode: ApprovalMode
    owner_id: str = ""
    lat: Optional[float] = None
    lng: Optional[float] = None
    description: Optional[str] = None
    images: List[str] = field(default_factory=list)
    cover_image: Optional[str] = None
    operating_hours: Optional[Dict[str, Dict[str, str]]] = None
    min_stylist_rating: Optional[float] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    chairs: List[Chair] = field(default_factory=list)
    chair_count: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Property":
        chairs = [Chair.from_dict(c) for c in data.get("chairs") or []]
        count = (data.get("_count") or {}).get("chairs")
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            category=PropertyCategory(data.get("category", PropertyCategory.STANDARD.value)),
            address=data.get("address", ""),
            city=data.get("city", ""),
            country=data.get("country", ""),
            approval_mode=ApprovalMode(data.get("approvalMode", ApprovalMode.CONDITIONAL.value)),
            owner_id=data.get("ownerId", ""),
            lat=data.get("lat"),
            lng=data.get("lng"),
            description=data.get("description"),
            images=list(data.get("images") or []),
            cover_image=data.get("coverImage"),
            operating_hours=data.get("operatingHours"),
            min_stylist_rating=data.get("minStylistRating"),
            is_active=bool(data.get("isActive", True)),
            created_at=parse_timestamp(data.get("createdAt")),
            chairs=chairs,
            chair_count=count if count is not None else len(chairs),
        )


@dataclass
class RentalRequest:
    id: str
    chair_id: str
    property_id: str
    stylist_id: str
    status: RentalStatus
    rental_mode: RentalMode
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    total_amount_cents: int = 0
    platform_fee_cents: int = 0
    owner_payout_cents: int = 0
    message: Optional[str] = None
    created_at: Optional[datetime] = None
    chair_name: Optional[str] = None
    property_name: Optional[str] = None
    stylist_name: Optional[str] = None
    stylist_rating: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RentalRequest":
        chair = data.get("chair") or {}
        prop = data.get("property") or {}
        stylist = data.get("stylist") or {}
        return cls(
            id=data["id"],
            chair_id=data.get("chairId", chair.get("id", "")),
            property_id=data.get("propertyId", prop.get("id", "")),
            stylist_id=data.get("stylistId", stylist.get("id", "")),
            status=RentalStatus(data["status"]),
            rental_mode=RentalMode(data["rentalMode"]),
            start_time=parse_timestamp(data.get("startTime") or data.get("startDate")),
            end_time=parse_timestamp(data.get("endTime") or data.get("endDate")),
            total_amount_cents=to_cents(data.get("totalAmountCents")) or 0,
            platform_fee_cents=to_cents(data.get("platformFeeCents")) or 0,
            owner_payout_cents=to_cents(data.get("ownerPayoutCents")) or 0,
            message=data.get("message"),
            created_at=parse_timestamp(data.get("createdAt")),
            chair_name=chair.get("name"),
            property_name=prop.get("name"),
            stylist_name=stylist.get("displayName"),
            stylist_rating=stylist.get("rating"),
        )

    @property
    def is_pending(self) -> bool:
        return self.status in (RentalStatus.PENDING, RentalStatus.PENDING_APPROVAL)


def has_rental_mode(chair: Chair, mode: str) -> bool:
    return RentalMode(mode) in chair.rental_modes_enabled


def get_lowest_chair_rate(chair: Chair) -> Optional[int]:
    """Cheapest configured rate in cents, or None when the chair has no rates."""
    rates = [
        rate
        for rate in (
            chair.per_booking_fee_cents,
            chair.hourly_rate_cents,
            chair.daily_rate_cents,
            chair.weekly_rate_cents,
            chair.monthly_rate_cents,
        )
        if rate is not None
    ]
    return min(rates) if rates else None


@dataclass(frozen=True)
class RentalApproval:
    auto_approve: bool
    reason: str


def evaluate_rental_approval(prop: Property, stylist_rating: Optional[float]) -> RentalApproval:
    """
    Predict whether a rental request is approved instantly.

    Args:
        prop: Property being rented from
        stylist_rating: Requesting stylist's rating, None when unrated
    """
    mode = ApprovalMode(prop.approval_mode)
    if mode is ApprovalMode.NO_APPROVAL:
        return RentalApproval(True, "Instant booking enabled")
    if mode is ApprovalMode.FULL_APPROVAL:
        return RentalApproval(False, "Owner approval required")

    if stylist_rating is None:
        return RentalApproval(False, "Stylist has no rating yet; owner approval required")
    threshold = prop.min_stylist_rating or 0
    if stylist_rating >= threshold:
        return RentalApproval(True, f"Rating {stylist_rating} meets minimum {threshold}")
    return RentalApproval(False, f"Rating {stylist_rating} is below minimum {threshold}")


@dataclass(frozen=True)
class RentalQuote:
    total_amount_cents: int
    platform_fee_cents: int
    owner_payout_cents: int


def estimate_rental_cost(chair: Chair, mode: str, start: datetime, end: datetime) -> RentalQuote:
    """
    Price a rental the way the API will.

    Partial units round up (a 90-minute hourly rental bills 2 hours); weeks
    are 7 days and months 30. The 10% platform fee is rounded down.

    Raises:
        ValueError: End not after start, or the chair has no rate for the mode
    """
    mode = RentalMode(mode)
    rate = chair.rate_for(mode)
    if rate is None:
        raise ValueError(f"Chair {chair.id} has no {mode.value} rate")
    seconds = (parse_timestamp(end) - parse_timestamp(start)).total_seconds()
    if seconds <= 0:
        raise ValueError("Rental end must be after its start")

    hours = seconds / 3600
    days = hours / 24
    units = {
        RentalMode.PER_BOOKING: 1,
        RentalMode.PER_HOUR: math.ceil(hours),
        RentalMode.PER_DAY: math.ceil(days),
        RentalMode.PER_WEEK: math.ceil(days / 7),
        RentalMode.PER_MONTH: math.ceil(days / 30),
    }[mode]

    total = units * rate
    fee = total // RENTAL_PLATFORM_FEE_DIVISOR
    return RentalQuote(total, fee, total - fee)


class RevenuePeriod(str, Enum):
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


@dataclass(frozen=True)
class RevenueSummary:
    period: RevenuePeriod
    rental_count: int
    total_revenue_cents: int
    platform_fees_cents: int
    net_revenue_cents: int


def _period_start(period: RevenuePeriod, now: datetime) -> datetime:
    if period is RevenuePeriod.WEEK:
        return now - timedelta(days=7)
    if period is RevenuePeriod.MONTH:
        return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)


def summarize_revenue(
    requests: Iterable[RentalRequest],
    period: str = RevenuePeriod.MONTH.value,
    now: Optional[datetime] = None,
) -> RevenueSummary:
    """
    Total completed rental revenue for the last 7 days, this month or this year.

    Net revenue is the total minus platform fees.
    """
    period = RevenuePeriod(period)
    now = parse_timestamp(now) if now else now_utc()
    start = _period_start(period, now)

    completed = [
        r
        for r in requests
        if r.status is RentalStatus.COMPLETED and r.created_at is not None and start <= r.created_at <= now
    ]
    total = sum(r.total_amount_cents for r in completed)
    fees = sum(r.platform_fee_cents for r in completed)
    return RevenueSummary(
        period=period,
        rental_count=len(completed),
        total_revenue_cents=total,
        platform_fees_cents=fees,
        net_revenue_cents=total - fees,
    )
