"""Live session progress reported while a stylist travels to or serves a booking."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ..utils.timezone import parse_timestamp


@dataclass
class SessionProgress:
    booking_id: str
    last_update: Optional[datetime]
    eta_minutes: Optional[int] = None
    progress_percent: Optional[int] = None
    current_step: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    extra_fields: Dict[str, Any] = field(default_factory=dict)

    CORE_KEYS = frozenset(
        {"bookingId", "lastUpdate", "etaMinutes", "progressPercent", "currentStep", "lat", "lng"}
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionProgress":
        return cls(
            booking_id=data.get("bookingId", ""),
            last_update=parse_timestamp(data.get("lastUpdate")),
            eta_minutes=data.get("etaMinutes"),
            progress_percent=data.get("progressPercent"),
            current_step=data.get("currentStep"),
            lat=data.get("lat"),
            lng=data.get("lng"),
            extra_fields={k: v for k, v in data.items() if k not in cls.CORE_KEYS},
        )
