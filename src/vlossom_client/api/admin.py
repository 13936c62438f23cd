"""
Admin API Client - users, bookings and dispute handling for ADMIN accounts.

Inputs are checked against the same limits the API enforces so an operator
gets an immediate error instead of a 400.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from ..utils.logger import get_logger, log_operation
from ..utils.timezone import to_iso
from .http import ApiClient

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class DisputeStatus(str, Enum):
    OPEN = "OPEN"
    ASSIGNED = "ASSIGNED"
    UNDER_REVIEW = "UNDER_REVIEW"
    ESCALATED = "ESCALATED"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class DisputeResolution(str, Enum):
    FULL_REFUND_CUSTOMER = "FULL_REFUND_CUSTOMER"
    PARTIAL_REFUND = "PARTIAL_REFUND"
    NO_REFUND = "NO_REFUND"
    SPLIT_FUNDS = "SPLIT_FUNDS"
    STYLIST_PENALTY = "STYLIST_PENALTY"
    CUSTOMER_WARNING = "CUSTOMER_WARNING"
    MUTUAL_CANCELLATION = "MUTUAL_CANCELLATION"
    ESCALATED_TO_LEGAL = "ESCALATED_TO_LEGAL"


@dataclass
class DisputeFilters:
    """Filters for list_disputes; multi-valued filters are sent comma-joined."""

    status: List[str] = field(default_factory=list)
    type: List[str] = field(default_factory=list)
    assigned_to_id: Optional[str] = None
    priority: Optional[int] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None

    def to_params(self) -> Dict[str, Any]:
        if self.priority is not None and not 1 <= self.priority <= 5:
            raise ValueError("priority must be between 1 and 5")
        return {
            "status": ",".join(DisputeStatus(s).value for s in self.status) or None,
            "type": ",".join(self.type) or None,
            "assignedToId": self.assigned_to_id,
            "priority": self.priority,
            "fromDate": to_iso(self.from_date) if self.from_date else None,
            "toDate": to_iso(self.to_date) if self.to_date else None,
        }


def _check_length(name: str, value: str, minimum: int, maximum: int) -> None:
    if not minimum <= len(value) <= maximum:
        raise ValueError(f"{name} must be between {minimum} and {maximum} characters")


def _page_params(page: int, page_size: int) -> Dict[str, int]:
    if page < 1:
        raise ValueError("page must be at least 1")
    if not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")
    return {"page": page, "pageSize": page_size}


class AdminClient:
    """Operations behind /admin; the API rejects non-ADMIN sessions with 403."""

    def __init__(self, api: ApiClient):
        self.api = api

    # Users

    def list_users(
        self,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        search: Optional[str] = None,
        role: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = _page_params(page, page_size)
        params.update({"search": search or None, "role": role})
        return self.api.get("/admin/users", params=params, error_message="Failed to fetch users")

    def get_user(self, user_id: str) -> Dict[str, Any]:
        return self.api.get(f"/admin/users/{user_id}", error_message="Failed to fetch user")

    # Bookings

    def list_bookings(
        self, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE, status: Optional[str] = None
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = _page_params(page, page_size)
        params["status"] = status
        return self.api.get("/admin/bookings", params=params, error_message="Failed to fetch bookings")

    # Disputes

    def list_disputes(
        self,
        filters: Optional[DisputeFilters] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Dict[str, Any]:
        """
        Returns:
            {"disputes": [...], "pagination": {"total", "totalPages", ...}}
        """
        params: Dict[str, Any] = _page_params(page, page_size)
        params.update((filters or DisputeFilters()).to_params())
        return self.api.get("/admin/disputes", params=params, error_message="Failed to load disputes")

    def get_dispute(self, dispute_id: str) -> Dict[str, Any]:
        data = self.api.get(f"/admin/disputes/{dispute_id}", error_message="Failed to load dispute")
        return data.get("dispute", data)

    def get_dispute_stats(self) -> Dict[str, Any]:
        data = self.api.get("/admin/disputes/stats", error_message="Failed to load stats")
        return data.get("stats", data)

    @log_operation("assign_dispute")
    def assign_dispute(self, dispute_id: str, assigned_to_id: str) -> Any:
        return self.api.post(
            f"/admin/disputes/{dispute_id}/assign",
            json={"assignedToId": assigned_to_id},
            error_message="Failed to assign dispute",
        )

    @log_operation("start_dispute_review")
    def start_review(self, dispute_id: str) -> Any:
        return self.api.post(f"/admin/disputes/{dispute_id}/review", json={}, error_message="Failed to start review")

    @log_operation("resolve_dispute")
    def resolve_dispute(
        self,
        dispute_id: str,
        resolution: str,
        notes: str,
        refund_percent: Optional[int] = None,
    ) -> Any:
        """
        Close out a dispute with a resolution.

        Raises:
            ValueError: Unknown resolution, notes outside 10..2000 chars, refund
                percent outside 0..100, or PARTIAL_REFUND without a percent
        """
        resolution = DisputeResolution(resolution)
        _check_length("Resolution notes", notes, 10, 2000)
        if refund_percent is not None and not 0 <= refund_percent <= 100:
            raise ValueError("refund_percent must be between 0 and 100")
        if resolution is DisputeResolution.PARTIAL_REFUND and refund_percent is None:
            raise ValueError("PARTIAL_REFUND requires refund_percent")

        body: Dict[str, Any] = {"resolution": resolution.value, "resolutionNotes": notes}
        if refund_percent is not None:
            body["refundPercent"] = int(refund_percent)
        return self.api.post(
            f"/admin/disputes/{dispute_id}/resolve", json=body, error_message="Failed to resolve dispute"
        )

    @log_operation("escalate_dispute")
    def escalate_dispute(self, dispute_id: str, reason: str) -> Any:
        _check_length("Escalation reason", reason, 10, 500)
        return self.api.post(
            f"/admin/disputes/{dispute_id}/escalate",
            json={"escalationReason": reason},
            error_message="Failed to escalate dispute",
        )

    @log_operation("close_dispute")
    def close_dispute(self, dispute_id: str) -> Any:
        return self.api.post(f"/admin/disputes/{dispute_id}/close", json={}, error_message="Failed to close dispute")

    def add_dispute_message(
        self,
        dispute_id: str,
        content: str,
        is_internal: bool = False,
        attachment_urls: Optional[Iterable[str]] = None,
    ) -> Any:
        _check_length("Message", content.strip(), 1, 5000)
        body: Dict[str, Any] = {"content": content, "isInternal": is_internal}
        if attachment_urls:
            body["attachmentUrls"] = list(attachment_urls)
        return self.api.post(
            f"/admin/disputes/{dispute_id}/messages", json=body, error_message="Failed to send message"
        )
