"""
Stylist Context API Client - consent-based sharing of a customer's hair profile.

Customers grant a stylist access to parts of their profile (consent scopes);
stylists read the shared snapshot and keep their own service notes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from ..cache import QueryCache
from ..utils.logger import get_logger
from ..utils.timezone import parse_timestamp
from .exceptions import NotFoundError
from .http import ApiClient

logger = get_logger(__name__)

STYLIST_CONTEXT_KEY = ("stylist-context",)


class ConsentScope(str, Enum):
    TEXTURE = "TEXTURE"
    POROSITY = "POROSITY"
    SENSITIVITY = "SENSITIVITY"
    ROUTINE = "ROUTINE"
    FULL = "FULL"


@dataclass
class StylistContext:
    id: str
    customer_user_id: str
    stylist_user_id: str
    consent_granted: bool
    consent_scope: List[ConsentScope] = field(default_factory=list)
    consent_granted_at: Optional[datetime] = None
    shared_profile_snapshot: Optional[Dict[str, Any]] = None
    stylist_notes: Optional[str] = None
    last_service_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Present on my-shares / customers listings
    stylist: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StylistContext":
        return cls(
            id=data["id"],
            customer_user_id=data.get("customerUserId", ""),
            stylist_user_id=data.get("stylistUserId", ""),
            consent_granted=bool(data.get("consentGranted", False)),
            consent_scope=[ConsentScope(s) for s in data.get("consentScope") or []],
            consent_granted_at=parse_timestamp(data.get("consentGrantedAt")),
            shared_profile_snapshot=data.get("sharedProfileSnapshot"),
            stylist_notes=data.get("stylistNotes"),
            last_service_notes=data.get("lastServiceNotes"),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
            stylist=data.get("stylist"),
        )

    def covers(self, scope: str) -> bool:
        """FULL consent covers every individual scope."""
        scope = ConsentScope(scope)
        return ConsentScope.FULL in self.consent_scope or scope in self.consent_scope


@dataclass
class CustomerContext:
    context: StylistContext
    customer: Dict[str, Any]
    profile_summary: Optional[Dict[str, Any]] = None
    analysis: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CustomerContext":
        return cls(
            context=StylistContext.from_dict(data["context"]),
            customer=data.get("customer") or {},
            profile_summary=data.get("profileSummary"),
            analysis=data.get("analysis"),
        )


class StylistContextClient:
    def __init__(self, api: ApiClient, cache: Optional[QueryCache] = None):
        self.api = api
        self.cache = cache or QueryCache()

    def _invalidate(self) -> None:
        self.cache.invalidate(STYLIST_CONTEXT_KEY)

    # Customer side

    def get_context(self, stylist_id: str) -> Optional[StylistContext]:
        """The customer's share with one stylist, or None when nothing is shared."""

        def load() -> Optional[StylistContext]:
            try:
                response = self.api.get(f"/stylist-context/{stylist_id}", error_message="Failed to fetch context")
            except NotFoundError:
                return None
            return StylistContext.from_dict(response["data"])

        return self.cache.fetch(STYLIST_CONTEXT_KEY + ("context", stylist_id), load, stale="standard")

    def grant_access(self, stylist_user_id: str, scopes: Iterable[str]) -> StylistContext:
        """
        Share profile data with a stylist.

        Raises:
            ValueError: No scopes, or an unknown scope
        """
        scope_values = [ConsentScope(s).value for s in scopes]
        if not scope_values:
            raise ValueError("At least one consent scope is required")
        response = self.api.post(
            "/stylist-context/grant",
            json={"stylistUserId": stylist_user_id, "consentScope": scope_values},
            error_message="Failed to grant access",
        )
        self._invalidate()
        logger.info(
            "Granted stylist access",
            operation="grant_stylist_access",
            context={"stylist_user_id": stylist_user_id, "scopes": scope_values},
        )
        return StylistContext.from_dict(response["data"])

    def revoke_access(self, stylist_id: str) -> None:
        self.api.delete(f"/stylist-context/{stylist_id}", error_message="Failed to revoke access")
        self._invalidate()

    def list_my_shares(self) -> List[StylistContext]:
        def load() -> List[StylistContext]:
            response = self.api.get("/stylist-context/my-shares", error_message="Failed to fetch shares")
            return [StylistContext.from_dict(item) for item in response.get("data") or []]

        return self.cache.fetch(STYLIST_CONTEXT_KEY + ("my-shares",), load, stale="standard")

    # Stylist side

    def list_my_customers(self) -> List[CustomerContext]:
        def load() -> List[CustomerContext]:
            response = self.api.get("/stylist-context/customers", error_message="Failed to fetch customers")
            return [CustomerContext.from_dict(item) for item in response.get("data") or []]

        return self.cache.fetch(STYLIST_CONTEXT_KEY + ("customers",), load, stale="standard")

    def get_customer_context(self, customer_id: str) -> Optional[CustomerContext]:
        def load() -> Optional[CustomerContext]:
            try:
                response = self.api.get(
                    f"/stylist-context/customer/{customer_id}", error_message="Failed to fetch customer context"
                )
            except NotFoundError:
                return None
            return CustomerContext.from_dict(response["data"])

        return self.cache.fetch(STYLIST_CONTEXT_KEY + ("customer", customer_id), load, stale="standard")

    def update_customer_notes(
        self,
        customer_id: str,
        stylist_notes: Optional[str] = None,
        last_service_notes: Optional[str] = None,
    ) -> StylistContext:
        body: Dict[str, Any] = {}
        if stylist_notes is not None:
            body["stylistNotes"] = stylist_notes
        if last_service_notes is not None:
            body["lastServiceNotes"] = last_service_notes
        if not body:
            raise ValueError("Nothing to update")
        response = self.api.patch(
            f"/stylist-context/customer/{customer_id}", json=body, error_message="Failed to update notes"
        )
        self._invalidate()
        return StylistContext.from_dict(response["data"])
