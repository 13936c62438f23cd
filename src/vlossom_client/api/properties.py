"""
Property API Client - properties, chairs, chair rental requests and images.
"""

import mimetypes
import os
from typing import Any, BinaryIO, Dict, List, Optional, Union
from urllib.parse import quote

from ..cache import QueryCache
from ..domain.property import Chair, Property, RentalRequest, RentalStatus
from ..utils.logger import get_logger, log_operation
from .http import ApiClient

logger = get_logger(__name__)

PROPERTIES_KEY = ("properties",)
RENTALS_KEY = ("rentals",)
ImageSource = Union[str, "os.PathLike[str]", BinaryIO]


def _unwrap(data: Any, key: str) -> Any:
    """The API wraps most bodies as {"property": {...}}; accept both shapes."""
    if isinstance(data, dict) and key in data:
        return data[key]
    return data


class PropertyClient:
    """
    Client for /properties and /upload/property endpoints (property owner side).

    Args:
        api: Authenticated transport
        cache: Shared query cache
    """

    def __init__(self, api: ApiClient, cache: Optional[QueryCache] = None):
        self.api = api
        self.cache = cache or QueryCache()

    def _invalidate_properties(self) -> None:
        self.cache.invalidate(PROPERTIES_KEY)

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #
    def list_my_properties(self) -> List[Property]:
        def load() -> List[Property]:
            data = self.api.get("/properties/my/all", error_message="Failed to fetch properties")
            return [Property.from_dict(p) for p in _unwrap(data, "properties") or []]

        return self.cache.fetch(PROPERTIES_KEY + ("mine",), load, stale="standard")

    def get_property(self, property_id: str) -> Property:
        def load() -> Property:
            data = self.api.get(f"/properties/{property_id}", error_message="Failed to fetch property")
            return Property.from_dict(_unwrap(data, "property"))

        return self.cache.fetch(PROPERTIES_KEY + ("detail", property_id), load, stale="standard")

    @log_operation("create_property")
    def create_property(self, payload: Dict[str, Any]) -> Property:
        """
        Args:
            payload: camelCase body (name, category, address, city, country,
                lat, lng, approvalMode, optional description/operatingHours/
                minStylistRating)
        """
        rating = payload.get("minStylistRating")
        if rating is not None and not 0 <= rating <= 5:
            raise ValueError("minStylistRating must be between 0 and 5")
        data = self.api.post("/properties", json=payload, error_message="Failed to create property")
        self._invalidate_properties()
        return Property.from_dict(_unwrap(data, "property"))

    @log_operation("update_property")
    def update_property(self, property_id: str, payload: Dict[str, Any]) -> Property:
        data = self.api.put(
            f"/properties/{property_id}", json=payload, error_message="Failed to update property"
        )
        self._invalidate_properties()
        return Property.from_dict(_unwrap(data, "property"))

    @log_operation("delete_property")
    def delete_property(self, property_id: str) -> None:
        self.api.delete(f"/properties/{property_id}", error_message="Failed to delete property")
        self._invalidate_properties()

    # ------------------------------------------------------------------ #
    # Chairs
    # ------------------------------------------------------------------ #
    def list_chairs(self, property_id: str) -> List[Chair]:
        return self.get_property(property_id).chairs

    @log_operation("create_chair")
    def create_chair(self, property_id: str, payload: Dict[str, Any]) -> Chair:
        data = self.api.post(
            f"/properties/{property_id}/chairs", json=payload, error_message="Failed to create chair"
        )
        self._invalidate_properties()
        return Chair.from_dict(_unwrap(data, "chair"))

    @log_operation("update_chair")
    def update_chair(self, property_id: str, chair_id: str, payload: Dict[str, Any]) -> Chair:
        data = self.api.put(
            f"/properties/{property_id}/chairs/{chair_id}",
            json=payload,
            error_message="Failed to update chair",
        )
        self._invalidate_properties()
        return Chair.from_dict(_unwrap(data, "chair"))

    @log_operation("delete_chair")
    def delete_chair(self, property_id: str, chair_id: str) -> None:
        self.api.delete(
            f"/properties/{property_id}/chairs/{chair_id}", error_message="Failed to delete chair"
        )
        self._invalidate_properties()

    # ------------------------------------------------------------------ #
    # Rental requests
    # ------------------------------------------------------------------ #
    def list_rental_requests(self, status: Optional[str] = None) -> List[RentalRequest]:
        """Rental requests across the owner's properties, optionally filtered by status."""
        status_value = RentalStatus(status).value if status else None

        def load() -> List[RentalRequest]:
            data = self.api.get(
                "/properties/rentals/requests",
                params={"status": status_value},
                error_message="Failed to fetch requests",
            )
            items = _unwrap(data, "requests")
            return [RentalRequest.from_dict(r) for r in items or []]

        return self.cache.fetch(RENTALS_KEY + ("requests", status_value), load, stale="dynamic")

    def _decide(self, request_id: str, action: str, reason: Optional[str]) -> Any:
        data = self.api.post(
            f"/properties/rentals/requests/{request_id}/{action}",
            json={"reason": reason},
            error_message=f"Failed to {action} request",
        )
        self.cache.invalidate(RENTALS_KEY)
        logger.info(
            f"Rental request {action}d",
            operation="rental_decision",
            context={"request_id": request_id, "action": action},
        )
        return data

    @log_operation("approve_rental_request")
    def approve_rental_request(self, request_id: str, reason: Optional[str] = None) -> Any:
        return self._decide(request_id, "approve", reason)

    @log_operation("decline_rental_request")
    def decline_rental_request(self, request_id: str, reason: Optional[str] = None) -> Any:
        return self._decide(request_id, "decline", reason)

    # ------------------------------------------------------------------ #
    # Images (multipart, field "image")
    # ------------------------------------------------------------------ #
    def _upload(self, path: str, image: ImageSource, filename: Optional[str]) -> Dict[str, Any]:
        if isinstance(image, (str, os.PathLike)):
            name = filename or os.path.basename(os.fspath(image))
            with open(image, "rb") as f:
                data = self._post_image(path, name, f)
        else:
            name = filename or os.path.basename(getattr(image, "name", "image"))
            data = self._post_image(path, name, image)
        self._invalidate_properties()
        return data

    def _post_image(self, path: str, name: str, stream: BinaryIO) -> Dict[str, Any]:
        content_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
        return self.api.post(
            path, files={"image": (name, stream, content_type)}, error_message="Failed to upload image"
        )

    @log_operation("upload_property_image")
    def upload_property_image(
        self, property_id: str, image: ImageSource, filename: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Upload a gallery image.

        Returns:
            {"publicId": ..., "url": ...}
        """
        return self._upload(f"/upload/property/{property_id}", image, filename)

    @log_operation("set_cover_image")
    def set_cover_image(
        self, property_id: str, image: ImageSource, filename: Optional[str] = None
    ) -> Dict[str, Any]:
        return self._upload(f"/upload/property/{property_id}/cover", image, filename)

    @log_operation("delete_property_image")
    def delete_property_image(self, property_id: str, public_id: str) -> None:
        self.api.delete(
            f"/upload/property/{property_id}/{quote(public_id, safe='')}",
            error_message="Failed to delete image",
        )
        self._invalidate_properties()
