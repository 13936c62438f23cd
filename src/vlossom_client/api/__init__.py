"""API clients - one per resource, all sharing an ApiClient transport."""

from .admin import AdminClient
from .bookings import BookingClient
from .exceptions import ApiError, AuthenticationError, NetworkError, NotFoundError
from .favorites import FavoritesClient
from .hair_health import HairHealthClient
from .http import ApiClient
from .properties import PropertyClient
from .stylist_context import StylistContextClient

__all__ = [
    "AdminClient",
    "ApiClient",
    "ApiError",
    "AuthenticationError",
    "BookingClient",
    "FavoritesClient",
    "HairHealthClient",
    "NetworkError",
    "NotFoundError",
    "PropertyClient",
    "StylistContextClient",
]
