"""Domain models - bookings, properties, hair health and their business rules."""

from .booking import Booking, BookingStatus
from .lifecycle import InvalidTransitionError
from .property import Chair, Property, RentalRequest
from .session import Session

__all__ = ["Booking", "BookingStatus", "Chair", "InvalidTransitionError", "Property", "RentalRequest", "Session"]
