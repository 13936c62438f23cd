"""
Unit tests for the booking model, lifecycle table and cancellation policy.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from vlossom_client.domain.booking import (
    Booking,
    BookingPage,
    BookingStatus,
    CreateBookingRequest,
    LocationType,
    calculate_price_breakdown,
    generate_time_slots,
)
from vlossom_client.domain.cancellation import (
    NO_REFUND_MESSAGE,
    calculate_refund,
    can_cancel_booking,
    get_cancellation_policy,
    quote_cancellation,
)
from vlossom_client.domain.lifecycle import (
    VALID_TRANSITIONS,
    InvalidTransitionError,
    can_transition_to,
    get_valid_next_states,
    is_terminal_status,
    validate_transition,
)

NOW = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


class TestBookingModel:
    def test_from_dict_parses_types(self, booking_payload):
        booking = Booking.from_dict(booking_payload())
        assert booking.status is BookingStatus.CONFIRMED
        assert booking.location_type is LocationType.STYLIST_BASE
        assert booking.total_amount_cents == 35000
        assert booking.service.price_amount_cents == 35000
        assert booking.stylist.display_name == "Naledi"
        assert booking.scheduled_start_time == datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)
        assert booking.scheduled_end_time == datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)

    def test_unknown_keys_survive_round_trip(self, booking_payload):
        booking = Booking.from_dict(booking_payload(tipAmountCents="2000"))
        assert booking.extra_fields == {"tipAmountCents": "2000"}
        assert booking.to_dict()["tipAmountCents"] == "2000"
        assert "tipAmountCents" not in booking.to_dict(include_extra=False)

    def test_unknown_status_rejected(self, booking_payload):
        with pytest.raises(ValueError):
            Booking.from_dict(booking_payload(status="LOST"))

    def test_page_defaults(self, booking_payload):
        page = BookingPage.from_dict({"bookings": [booking_payload()], "hasMore": True})
        assert page.total == 1
        assert page.has_more is True

    def test_create_request_payload(self):
        request = CreateBookingRequest(
            stylist_id="st-1",
            service_id="sv-1",
            scheduled_start_time=datetime(2025, 3, 10, 11, 0, tzinfo=timezone(timedelta(hours=2))),
            location_type=LocationType.CUSTOMER_HOME,
            location_address="5 Oak Ave",
            location_lat=-33.9,
        )
        assert request.to_payload() == {
            "stylistId": "st-1",
            "serviceId": "sv-1",
            "scheduledStartTime": "2025-03-10T09:00:00.000Z",
            "locationType": "CUSTOMER_HOME",
            "locationAddress": "5 Oak Ave",
            "locationLat": -33.9,
        }


class TestPricing:
    def test_platform_fee_not_added_to_total(self):
        breakdown = calculate_price_breakdown(35000)
        assert breakdown.platform_fee == 3500
        assert breakdown.travel_fee == 0
        assert breakdown.total_amount == 35000

    def test_travel_fee_added(self):
        breakdown = calculate_price_breakdown(35000, has_travel_fee=True)
        assert breakdown.travel_fee == 5000
        assert breakdown.total_amount == 40000

    def test_fee_rounds_half_up(self):
        assert calculate_price_breakdown(15).platform_fee == 2


class TestTimeSlots:
    def test_future_day_slots_fit_before_close(self):
        slots = generate_time_slots(date(2025, 3, 11), 120, now=datetime(2025, 3, 10, 12, 0))
        times = [s.time for s in slots]
        assert times[0] == "08:00"
        assert times[-1] == "16:00"
        assert len(times) == 17

    def test_today_skips_past_and_current_slots(self):
        slots = generate_time_slots(date(2025, 3, 10), 30, now=datetime(2025, 3, 10, 14, 30))
        assert slots[0].time == "15:00"
        assert slots[-1].time == "17:30"

    def test_long_service_has_no_slots(self):
        assert generate_time_slots(date(2025, 3, 11), 11 * 60, now=datetime(2025, 3, 10)) == []


class TestLifecycle:
    def test_table_covers_every_status(self):
        assert set(VALID_TRANSITIONS) == set(BookingStatus)

    @pytest.mark.parametrize(
        "current,new",
        [
            ("PENDING_STYLIST_APPROVAL", "PENDING_CUSTOMER_PAYMENT"),
            ("PENDING_CUSTOMER_PAYMENT", "CONFIRMED"),
            ("CONFIRMED", "IN_PROGRESS"),
            ("IN_PROGRESS", "COMPLETED"),
            ("COMPLETED", "AWAITING_CUSTOMER_CONFIRMATION"),
            ("AWAITING_CUSTOMER_CONFIRMATION", "SETTLED"),
            ("DISPUTED", "SETTLED"),
        ],
    )
    def test_allowed_transitions(self, current, new):
        assert can_transition_to(current, new)
        validate_transition(current, new)

    def test_rejected_transition_message(self):
        with pytest.raises(InvalidTransitionError) as excinfo:
            validate_transition(BookingStatus.CONFIRMED, BookingStatus.SETTLED)
        assert str(excinfo.value) == "Invalid status transition: CONFIRMED -> SETTLED"
        assert excinfo.value.current is BookingStatus.CONFIRMED
        assert isinstance(excinfo.value, ValueError)

    def test_terminal_statuses(self):
        terminal = {s for s in BookingStatus if is_terminal_status(s)}
        assert terminal == {BookingStatus.SETTLED, BookingStatus.CANCELLED, BookingStatus.DECLINED}

    def test_next_states_in_enum_order(self):
        assert get_valid_next_states("PENDING_STYLIST_APPROVAL") == [
            BookingStatus.PENDING_CUSTOMER_PAYMENT,
            BookingStatus.CANCELLED,
            BookingStatus.DECLINED,
        ]
        assert get_valid_next_states("SETTLED") == []


class TestCancellationPolicy:
    @pytest.mark.parametrize(
        "hours,percentage",
        [(48, 100), (24.01, 100), (24, 75), (12.5, 75), (12, 50), (3, 50), (2, 0), (0.5, 0), (-1, 0)],
    )
    def test_tiers_with_lower_tier_on_boundary(self, hours, percentage):
        policy = get_cancellation_policy(NOW + timedelta(hours=hours), now=NOW)
        assert policy.refund_percentage == percentage
        assert policy.hours_until_appointment == pytest.approx(hours)

    def test_messages(self):
        assert get_cancellation_policy(NOW + timedelta(hours=30), now=NOW).message.startswith("Full refund")
        assert get_cancellation_policy(NOW + timedelta(hours=1), now=NOW).message == NO_REFUND_MESSAGE

    def test_accepts_iso_strings(self):
        policy = get_cancellation_policy("2025-03-11T10:00:00.000Z", now=NOW)
        assert policy.refund_percentage == 100

    def test_refund_split(self):
        refund = calculate_refund(35000, 75)
        assert refund.refund_amount == 26250
        assert refund.stylist_fee == 8750

    def test_refund_rounds_half_up(self):
        refund = calculate_refund(333, 50)
        assert refund.refund_amount == 167
        assert refund.stylist_fee == 166

    def test_can_cancel_requires_status_and_future_start(self, booking_payload):
        future = Booking.from_dict(booking_payload(scheduledStartTime="2025-03-10T10:00:00Z"))
        past = Booking.from_dict(booking_payload(scheduledStartTime="2025-03-10T08:00:00Z"))
        started = Booking.from_dict(booking_payload(status="IN_PROGRESS", scheduledStartTime="2025-03-10T10:00:00Z"))
        assert can_cancel_booking(future, now=NOW)
        assert not can_cancel_booking(past, now=NOW)
        assert not can_cancel_booking(started, now=NOW)

    def test_quote(self, booking_payload):
        booking = Booking.from_dict(booking_payload(scheduledStartTime="2025-03-10T15:00:00Z"))
        quote = quote_cancellation(booking, now=NOW)
        assert quote.booking_id == "b-1"
        assert quote.policy.refund_percentage == 50
        assert quote.refund.refund_amount == 17500
        assert quote.can_cancel is True
