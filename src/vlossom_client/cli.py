"""
Command line front end for the Vlossom API.

Usage examples:
    vlossom login
    vlossom bookings list --status CONFIRMED
    vlossom bookings cancel-quote <booking-id>
    vlossom rentals approve <request-id>
    vlossom live <booking-id>

Login cookies are stored in the session file (VLOSSOM_SESSION_FILE) so later
commands reuse them.
"""

import argparse
import getpass
import logging
import sys
from typing import Callable, Dict, Optional, Sequence

from .api.exceptions import ApiError
from .client import VlossomClient
from .config.settings import ConfigurationError, SecretRedactionFilter, Settings, get_credentials
from .domain.booking import Booking, BookingStatus
from .domain.cancellation import quote_cancellation
from .domain.lifecycle import get_valid_next_states
from .domain.property import RentalStatus, get_category_display_name, get_rental_mode_display_name
from .live.updates import LiveUpdateEvent
from .utils.logger import add_log_filter
from .utils.money import format_duration, format_price
from .utils.timezone import to_iso


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="vlossom", description="Vlossom API command line client.")
    parser.add_argument("--api-url", help="API base URL (overrides VLOSSOM_API_URL)")
    parser.add_argument("--config", help="Path to a YAML client config file")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    commands = parser.add_subparsers(dest="command", required=True)

    login = commands.add_parser("login", help="Log in and store the session")
    login.add_argument("--email", help="Account email (prompts for the password)")
    commands.add_parser("logout", help="Log out and forget the stored session")

    bookings = commands.add_parser("bookings", help="Booking commands").add_subparsers(
        dest="action", required=True
    )
    listing = bookings.add_parser("list", help="List your bookings")
    listing.add_argument("--status", choices=[s.value for s in BookingStatus])
    listing.add_argument("--page", type=int, default=1)
    listing.add_argument("--limit", type=int, default=20)
    show = bookings.add_parser("show", help="Show one booking")
    show.add_argument("booking_id")
    quote = bookings.add_parser("cancel-quote", help="Show the refund you would get on cancelling")
    quote.add_argument("booking_id")
    cancel = bookings.add_parser("cancel", help="Cancel a booking")
    cancel.add_argument("booking_id")
    cancel.add_argument("--reason", help="Cancellation reason")

    properties = commands.add_parser("properties", help="Property owner commands").add_subparsers(
        dest="action", required=True
    )
    properties.add_parser("list", help="List your properties")

    rentals = commands.add_parser("rentals", help="Chair rental requests").add_subparsers(
        dest="action", required=True
    )
    rental_list = rentals.add_parser("list", help="List rental requests for your properties")
    rental_list.add_argument("--status", choices=[s.value for s in RentalStatus])
    for action in ("approve", "decline"):
        decide = rentals.add_parser(action, help=f"{action.capitalize()} a rental request")
        decide.add_argument("request_id")
        decide.add_argument("--reason")

    live = commands.add_parser("live", help="Follow a booking's live session")
    live.add_argument("booking_id")

    return parser.parse_args(argv)


def print_booking(booking: Booking, detailed: bool = False) -> None:
    print(
        f"{booking.id}  {booking.status.value:<32} {to_iso(booking.scheduled_start_time)}  "
        f"{booking.service.name} with {booking.stylist.display_name}  "
        f"{format_price(booking.total_amount_cents)}"
    )
    if not detailed:
        return
    print(f"  Duration:  {format_duration(booking.service.estimated_duration_min)}")
    print(f"  Location:  {booking.location_type.value} {booking.location_address}".rstrip())
    print(f"  Fee:       {format_price(booking.platform_fee_cents)}")
    if booking.escrow_tx_hash:
        print(f"  Escrow tx: {booking.escrow_tx_hash}")
    if booking.notes:
        print(f"  Notes:     {booking.notes}")
    next_states = get_valid_next_states(booking.status)
    print(f"  Next:      {', '.join(s.value for s in next_states) or '(final)'}")


def cmd_login(client: VlossomClient, args: argparse.Namespace) -> int:
    if args.email:
        email, password = args.email, getpass.getpass("Password: ")
    else:
        credentials = get_credentials()
        email, password = credentials["email"], credentials["password"]
    add_log_filter(SecretRedactionFilter({"password": password}))

    user = client.auth.login(email, password)
    client.save_session(email=email)
    print(f"Logged in as {user.display_name or user.email} ({', '.join(user.roles)})")
    return 0


def cmd_logout(client: VlossomClient, args: argparse.Namespace) -> int:
    client.logout()
    print("Logged out")
    return 0


def cmd_bookings(client: VlossomClient, args: argparse.Namespace) -> int:
    if args.action == "list":
        page = client.bookings.list_bookings(status=args.status, page=args.page, limit=args.limit)
        for booking in page.bookings:
            print_booking(booking)
        print(f"\n{len(page.bookings)} of {page.total} bookings (page {page.page})")
        return 0

    booking = client.bookings.get_booking(args.booking_id)

    if args.action == "show":
        print_booking(booking, detailed=True)
    elif args.action == "cancel-quote":
        quote = quote_cancellation(booking)
        if not quote.can_cancel:
            print(f"Booking {booking.id} cannot be cancelled ({booking.status.value})")
            return 0
        print(f"Hours until appointment: {quote.policy.hours_until_appointment:.1f}")
        print(f"Refund:      {quote.policy.refund_percentage}% {format_price(quote.refund.refund_amount)}")
        print(f"Stylist fee: {format_price(quote.refund.stylist_fee)}")
        print(quote.policy.message)
    elif args.action == "cancel":
        quote = quote_cancellation(booking)
        cancelled = client.bookings.cancel_booking(booking.id, reason=args.reason)
        print(f"Cancelled {cancelled.id}; expected refund {format_price(quote.refund.refund_amount)}")
    return 0


def cmd_properties(client: VlossomClient, args: argparse.Namespace) -> int:
    properties = client.properties.list_my_properties()
    for prop in properties:
        print(
            f"{prop.id}  {prop.name}  {get_category_display_name(prop.category.value)}  "
            f"{prop.city}  chairs: {prop.chair_count}"
        )
    print(f"\n{len(properties)} properties")
    return 0


def cmd_rentals(client: VlossomClient, args: argparse.Namespace) -> int:
    if args.action == "list":
        requests_ = client.properties.list_rental_requests(status=args.status)
        for request in requests_:
            print(
                f"{request.id}  {request.status.value:<16} {request.stylist_name or request.stylist_id}  "
                f"{request.chair_name or request.chair_id} @ {request.property_name or request.property_id}  "
                f"{get_rental_mode_display_name(request.rental_mode.value)}  "
                f"{format_price(request.total_amount_cents)}"
            )
        print(f"\n{len(requests_)} rental requests")
        return 0

    if args.action == "approve":
        client.properties.approve_rental_request(args.request_id, reason=args.reason)
        print(f"Approved {args.request_id}")
    else:
        client.properties.decline_rental_request(args.request_id, reason=args.reason)
        print(f"Declined {args.request_id}")
    return 0


def cmd_live(client: VlossomClient, args: argparse.Namespace) -> int:
    def on_update(event: LiveUpdateEvent) -> None:
        print(f"[{to_iso(event.timestamp)}] {event.type.value} {event.data}")

    def on_connection_change(connected: bool) -> None:
        print("Connected" if connected else "Disconnected", file=sys.stderr)

    tracker = client.live(
        args.booking_id,
        on_update=on_update,
        on_session_ended=lambda: print("Session ended"),
        on_connection_change=on_connection_change,
    )
    try:
        tracker.connect()
    except KeyboardInterrupt:
        tracker.disconnect()
        return 0

    state = tracker.state
    if state.error and not state.is_connected and state.last_event is None:
        print(f"[ERROR] {state.error}", file=sys.stderr)
        return 1
    return 0


COMMANDS: Dict[str, Callable[[VlossomClient, argparse.Namespace], int]] = {
    "login": cmd_login,
    "logout": cmd_logout,
    "bookings": cmd_bookings,
    "properties": cmd_properties,
    "rentals": cmd_rentals,
    "live": cmd_live,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    if args.quiet:
        logging.disable(logging.INFO)

    try:
        client = VlossomClient(Settings(api_url=args.api_url, config_path=args.config))
        if args.command != "login":
            client.restore_session()

        code = COMMANDS[args.command](client, args)

        if args.command not in ("login", "logout") and client.api.is_authenticated():
            # A refresh during the command may have rotated the cookies
            client.save_session()
        return code
    except (ApiError, ConfigurationError, ValueError) as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
