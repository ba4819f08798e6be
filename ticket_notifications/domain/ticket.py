"""Canonical ticket record and ticket-level business rules.

Mental model refresher:
- Domain modules hold business rules and carry no I/O.
- `Ticket` is the only shape notification code reads. Datastore rows and API
  payloads are mapped into it at the adapter boundary (see adapters/payload).
- Rules here: serial number checksum, ticket number format, enum
  normalization.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
import random
import re

STATUS_OPEN = "open"
STATUS_PROCESSING = "processing"
STATUS_ON_HOLD = "on-hold"
STATUS_CLOSED = "closed"

TICKET_STATUSES = (STATUS_OPEN, STATUS_PROCESSING, STATUS_ON_HOLD, STATUS_CLOSED)
ISSUE_CATEGORIES = ("data", "network", "licence", "entry")
PRIORITIES = ("high", "medium", "low")
USER_TYPES = ("single-user", "multiuser")

SERIAL_NUMBER_LENGTH = 9
TICKET_NUMBER_PATTERN = re.compile(r"^TICKET/\d{4}/\d{4}$")


class TicketValidationError(ValueError):
    """Raised when ticket data breaks a domain rule."""


@dataclass(frozen=True)
class Ticket:
    id: str
    ticket_number: str | None = None
    serial_number: str | None = None
    company_name: str | None = None
    contact_person: str | None = None
    mobile_number: str | None = None
    email: str | None = None
    issue_related: str | None = None
    priority: str | None = None
    user_type: str | None = None
    status: str = STATUS_OPEN
    assigned_executive: str | None = None
    version: str | None = None
    expiry_date: date | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    started_at: datetime | None = None
    closed_at: datetime | None = None
    resolution: str | None = None
    remarks: str | None = None
    group_name: str | None = None
    group_id: str | None = None

    @property
    def is_closed(self) -> bool:
        return self.status == STATUS_CLOSED

    @property
    def group_identifier(self) -> str | None:
        """Support group to notify; an explicit id wins over a name."""
        return self.group_id or self.group_name or None

    def with_changes(self, **changes: object) -> "Ticket":
        return replace(self, **changes)


def digital_root(digits: str) -> int:
    """Repeatedly sum decimal digits until a single digit remains."""
    total = sum(int(char) for char in digits)
    while total >= 10:
        total = sum(int(char) for char in str(total))
    return total


def is_valid_serial_number(serial_number: str | None) -> bool:
    """Tally serial numbers are 9 digits whose iterated digit sum is 9."""
    if not serial_number or len(serial_number) != SERIAL_NUMBER_LENGTH:
        return False
    if not (serial_number.isascii() and serial_number.isdigit()):
        return False
    return digital_root(serial_number) == 9


def generate_ticket_number(
    *, year: int | None = None, rng: random.Random | None = None
) -> str:
    """Return `TICKET/<year>/<4-digit random>`."""
    chooser = rng or random
    ticket_year = year if year is not None else datetime.now().year
    return f"TICKET/{ticket_year}/{chooser.randint(1000, 9999)}"


def normalize_status(value: str | None) -> str:
    if value is None or not str(value).strip():
        return STATUS_OPEN
    normalized = _slug(value)
    if normalized not in TICKET_STATUSES:
        raise TicketValidationError(f"Unknown ticket status: {value!r}")
    return normalized


def normalize_user_type(value: str | None) -> str | None:
    if value is None or not str(value).strip():
        return None
    normalized = _slug(value)
    if normalized == "multi-user":
        normalized = "multiuser"
    if normalized not in USER_TYPES:
        raise TicketValidationError(f"Unknown user type: {value!r}")
    return normalized


def normalize_choice(value: str | None, choices: tuple[str, ...], field_name: str) -> str | None:
    if value is None or not str(value).strip():
        return None
    normalized = str(value).strip().lower()
    if normalized not in choices:
        raise TicketValidationError(f"Unknown {field_name}: {value!r}")
    return normalized


def validate_ticket(ticket: Ticket) -> None:
    """Check the rules a ticket must satisfy before it is stored."""
    if not is_valid_serial_number(ticket.serial_number):
        raise TicketValidationError(
            "Tally serial number must be exactly 9 digits with a digit sum reducing to 9"
        )
    if ticket.ticket_number and not TICKET_NUMBER_PATTERN.match(ticket.ticket_number):
        raise TicketValidationError(
            f"Ticket number must look like TICKET/<year>/<4 digits>: {ticket.ticket_number!r}"
        )
    normalize_status(ticket.status)
    normalize_choice(ticket.issue_related, ISSUE_CATEGORIES, "issue category")
    normalize_choice(ticket.priority, PRIORITIES, "priority")
    normalize_user_type(ticket.user_type)


def _slug(value: str) -> str:
    return re.sub(r"[\s_]+", "-", str(value).strip().lower())
