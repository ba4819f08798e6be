"""In-memory ticket store used when no database is configured.

Mental model refresher:
- This is the data-access edge. It owns ticket persistence and the status
  transition into `closed`.
- The store commits first, then calls the injected `on_closed` hook. The
  hook is either the in-process notifier or the Kafka outbox publisher.
- Hook failures are logged and swallowed: closing a ticket always succeeds.
"""

from __future__ import annotations

from datetime import UTC, datetime
import logging
import threading
from typing import Any, Callable, Iterable
import uuid

from ..domain.ticket import Ticket, generate_ticket_number, validate_ticket
from ..types import Record
from .payload import canonical_keys, ticket_from_record, ticket_to_record

logger = logging.getLogger(__name__)

OnClosedFn = Callable[[Ticket], Any]


class InMemoryTicketStore:
    def __init__(
        self,
        tickets: Iterable[Ticket] = (),
        *,
        on_closed: OnClosedFn | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._tickets: dict[str, Ticket] = {ticket.id: ticket for ticket in tickets}
        self._lock = threading.Lock()
        self._now = now or (lambda: datetime.now(tz=UTC))
        self.on_closed = on_closed

    def save(self, data: Record) -> Ticket:
        """Validate and store a new ticket; assigns id and ticket number if absent."""
        record = canonical_keys(data)
        timestamp = self._now()
        record["id"] = record.get("id") or uuid.uuid4().hex[:9]
        record["ticket_number"] = record.get("ticket_number") or generate_ticket_number(
            year=timestamp.year
        )
        record["created_at"] = record.get("created_at") or timestamp
        record["updated_at"] = record.get("updated_at") or timestamp

        ticket = ticket_from_record(record)
        validate_ticket(ticket)
        with self._lock:
            self._tickets[ticket.id] = ticket
        return ticket

    def find_by_id(self, ticket_id: str) -> Ticket | None:
        with self._lock:
            return self._tickets.get(ticket_id)

    def find(
        self,
        *,
        status: str | None = None,
        priority: str | None = None,
        company_name: str | None = None,
        serial_number: str | None = None,
        search: str | None = None,
    ) -> list[Ticket]:
        """Return matching tickets, newest first. `"all"` disables a filter."""
        with self._lock:
            result = list(self._tickets.values())

        if serial_number:
            result = [ticket for ticket in result if ticket.serial_number == serial_number]
        if status and status != "all":
            result = [ticket for ticket in result if ticket.status == status]
        if priority and priority != "all":
            result = [ticket for ticket in result if ticket.priority == priority]
        if company_name and company_name != "all":
            result = [ticket for ticket in result if ticket.company_name == company_name]
        if search:
            term = search.lower()
            result = [ticket for ticket in result if _matches_search(ticket, term)]

        oldest = datetime.min.replace(tzinfo=UTC)
        result.sort(key=lambda ticket: _aware(ticket.created_at) or oldest, reverse=True)
        return result

    def update_by_id(self, ticket_id: str, changes: Record) -> Ticket | None:
        """Merge `changes` into a ticket; fires `on_closed` on the transition to closed."""
        with self._lock:
            current = self._tickets.get(ticket_id)
            if current is None:
                return None

            record = ticket_to_record(current)
            record.update(canonical_keys(changes))
            record["id"] = current.id
            timestamp = self._now()
            record["updated_at"] = timestamp

            updated = ticket_from_record(record)
            is_closing = updated.is_closed and not current.is_closed
            if is_closing and updated.closed_at is None:
                updated = updated.with_changes(closed_at=timestamp)
            validate_ticket(updated)
            self._tickets[ticket_id] = updated

        if is_closing:
            self._notify_closed(updated)
        return updated

    def remove_by_id(self, ticket_id: str) -> bool:
        with self._lock:
            return self._tickets.pop(ticket_id, None) is not None

    def _notify_closed(self, ticket: Ticket) -> None:
        if self.on_closed is None:
            return
        logger.info("Ticket %s closed; dispatching notifications", ticket.ticket_number)
        try:
            result = self.on_closed(ticket)
        except Exception:
            logger.exception(
                "Notification hook failed for ticket %s; ticket stays closed",
                ticket.ticket_number,
            )
            return
        logger.info("Notification result for ticket %s: %s", ticket.ticket_number, result)


def _matches_search(ticket: Ticket, term: str) -> bool:
    fields = (
        ticket.ticket_number,
        ticket.serial_number,
        ticket.company_name,
        ticket.contact_person,
        ticket.email,
    )
    return any(term in (value or "").lower() for value in fields)


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
