"""Payload adapter functions.

Mental model refresher:
- This is an adapter/edge module.
- It translates datastore rows and transport payloads (snake_case or
  camelCase keys) into the canonical `Ticket`, and back into the snake_case
  wire shape.
- It validates shape and basic field formats, but it does not decide
  business outcomes like which channels succeed.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from ..domain.ticket import (
    ISSUE_CATEGORIES,
    PRIORITIES,
    Ticket,
    normalize_choice,
    normalize_status,
    normalize_user_type,
)
from ..types import Record, RecordDict

_CAMEL_ALIASES = {
    "ticketNumber": "ticket_number",
    "serialNumber": "serial_number",
    "companyName": "company_name",
    "contactPerson": "contact_person",
    "mobileNumber": "mobile_number",
    "issueRelated": "issue_related",
    "userType": "user_type",
    "assignedExecutive": "assigned_executive",
    "expiryDate": "expiry_date",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "startedAt": "started_at",
    "closedAt": "closed_at",
    "groupName": "group_name",
    "groupId": "group_id",
}


def canonical_keys(record: Record) -> RecordDict:
    """Return a copy of `record` keyed in snake_case.

    When both spellings are present the snake_case value wins.
    """
    result: RecordDict = {}
    for key, value in record.items():
        target = _CAMEL_ALIASES.get(key, key)
        if target != key and target in record:
            continue
        result[target] = value
    return result


def ticket_from_record(record: Record) -> Ticket:
    """Map a datastore row or API payload into the canonical `Ticket`."""
    data = canonical_keys(record)
    ticket_id = _as_required_str(data.get("id"), "id")

    return Ticket(
        id=ticket_id,
        ticket_number=_as_optional_str(data.get("ticket_number")),
        serial_number=_as_optional_str(data.get("serial_number")),
        company_name=_as_optional_str(data.get("company_name")),
        contact_person=_as_optional_str(data.get("contact_person")),
        mobile_number=_as_optional_str(data.get("mobile_number")),
        email=_as_optional_str(data.get("email")),
        issue_related=normalize_choice(
            _as_optional_str(data.get("issue_related")), ISSUE_CATEGORIES, "issue category"
        ),
        priority=normalize_choice(_as_optional_str(data.get("priority")), PRIORITIES, "priority"),
        user_type=normalize_user_type(_as_optional_str(data.get("user_type"))),
        status=normalize_status(_as_optional_str(data.get("status"))),
        assigned_executive=_as_optional_str(data.get("assigned_executive")),
        version=_as_optional_str(data.get("version")),
        expiry_date=parse_date(data.get("expiry_date"), "expiry_date"),
        created_at=parse_datetime(data.get("created_at"), "created_at"),
        updated_at=parse_datetime(data.get("updated_at"), "updated_at"),
        started_at=parse_datetime(data.get("started_at"), "started_at"),
        closed_at=parse_datetime(data.get("closed_at"), "closed_at"),
        resolution=_as_optional_str(data.get("resolution")),
        remarks=_as_optional_str(data.get("remarks")),
        group_name=_as_optional_str(data.get("group_name")),
        group_id=_as_optional_str(data.get("group_id")),
    )


def ticket_to_record(ticket: Ticket) -> RecordDict:
    """Return the snake_case, JSON-compatible representation of a ticket."""
    record: RecordDict = {}
    for name in Ticket.__dataclass_fields__:
        value = getattr(ticket, name)
        if isinstance(value, (datetime, date)):
            value = value.isoformat()
        record[name] = value
    return record


def parse_ticket_closed_payload(payload: Record) -> RecordDict:
    """Normalize a `tickets.closed` event into `{event_id, ticket}`.

    This is the first handoff from transport data to internal data.
    """
    raw_ticket = payload.get("ticket")
    if not isinstance(raw_ticket, dict):
        raise ValueError("Missing required field: ticket")

    return {
        "event_id": _as_required_str(payload.get("event_id"), "event_id"),
        "ticket": ticket_from_record(raw_ticket),
    }


def parse_datetime(value: Any, field_name: str) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"Invalid datetime for {field_name}: {value!r}") from exc


def parse_date(value: Any, field_name: str) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError as exc:
        raise ValueError(f"Invalid date for {field_name}: {value!r}") from exc


def _as_required_str(value: Any, field_name: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValueError(f"Missing required field: {field_name}")
    return text


def _as_optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
