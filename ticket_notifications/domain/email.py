"""Email channel decision logic.

Mental model refresher:
- Domain modules hold channel/business rules.
- They decide what should happen for this channel:
  - is required data present?
  - what message content should be sent?
- The sender is injected; this module never talks SMTP directly.
- Every attempt, including input failures, is recorded through the injected
  `record_attempt` callable (the Delivery Log).
"""

from __future__ import annotations

from .formatter import format_email_html, format_email_subject
from .ticket import Ticket
from ..types import ChannelResult, RecordAttemptFn, SendEmailFn

CHANNEL = "email"
MISSING_EMAIL_ERROR = "No email address provided"


def send_email_notification(
    ticket: Ticket,
    send_email: SendEmailFn,
    record_attempt: RecordAttemptFn,
) -> ChannelResult:
    """Run email-channel rules and return a plain channel result dictionary."""
    recipient = (ticket.email or "").strip()
    if not recipient:
        record_attempt(
            channel=CHANNEL,
            to="",
            message="",
            success=False,
            error=MISSING_EMAIL_ERROR,
            ticket_number=ticket.ticket_number,
        )
        return _result(success=False, error=MISSING_EMAIL_ERROR)

    try:
        subject = format_email_subject(ticket)
        body = format_email_html(ticket)
    except Exception as exc:
        error = f"format_failed: {exc}"
        record_attempt(
            channel=CHANNEL,
            to=recipient,
            message="",
            success=False,
            error=error,
            ticket_number=ticket.ticket_number,
        )
        return _result(success=False, error=error)

    try:
        message_id = send_email(to_email=recipient, subject=subject, body=body)
    except Exception as exc:
        record_attempt(
            channel=CHANNEL,
            to=recipient,
            message=body,
            success=False,
            error=str(exc),
            ticket_number=ticket.ticket_number,
        )
        return _result(success=False, error=str(exc))

    record_attempt(
        channel=CHANNEL,
        to=recipient,
        message=body,
        success=True,
        message_id=message_id,
        ticket_number=ticket.ticket_number,
    )
    return _result(success=True, message_id=message_id)


def _result(
    *, success: bool, error: str | None = None, message_id: str | None = None
) -> ChannelResult:
    return {
        "channel": CHANNEL,
        "requested": True,
        "success": success,
        "error": error,
        "message_id": message_id,
    }
