"""Application orchestration for ticket-closed notifications.

Mental model refresher:
- Application layer coordinates use-case flow across domain modules.
- It runs after the ticket store has already committed the closed status,
  so nothing here may raise back into the caller.
- In this project it:
  1) calls email domain logic
  2) calls WhatsApp client domain logic
  3) calls WhatsApp support-group domain logic
  4) aggregates a single success signal used for commit/dead-letter decisions
"""

from __future__ import annotations

import logging

from ..domain.email import send_email_notification
from ..domain.ticket import Ticket
from ..domain.whatsapp import (
    CLIENT_CHANNEL,
    GROUP_CHANNEL,
    WhatsAppSender,
    send_group_notification,
    send_whatsapp_notification,
)
from ..types import ChannelResult, ProcessingResult, RecordAttemptFn, SendEmailFn

logger = logging.getLogger(__name__)


def process_ticket_closed(
    ticket: Ticket,
    *,
    send_email: SendEmailFn,
    whatsapp: WhatsAppSender,
    record_attempt: RecordAttemptFn,
    default_group: str | None = None,
) -> ProcessingResult:
    """Execute the notification use-case for one closed ticket."""
    email_result = _guarded(
        "email", lambda: send_email_notification(ticket, send_email, record_attempt)
    )
    whatsapp_result = _guarded(
        CLIENT_CHANNEL, lambda: send_whatsapp_notification(ticket, whatsapp)
    )
    group_result = _guarded(
        GROUP_CHANNEL, lambda: send_group_notification(ticket, whatsapp, default_group)
    )
    channel_results = [email_result, whatsapp_result, group_result]

    all_requested_succeeded = all(
        (not item["requested"]) or item["success"] for item in channel_results
    )

    for item in channel_results:
        if item["requested"] and not item["success"]:
            logger.warning(
                "Ticket %s: %s notification failed: %s",
                ticket.ticket_number,
                item["channel"],
                item["error"],
            )

    return {
        "ticket_id": ticket.id,
        "ticket_number": ticket.ticket_number,
        "email": email_result,
        "whatsapp": whatsapp_result,
        "group": group_result,
        "all_requested_succeeded": all_requested_succeeded,
    }


def _guarded(channel: str, run) -> ChannelResult:
    # Channel modules already convert failures to results; this catches bugs
    # in injected collaborators so one channel cannot abort the others.
    try:
        return run()
    except Exception as exc:
        logger.exception("Unexpected error in %s notification", channel)
        return {
            "channel": channel,
            "requested": True,
            "success": False,
            "error": str(exc),
            "message_id": None,
        }
