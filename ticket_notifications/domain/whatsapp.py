"""WhatsApp channel decision logic (client thank-you and support group).

Mental model refresher:
- Domain modules decide what gets sent and to whom.
- Delivery, retries, readiness waits and Delivery Log writes belong to the
  injected `WhatsAppSender` (see adapters/whatsapp.py), which never raises.
"""

from __future__ import annotations

from typing import Protocol

from .formatter import format_client_message, format_group_message
from .ticket import Ticket
from ..types import ChannelResult, SendResult

CLIENT_CHANNEL = "whatsapp"
GROUP_CHANNEL = "whatsapp_group"


class WhatsAppSender(Protocol):
    def send_to_number(
        self, number: str, message: str, *, ticket_number: str | None = None
    ) -> SendResult: ...

    def send_to_group(
        self, identifier: str, message: str, *, ticket_number: str | None = None
    ) -> SendResult: ...


def send_whatsapp_notification(ticket: Ticket, whatsapp: WhatsAppSender) -> ChannelResult:
    """Send the client thank-you message to the ticket's mobile number."""
    try:
        message = format_client_message(ticket)
    except Exception as exc:
        return _result(CLIENT_CHANNEL, {"success": False, "error": f"format_failed: {exc}"})

    sent = whatsapp.send_to_number(
        ticket.mobile_number or "", message, ticket_number=ticket.ticket_number
    )
    return _result(CLIENT_CHANNEL, sent)


def send_group_notification(
    ticket: Ticket,
    whatsapp: WhatsAppSender,
    default_group: str | None = None,
) -> ChannelResult:
    """Post the closure summary to the ticket's support group, if one is set."""
    group = ticket.group_identifier or default_group
    if not group:
        return {
            "channel": GROUP_CHANNEL,
            "requested": False,
            "success": True,
            "error": None,
            "message_id": None,
        }

    try:
        message = format_group_message(ticket)
    except Exception as exc:
        return _result(GROUP_CHANNEL, {"success": False, "error": f"format_failed: {exc}"})

    sent = whatsapp.send_to_group(group, message, ticket_number=ticket.ticket_number)
    return _result(GROUP_CHANNEL, sent)


def _result(channel: str, sent: SendResult) -> ChannelResult:
    result: ChannelResult = {
        "channel": channel,
        "requested": True,
        "success": bool(sent.get("success")),
        "error": sent.get("error"),
        "message_id": sent.get("message_id"),
    }
    if sent.get("degraded"):
        result["degraded"] = True
    if sent.get("url"):
        result["url"] = sent["url"]
    if sent.get("instructions"):
        result["instructions"] = sent["instructions"]
    return result
