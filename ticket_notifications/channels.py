"""Compatibility facade for notification functions.

Module layout by abstraction layer:
- adapters: payload mapping, storage, sender adapters and transports
- domain: ticket rules, formatting and email/WhatsApp decision logic
- application: orchestration across channels, retry helpers
"""

from .adapters.consumer_handler import handle_batch, handle_message
from .adapters.delivery_log import DeliveryLog
from .adapters.fake_senders import ConsoleWhatsAppSession, send_email_via_console
from .adapters.kafka_runtime import publish_ticket_closed_event, run_notification_worker_forever
from .adapters.payload import parse_ticket_closed_payload, ticket_from_record, ticket_to_record
from .adapters.real_senders import send_email_via_smtp_from_env
from .adapters.ticket_store import InMemoryTicketStore
from .adapters.whatsapp import WhatsAppChat, WhatsAppDispatcher, WhatsAppLinkSender
from .adapters.wiring import TicketClosedNotifier, notifier_from_env
from .application.process import process_ticket_closed
from .domain.email import send_email_notification
from .domain.formatter import (
    build_whatsapp_link,
    format_client_message,
    format_group_message,
    normalize_phone_number,
)
from .domain.ticket import Ticket, is_valid_serial_number
from .domain.whatsapp import send_group_notification, send_whatsapp_notification

__all__ = [
    "ConsoleWhatsAppSession",
    "DeliveryLog",
    "InMemoryTicketStore",
    "Ticket",
    "TicketClosedNotifier",
    "WhatsAppChat",
    "WhatsAppDispatcher",
    "WhatsAppLinkSender",
    "build_whatsapp_link",
    "format_client_message",
    "format_group_message",
    "handle_batch",
    "handle_message",
    "is_valid_serial_number",
    "normalize_phone_number",
    "notifier_from_env",
    "parse_ticket_closed_payload",
    "process_ticket_closed",
    "publish_ticket_closed_event",
    "run_notification_worker_forever",
    "send_email_notification",
    "send_email_via_console",
    "send_email_via_smtp_from_env",
    "send_group_notification",
    "send_whatsapp_notification",
    "ticket_from_record",
    "ticket_to_record",
]
