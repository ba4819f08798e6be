"""Adapter layer: payload mapping, storage, sender implementations and transports."""

from .consumer_handler import handle_batch, handle_message
from .delivery_log import DeliveryLog, delivery_log_from_env
from .fake_senders import ConsoleWhatsAppSession, send_email_via_console
from .kafka_runtime import publish_ticket_closed_event, run_notification_worker_forever
from .payload import parse_ticket_closed_payload, ticket_from_record, ticket_to_record
from .real_senders import EmailConfigurationError, send_email_via_smtp_from_env
from .ticket_store import InMemoryTicketStore
from .whatsapp import (
    GroupNotFoundError,
    WhatsAppChat,
    WhatsAppDispatcher,
    WhatsAppLinkSender,
    WhatsAppNotReadyError,
    WhatsAppSession,
)
from .wiring import TicketClosedNotifier, notifier_from_env

__all__ = [
    "ConsoleWhatsAppSession",
    "DeliveryLog",
    "EmailConfigurationError",
    "GroupNotFoundError",
    "InMemoryTicketStore",
    "TicketClosedNotifier",
    "WhatsAppChat",
    "WhatsAppDispatcher",
    "WhatsAppLinkSender",
    "WhatsAppNotReadyError",
    "WhatsAppSession",
    "delivery_log_from_env",
    "handle_batch",
    "handle_message",
    "notifier_from_env",
    "parse_ticket_closed_payload",
    "publish_ticket_closed_event",
    "run_notification_worker_forever",
    "send_email_via_console",
    "send_email_via_smtp_from_env",
    "ticket_from_record",
    "ticket_to_record",
]
