"""Ticket-closed notifications for the support ticket tracker."""

from .channels import (
    ConsoleWhatsAppSession,
    DeliveryLog,
    InMemoryTicketStore,
    Ticket,
    TicketClosedNotifier,
    WhatsAppChat,
    WhatsAppDispatcher,
    WhatsAppLinkSender,
    build_whatsapp_link,
    format_client_message,
    format_group_message,
    handle_batch,
    handle_message,
    is_valid_serial_number,
    normalize_phone_number,
    notifier_from_env,
    parse_ticket_closed_payload,
    process_ticket_closed,
    publish_ticket_closed_event,
    run_notification_worker_forever,
    send_email_notification,
    send_email_via_console,
    send_email_via_smtp_from_env,
    send_group_notification,
    send_whatsapp_notification,
    ticket_from_record,
    ticket_to_record,
)

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
