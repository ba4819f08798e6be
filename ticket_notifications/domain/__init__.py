"""Domain layer: ticket rules, message formatting and channel decisions."""

from .email import send_email_notification
from .formatter import (
    build_whatsapp_link,
    format_client_message,
    format_email_html,
    format_email_subject,
    format_group_message,
    normalize_phone_number,
)
from .ticket import (
    Ticket,
    TicketValidationError,
    generate_ticket_number,
    is_valid_serial_number,
)
from .whatsapp import WhatsAppSender, send_group_notification, send_whatsapp_notification

__all__ = [
    "Ticket",
    "TicketValidationError",
    "WhatsAppSender",
    "build_whatsapp_link",
    "format_client_message",
    "format_email_html",
    "format_email_subject",
    "format_group_message",
    "generate_ticket_number",
    "is_valid_serial_number",
    "normalize_phone_number",
    "send_email_notification",
    "send_group_notification",
    "send_whatsapp_notification",
]
