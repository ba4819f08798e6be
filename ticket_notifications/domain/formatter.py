"""Message formatting for ticket-closed notifications.

Mental model refresher:
- Pure functions only: ticket in, text out.
- Channel modules decide whether to send; this module decides what the
  message says.
"""

from __future__ import annotations

from datetime import date, datetime
import html
import re
import urllib.parse

from .ticket import Ticket

DEFAULT_COUNTRY_CODE = "971"
DEFAULT_RESOLUTION = "No resolution details provided."
DEFAULT_CONTACT = "Customer"
SIGN_OFF = "Thank you for your patience! Techzon Support Team"
NOT_AVAILABLE = "N/A"
WHATSAPP_SEND_URL = "https://api.whatsapp.com/send"

_NON_DIGITS = re.compile(r"\D")


def normalize_phone_number(raw: str | None, country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """Strip a phone number to digits and add the regional country code.

    This is a regional heuristic, not an E.164 parser:
    - 10 digits with a leading 0 -> the 0 is replaced by the country code
    - 9 digits starting with 5 -> country code prepended
    - any other 10 digits -> country code prepended
    - everything else passes through as digits only

    A number already carrying the country code is left alone, so the result
    normalizes to itself even for one-digit country codes.
    """
    digits = _NON_DIGITS.sub("", raw or "")
    local_length = len(digits) - len(country_code)
    if country_code and digits.startswith(country_code) and local_length in (9, 10):
        return digits
    if len(digits) == 10 and digits.startswith("0"):
        return f"{country_code}{digits[1:]}"
    if len(digits) == 9 and digits.startswith("5"):
        return f"{country_code}{digits}"
    if len(digits) == 10:
        return f"{country_code}{digits}"
    return digits


def resolution_text(ticket: Ticket) -> str:
    text = (ticket.resolution or "").strip()
    return text or DEFAULT_RESOLUTION


def format_client_message(ticket: Ticket) -> str:
    """Thank-you message sent to the customer's WhatsApp number."""
    contact = (ticket.contact_person or "").strip() or DEFAULT_CONTACT
    ticket_number = (ticket.ticket_number or "").strip() or NOT_AVAILABLE
    return (
        f"Hello {contact}, Your support ticket {ticket_number} has been resolved. "
        f"Resolution Details: {resolution_text(ticket)} {SIGN_OFF}"
    )


def format_group_message(ticket: Ticket) -> str:
    """Detailed closure summary posted to the internal support group."""
    lines = [
        "*Ticket Resolved Notification*",
        "============================",
        f"Company name  : {_or_na(ticket.company_name)}",
        f"Serial No: {_or_na(ticket.serial_number)}",
        f"Version : {_or_na(ticket.version)}",
        f"Expiry: {format_date(ticket.expiry_date)}",
        f"Contact Person: {_or_na(ticket.contact_person)}",
        f"Contact Number: {_or_na(ticket.mobile_number)}",
        f"Support: {_or_na(ticket.issue_related)}",
        f"Start: {format_time(ticket.started_at or ticket.created_at)}",
        f"Completed: {format_time(ticket.closed_at)}",
        f"Resolution: {resolution_text(ticket)}",
        f"Assigned Executive: {_or_na(ticket.assigned_executive)}",
        f"Priority: {_or_na(ticket.priority)}",
        f"User Type: {_or_na(ticket.user_type)}",
        f"Ticket Number: {_or_na(ticket.ticket_number)}",
        f"Email: {_or_na(ticket.email)}",
        f"Remarks: {_or_na(ticket.remarks)}",
        f"Completed At: {format_timestamp(ticket.closed_at)}",
    ]
    return "\n".join(lines)


def format_email_subject(ticket: Ticket) -> str:
    return f"Your Support Ticket {_or_na(ticket.ticket_number)} Has Been Resolved"


def format_email_html(ticket: Ticket) -> str:
    """HTML body of the resolution email sent to the customer."""
    contact = html.escape((ticket.contact_person or "").strip() or DEFAULT_CONTACT)
    details = [
        ("Ticket Number", _or_na(ticket.ticket_number)),
        ("Issue Type", _or_na(ticket.issue_related)),
        ("Priority", _or_na(ticket.priority)),
        ("Created At", format_timestamp(ticket.created_at)),
        ("Closed At", format_timestamp(ticket.closed_at)),
    ]
    detail_rows = "".join(
        f"<p><strong>{label}:</strong> {html.escape(value)}</p>" for label, value in details
    )
    return "".join(
        (
            '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">',
            '<h2 style="color: #333;">Ticket Resolved</h2>',
            f"<p>Dear {contact},</p>",
            "<p>We're pleased to inform you that your support ticket has been resolved:</p>",
            '<div style="background-color: #f5f5f5; padding: 15px; border-radius: 5px; margin: 20px 0;">',
            "<h3>Ticket Details:</h3>",
            detail_rows,
            "</div>",
            '<div style="background-color: #e8f4fd; padding: 15px; border-radius: 5px; margin: 20px 0;">',
            "<h3>Resolution:</h3>",
            f"<p>{html.escape(resolution_text(ticket))}</p>",
            "</div>",
            "<p>Thank you for your patience. If you have any further questions or concerns, "
            "please don't hesitate to contact us.</p>",
            "<p>Best regards,<br/>Techzon Support Team</p>",
            '<hr style="margin: 30px 0;">',
            '<p style="font-size: 12px; color: #666;">',
            "This is an automated message. Please do not reply to this email.",
            "</p>",
            "</div>",
        )
    )


def build_whatsapp_link(phone_number: str, message: str) -> str:
    """Deep link an operator opens to send `message` manually."""
    query = urllib.parse.urlencode({"phone": phone_number, "text": message}, quote_via=urllib.parse.quote)
    return f"{WHATSAPP_SEND_URL}?{query}"


def format_date(value: date | None) -> str:
    if value is None:
        return NOT_AVAILABLE
    return value.strftime("%d/%m/%Y")


def format_time(value: datetime | None) -> str:
    if value is None:
        return NOT_AVAILABLE
    return value.strftime("%H:%M")


def format_timestamp(value: datetime | None) -> str:
    if value is None:
        return NOT_AVAILABLE
    return value.strftime("%d/%m/%Y, %H:%M:%S")


def _or_na(value: object | None) -> str:
    if value is None:
        return NOT_AVAILABLE
    text = str(value).strip()
    return text or NOT_AVAILABLE
