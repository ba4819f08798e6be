"""Environment-driven assembly of the ticket-closed notifier.

`WHATSAPP_MODE` selects the WhatsApp channel:
- `session`: send through an injected, authenticated WhatsApp session
- `console`: print messages through an always-ready fake session
- `link`: degraded mode, produce deep links for manual sending (default when
  no session is supplied)

`EMAIL_MODE` selects `smtp` (default) or `console`.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Callable

from ..application.process import process_ticket_closed
from ..domain.formatter import DEFAULT_COUNTRY_CODE
from ..domain.ticket import Ticket
from ..domain.whatsapp import WhatsAppSender
from ..types import ProcessingResult, SendEmailFn
from .delivery_log import DeliveryLog, delivery_log_from_env
from .env import env_float, optional_env
from .fake_senders import ConsoleWhatsAppSession, send_email_via_console
from .real_senders import send_email_via_smtp_from_env
from .whatsapp import (
    DEFAULT_READY_TIMEOUT_SECONDS,
    WhatsAppDispatcher,
    WhatsAppLinkSender,
    WhatsAppSession,
)

DEFAULT_SESSION_DIR = ".wwebjs_auth"

SessionFactory = Callable[[Path], WhatsAppSession]


@dataclass
class TicketClosedNotifier:
    """Callable bundle of configured channels; usable as a store `on_closed` hook."""

    send_email: SendEmailFn
    whatsapp: WhatsAppSender
    delivery_log: DeliveryLog
    default_group: str | None = None

    def __call__(self, ticket: Ticket) -> ProcessingResult:
        return process_ticket_closed(
            ticket,
            send_email=self.send_email,
            whatsapp=self.whatsapp,
            record_attempt=self.delivery_log.record,
            default_group=self.default_group,
        )


def whatsapp_session_dir_from_env() -> Path:
    return Path(os.getenv("WHATSAPP_SESSION_DIR", DEFAULT_SESSION_DIR))


def notifier_from_env(
    *,
    session: WhatsAppSession | None = None,
    session_factory: SessionFactory | None = None,
    delivery_log: DeliveryLog | None = None,
) -> TicketClosedNotifier:
    log = delivery_log or delivery_log_from_env()
    country_code = optional_env("WHATSAPP_COUNTRY_CODE") or DEFAULT_COUNTRY_CODE
    has_session = session is not None or session_factory is not None
    mode = (optional_env("WHATSAPP_MODE") or ("session" if has_session else "link")).lower()

    whatsapp: WhatsAppSender
    if mode == "session":
        if session is None and session_factory is not None:
            session = session_factory(whatsapp_session_dir_from_env())
        if session is None:
            raise RuntimeError("WHATSAPP_MODE=session requires a WhatsApp session")
        whatsapp = WhatsAppDispatcher(
            session,
            log.record,
            country_code=country_code,
            ready_timeout=env_float(
                "WHATSAPP_READY_TIMEOUT_SECONDS", DEFAULT_READY_TIMEOUT_SECONDS
            ),
        )
    elif mode == "console":
        whatsapp = WhatsAppDispatcher(ConsoleWhatsAppSession(), log.record, country_code=country_code)
    elif mode == "link":
        whatsapp = WhatsAppLinkSender(log.record, country_code=country_code)
    else:
        raise RuntimeError(f"Invalid WHATSAPP_MODE: {mode!r}")

    email_mode = (optional_env("EMAIL_MODE") or "smtp").lower()
    if email_mode == "smtp":
        send_email: SendEmailFn = send_email_via_smtp_from_env
    elif email_mode == "console":
        send_email = send_email_via_console
    else:
        raise RuntimeError(f"Invalid EMAIL_MODE: {email_mode!r}")

    return TicketClosedNotifier(
        send_email=send_email,
        whatsapp=whatsapp,
        delivery_log=log,
        default_group=optional_env("WHATSAPP_GROUP_ID") or optional_env("WHATSAPP_GROUP_NAME"),
    )
