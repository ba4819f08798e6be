"""Real provider adapters for production-like sending.

Mental model refresher:
- This module is an outbound adapter.
- It integrates with SMTP using environment-variable config.
- Domain/application code only sees the simple `send_email` callable.

Transport selection checks candidate credential sources in order:
1) deployment-specific `VERCEL_SMTP_*` (only when `VERCEL_ENV=production`)
2) generic `SMTP_HOST/PORT/USER/PASS/SECURE`
3) managed-service fallback `EMAIL_SERVICE` + `EMAIL_USER/EMAIL_PASS`

Some providers reject the verification handshake but still accept mail,
so a failed verify is logged and the send is attempted anyway.

The verify and send timeouts bound each whole SMTP conversation, not each
socket read: every command and reply is armed with the time left.
"""

from __future__ import annotations

from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr, make_msgid, parseaddr
import html
import logging
import os
import re
import smtplib
import ssl
import time

from .env import env_bool, env_float, env_int, optional_env

logger = logging.getLogger(__name__)

DEFAULT_VERIFY_TIMEOUT_SECONDS = 10.0
DEFAULT_SEND_TIMEOUT_SECONDS = 15.0
DEFAULT_SENDER_NAME = "Techzon Support"

# service name -> (host, port, implicit TLS)
MANAGED_EMAIL_SERVICES: dict[str, tuple[str, int, bool]] = {
    "gmail": ("smtp.gmail.com", 465, True),
    "outlook": ("smtp.office365.com", 587, False),
    "yahoo": ("smtp.mail.yahoo.com", 465, True),
    "zoho": ("smtp.zoho.com", 465, True),
}

_TAGS = re.compile(r"<[^>]+>")
_BLANK_RUNS = re.compile(r"\n\s*\n+")


class EmailConfigurationError(RuntimeError):
    """Raised when no usable email transport is configured."""


@dataclass(frozen=True)
class SmtpTransportConfig:
    source: str
    host: str
    port: int
    secure: bool
    username: str | None
    password: str | None
    from_email: str


def email_transport_candidates_from_env() -> list[SmtpTransportConfig]:
    """Return every configured transport, highest precedence first."""
    from_email = optional_env("FROM_EMAIL")
    candidates: list[SmtpTransportConfig] = []

    vercel_host = optional_env("VERCEL_SMTP_HOST")
    if os.getenv("VERCEL_ENV") == "production" and vercel_host:
        username = optional_env("VERCEL_SMTP_USER")
        sender = from_email or username
        if sender:
            candidates.append(
                SmtpTransportConfig(
                    source="deployment",
                    host=vercel_host,
                    port=587,
                    secure=False,
                    username=username,
                    password=optional_env("VERCEL_SMTP_PASS"),
                    from_email=sender,
                )
            )

    smtp_host = optional_env("SMTP_HOST")
    if smtp_host:
        username = optional_env("SMTP_USER") or from_email
        sender = from_email or username
        if sender:
            candidates.append(
                SmtpTransportConfig(
                    source="smtp",
                    host=smtp_host,
                    port=env_int("SMTP_PORT", 587),
                    secure=env_bool("SMTP_SECURE", default=False),
                    username=username,
                    password=optional_env("SMTP_PASS"),
                    from_email=sender,
                )
            )

    service = (optional_env("EMAIL_SERVICE") or "").lower()
    if service:
        known = MANAGED_EMAIL_SERVICES.get(service)
        username = optional_env("EMAIL_USER") or from_email
        password = optional_env("EMAIL_PASS")
        if known is None:
            logger.warning("Unsupported EMAIL_SERVICE %r; ignoring managed-service fallback", service)
        elif username and password:
            host, port, secure = known
            candidates.append(
                SmtpTransportConfig(
                    source=f"service:{service}",
                    host=host,
                    port=port,
                    secure=secure,
                    username=username,
                    password=password,
                    from_email=from_email or username,
                )
            )

    return candidates


def resolve_email_transport_from_env() -> SmtpTransportConfig:
    candidates = email_transport_candidates_from_env()
    if not candidates:
        raise EmailConfigurationError(
            "No email transport configured: set SMTP_HOST (+ SMTP_USER/SMTP_PASS) "
            "or EMAIL_SERVICE with EMAIL_USER/EMAIL_PASS"
        )
    config = candidates[0]
    logger.info(
        "Using %s email transport %s:%s (secure=%s)",
        config.source,
        config.host,
        config.port,
        config.secure,
    )
    return config


def send_email_via_smtp_from_env(*, to_email: str, subject: str, body: str) -> str:
    """Send an HTML email through the configured SMTP transport."""
    config = resolve_email_transport_from_env()
    return send_email_via_smtp(
        config,
        to_email=to_email,
        subject=subject,
        body=body,
        verify_timeout=env_float("EMAIL_VERIFY_TIMEOUT_SECONDS", DEFAULT_VERIFY_TIMEOUT_SECONDS),
        send_timeout=env_float("EMAIL_SEND_TIMEOUT_SECONDS", DEFAULT_SEND_TIMEOUT_SECONDS),
    )


def send_email_via_smtp(
    config: SmtpTransportConfig,
    *,
    to_email: str,
    subject: str,
    body: str,
    verify_timeout: float = DEFAULT_VERIFY_TIMEOUT_SECONDS,
    send_timeout: float = DEFAULT_SEND_TIMEOUT_SECONDS,
) -> str:
    """Verify then send; returns the Message-ID of the sent email."""
    try:
        verify_smtp_transport(config, timeout=verify_timeout)
    except (smtplib.SMTPException, OSError) as exc:
        logger.warning(
            "SMTP verification failed for %s:%s (%s); attempting send anyway",
            config.host,
            config.port,
            exc,
        )

    message = build_email_message(config, to_email=to_email, subject=subject, body=body)
    try:
        smtp = _open_smtp(config, timeout=send_timeout)
        try:
            smtp.send_message(message)
        finally:
            _close_quietly(smtp)
    except (smtplib.SMTPException, OSError) as exc:
        raise RuntimeError(f"SMTP email send failed: {exc}") from exc

    return str(message["Message-ID"])


def verify_smtp_transport(config: SmtpTransportConfig, *, timeout: float) -> None:
    """Connect, authenticate and NOOP within `timeout` seconds; raises on any failure."""
    smtp = _open_smtp(config, timeout=timeout)
    try:
        code, response = smtp.noop()
        if code != 250:
            raise smtplib.SMTPResponseException(code, response)
    finally:
        _close_quietly(smtp)


def build_email_message(
    config: SmtpTransportConfig, *, to_email: str, subject: str, body: str
) -> EmailMessage:
    _name, sender_address = parseaddr(config.from_email)
    domain = sender_address.split("@", 1)[1] if "@" in sender_address else None

    message = EmailMessage()
    message["From"] = (
        config.from_email
        if "<" in config.from_email
        else formataddr((DEFAULT_SENDER_NAME, config.from_email))
    )
    message["To"] = to_email
    message["Subject"] = subject
    message["Message-ID"] = make_msgid(domain=domain)
    message.set_content(_html_to_text(body))
    message.add_alternative(body, subtype="html")
    return message


class _DeadlineMixin:
    """Arms the socket with the time left before every command and reply."""

    deadline: float

    def _arm(self) -> None:
        remaining = _time_left(self.deadline)
        if self.sock is not None:
            self.sock.settimeout(remaining)

    def send(self, s):
        self._arm()
        super().send(s)

    def getreply(self):
        self._arm()
        return super().getreply()


class _BoundedSMTP(_DeadlineMixin, smtplib.SMTP):
    def __init__(self, host: str, port: int, *, deadline: float) -> None:
        self.deadline = deadline
        super().__init__(host, port, timeout=_time_left(deadline))


class _BoundedSMTPSSL(_DeadlineMixin, smtplib.SMTP_SSL):
    def __init__(
        self, host: str, port: int, *, deadline: float, context: ssl.SSLContext
    ) -> None:
        self.deadline = deadline
        super().__init__(host, port, timeout=_time_left(deadline), context=context)


def _time_left(deadline: float) -> float:
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise TimeoutError("SMTP exchange exceeded its time limit")
    return remaining


def _open_smtp(config: SmtpTransportConfig, *, timeout: float) -> smtplib.SMTP:
    deadline = time.monotonic() + timeout
    context = ssl.create_default_context()
    if config.secure:
        smtp: smtplib.SMTP = _BoundedSMTPSSL(
            config.host, config.port, deadline=deadline, context=context
        )
    else:
        smtp = _BoundedSMTP(config.host, config.port, deadline=deadline)

    try:
        smtp.ehlo()
        if not config.secure and smtp.has_extn("starttls"):
            smtp.starttls(context=context)
            smtp.ehlo()
        if config.username and config.password:
            smtp.login(config.username, config.password)
    except BaseException:
        _close_quietly(smtp)
        raise
    return smtp


def _close_quietly(smtp: smtplib.SMTP) -> None:
    try:
        smtp.quit()
    except (smtplib.SMTPException, OSError):
        smtp.close()


def _html_to_text(body: str) -> str:
    text = _TAGS.sub("\n", body)
    return html.unescape(_BLANK_RUNS.sub("\n\n", text).strip())
