"""WhatsApp delivery adapters.

Mental model refresher:
- The authenticated WhatsApp session (browser automation, QR pairing,
  reconnects) lives outside this package. It is injected as a
  `WhatsAppSession` capability.
- `WhatsAppDispatcher` owns the delivery rules around that session:
  readiness wait, bounded retries, group lookup, send serialization and
  Delivery Log writes.
- `WhatsAppLinkSender` is the degraded mode used when no session is
  available: it produces a deep link for an operator instead of sending.
- Both return plain result dicts and never raise.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re
import threading
import time
from typing import Protocol

from ..application.retry import ClockFn, SleepFn, retry_call, wait_until
from ..domain.formatter import DEFAULT_COUNTRY_CODE, build_whatsapp_link, normalize_phone_number
from ..types import RecordAttemptFn, SendResult

logger = logging.getLogger(__name__)

CHANNEL = "whatsapp"
CONTACT_SUFFIX = "@c.us"
GROUP_SUFFIX = "@g.us"
MISSING_NUMBER_ERROR = "No mobile number provided"
MISSING_GROUP_ERROR = "No group identifier provided"

DEFAULT_READY_TIMEOUT_SECONDS = 30.0
DEFAULT_POLL_INTERVAL_SECONDS = 1.0
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_SECONDS = 2.0

_WHITESPACE = re.compile(r"\s+")

# The underlying library cannot send concurrently; one session per process.
SESSION_LOCK = threading.Lock()


class WhatsAppNotReadyError(RuntimeError):
    """Raised when the session does not become ready within the wait window."""


class GroupNotFoundError(LookupError):
    """Raised when no WhatsApp group matches the requested name."""


@dataclass(frozen=True)
class WhatsAppChat:
    id: str
    name: str
    is_group: bool


class WhatsAppSession(Protocol):
    def is_ready(self) -> bool: ...

    def send_message(self, chat_id: str, text: str) -> str | None: ...

    def get_chats(self) -> list[WhatsAppChat]: ...


def find_group(groups: list[WhatsAppChat], identifier: str) -> WhatsAppChat:
    """Match a group by name, case-insensitively.

    First pass: either name contains the other. Second pass: the first three
    characters of the identifier, or whitespace-free containment.
    """
    needle = identifier.strip().lower()
    named = [group for group in groups if group.name.strip()]

    for group in named:
        name = group.name.lower()
        if needle in name or name in needle:
            return group

    compact_needle = _WHITESPACE.sub("", needle)
    for group in named:
        name = group.name.lower()
        if needle[:3] in name or compact_needle in _WHITESPACE.sub("", name):
            logger.info("Using partial group match %r for %r", group.name, identifier)
            return group

    available = ", ".join(f'"{group.name}"' for group in named)
    raise GroupNotFoundError(f'Group "{identifier}" not found. Available groups: {available}')


class WhatsAppDispatcher:
    """Send WhatsApp messages through a shared, already-authenticated session."""

    def __init__(
        self,
        session: WhatsAppSession,
        record_attempt: RecordAttemptFn,
        *,
        country_code: str = DEFAULT_COUNTRY_CODE,
        ready_timeout: float = DEFAULT_READY_TIMEOUT_SECONDS,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
        lock: threading.Lock | None = None,
        sleep: SleepFn = time.sleep,
        clock: ClockFn = time.monotonic,
    ) -> None:
        self.session = session
        self.record_attempt = record_attempt
        self.country_code = country_code
        self.ready_timeout = ready_timeout
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._lock = lock or SESSION_LOCK
        self._sleep = sleep
        self._clock = clock

    def send_to_number(
        self, number: str, message: str, *, ticket_number: str | None = None
    ) -> SendResult:
        digits = normalize_phone_number(number, self.country_code)
        if not digits:
            return self._failed(number or "", message, MISSING_NUMBER_ERROR, ticket_number)

        chat_id = f"{digits}{CONTACT_SUFFIX}"
        with self._lock:
            try:
                self._ensure_ready()
            except WhatsAppNotReadyError as exc:
                return self._failed(chat_id, message, str(exc), ticket_number)
            return self._deliver(chat_id, chat_id, message, ticket_number)

    def send_to_group(
        self, identifier: str, message: str, *, ticket_number: str | None = None
    ) -> SendResult:
        if not (identifier or "").strip():
            return self._failed("", message, MISSING_GROUP_ERROR, ticket_number)

        with self._lock:
            try:
                self._ensure_ready()
                group = self.resolve_group(identifier)
            except Exception as exc:
                return self._failed(identifier, message, str(exc), ticket_number)
            return self._deliver(group.id, group.name, message, ticket_number)

    def resolve_group(self, identifier: str) -> WhatsAppChat:
        """Return the group chat for an id (`...@g.us`) or a human name."""
        if GROUP_SUFFIX in identifier:
            return WhatsAppChat(id=identifier.strip(), name=identifier.strip(), is_group=True)

        chats = retry_call(
            self.session.get_chats,
            attempts=self.max_attempts,
            delay=self.retry_delay,
            sleep=self._sleep,
            on_error=lambda attempt, exc: logger.warning(
                "Attempt %s to list WhatsApp chats failed: %s", attempt, exc
            ),
        )
        groups = [chat for chat in chats if chat.is_group]
        return find_group(groups, identifier)

    def _ensure_ready(self) -> None:
        if self.session.is_ready():
            return
        logger.info("Waiting up to %ss for WhatsApp session to be ready", self.ready_timeout)
        ready = wait_until(
            self.session.is_ready,
            timeout=self.ready_timeout,
            interval=self.poll_interval,
            sleep=self._sleep,
            clock=self._clock,
        )
        if not ready:
            raise WhatsAppNotReadyError("WhatsApp client is not ready after waiting")

    def _deliver(
        self, chat_id: str, label: str, message: str, ticket_number: str | None
    ) -> SendResult:
        try:
            message_id = retry_call(
                lambda: self.session.send_message(chat_id, message),
                attempts=self.max_attempts,
                delay=self.retry_delay,
                sleep=self._sleep,
                on_error=lambda attempt, exc: logger.warning(
                    "WhatsApp send attempt %s to %s failed: %s", attempt, chat_id, exc
                ),
            )
        except Exception as exc:
            return self._failed(label, message, str(exc), ticket_number)

        self.record_attempt(
            channel=CHANNEL,
            to=label,
            message=message,
            success=True,
            message_id=message_id,
            ticket_number=ticket_number,
        )
        return {"success": True, "message_id": message_id, "chat_id": chat_id}

    def _failed(
        self, to: str, message: str, error: str, ticket_number: str | None
    ) -> SendResult:
        logger.error("WhatsApp message to %r failed: %s", to, error)
        self.record_attempt(
            channel=CHANNEL,
            to=to,
            message=message,
            success=False,
            error=error,
            ticket_number=ticket_number,
        )
        return {"success": False, "error": error}


class WhatsAppLinkSender:
    """Degraded mode: hand the operator a link instead of sending directly."""

    def __init__(
        self, record_attempt: RecordAttemptFn, *, country_code: str = DEFAULT_COUNTRY_CODE
    ) -> None:
        self.record_attempt = record_attempt
        self.country_code = country_code

    def send_to_number(
        self, number: str, message: str, *, ticket_number: str | None = None
    ) -> SendResult:
        phone_number = normalize_phone_number(number, self.country_code)
        if not phone_number:
            self.record_attempt(
                channel=CHANNEL,
                to=number or "",
                message=message,
                success=False,
                error=MISSING_NUMBER_ERROR,
                ticket_number=ticket_number,
            )
            return {"success": False, "error": MISSING_NUMBER_ERROR}

        url = build_whatsapp_link(phone_number, message)
        self.record_attempt(
            channel=CHANNEL,
            to=phone_number,
            message=message,
            success=True,
            ticket_number=ticket_number,
            url=url,
        )
        return {"success": True, "degraded": True, "url": url, "phone_number": phone_number}

    def send_to_group(
        self, identifier: str, message: str, *, ticket_number: str | None = None
    ) -> SendResult:
        if not (identifier or "").strip():
            self.record_attempt(
                channel=CHANNEL,
                to="",
                message=message,
                success=False,
                error=MISSING_GROUP_ERROR,
                ticket_number=ticket_number,
            )
            return {"success": False, "error": MISSING_GROUP_ERROR}

        instructions = (
            f'Copy the message above and send it to your WhatsApp group named "{identifier}"'
        )
        self.record_attempt(
            channel=CHANNEL,
            to=identifier,
            message=message,
            success=True,
            ticket_number=ticket_number,
        )
        return {"success": True, "degraded": True, "instructions": instructions}
