"""Delivery Log: append-only JSON Lines audit of notification attempts.

Each line is one attempt:
`{to, message, timestamp, success, error?, messageId?, channel, ticketNumber?, url?}`.
Entries are never rewritten or removed. Write failures are logged and
swallowed so auditing can never break delivery.
"""

from __future__ import annotations

from datetime import UTC, datetime
import json
import logging
import os
from pathlib import Path
import threading
from typing import Callable

from ..types import DeliveryEntry

logger = logging.getLogger(__name__)

DEFAULT_DELIVERY_LOG_PATH = "logs/messages.jsonl"


class DeliveryLog:
    def __init__(
        self,
        path: str | Path,
        *,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.path = Path(path)
        self._now = now or (lambda: datetime.now(tz=UTC))
        self._lock = threading.Lock()

    def record(
        self,
        *,
        channel: str,
        to: str,
        message: str,
        success: bool,
        error: str | None = None,
        message_id: str | None = None,
        ticket_number: str | None = None,
        url: str | None = None,
    ) -> DeliveryEntry:
        entry: DeliveryEntry = {
            "to": to,
            "message": message,
            "timestamp": self._now().isoformat(),
            "success": success,
            "channel": channel,
        }
        if error is not None:
            entry["error"] = error
        if message_id is not None:
            entry["messageId"] = message_id
        if ticket_number is not None:
            entry["ticketNumber"] = ticket_number
        if url is not None:
            entry["url"] = url

        line = json.dumps(entry, ensure_ascii=False, default=str)
        try:
            with self._lock:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("a", encoding="utf-8") as handle:
                    handle.write(line + "\n")
        except OSError:
            logger.exception("Failed to append to delivery log %s", self.path)
        return entry

    def entries(self) -> list[DeliveryEntry]:
        if not self.path.exists():
            return []

        entries: list[DeliveryEntry] = []
        with self._lock:
            text = self.path.read_text(encoding="utf-8")
        for line_number, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                parsed = json.loads(line)
            except json.JSONDecodeError:
                logger.warning("Skipping corrupt delivery log line %s in %s", line_number, self.path)
                continue
            if isinstance(parsed, dict):
                entries.append(parsed)
        return entries


def delivery_log_from_env() -> DeliveryLog:
    return DeliveryLog(os.getenv("DELIVERY_LOG_PATH", DEFAULT_DELIVERY_LOG_PATH))
