#!/usr/bin/env python3
"""Run a Kafka-like outbox consumer flow without Kafka."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

# Allow running this file directly from repository root.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from ticket_notifications.adapters.consumer_handler import handle_batch  # noqa: E402
from ticket_notifications.adapters.delivery_log import DeliveryLog  # noqa: E402
from ticket_notifications.adapters.fake_senders import (  # noqa: E402
    ConsoleWhatsAppSession,
    send_email_via_console,
)
from ticket_notifications.adapters.whatsapp import WhatsAppDispatcher  # noqa: E402
from ticket_notifications.adapters.wiring import TicketClosedNotifier  # noqa: E402


def main() -> int:
    records = sample_records()
    committed_offsets: list[tuple[int, int]] = []
    rejected_offsets: list[tuple[int, int, str]] = []

    def commit(record: dict[str, Any]) -> None:
        partition = int(record.get("partition", -1))
        offset = int(record.get("offset", -1))
        committed_offsets.append((partition, offset))
        print(f"[COMMIT] partition={partition} offset={offset}")

    def reject(record: dict[str, Any], reason: str) -> None:
        partition = int(record.get("partition", -1))
        offset = int(record.get("offset", -1))
        rejected_offsets.append((partition, offset, reason))
        print(f"[NO-COMMIT] partition={partition} offset={offset} reason={reason}")

    delivery_log = DeliveryLog(Path("logs/consumer-demo-messages.jsonl"))
    notifier = TicketClosedNotifier(
        send_email=send_email_maybe_fail,
        whatsapp=WhatsAppDispatcher(ConsoleWhatsAppSession(), delivery_log.record),
        delivery_log=delivery_log,
    )

    results = handle_batch(records, notify=notifier, commit=commit, reject=reject)

    print("")
    print("[BATCH SUMMARY]")
    for result in results:
        meta = result["record_meta"]
        print(
            f"offset={meta['offset']} status={result['status']} "
            f"should_commit={result['should_commit']} error={result['error']}"
        )

    print("")
    print("[OFFSETS]")
    print(f"committed={committed_offsets}")
    print(f"rejected={rejected_offsets}")
    return 0


def send_email_maybe_fail(*, to_email: str, subject: str, body: str) -> str:
    if to_email == "fail-email@example.com":
        raise RuntimeError("SMTP relay unavailable")
    return send_email_via_console(to_email=to_email, subject=subject, body=body)


def _ticket(ticket_id: str, **overrides: Any) -> dict[str, Any]:
    record = {
        "id": ticket_id,
        "ticket_number": "TICKET/2026/1042",
        "serial_number": "111111111",
        "company_name": "Blue Dune Stores",
        "contact_person": "Omar",
        "mobile_number": "971501234567",
        "email": "omar@example.com",
        "issue_related": "network",
        "priority": "medium",
        "user_type": "single-user",
        "status": "closed",
        "created_at": "2026-10-18T08:00:00",
        "closed_at": "2026-10-18T10:30:00",
        "resolution": "Replaced the receipt printer cable.",
    }
    record.update(overrides)
    return record


def sample_records() -> list[dict[str, Any]]:
    return [
        {
            "topic": "tickets.closed",
            "partition": 0,
            "offset": 100,
            "value": {"event_id": "evt-100", "ticket": _ticket("tkt000100")},
        },
        {
            "topic": "tickets.closed",
            "partition": 0,
            "offset": 101,
            "value": {
                "event_id": "evt-101",
                "ticket": _ticket("tkt000101", status="on-hold", closed_at=None),
            },
        },
        {
            "topic": "tickets.closed",
            "partition": 0,
            "offset": 102,
            "value": {"ticket": _ticket("tkt000102")},
        },
        {
            "topic": "tickets.closed",
            "partition": 0,
            "offset": 103,
            "value": {
                "event_id": "evt-103",
                "ticket": _ticket("tkt000103", email="fail-email@example.com"),
            },
        },
    ]


if __name__ == "__main__":
    sys.exit(main())
