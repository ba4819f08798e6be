#!/usr/bin/env python3
"""Run the ticket-closed notification channels locally without SMTP or WhatsApp.

Email is printed to the console and WhatsApp goes through an always-ready
console session, so the full orchestration (formatting, group resolution,
delivery log) runs end to end.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

# Allow running this file directly from repository root.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from ticket_notifications.adapters.delivery_log import DeliveryLog  # noqa: E402
from ticket_notifications.adapters.fake_senders import (  # noqa: E402
    ConsoleWhatsAppSession,
    send_email_via_console,
)
from ticket_notifications.adapters.payload import ticket_from_record  # noqa: E402
from ticket_notifications.adapters.whatsapp import WhatsAppChat, WhatsAppDispatcher  # noqa: E402
from ticket_notifications.adapters.wiring import TicketClosedNotifier  # noqa: E402


def main() -> int:
    args = parse_args()
    ticket = ticket_from_record(load_record(args.ticket_file))
    delivery_log = DeliveryLog(args.log_file)
    session = ConsoleWhatsAppSession(
        groups=[WhatsAppChat(id="120363000000000000@g.us", name="Techzon Support", is_group=True)]
    )
    notifier = TicketClosedNotifier(
        send_email=send_email_via_console,
        whatsapp=WhatsAppDispatcher(session, delivery_log.record),
        delivery_log=delivery_log,
    )
    result = notifier(ticket)

    print("")
    print("[SUMMARY]")
    print(f"ticket_id={result['ticket_id']}")
    print(f"ticket_number={result['ticket_number']}")
    for key in ("email", "whatsapp", "group"):
        item = result[key]
        print(
            f"channel={item['channel']} requested={item['requested']} "
            f"success={item['success']} error={item['error']}"
        )
    print(f"all_requested_succeeded={result['all_requested_succeeded']}")
    print(f"delivery_log={args.log_file}")
    return 0 if result["all_requested_succeeded"] else 1


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Execute email/WhatsApp channel logic with a sample closed ticket."
    )
    parser.add_argument(
        "--ticket-file",
        type=Path,
        default=None,
        help="Optional JSON file with one ticket record (snake_case or camelCase keys).",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=Path("logs/demo-messages.jsonl"),
        help="Delivery log file to append to.",
    )
    return parser.parse_args()


def load_record(ticket_file: Path | None) -> dict[str, Any]:
    if ticket_file is None:
        return sample_record()
    with ticket_file.open("r", encoding="utf-8") as file_handle:
        return json.load(file_handle)


def sample_record() -> dict[str, Any]:
    return {
        "id": "demo00001",
        "ticketNumber": "TICKET/2026/4821",
        "serialNumber": "123456789",
        "companyName": "Acme Trading LLC",
        "contactPerson": "Sara",
        "mobileNumber": "0526075381",
        "email": "sara@example.com",
        "issueRelated": "licence",
        "priority": "high",
        "userType": "multiuser",
        "status": "closed",
        "assignedExecutive": "Imran",
        "version": "9.2",
        "expiryDate": "2027-03-31",
        "createdAt": "2026-10-18T09:15:00",
        "closedAt": "2026-10-18T11:40:00",
        "resolution": "Reinstalled the license service and re-activated the key.",
        "remarks": "Customer confirmed over phone.",
        "groupName": "Techzon Support",
    }


if __name__ == "__main__":
    sys.exit(main())
