#!/usr/bin/env python3
"""Publish one `tickets.closed` event to Kafka for local testing."""

from __future__ import annotations

import argparse
import sys
from datetime import datetime
from pathlib import Path

# Allow running this file directly from repository root.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from ticket_notifications.adapters.env import load_env_file  # noqa: E402
from ticket_notifications.adapters.kafka_runtime import (  # noqa: E402
    build_ticket_closed_event,
    publish_ticket_closed_event,
)
from ticket_notifications.domain.ticket import (  # noqa: E402
    STATUS_CLOSED,
    Ticket,
    generate_ticket_number,
)


def main() -> int:
    load_env_file(REPO_ROOT / ".env")
    args = parse_args()
    ticket = build_ticket(args)
    payload = build_ticket_closed_event(ticket, event_id=args.event_id)
    metadata = publish_ticket_closed_event(payload, topic=args.topic)

    print("[PUBLISHED]")
    print(f"topic={metadata['topic']}")
    print(f"partition={metadata['partition']}")
    print(f"offset={metadata['offset']}")
    print(f"event_id={payload['event_id']}")
    print(f"ticket_number={ticket.ticket_number}")
    return 0


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Publish one tickets.closed event for Kafka testing."
    )
    parser.add_argument("--email", default=None, help="Customer email address.")
    parser.add_argument("--mobile", default=None, help="Customer mobile number (local or 971 form).")
    parser.add_argument("--group", default=None, help="WhatsApp group name or @g.us id.")
    parser.add_argument("--company", default="Demo Company LLC", help="Company name.")
    parser.add_argument("--contact", default="Customer", help="Contact person.")
    parser.add_argument(
        "--resolution",
        default="Issue resolved remotely.",
        help="Resolution text sent to the customer.",
    )
    parser.add_argument(
        "--ticket-number",
        default=None,
        help="Optional ticket number. Default: generated TICKET/<year>/<nnnn>.",
    )
    parser.add_argument("--event-id", default=None, help="Optional event id. Default: generated UUID.")
    parser.add_argument(
        "--topic",
        default=None,
        help="Override Kafka topic (defaults to KAFKA_TOPIC_TICKETS_CLOSED).",
    )
    return parser.parse_args()


def build_ticket(args: argparse.Namespace) -> Ticket:
    now = datetime.now()
    ticket_number = args.ticket_number or generate_ticket_number(year=now.year)
    return Ticket(
        id=f"demo{now.strftime('%H%M%S')}",
        ticket_number=ticket_number,
        serial_number="123456789",
        company_name=args.company,
        contact_person=args.contact,
        mobile_number=args.mobile,
        email=args.email,
        issue_related="licence",
        priority="medium",
        user_type="single-user",
        status=STATUS_CLOSED,
        created_at=now,
        updated_at=now,
        closed_at=now,
        resolution=args.resolution,
        group_name=args.group,
    )


if __name__ == "__main__":
    sys.exit(main())
