#!/usr/bin/env python3
"""Run the Kafka worker that delivers `tickets.closed` notifications.

WhatsApp defaults to link mode here (no browser session in a plain worker);
set `WHATSAPP_MODE=console` for local smoke runs.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Allow running this file directly from repository root.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from ticket_notifications.adapters.env import load_env_file  # noqa: E402
from ticket_notifications.adapters.kafka_runtime import run_notification_worker_forever  # noqa: E402


def main() -> int:
    parse_args()
    load_env_file(REPO_ROOT / ".env")
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    return run_notification_worker_forever()


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run Kafka consumer loop for ticket-closed notifications."
    )
    return parser.parse_args()


if __name__ == "__main__":
    sys.exit(main())
