#!/usr/bin/env python3
"""Serve the `API_KEY`-guarded notify endpoint with uvicorn."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Allow running this file directly from repository root.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import uvicorn  # noqa: E402

from ticket_notifications.adapters.env import load_env_file, required_env  # noqa: E402
from ticket_notifications.adapters.http_api import create_app  # noqa: E402
from ticket_notifications.adapters.wiring import notifier_from_env  # noqa: E402


def main() -> int:
    args = parse_args()
    load_env_file(REPO_ROOT / ".env")
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    app = create_app(notifier_from_env(), api_key=required_env("API_KEY"))
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the ticket notify HTTP API.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    return parser.parse_args()


if __name__ == "__main__":
    sys.exit(main())
