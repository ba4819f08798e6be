from __future__ import annotations

from datetime import UTC, datetime
import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from ticket_notifications.adapters.delivery_log import DeliveryLog, delivery_log_from_env

FIXED_NOW = datetime(2026, 10, 18, 7, 30, tzinfo=UTC)


class DeliveryLogTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)

    def test_record_appends_one_json_line_per_attempt(self) -> None:
        path = self.root / "nested" / "messages.jsonl"
        log = DeliveryLog(path, now=lambda: FIXED_NOW)

        log.record(
            channel="whatsapp",
            to="971501234567@c.us",
            message="hello",
            success=True,
            message_id="wa-1",
            ticket_number="TICKET/2026/1234",
        )
        log.record(channel="email", to="", message="", success=False, error="No email address provided")

        lines = path.read_text(encoding="utf-8").splitlines()
        self.assertEqual(len(lines), 2)
        first = json.loads(lines[0])
        self.assertEqual(
            first,
            {
                "to": "971501234567@c.us",
                "message": "hello",
                "timestamp": "2026-10-18T07:30:00+00:00",
                "success": True,
                "channel": "whatsapp",
                "messageId": "wa-1",
                "ticketNumber": "TICKET/2026/1234",
            },
        )
        second = json.loads(lines[1])
        self.assertEqual(second["error"], "No email address provided")
        self.assertNotIn("messageId", second)
        self.assertNotIn("url", second)

    def test_entries_preserve_order_and_skip_corrupt_lines(self) -> None:
        path = self.root / "messages.jsonl"
        log = DeliveryLog(path)
        log.record(channel="email", to="a@b.com", message="one", success=True)
        with path.open("a", encoding="utf-8") as handle:
            handle.write("{not json\n\n")
        log.record(channel="email", to="a@b.com", message="two", success=True)

        with self.assertLogs("ticket_notifications.adapters.delivery_log", level="WARNING"):
            entries = log.entries()

        self.assertEqual([entry["message"] for entry in entries], ["one", "two"])

    def test_entries_of_missing_file_is_empty(self) -> None:
        self.assertEqual(DeliveryLog(self.root / "missing.jsonl").entries(), [])

    def test_write_failure_is_logged_not_raised(self) -> None:
        log = DeliveryLog(self.root)

        with self.assertLogs("ticket_notifications.adapters.delivery_log", level="ERROR"):
            entry = log.record(channel="email", to="a@b.com", message="x", success=True)

        self.assertEqual(entry["to"], "a@b.com")

    def test_non_string_message_id_is_written_as_text(self) -> None:
        class SessionMessageId:
            def __str__(self) -> str:
                return "true_971501234567@c.us_3EB0"

        path = self.root / "messages.jsonl"
        entry = DeliveryLog(path).record(
            channel="whatsapp", to="x", message="hi", success=True, message_id=SessionMessageId()
        )

        self.assertTrue(entry["success"])
        written = json.loads(path.read_text(encoding="utf-8"))
        self.assertEqual(written["messageId"], "true_971501234567@c.us_3EB0")

    def test_non_ascii_text_is_kept_readable(self) -> None:
        path = self.root / "messages.jsonl"
        DeliveryLog(path).record(channel="whatsapp", to="x", message="شكرا", success=True)

        self.assertIn("شكرا", path.read_text(encoding="utf-8"))

    @mock.patch.dict(os.environ, {"DELIVERY_LOG_PATH": "/var/log/tickets/messages.jsonl"}, clear=True)
    def test_path_from_env(self) -> None:
        self.assertEqual(delivery_log_from_env().path, Path("/var/log/tickets/messages.jsonl"))

    @mock.patch.dict(os.environ, {}, clear=True)
    def test_default_path(self) -> None:
        self.assertEqual(delivery_log_from_env().path, Path("logs/messages.jsonl"))


if __name__ == "__main__":
    unittest.main()
