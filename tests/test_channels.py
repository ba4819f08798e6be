from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from typing import Any

from ticket_notifications.adapters.delivery_log import DeliveryLog
from ticket_notifications.adapters.whatsapp import WhatsAppChat, WhatsAppDispatcher
from ticket_notifications.channels import (
    Ticket,
    process_ticket_closed,
    send_email_notification,
    send_group_notification,
    send_whatsapp_notification,
)


def make_ticket(**overrides: object) -> Ticket:
    base: dict[str, object] = {
        "id": "tkt000001",
        "ticket_number": "T1",
        "contact_person": "Omar",
        "mobile_number": "971501234567",
        "email": "a@b.com",
        "status": "closed",
        "resolution": "done",
    }
    return Ticket(**(base | overrides))


class RecordingLog:
    def __init__(self) -> None:
        self.entries: list[dict[str, Any]] = []

    def record(self, **entry: Any) -> dict[str, Any]:
        self.entries.append(entry)
        return entry


class FakeWhatsApp:
    def __init__(self, *, fail_with: str | None = None) -> None:
        self.fail_with = fail_with
        self.numbers: list[tuple[str, str]] = []
        self.groups: list[tuple[str, str]] = []

    def send_to_number(
        self, number: str, message: str, *, ticket_number: str | None = None
    ) -> dict[str, Any]:
        self.numbers.append((number, message))
        if self.fail_with:
            return {"success": False, "error": self.fail_with}
        return {"success": True, "message_id": "wa-1"}

    def send_to_group(
        self, identifier: str, message: str, *, ticket_number: str | None = None
    ) -> dict[str, Any]:
        self.groups.append((identifier, message))
        return {"success": True, "message_id": "wa-group-1"}


class FakeSession:
    def __init__(self, chats: list[WhatsAppChat] | None = None) -> None:
        self.chats = chats or []
        self.sent: list[tuple[str, str]] = []

    def is_ready(self) -> bool:
        return True

    def send_message(self, chat_id: str, text: str) -> str:
        self.sent.append((chat_id, text))
        return f"msg-{len(self.sent)}"

    def get_chats(self) -> list[WhatsAppChat]:
        return list(self.chats)


def fake_send_email(*, to_email: str, subject: str, body: str) -> str:
    return "<msg-1@example.com>"


class ChannelFunctionTests(unittest.TestCase):
    def test_send_email_notification_success(self) -> None:
        sent: list[dict[str, str]] = []
        log = RecordingLog()

        def send_email(*, to_email: str, subject: str, body: str) -> str:
            sent.append({"to_email": to_email, "subject": subject, "body": body})
            return "<msg-1@example.com>"

        result = send_email_notification(make_ticket(), send_email, log.record)

        self.assertTrue(result["requested"])
        self.assertTrue(result["success"])
        self.assertEqual(result["message_id"], "<msg-1@example.com>")
        self.assertEqual(sent[0]["to_email"], "a@b.com")
        self.assertEqual(sent[0]["subject"], "Your Support Ticket T1 Has Been Resolved")
        self.assertEqual(log.entries[0]["success"], True)
        self.assertEqual(log.entries[0]["message_id"], "<msg-1@example.com>")

    def test_send_email_notification_missing_email(self) -> None:
        sent: list[str] = []
        log = RecordingLog()

        def send_email(*, to_email: str, subject: str, body: str) -> str:
            sent.append(to_email)
            return "unused"

        result = send_email_notification(make_ticket(email="  "), send_email, log.record)

        self.assertFalse(result["success"])
        self.assertEqual(result["error"], "No email address provided")
        self.assertEqual(sent, [])
        self.assertEqual(log.entries[0]["success"], False)

    def test_send_email_notification_records_transport_error(self) -> None:
        log = RecordingLog()

        def send_email(*, to_email: str, subject: str, body: str) -> str:
            raise RuntimeError("SMTP email send failed: connection refused")

        result = send_email_notification(make_ticket(), send_email, log.record)

        self.assertFalse(result["success"])
        self.assertIn("connection refused", result["error"] or "")
        self.assertEqual(log.entries[0]["error"], result["error"])

    def test_send_whatsapp_notification_uses_client_message(self) -> None:
        whatsapp = FakeWhatsApp()

        result = send_whatsapp_notification(make_ticket(), whatsapp)

        self.assertTrue(result["success"])
        self.assertEqual(result["channel"], "whatsapp")
        number, message = whatsapp.numbers[0]
        self.assertEqual(number, "971501234567")
        self.assertTrue(message.startswith("Hello Omar, Your support ticket T1"))

    def test_send_whatsapp_notification_passes_sender_failure_through(self) -> None:
        result = send_whatsapp_notification(
            make_ticket(), FakeWhatsApp(fail_with="WhatsApp client is not ready after waiting")
        )

        self.assertTrue(result["requested"])
        self.assertFalse(result["success"])
        self.assertEqual(result["error"], "WhatsApp client is not ready after waiting")

    def test_group_notification_not_requested_without_group(self) -> None:
        whatsapp = FakeWhatsApp()

        result = send_group_notification(make_ticket(), whatsapp)

        self.assertFalse(result["requested"])
        self.assertTrue(result["success"])
        self.assertEqual(whatsapp.groups, [])

    def test_group_notification_uses_default_group(self) -> None:
        whatsapp = FakeWhatsApp()

        result = send_group_notification(make_ticket(), whatsapp, default_group="Support Desk")

        self.assertTrue(result["requested"])
        self.assertTrue(result["success"])
        identifier, message = whatsapp.groups[0]
        self.assertEqual(identifier, "Support Desk")
        self.assertTrue(message.startswith("*Ticket Resolved Notification*"))

    def test_group_notification_prefers_ticket_group(self) -> None:
        whatsapp = FakeWhatsApp()

        send_group_notification(
            make_ticket(group_name="Key Accounts"), whatsapp, default_group="Support Desk"
        )

        self.assertEqual(whatsapp.groups[0][0], "Key Accounts")


class ProcessTicketClosedTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.log = DeliveryLog(Path(self._tmp.name) / "messages.jsonl")

    def test_end_to_end_writes_one_entry_per_attempt(self) -> None:
        session = FakeSession()
        whatsapp = WhatsAppDispatcher(session, self.log.record)

        result = process_ticket_closed(
            make_ticket(),
            send_email=fake_send_email,
            whatsapp=whatsapp,
            record_attempt=self.log.record,
        )

        self.assertTrue(result["all_requested_succeeded"])
        self.assertEqual(session.sent[0][0], "971501234567@c.us")
        entries = self.log.entries()
        self.assertEqual(len(entries), 2)
        self.assertEqual({entry["channel"] for entry in entries}, {"email", "whatsapp"})
        for entry in entries:
            self.assertEqual(entry["ticketNumber"], "T1")
            self.assertIn("done", entry["message"])
            self.assertTrue(entry["success"])

    def test_missing_mobile_number_is_reported_and_logged(self) -> None:
        session = FakeSession()
        whatsapp = WhatsAppDispatcher(session, self.log.record)

        result = process_ticket_closed(
            make_ticket(mobile_number=None),
            send_email=fake_send_email,
            whatsapp=whatsapp,
            record_attempt=self.log.record,
        )

        self.assertFalse(result["all_requested_succeeded"])
        self.assertTrue(result["email"]["success"])
        self.assertFalse(result["whatsapp"]["success"])
        self.assertEqual(result["whatsapp"]["error"], "No mobile number provided")
        self.assertEqual(session.sent, [])
        failed = [entry for entry in self.log.entries() if not entry["success"]]
        self.assertEqual(len(failed), 1)
        self.assertEqual(failed[0]["channel"], "whatsapp")

    def test_email_failure_does_not_block_whatsapp(self) -> None:
        session = FakeSession()

        def failing_email(*, to_email: str, subject: str, body: str) -> str:
            raise RuntimeError("SMTP email send failed: timed out")

        result = process_ticket_closed(
            make_ticket(),
            send_email=failing_email,
            whatsapp=WhatsAppDispatcher(session, self.log.record),
            record_attempt=self.log.record,
        )

        self.assertFalse(result["all_requested_succeeded"])
        self.assertFalse(result["email"]["success"])
        self.assertTrue(result["whatsapp"]["success"])
        self.assertEqual(len(session.sent), 1)

    def test_group_message_goes_to_resolved_group(self) -> None:
        session = FakeSession(
            chats=[
                WhatsAppChat(id="120363001@g.us", name="Techzon Support", is_group=True),
                WhatsAppChat(id="971500000000@c.us", name="Techzon Support", is_group=False),
            ]
        )

        result = process_ticket_closed(
            make_ticket(group_name="techzon support"),
            send_email=fake_send_email,
            whatsapp=WhatsAppDispatcher(session, self.log.record),
            record_attempt=self.log.record,
        )

        self.assertTrue(result["group"]["requested"])
        self.assertTrue(result["group"]["success"])
        self.assertEqual(session.sent[1][0], "120363001@g.us")
        self.assertEqual(len(self.log.entries()), 3)

    def test_unexpected_sender_error_is_contained(self) -> None:
        class ExplodingWhatsApp(FakeWhatsApp):
            def send_to_number(self, number: str, message: str, **kwargs: Any) -> dict[str, Any]:
                raise AttributeError("session object is gone")

        with self.assertLogs("ticket_notifications.application.process", level="ERROR"):
            result = process_ticket_closed(
                make_ticket(),
                send_email=fake_send_email,
                whatsapp=ExplodingWhatsApp(),
                record_attempt=self.log.record,
            )

        self.assertTrue(result["email"]["success"])
        self.assertFalse(result["whatsapp"]["success"])
        self.assertEqual(result["whatsapp"]["error"], "session object is gone")
        self.assertFalse(result["all_requested_succeeded"])


if __name__ == "__main__":
    unittest.main()
