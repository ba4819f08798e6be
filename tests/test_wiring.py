from __future__ import annotations

import io
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from ticket_notifications.adapters.delivery_log import DeliveryLog
from ticket_notifications.adapters.fake_senders import ConsoleWhatsAppSession, send_email_via_console
from ticket_notifications.adapters.real_senders import send_email_via_smtp_from_env
from ticket_notifications.adapters.whatsapp import WhatsAppDispatcher, WhatsAppLinkSender
from ticket_notifications.adapters.wiring import notifier_from_env
from ticket_notifications.domain.ticket import Ticket


def make_ticket(**overrides: object) -> Ticket:
    base: dict[str, object] = {
        "id": "tkt000001",
        "ticket_number": "TICKET/2026/1234",
        "contact_person": "Sara",
        "mobile_number": "0526075381",
        "email": "sara@example.com",
        "status": "closed",
        "resolution": "done",
    }
    return Ticket(**(base | overrides))


class NotifierFromEnvTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.log = DeliveryLog(Path(self._tmp.name) / "messages.jsonl")

    @mock.patch.dict(os.environ, {}, clear=True)
    def test_defaults_to_smtp_email_and_link_whatsapp(self) -> None:
        notifier = notifier_from_env(delivery_log=self.log)

        self.assertIs(notifier.send_email, send_email_via_smtp_from_env)
        self.assertIsInstance(notifier.whatsapp, WhatsAppLinkSender)
        self.assertIsNone(notifier.default_group)

    @mock.patch.dict(os.environ, {}, clear=True)
    def test_supplied_session_selects_session_mode(self) -> None:
        session = ConsoleWhatsAppSession()

        notifier = notifier_from_env(session=session, delivery_log=self.log)

        self.assertIsInstance(notifier.whatsapp, WhatsAppDispatcher)
        self.assertIs(notifier.whatsapp.session, session)

    @mock.patch.dict(
        os.environ,
        {"WHATSAPP_SESSION_DIR": "/srv/wa-session", "WHATSAPP_READY_TIMEOUT_SECONDS": "5"},
        clear=True,
    )
    def test_session_factory_receives_session_dir(self) -> None:
        factory = mock.Mock(return_value=ConsoleWhatsAppSession())

        notifier = notifier_from_env(session_factory=factory, delivery_log=self.log)

        factory.assert_called_once_with(Path("/srv/wa-session"))
        self.assertEqual(notifier.whatsapp.ready_timeout, 5.0)

    @mock.patch.dict(os.environ, {"WHATSAPP_MODE": "session"}, clear=True)
    def test_session_mode_without_session_is_a_config_error(self) -> None:
        with self.assertRaises(RuntimeError):
            notifier_from_env(delivery_log=self.log)

    @mock.patch.dict(os.environ, {"WHATSAPP_MODE": "carrier-pigeon"}, clear=True)
    def test_invalid_whatsapp_mode(self) -> None:
        with self.assertRaises(RuntimeError):
            notifier_from_env(delivery_log=self.log)

    @mock.patch.dict(os.environ, {"EMAIL_MODE": "fax"}, clear=True)
    def test_invalid_email_mode(self) -> None:
        with self.assertRaises(RuntimeError):
            notifier_from_env(delivery_log=self.log)

    @mock.patch.dict(
        os.environ,
        {"WHATSAPP_MODE": "console", "EMAIL_MODE": "console", "WHATSAPP_GROUP_NAME": "Support Desk"},
        clear=True,
    )
    def test_console_modes_run_end_to_end(self) -> None:
        notifier = notifier_from_env(delivery_log=self.log)
        self.assertIs(notifier.send_email, send_email_via_console)
        self.assertEqual(notifier.default_group, "Support Desk")

        with mock.patch("sys.stdout", new_callable=io.StringIO) as stdout:
            result = notifier(make_ticket())

        self.assertTrue(result["email"]["success"])
        self.assertTrue(result["whatsapp"]["success"])
        # The console session has no groups to match against.
        self.assertFalse(result["group"]["success"])
        self.assertIn("971526075381@c.us", stdout.getvalue())
        self.assertEqual(len(self.log.entries()), 3)

    @mock.patch.dict(
        os.environ,
        {"EMAIL_MODE": "console", "WHATSAPP_GROUP_ID": "1203@g.us", "WHATSAPP_GROUP_NAME": "Desk"},
        clear=True,
    )
    def test_link_mode_reports_degraded_results(self) -> None:
        notifier = notifier_from_env(delivery_log=self.log)

        with mock.patch("sys.stdout", new_callable=io.StringIO):
            result = notifier(make_ticket())

        self.assertTrue(result["all_requested_succeeded"])
        self.assertTrue(result["whatsapp"]["degraded"])
        self.assertTrue(result["whatsapp"]["url"].startswith("https://api.whatsapp.com/send?phone=971526075381"))
        self.assertIn('"1203@g.us"', result["group"]["instructions"])


if __name__ == "__main__":
    unittest.main()
