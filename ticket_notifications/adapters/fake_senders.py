"""Fake sender adapters for local smoke tests.

Mental model refresher:
- This is outbound adapter code.
- In production, SMTP and the WhatsApp browser session live behind the same
  seams; domain code calls them through injected functions/objects and does
  not know which implementation is underneath.
"""

from __future__ import annotations

import itertools

from .whatsapp import WhatsAppChat

_message_ids = itertools.count(1)


def send_email_via_console(*, to_email: str, subject: str, body: str) -> str:
    message_id = f"<console-{next(_message_ids)}@localhost>"
    print("[EMAIL]")
    print(f"to={to_email}")
    print(f"subject={subject}")
    print(f"body={body}")
    return message_id


class ConsoleWhatsAppSession:
    """Always-ready session that prints messages instead of sending them."""

    def __init__(self, groups: list[WhatsAppChat] | None = None) -> None:
        self.groups = list(groups or [])

    def is_ready(self) -> bool:
        return True

    def send_message(self, chat_id: str, text: str) -> str:
        print("[WHATSAPP]")
        print(f"to={chat_id}")
        print(f"message={text}")
        return f"console-{next(_message_ids)}"

    def get_chats(self) -> list[WhatsAppChat]:
        return list(self.groups)
