"""Shared type aliases for the ticket notification package."""

from __future__ import annotations

from typing import Any, Callable, Mapping

Record = Mapping[str, Any]
RecordDict = dict[str, Any]
ChannelResult = dict[str, Any]
SendResult = dict[str, Any]
ProcessingResult = dict[str, Any]
DeliveryEntry = dict[str, Any]

# Keyword-only senders: send_email(to_email=..., subject=..., body=...) -> message id
SendEmailFn = Callable[..., str | None]
# record_attempt(channel=..., to=..., message=..., success=..., ...) -> entry
RecordAttemptFn = Callable[..., DeliveryEntry]
