"""Outbox record handling, independent of the Kafka client.

Mental model refresher:
- Real Kafka code (kafka_runtime.NotificationWorker) calls this after
  polling a `tickets.closed` record; demos and tests call it with dicts.
- Flow:
  record -> parse adapter -> notifier use-case -> commit/reject decision
- This module owns the delivery-guarantee policy (what gets committed, what
  gets dead-lettered), not channel business rules.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Sequence

from ..domain.ticket import Ticket
from ..types import ProcessingResult
from .payload import parse_ticket_closed_payload

Record = Mapping[str, Any]
CommitFn = Callable[[Record], None]
RejectFn = Callable[[Record, str], None]
NotifyFn = Callable[[Ticket], ProcessingResult]

CHANNEL_FAILURE = "one_or_more_requested_channels_failed"


def handle_message(
    record: Record,
    *,
    notify: NotifyFn,
    commit: CommitFn,
    reject: RejectFn | None = None,
) -> dict[str, Any]:
    """Handle one outbox record and decide commit/reject.

    - Parse failure: reject, never commit.
    - Ticket reopened since the event was written: commit without sending.
    - All requested channels succeeded: commit.
    - Any requested channel failed: reject so an operator can resend.
    """
    try:
        value = record.get("value")
        if not isinstance(value, dict):
            raise ValueError("record.value must be a dict payload")
        event = parse_ticket_closed_payload(value)
    except Exception as exc:
        error = f"parse_failed: {exc}"
        if reject is not None:
            reject(record, error)
        return _outcome(record, "parse_failed", error=error)

    ticket: Ticket = event["ticket"]
    if not ticket.is_closed:
        commit(record)
        return _outcome(record, "skipped_not_closed", event=event, should_commit=True)

    processing = notify(ticket)
    if processing["all_requested_succeeded"]:
        commit(record)
        return _outcome(
            record,
            "processed_and_committed",
            event=event,
            processing=processing,
            should_commit=True,
        )

    if reject is not None:
        reject(record, CHANNEL_FAILURE)
    return _outcome(
        record,
        "processed_not_committed",
        event=event,
        processing=processing,
        error=CHANNEL_FAILURE,
    )


def handle_batch(
    records: Sequence[Record],
    *,
    notify: NotifyFn,
    commit: CommitFn,
    reject: RejectFn | None = None,
) -> list[dict[str, Any]]:
    """Handle records in order; one record's failure never stops the rest."""
    return [
        handle_message(record, notify=notify, commit=commit, reject=reject)
        for record in records
    ]


def _outcome(
    record: Record,
    status: str,
    *,
    event: dict[str, Any] | None = None,
    processing: ProcessingResult | None = None,
    should_commit: bool = False,
    error: str | None = None,
) -> dict[str, Any]:
    return {
        "status": status,
        "record_meta": {
            "topic": record.get("topic"),
            "partition": record.get("partition"),
            "offset": record.get("offset"),
        },
        "event": event,
        "processing": processing,
        "should_commit": should_commit,
        "error": error,
    }
