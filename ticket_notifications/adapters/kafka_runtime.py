"""Kafka transport adapters for the ticket-closed notification outbox.

Mental model refresher:
- This module is transport glue to Kafka itself.
- Publishing a `tickets.closed` event records the intent to notify durably
  before any delivery is attempted, so a crashed process can replay it.
- `NotificationWorker` polls that topic and hands each record to the
  consumer-handler flow; offsets are committed only after the record is
  fully handled (delivered, skipped or parked on the dead-letter topic).
- Business/channel logic still lives in domain/application layers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
import json
import os
from typing import Any, Mapping
import uuid

from ..domain.ticket import Ticket
from .consumer_handler import NotifyFn, handle_message
from .env import env_bool, env_float, env_int, required_env
from .payload import ticket_to_record

EVENT_TYPE = "tickets.closed"
DEFAULT_GROUP_ID = "ticket-notifications-worker"


@dataclass(frozen=True)
class WorkerSettings:
    bootstrap_servers: list[str]
    topic: str
    dlq_enabled: bool
    dlq_topic: str
    group_id: str
    auto_offset_reset: str
    poll_timeout_ms: int
    max_records: int
    send_timeout_seconds: float
    acks: str

    @classmethod
    def from_env(cls) -> "WorkerSettings":
        topic = os.getenv("KAFKA_TOPIC_TICKETS_CLOSED", EVENT_TYPE)
        send_timeout = env_float("KAFKA_SEND_TIMEOUT_SECONDS", 10.0)
        return cls(
            bootstrap_servers=_bootstrap_servers_from_env(),
            topic=topic,
            dlq_enabled=env_bool("KAFKA_DLQ_ENABLED", default=True),
            dlq_topic=os.getenv("KAFKA_TOPIC_TICKETS_CLOSED_DLQ", f"{topic}.dlq"),
            group_id=os.getenv("KAFKA_GROUP_ID", DEFAULT_GROUP_ID),
            auto_offset_reset=os.getenv("KAFKA_AUTO_OFFSET_RESET", "earliest"),
            poll_timeout_ms=_poll_timeout_ms_from_env(),
            max_records=env_int("KAFKA_MAX_RECORDS_PER_POLL", 50),
            send_timeout_seconds=env_float("KAFKA_DLQ_SEND_TIMEOUT_SECONDS", send_timeout),
            acks=os.getenv("KAFKA_PRODUCER_ACKS", "all"),
        )


def build_ticket_closed_event(ticket: Ticket, *, event_id: str | None = None) -> dict[str, Any]:
    return {
        "event_id": event_id or f"evt-{uuid.uuid4()}",
        "event_type": EVENT_TYPE,
        "occurred_at": datetime.now(tz=UTC).isoformat(),
        "ticket": ticket_to_record(ticket),
    }


def publish_ticket_closed_event(
    ticket: Ticket | Mapping[str, Any],
    *,
    topic: str | None = None,
) -> dict[str, Any]:
    """Publish one `tickets.closed` event and wait for the broker ack.

    Accepts a `Ticket` (store `on_closed` hook usage) or a prebuilt payload.
    """
    _consumer_cls, producer_cls, _partition_cls, _offset_cls = _import_kafka_python()
    topic_name = topic or os.getenv("KAFKA_TOPIC_TICKETS_CLOSED", EVENT_TYPE)
    timeout = env_float("KAFKA_SEND_TIMEOUT_SECONDS", 10.0)
    event = build_ticket_closed_event(ticket) if isinstance(ticket, Ticket) else dict(ticket)

    producer = producer_cls(
        bootstrap_servers=_bootstrap_servers_from_env(),
        value_serializer=_serialize_json_object,
        acks=os.getenv("KAFKA_PRODUCER_ACKS", "all"),
    )
    try:
        metadata = producer.send(topic_name, value=event).get(timeout=timeout)
        producer.flush(timeout=timeout)
    finally:
        producer.close()

    return {
        "topic": metadata.topic,
        "partition": metadata.partition,
        "offset": metadata.offset,
        "event_id": event.get("event_id"),
    }


class NotificationWorker:
    """Consume `tickets.closed`, deliver, then commit or dead-letter each record."""

    def __init__(self, notify: NotifyFn, settings: WorkerSettings) -> None:
        consumer_cls, producer_cls, partition_cls, offset_cls = _import_kafka_python()
        self.notify = notify
        self.settings = settings
        self._partition_cls = partition_cls
        self._offset_cls = offset_cls
        self.consumer = consumer_cls(
            settings.topic,
            bootstrap_servers=settings.bootstrap_servers,
            group_id=settings.group_id,
            enable_auto_commit=False,
            auto_offset_reset=settings.auto_offset_reset,
        )
        self.dlq_producer = None
        if settings.dlq_enabled:
            self.dlq_producer = producer_cls(
                bootstrap_servers=settings.bootstrap_servers,
                value_serializer=_serialize_json_object,
                acks=settings.acks,
            )

    def run_forever(self) -> int:
        settings = self.settings
        print(
            f"[WORKER START] topic={settings.topic} group_id={settings.group_id} "
            f"dlq_enabled={settings.dlq_enabled} dlq_topic={settings.dlq_topic}"
        )
        try:
            while True:
                batches = self.consumer.poll(
                    timeout_ms=settings.poll_timeout_ms, max_records=settings.max_records
                )
                for records in (batches or {}).values():
                    for message in records:
                        self.handle(message)
        except KeyboardInterrupt:
            print("[WORKER STOP] received keyboard interrupt")
            return 0
        except Exception as exc:
            print(f"[WORKER ERROR] {exc}")
            return 1
        finally:
            self.close()

    def handle(self, message: Any) -> None:
        location = _location(message)
        try:
            payload = _deserialize_json_object(message.value)
        except Exception as exc:
            self._reject(message, f"decode_failed: {exc}", message.value)
            return

        result = handle_message(
            {**location, "value": payload},
            notify=self.notify,
            commit=lambda _record: self._commit(message),
            reject=lambda record, reason: self._reject(message, reason, record.get("value")),
        )
        print(
            f"[RESULT] {_describe(location)} status={result['status']} "
            f"should_commit={result['should_commit']} error={result['error']}"
        )

    def close(self) -> None:
        try:
            self.consumer.close()
        except Exception as exc:
            print(f"[WORKER CLOSE ERROR] consumer: {exc}")
        if self.dlq_producer is None:
            return
        try:
            self.dlq_producer.flush(timeout=self.settings.send_timeout_seconds)
            self.dlq_producer.close()
        except Exception as exc:
            print(f"[WORKER CLOSE ERROR] dlq_producer: {exc}")

    def _commit(self, message: Any) -> None:
        partition = self._partition_cls(message.topic, int(message.partition))
        position = _offset_and_metadata(self._offset_cls, int(message.offset) + 1)
        self.consumer.commit(offsets={partition: position})
        print(f"[COMMIT] {_describe(_location(message))}")

    def _reject(self, message: Any, reason: str, source_payload: Any) -> None:
        # Parked records are committed; unparked ones are redelivered.
        if self._publish_to_dlq(message, reason, source_payload):
            self._commit(message)
        else:
            print(f"[NO-COMMIT] {_describe(_location(message))} reason={reason}")

    def _publish_to_dlq(self, message: Any, reason: str, source_payload: Any) -> bool:
        if self.dlq_producer is None:
            return False

        location = _location(message)
        dlq_payload = _build_dlq_payload(
            source_topic=location["topic"],
            source_partition=location["partition"],
            source_offset=location["offset"],
            source_payload=source_payload,
            failure_reason=reason,
        )
        try:
            metadata = self.dlq_producer.send(self.settings.dlq_topic, value=dlq_payload).get(
                timeout=self.settings.send_timeout_seconds
            )
        except Exception as exc:
            print(f"[DLQ ERROR] {_describe(location)} reason={reason} error={exc}")
            return False

        print(
            f"[DLQ] {_describe(location)} dlq_topic={metadata.topic} "
            f"dlq_partition={metadata.partition} dlq_offset={metadata.offset} reason={reason}"
        )
        return True


def run_notification_worker_forever(notify: NotifyFn | None = None) -> int:
    """Build the worker from environment settings and run it until interrupted."""
    if notify is None:
        from .wiring import notifier_from_env

        notify = notifier_from_env()
    return NotificationWorker(notify, WorkerSettings.from_env()).run_forever()


def _import_kafka_python() -> tuple[Any, Any, Any, Any]:
    try:
        from kafka import KafkaConsumer, KafkaProducer, TopicPartition
        from kafka.structs import OffsetAndMetadata
    except ImportError as exc:
        raise RuntimeError(
            "Kafka support requires `kafka-python`. Install with: pip install kafka-python"
        ) from exc
    return KafkaConsumer, KafkaProducer, TopicPartition, OffsetAndMetadata


def _bootstrap_servers_from_env() -> list[str]:
    servers = [item.strip() for item in required_env("KAFKA_BOOTSTRAP_SERVERS").split(",")]
    servers = [server for server in servers if server]
    if not servers:
        raise RuntimeError("KAFKA_BOOTSTRAP_SERVERS must include at least one host:port")
    return servers


def _poll_timeout_ms_from_env() -> int:
    return int(env_float("KAFKA_POLL_TIMEOUT_SECONDS", 1.0) * 1000)


def _location(message: Any) -> dict[str, Any]:
    return {
        "topic": message.topic,
        "partition": int(message.partition),
        "offset": int(message.offset),
    }


def _describe(location: Mapping[str, Any]) -> str:
    return (
        f"topic={location['topic']} partition={location['partition']} "
        f"offset={location['offset']}"
    )


def _serialize_json_object(payload: Mapping[str, Any]) -> bytes:
    return json.dumps(_to_json_compatible(payload), separators=(",", ":")).encode("utf-8")


def _deserialize_json_object(raw: bytes | str | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    if not isinstance(raw, str):
        raise ValueError(f"Unsupported Kafka payload type: {type(raw).__name__}")

    parsed = json.loads(raw)
    if not isinstance(parsed, dict):
        raise ValueError("Kafka payload must decode to a JSON object")
    return parsed


def _build_dlq_payload(
    *,
    source_topic: str,
    source_partition: int,
    source_offset: int,
    source_payload: Any,
    failure_reason: str,
) -> dict[str, Any]:
    """Dead-letter envelope an operator can inspect and resend from."""
    payload: dict[str, Any] = {
        "event_type": f"{source_topic}.dlq",
        "failed_at": datetime.now(tz=UTC).isoformat(),
        "failure_reason": failure_reason,
        "source": {"topic": source_topic, "partition": source_partition, "offset": source_offset},
        "payload": _to_json_compatible(source_payload),
    }
    if not isinstance(source_payload, Mapping):
        return payload

    event_id = source_payload.get("event_id")
    if isinstance(event_id, str) and event_id.strip():
        payload["source_event_id"] = event_id.strip()
    ticket = source_payload.get("ticket")
    if isinstance(ticket, Mapping):
        ticket_number = ticket.get("ticket_number") or ticket.get("ticketNumber")
        if ticket_number:
            payload["ticket_number"] = str(ticket_number)
    return payload


def _to_json_compatible(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(key): _to_json_compatible(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_to_json_compatible(item) for item in value]
    return repr(value)


def _offset_and_metadata(offset_cls: Any, offset: int) -> Any:
    """kafka-python changed OffsetAndMetadata's arity across releases."""
    for extra in (("", -1), ("", None), ("",)):
        try:
            return offset_cls(offset, *extra)
        except TypeError:
            continue
    raise TypeError("Unsupported OffsetAndMetadata signature")
