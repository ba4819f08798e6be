"""Application layer: cross-channel orchestration and retry helpers."""

from .process import process_ticket_closed
from .retry import RetryCancelled, retry_call, wait_until

__all__ = [
    "RetryCancelled",
    "process_ticket_closed",
    "retry_call",
    "wait_until",
]
