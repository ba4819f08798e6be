"""HTTP notify endpoint guarded by the shared `API_KEY` secret.

Lets an external caller (another deployment, a cron job, an operator) run the
ticket-closed notifications for one or more tickets. Per-ticket failures are
reported in the response body; they never fail the request.
"""

import hmac
import logging
import os
from typing import Any

from fastapi import APIRouter, Body, FastAPI, Header, Request, status
from fastapi.responses import JSONResponse

from .consumer_handler import NotifyFn
from .payload import ticket_from_record
from .ticket_store import InMemoryTicketStore

logger = logging.getLogger(__name__)

router = APIRouter()


def create_app(
    notifier: NotifyFn,
    *,
    store: InMemoryTicketStore | None = None,
    api_key: str | None = None,
) -> FastAPI:
    """Create the notify API around an already configured notifier."""

    app = FastAPI(title="Ticket notifications")
    app.state.notifier = notifier
    app.state.store = store
    app.state.api_key = api_key
    app.include_router(router)
    return app


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/api/whatsapp/notify")
def notify_closed_tickets(
    request: Request,
    body: dict[str, Any] = Body(...),
    x_api_key: str | None = Header(default=None),
) -> JSONResponse:
    """Send notifications for every closed ticket in `body["data"]`."""

    expected_key = request.app.state.api_key or os.getenv("API_KEY")
    provided_key = x_api_key or body.get("apiKey")
    if not _keys_match(provided_key, expected_key):
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"success": False, "error": "Invalid API key"},
        )

    items = body.get("data")
    if not body.get("success") or not isinstance(items, list):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "error": "Invalid data format"},
        )

    notifier: NotifyFn = request.app.state.notifier
    store: InMemoryTicketStore | None = request.app.state.store
    results: list[dict[str, Any]] = []

    for item in items:
        if not isinstance(item, dict):
            results.append({"ticketId": None, "error": "Ticket item must be an object"})
            continue

        ticket_id = item.get("id")
        try:
            if store is not None and ticket_id:
                ticket = store.find_by_id(str(ticket_id))
                if ticket is None:
                    results.append({"ticketId": ticket_id, "error": "Ticket not found"})
                    continue
            else:
                ticket = ticket_from_record(item)
        except ValueError as exc:
            results.append({"ticketId": ticket_id, "error": str(exc)})
            continue

        if not ticket.is_closed:
            continue

        logger.info("Processing closed ticket %s via notify API", ticket.ticket_number)
        processing = notifier(ticket)
        results.append(
            {
                "ticketId": ticket.id,
                "ticketNumber": ticket.ticket_number or "N/A",
                "success": processing["all_requested_succeeded"],
                "email": processing["email"],
                "whatsapp": processing["whatsapp"],
                "group": processing["group"],
            }
        )

    return JSONResponse(
        content={"success": True, "message": "Notifications processed", "results": results}
    )


def _keys_match(provided: Any, expected: str | None) -> bool:
    if not expected or not isinstance(provided, str) or not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))
