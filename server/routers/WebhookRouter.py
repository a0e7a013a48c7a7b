"""Webhook router for storage notifications.

The push subscription calls POST / whenever an object is finalized in the
bucket. The handler acknowledges immediately and runs the ingestion as a
fire-and-forget background task, so slow OCR and embedding calls never
exceed the delivery substrate's acknowledgment deadline.
"""

import json

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from server.core.envelope import decode_envelope
from shared.exceptions import MalformedEnvelope

router = APIRouter(tags=["webhook"])


@router.post("/", response_class=PlainTextResponse)
async def handle_storage_webhook(request: Request) -> PlainTextResponse:
    """Accept a push-delivered storage notification.

    Malformed envelopes are answered with 200 so they are not redelivered;
    retrying cannot fix them. Only unexpected faults before the acknowledgment
    produce a 500.

    Args:
        request (Request): FastAPI request (provides app.state.ingestion_service and app.state.task_supervisor).

    Returns:
        PlainTextResponse: A short acknowledgment text.
    """
    logging = request.app.state.logging
    try:
        try:
            body = await request.json()
            event = decode_envelope(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logging.warning("Discarding push request: body is not JSON.")
            return PlainTextResponse("Invalid message format, message discarded.", status_code=200)
        except MalformedEnvelope as exc:
            logging.warning("Discarding push request: %s", exc)
            return PlainTextResponse("Invalid message format, message discarded.", status_code=200)

        logging.info("Webhook received for %s/%s", event.container_id, event.object_key)
        request.app.state.task_supervisor.spawn(
            request.app.state.ingestion_service.do_ingest(event),
            name=f"ingest:{event.container_id}/{event.object_key}",
        )
    except Exception:
        logging.exception("Unexpected error while accepting push request.")
        return PlainTextResponse("Error processing document", status_code=500)

    return PlainTextResponse("Received", status_code=200)
