"""Decoding of push envelopes into ingestion events."""

import base64
import json

from pydantic import ValidationError

from server.models.requests import PushRequest
from shared.exceptions import MalformedEnvelope
from shared.models.ingestion import IngestionEvent


def decode_envelope(body: object) -> IngestionEvent:
    """Decode a push request body into an IngestionEvent.

    The body must look like {"message": {"data": base64(JSON{"bucket", "name"})}}.

    Args:
        body (object): The parsed JSON request body.

    Returns:
        IngestionEvent: The event to ingest.

    Raises:
        MalformedEnvelope: If any layer of the envelope is missing or invalid.
    """
    try:
        request = PushRequest.model_validate(body)
    except ValidationError as exc:
        raise MalformedEnvelope("Push request has no message.data", {"errors": exc.error_count()}) from exc

    try:
        raw = base64.b64decode(request.message.data, validate=True)
        payload = json.loads(raw.decode("utf-8"))
    # covers binascii.Error, UnicodeDecodeError, JSONDecodeError and non-ASCII data
    except ValueError as exc:
        raise MalformedEnvelope(f"Message data is not base64 encoded JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise MalformedEnvelope("Message data is not a JSON object", {"type": type(payload).__name__})

    try:
        return IngestionEvent.model_validate(payload)
    except ValidationError as exc:
        raise MalformedEnvelope(
            "Message data lacks bucket or name", {"keys": sorted(payload.keys())}
        ) from exc
