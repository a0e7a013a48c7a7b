from pydantic import BaseModel


class PushMessage(BaseModel):
    """The message part of a Pub/Sub push delivery; data is base64 encoded."""

    data: str
    messageId: str | None = None
    attributes: dict[str, str] | None = None


class PushRequest(BaseModel):
    message: PushMessage
    subscription: str | None = None
