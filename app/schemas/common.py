"""Shared response envelope."""

from pydantic import BaseModel


class Envelope(BaseModel):
    """Base for every JSON response: ``{success, message, ...}``."""

    success: bool = True
    message: str


class MessageResponse(Envelope):
    """Envelope with no payload."""
