from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError


class MalformedEvent(ValueError):
    """A realtime frame was not valid JSON."""


class CallStatusEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["call_status"] = "call_status"
    status: str

    @property
    def connected(self) -> bool:
        return self.status == "connected"

    @property
    def ended(self) -> bool:
        return self.status == "ended"


class ConversationUpdateEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["conversation_update"] = "conversation_update"
    role: str
    content: str


class UnknownEvent(BaseModel):
    """Any frame we do not understand. Kept for logging only."""

    model_config = ConfigDict(frozen=True)

    payload: Any = None


RealtimeEvent = Union[CallStatusEvent, ConversationUpdateEvent, UnknownEvent]

_known_event = TypeAdapter(
    Annotated[Union[CallStatusEvent, ConversationUpdateEvent], Field(discriminator="type")]
)


def decode_event(raw: Union[str, bytes]) -> RealtimeEvent:
    """Decode one voice-agent frame.

    Frames are JSON objects tagged by ``type``. Unknown tags and known tags
    with missing fields decode to :class:`UnknownEvent`; invalid JSON raises
    :class:`MalformedEvent`.
    """

    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise MalformedEvent(str(exc)) from exc

    if not isinstance(payload, dict):
        return UnknownEvent(payload=payload)
    try:
        return _known_event.validate_python(payload)
    except ValidationError:
        return UnknownEvent(payload=payload)
