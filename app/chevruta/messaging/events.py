"""Inbound Slack event models.

Events arrive as loosely shaped JSON; everything past the HTTP edge works
with these closed, validated structures instead of raw dicts.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import ValidationFailure

logger = logging.getLogger(__name__)

HANDSHAKE_TYPE = "url_verification"
CALLBACK_TYPE = "event_callback"
MESSAGE_EVENT = "message"
BOT_MESSAGE_SUBTYPE = "bot_message"


class SlackMessage(BaseModel):
    """One message as returned by ``conversations.replies``."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    user: str = ""
    text: str = ""
    ts: str = ""
    thread_ts: str | None = None
    bot_id: str | None = None

    @property
    def from_bot(self) -> bool:
        return bool(self.bot_id)


class _NestedMessage(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    user: str | None = None
    text: str | None = None
    ts: str | None = None
    thread_ts: str | None = None
    bot_id: str | None = None


class SlackMessageEvent(BaseModel):
    """The ``event`` object of an ``event_callback`` delivery."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: str
    channel: str = Field(min_length=1)
    ts: str = Field(min_length=1)
    user: str | None = None
    text: str | None = None
    thread_ts: str | None = None
    bot_id: str | None = None
    subtype: str | None = None
    message: _NestedMessage | None = None

    def message_text(self) -> str | None:
        if self.text:
            return self.text
        if self.message and self.message.text:
            return self.message.text
        return None

    @property
    def thread_root(self) -> str:
        return self.thread_ts or self.ts

    @property
    def dedup_key(self) -> str:
        return f"{self.channel}-{self.ts}"

    def as_raw_message(self) -> SlackMessage:
        return SlackMessage(
            user=self.user or "",
            text=self.message_text() or "",
            ts=self.ts,
            thread_ts=self.thread_ts,
            bot_id=self.bot_id,
        )


def parse_event(data: Any) -> SlackMessageEvent:
    """Validate a raw ``event`` object, raising :class:`ValidationFailure`."""
    if not isinstance(data, dict):
        raise ValidationFailure(f"event must be an object, got {type(data).__name__}")
    try:
        return SlackMessageEvent.model_validate(data)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        raise ValidationFailure(f"malformed event ({fields})") from exc


def is_handshake(payload: dict[str, Any]) -> bool:
    return payload.get("type") == HANDSHAKE_TYPE


def is_message_callback(payload: dict[str, Any]) -> bool:
    event = payload.get("event")
    return (
        payload.get("type") == CALLBACK_TYPE
        and isinstance(event, dict)
        and event.get("type") == MESSAGE_EVENT
    )
