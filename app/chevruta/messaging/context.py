"""Conversation context -- turns a Slack thread into reasoning-service input."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from .events import SlackMessage

CONTEXT_WINDOW = 5
MAX_CONTENT_CHARS = 2000
TRUNCATION_MARKER = "..."

Role = Literal["user", "assistant"]

_USER_MENTION = re.compile(r"<@[UW][A-Z0-9]+>")
_CHANNEL_LINK = re.compile(r"<#C[A-Z0-9]+\|([^>]+)>")
_LABELLED_LINK = re.compile(r"<((?:https?|mailto):[^|>]+)\|([^>]+)>")
_BARE_LINK = re.compile(r"<([^>]+)>")


@dataclass(frozen=True, slots=True)
class ContextMessage:
    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


def clean_message_text(text: str) -> str:
    """Strip Slack mention and link markup down to plain text."""
    text = _USER_MENTION.sub("", text)
    text = _CHANNEL_LINK.sub(r"#\1", text)
    text = _LABELLED_LINK.sub(r"\2 (\1)", text)
    text = _BARE_LINK.sub(r"\1", text)
    return text.strip()


def truncate(content: str, limit: int = MAX_CONTENT_CHARS) -> str:
    if len(content) <= limit:
        return content
    return content[:limit] + TRUNCATION_MARKER


def build_conversation_context(
    messages: Iterable[SlackMessage],
    window: int = CONTEXT_WINDOW,
) -> list[ContextMessage]:
    """Build role-tagged context from the *window* most recent messages.

    Messages are expected in chronological order and keep it.  Empty
    messages are skipped, bot-authored ones become ``assistant`` turns.
    """
    recent = list(messages)[-window:] if window > 0 else []
    context: list[ContextMessage] = []
    for msg in recent:
        if not msg.text.strip():
            continue
        content = clean_message_text(msg.text)
        if not content:
            continue
        role: Role = "assistant" if msg.from_bot else "user"
        context.append(ContextMessage(role=role, content=truncate(content)))
    return context


def with_trigger(history: list[SlackMessage], trigger: SlackMessage) -> list[SlackMessage]:
    """Append the triggering message unless the thread history already has it."""
    if any(m.ts == trigger.ts for m in history):
        return list(history)
    if not trigger.text or not trigger.user:
        return list(history)
    return [*history, trigger]
