"""Per-invocation workflow state.

Each node returns a partial update; the graph merges it into a fresh
state for the next node, so no node ever mutates shared data.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypedDict

from ..messaging.context import ContextMessage
from ..messaging.events import SlackMessage, SlackMessageEvent


@dataclass(frozen=True, slots=True)
class BotContext:
    name: str
    user_id: str | None = None


class WorkflowState(TypedDict, total=False):
    event: SlackMessageEvent | dict[str, Any]
    bot: BotContext | None
    should_process: bool
    message_text: str | None
    acknowledgment_sent: bool
    thread_history: list[SlackMessage]
    conversation_context: list[ContextMessage]
    reasoning_output: str | None
    needs_normalization: bool
    normalized_output: str | None
    final_output: str | None
    delivered: bool
    error_reported: bool
    error: str | None
    error_occurred: bool


def initial_state(
    event: SlackMessageEvent | dict[str, Any],
    bot: BotContext | None = None,
) -> WorkflowState:
    return WorkflowState(
        event=event,
        bot=bot,
        should_process=False,
        message_text=None,
        acknowledgment_sent=False,
        thread_history=[],
        conversation_context=[],
        reasoning_output=None,
        needs_normalization=False,
        normalized_output=None,
        final_output=None,
        delivered=False,
        error_reported=False,
        error=None,
        error_occurred=False,
    )
