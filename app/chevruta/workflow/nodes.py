"""Workflow nodes -- one async step per stage of handling a Slack message.

Every node takes the current :class:`WorkflowState` and returns a partial
update.  Failures never propagate: :func:`node_guard` converts them into
``error_occurred`` / ``error`` and the graph routes on that flag.
"""

from __future__ import annotations

import functools
import logging
import re
from collections.abc import Awaitable, Callable
from typing import Any

from ..errors import (
    AcknowledgmentFailure,
    ContextFetchFailure,
    DeliveryFailure,
    NormalizationFailure,
    ReasoningServiceFailure,
    ValidationFailure,
    WorkflowError,
)
from ..messaging.context import (
    CONTEXT_WINDOW,
    build_conversation_context,
    clean_message_text,
    with_trigger,
)
from ..messaging.events import BOT_MESSAGE_SUBTYPE, SlackMessageEvent, parse_event
from ..messaging.formatting import finalize_response
from ..messaging.normalizer import OutputNormalizer
from ..util.async_helpers import bounded
from .collaborators import Collaborators
from .prompts import SCHOLAR_PROMPT
from .state import WorkflowState

logger = logging.getLogger(__name__)

APOLOGY = "Sorry, I encountered an error while processing your request."

_REACTION_NAME = re.compile(r"^[a-z0-9_+-]{1,30}$")
_HEBREW = re.compile(r"[\u0590-\u05FF]")

NodeFn = Callable[[Any, WorkflowState], Awaitable[dict[str, Any]]]


def node_guard(failure: type[WorkflowError]) -> Callable[[NodeFn], NodeFn]:
    """Turn any exception raised by a node into an error state update.

    Taxonomy errors keep their own message; anything else is wrapped in
    *failure* and logged with its traceback.
    """

    def decorator(fn: NodeFn) -> NodeFn:
        @functools.wraps(fn)
        async def wrapper(self: Any, state: WorkflowState) -> dict[str, Any]:
            try:
                return await fn(self, state)
            except WorkflowError as exc:
                logger.warning("[%s] %s", fn.__name__, exc)
                return {"error_occurred": True, "error": str(exc)}
            except Exception as exc:
                err = failure(str(exc) or type(exc).__name__)
                logger.exception("[%s] %s", fn.__name__, err)
                return {"error_occurred": True, "error": str(err)}

        return wrapper

    return decorator


def fallback_reaction(text: str) -> str:
    return "scroll" if _HEBREW.search(text) else "thinking_face"


def _preview(text: str | None, limit: int = 80) -> str:
    if not text:
        return ""
    return text if len(text) <= limit else text[:limit] + "..."


class WorkflowNodes:
    """The stock node set.  Variants subclass and override single nodes."""

    system_prompt: str = SCHOLAR_PROMPT
    max_tokens: int = 8000
    reasoning_timeout_factor: float = 1.0

    def __init__(self, collaborators: Collaborators) -> None:
        self.platform = collaborators.platform
        self.reasoning = collaborators.reasoning
        self.timeouts = collaborators.timeouts
        self.debug = collaborators.debug
        self.normalizer = OutputNormalizer(self.reasoning.rewrite, self.timeouts.rewrite)

    # -- validate ----------------------------------------------------------

    @node_guard(ValidationFailure)
    async def validate(self, state: WorkflowState) -> dict[str, Any]:
        event = state["event"]
        if not isinstance(event, SlackMessageEvent):
            event = parse_event(event)
        text = event.message_text()
        bot = state.get("bot")
        user_id = bot.user_id if bot else None
        should = self._should_process(event, text, user_id)
        logger.info(
            "[validate] channel=%s ts=%s process=%s text=%r",
            event.channel, event.ts, should, _preview(text),
        )
        return {"event": event, "should_process": should, "message_text": text}

    @staticmethod
    def _should_process(event: SlackMessageEvent, text: str | None, user_id: str | None) -> bool:
        if event.bot_id:
            return False
        if event.subtype and event.subtype != BOT_MESSAGE_SUBTYPE:
            return False
        if user_id and event.user == user_id:
            return False
        if not text:
            return False
        if not user_id:
            logger.warning("[validate] Bot user id not resolved yet; ignoring message")
            return False
        return f"<@{user_id}>" in text

    # -- acknowledge -------------------------------------------------------

    async def acknowledge(self, state: WorkflowState) -> dict[str, Any]:
        event: SlackMessageEvent = state["event"]
        try:
            name = await self._choose_reaction(state.get("message_text") or "")
            result = await bounded(
                self.platform.add_reaction(event.channel, event.ts, name),
                self.timeouts.slack, "reactions.add",
            )
            result.or_raise(AcknowledgmentFailure)
        except AcknowledgmentFailure as exc:
            logger.warning("[ack] %s", exc)
            return {"acknowledgment_sent": False}
        except Exception as exc:
            logger.warning("[ack] %s", AcknowledgmentFailure(str(exc)))
            return {"acknowledgment_sent": False}
        logger.info("[ack] Reacted with :%s:", name)
        return {"acknowledgment_sent": True}

    async def _choose_reaction(self, text: str) -> str:
        try:
            raw = await bounded(
                self.reasoning.suggest_reaction(text), self.timeouts.reaction, "reaction",
            )
        except Exception as exc:
            logger.debug("[ack] Reaction suggestion failed: %s", exc)
            return fallback_reaction(text)
        name = (raw or "").strip().strip(":").lower()
        if _REACTION_NAME.match(name):
            return name
        return fallback_reaction(text)

    # -- fetch_context -----------------------------------------------------

    @node_guard(ContextFetchFailure)
    async def fetch_context(self, state: WorkflowState) -> dict[str, Any]:
        event: SlackMessageEvent = state["event"]
        history = await bounded(
            self.platform.fetch_thread_messages(event.channel, event.thread_root, CONTEXT_WINDOW),
            self.timeouts.slack, "conversations.replies",
        )
        history = with_trigger(history, event.as_raw_message())
        context = build_conversation_context(history)
        logger.info("[context] %d thread message(s) -> %d context turn(s)", len(history), len(context))
        return {"thread_history": history, "conversation_context": context}

    # -- call_reasoning ----------------------------------------------------

    @node_guard(ReasoningServiceFailure)
    async def call_reasoning(self, state: WorkflowState) -> dict[str, Any]:
        messages = self._reasoning_messages(state)
        timeout = self.timeouts.reasoning * self.reasoning_timeout_factor
        output = await bounded(
            self.reasoning.complete(messages, system=self.system_prompt, max_tokens=self.max_tokens),
            timeout, "reasoning",
        )
        if not output or not output.strip():
            raise ReasoningServiceFailure("empty response")
        logger.info("[reasoning] %d chars: %r", len(output), _preview(output))
        return {"reasoning_output": output}

    def _reasoning_messages(self, state: WorkflowState) -> list[dict[str, Any]]:
        context = state.get("conversation_context") or []
        if context:
            return [m.to_dict() for m in context]
        logger.warning("[reasoning] No conversation context; using the triggering message")
        content = clean_message_text(state.get("message_text") or "")
        if not content:
            raise ReasoningServiceFailure("no message content to send")
        return [{"role": "user", "content": content}]

    # -- normalize_output --------------------------------------------------

    @node_guard(NormalizationFailure)
    async def normalize_output(self, state: WorkflowState) -> dict[str, Any]:
        result = await self.normalizer.normalize(state.get("reasoning_output") or "")
        logger.info("[normalize] needed=%s tier=%s", result.needs_normalization, result.tier)
        return {
            "needs_normalization": result.needs_normalization,
            "normalized_output": result.text,
        }

    # -- finalize ----------------------------------------------------------

    @node_guard(NormalizationFailure)
    async def finalize(self, state: WorkflowState) -> dict[str, Any]:
        text = state.get("normalized_output") or state.get("reasoning_output") or ""
        if not text.strip():
            raise NormalizationFailure("nothing to finalize")
        final = finalize_response(text)
        logger.info("[finalize] %d chars", len(final))
        return {"final_output": final}

    # -- deliver -----------------------------------------------------------

    @node_guard(DeliveryFailure)
    async def deliver(self, state: WorkflowState) -> dict[str, Any]:
        event: SlackMessageEvent = state["event"]
        result = await bounded(
            self.platform.send_message(event.channel, event.thread_root, state["final_output"]),
            self.timeouts.slack, "chat.postMessage",
        )
        result.or_raise(DeliveryFailure)
        logger.info("[deliver] Sent reply to %s (thread %s)", event.channel, event.thread_root)
        return {"delivered": True}

    # -- report_error ------------------------------------------------------

    async def report_error(self, state: WorkflowState) -> dict[str, Any]:
        error = state.get("error") or "unknown error"
        logger.error("[error] %s", error)
        event = state.get("event")
        if not isinstance(event, SlackMessageEvent):
            logger.error("[error] No valid event to reply to; apology not sent")
            return {"error_reported": False}
        text = APOLOGY
        if self.debug:
            text = f"{APOLOGY}\n\n*Error:* {error}"
        try:
            result = await bounded(
                self.platform.send_message(event.channel, event.thread_root, text),
                self.timeouts.slack, "chat.postMessage",
            )
        except Exception as exc:
            logger.error("[error] Could not send apology: %s", exc)
            return {"error_reported": False}
        if not result:
            logger.error("[error] Could not send apology: %s", result.message)
            return {"error_reported": False}
        return {"error_reported": True}
