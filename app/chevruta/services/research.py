"""Deep-research agent -- a LangGraph ReAct loop over the Sefaria MCP tools."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.runnables import Runnable
from langchain_mcp_adapters.client import MultiServerMCPClient
from langgraph.prebuilt import create_react_agent

from ..workflow.prompts import RESEARCH_PROMPT

logger = logging.getLogger(__name__)

MCP_SERVER_NAME = "sefaria"
RECURSION_LIMIT = 100
RESEARCH_MAX_TOKENS = 16000
SUBSTANTIVE_CHARS = 500

AgentBuilder = Callable[[], Awaitable[Runnable]]


def message_text(message: BaseMessage) -> str:
    """Plain text of a message whose content may be a list of blocks."""
    content = message.content
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def extract_research_answer(messages: Sequence[BaseMessage]) -> str:
    """Join the substantive assistant turns of an agent run.

    Tool-calling turns and short interstitial remarks ("let me look that
    up") are dropped.  When nothing substantive remains, the final
    message is the answer.
    """
    substantive: list[str] = []
    for msg in messages:
        if not isinstance(msg, AIMessage) or msg.tool_calls:
            continue
        text = message_text(msg).strip()
        if len(text) > SUBSTANTIVE_CHARS:
            substantive.append(text)
    if substantive:
        return "\n\n".join(substantive)
    return message_text(messages[-1]).strip() if messages else ""


class SefariaResearchAgent:
    """Implements :class:`~app.chevruta.workflow.collaborators.ResearchAgent`.

    The MCP tool list and the compiled agent graph are built on first use
    and reused afterwards.  A failed build is retried on the next call.
    """

    def __init__(
        self,
        api_key: str,
        mcp_url: str,
        *,
        model: str,
        max_tokens: int = RESEARCH_MAX_TOKENS,
        recursion_limit: int = RECURSION_LIMIT,
        system: str = RESEARCH_PROMPT,
        builder: AgentBuilder | None = None,
    ) -> None:
        self._api_key = api_key
        self._mcp_url = mcp_url
        self.model = model
        self.max_tokens = max_tokens
        self.recursion_limit = recursion_limit
        self.system = system
        self._builder = builder or self._build
        self._agent: Runnable | None = None
        self._lock = asyncio.Lock()

    async def run(self, messages: list[dict[str, Any]]) -> str:
        agent = await self._get_agent()
        result = await agent.ainvoke(
            {"messages": messages}, config={"recursion_limit": self.recursion_limit},
        )
        history = result.get("messages", [])
        logger.info("[research] Agent finished after %d message(s)", len(history))
        return extract_research_answer(history)

    async def _get_agent(self) -> Runnable:
        async with self._lock:
            if self._agent is None:
                self._agent = await self._builder()
            return self._agent

    async def _build(self) -> Runnable:
        client = MultiServerMCPClient({
            MCP_SERVER_NAME: {"url": self._mcp_url, "transport": "streamable_http"},
        })
        tools = await client.get_tools()
        logger.info("[research] Loaded %d MCP tool(s) from %s", len(tools), self._mcp_url)
        llm = ChatAnthropic(
            model=self.model,
            api_key=self._api_key,
            max_tokens=self.max_tokens,
        )
        return create_react_agent(llm, tools, prompt=self.system)
