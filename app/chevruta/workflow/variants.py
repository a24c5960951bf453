"""Workflow variants -- static bot name -> engine factory mapping.

Resolved once when bots are registered; there is no call-time lookup.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from ..errors import ReasoningServiceFailure
from ..util.async_helpers import bounded
from .collaborators import Collaborators
from .graph import WorkflowEngine
from .nodes import WorkflowNodes, node_guard
from .prompts import RESEARCH_PROMPT
from .state import WorkflowState

logger = logging.getLogger(__name__)

WorkflowFactory = Callable[[Collaborators], WorkflowEngine]


class ResearchNodes(WorkflowNodes):
    """Deep-research reasoning: an agent loop over the Sefaria tools.

    With no research agent configured the single reasoning call is used,
    with the research prompt and a larger budget.
    """

    system_prompt = RESEARCH_PROMPT
    max_tokens = 16000
    reasoning_timeout_factor = 2.0

    def __init__(self, collaborators: Collaborators) -> None:
        super().__init__(collaborators)
        self.research = collaborators.research
        if self.research is None:
            logger.warning("[research] No research agent configured; using single-call reasoning")

    @node_guard(ReasoningServiceFailure)
    async def call_reasoning(self, state: WorkflowState) -> dict[str, Any]:
        if self.research is None:
            return await super().call_reasoning(state)
        messages = self._reasoning_messages(state)
        timeout = self.timeouts.reasoning * self.reasoning_timeout_factor
        try:
            output = await bounded(self.research.run(messages), timeout, "research")
        except Exception as exc:
            raise ReasoningServiceFailure(f"Deep agent processing failed: {exc}") from exc
        if not output or not output.strip():
            raise ReasoningServiceFailure("empty response")
        logger.info("[research] %d chars", len(output))
        return {"reasoning_output": output}


def create_default_workflow(collaborators: Collaborators) -> WorkflowEngine:
    return WorkflowEngine(WorkflowNodes(collaborators))


def create_research_workflow(collaborators: Collaborators) -> WorkflowEngine:
    return WorkflowEngine(ResearchNodes(collaborators))


WORKFLOW_FACTORIES: dict[str, WorkflowFactory] = {
    "bina": create_default_workflow,
    "binah": create_research_workflow,
}


def workflow_factory_for(name: str) -> WorkflowFactory:
    factory = WORKFLOW_FACTORIES.get(name.lower())
    if factory is None:
        logger.warning("[registry] No specific workflow for bot %r, using default", name)
        return create_default_workflow
    return factory
