"""Workflow graph -- wires the nodes into a LangGraph state machine.

    validate --(error)--> report_error
             --(skip)---> END
             --(go)-----> acknowledge -> fetch_context -> call_reasoning
                          -> normalize_output -> finalize -> deliver -> END

Every node after ``acknowledge`` may branch to ``report_error``, which is
always terminal.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from langgraph.graph import END, StateGraph

from ..messaging.events import SlackMessageEvent
from .nodes import WorkflowNodes
from .state import BotContext, WorkflowState, initial_state

logger = logging.getLogger(__name__)

REPORT_ERROR = "report_error"

PIPELINE = (
    "fetch_context",
    "call_reasoning",
    "normalize_output",
    "finalize",
    "deliver",
)


def route_after_validate(state: WorkflowState) -> str:
    if state.get("error_occurred"):
        return REPORT_ERROR
    if not state.get("should_process"):
        return END
    return "acknowledge"


def _continue_to(next_node: str) -> Callable[[WorkflowState], str]:
    def route(state: WorkflowState) -> str:
        return REPORT_ERROR if state.get("error_occurred") else next_node

    route.__name__ = f"route_to_{next_node.lower()}"
    return route


def build_graph(nodes: WorkflowNodes) -> Any:
    sg = StateGraph(WorkflowState)

    sg.add_node("validate", nodes.validate)
    sg.add_node("acknowledge", nodes.acknowledge)
    sg.add_node("fetch_context", nodes.fetch_context)
    sg.add_node("call_reasoning", nodes.call_reasoning)
    sg.add_node("normalize_output", nodes.normalize_output)
    sg.add_node("finalize", nodes.finalize)
    sg.add_node("deliver", nodes.deliver)
    sg.add_node(REPORT_ERROR, nodes.report_error)

    sg.set_entry_point("validate")
    sg.add_conditional_edges(
        "validate",
        route_after_validate,
        {REPORT_ERROR: REPORT_ERROR, "acknowledge": "acknowledge", END: END},
    )
    sg.add_edge("acknowledge", "fetch_context")
    for current, following in zip(PIPELINE, (*PIPELINE[1:], END)):
        sg.add_conditional_edges(
            current,
            _continue_to(following),
            {following: following, REPORT_ERROR: REPORT_ERROR},
        )
    sg.add_edge(REPORT_ERROR, END)
    return sg.compile()


class WorkflowEngine:
    """One compiled graph bound to one bot's collaborators."""

    def __init__(self, nodes: WorkflowNodes) -> None:
        self.nodes = nodes
        self._graph = build_graph(nodes)

    async def run(
        self,
        event: SlackMessageEvent | dict[str, Any],
        bot: BotContext | None = None,
    ) -> WorkflowState:
        final = await self._graph.ainvoke(initial_state(event, bot))
        if final.get("error_occurred"):
            logger.info("[workflow] Finished with error: %s", final.get("error"))
        elif final.get("delivered"):
            logger.info("[workflow] Finished: reply delivered")
        else:
            logger.info("[workflow] Finished: message not handled")
        return final
