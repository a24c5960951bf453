"""Message-handling workflow -- nodes, graph, and per-bot variants."""

from .collaborators import ChatPlatform, Collaborators, ReasoningService, ResearchAgent
from .graph import WorkflowEngine, build_graph
from .nodes import WorkflowNodes
from .state import BotContext, WorkflowState, initial_state
from .variants import WORKFLOW_FACTORIES, workflow_factory_for

__all__ = [
    "BotContext",
    "ChatPlatform",
    "Collaborators",
    "ReasoningService",
    "ResearchAgent",
    "WORKFLOW_FACTORIES",
    "WorkflowEngine",
    "WorkflowNodes",
    "WorkflowState",
    "build_graph",
    "initial_state",
    "workflow_factory_for",
]
