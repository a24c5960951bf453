"""Failure taxonomy for the message pipeline.

Nodes never let these escape: the node guard in
:mod:`app.chevruta.workflow.nodes` turns them into ``error_occurred`` /
``error`` state updates, and the graph routes on the flag.
"""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class for failures raised inside a workflow stage."""

    stage: str = "Workflow failed"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        return f"{self.stage}: {self.detail}" if self.detail else self.stage


class ValidationFailure(WorkflowError):
    stage = "Validation failed"


class ContextFetchFailure(WorkflowError):
    stage = "Failed to fetch context"


class ReasoningServiceFailure(WorkflowError):
    stage = "Reasoning service failed"


class NormalizationFailure(WorkflowError):
    stage = "Output normalization failed"


class DeliveryFailure(WorkflowError):
    stage = "Failed to deliver response"


class AcknowledgmentFailure(WorkflowError):
    """Recorded and logged, never fatal for the invocation."""

    stage = "Acknowledgment failed"


class SlackApiError(Exception):
    """Slack Web API answered ``ok: false`` or a non-2xx status."""

    def __init__(self, method: str, error: str) -> None:
        super().__init__(f"{method}: {error}")
        self.method = method
        self.error = error


class ClaudeApiError(Exception):
    """Anthropic Messages API answered with a non-2xx status."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"HTTP {status}: {message}")
        self.status = status
