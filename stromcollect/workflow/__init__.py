"""Collection workflow state machine."""

from .controller import MIN_REVIEW_QUALITY, WORKFLOW_ORDER, WorkflowController, WorkflowState

__all__ = ["MIN_REVIEW_QUALITY", "WORKFLOW_ORDER", "WorkflowController", "WorkflowState"]
