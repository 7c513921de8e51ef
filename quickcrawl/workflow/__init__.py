"""Generic staged-pipeline engine."""

from quickcrawl.workflow.engine import Workflow
from quickcrawl.workflow.types import Stage, WorkflowDefinitionError, stage

__all__ = ["Workflow", "Stage", "WorkflowDefinitionError", "stage"]
