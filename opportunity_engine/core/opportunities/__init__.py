"""Opportunity create/update workflow."""

from .workflow import OpportunityWorkflow, WorkflowResult

__all__ = ["OpportunityWorkflow", "WorkflowResult"]
