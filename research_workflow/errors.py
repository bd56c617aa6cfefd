"""
Error taxonomy for the research workflow.

- InputError: rejected before any stage runs.
- StageError (and subclasses): a collaborator call failed. The executor turns
  these into ``status=error`` on the pipeline instance that raised them.
- GraphDefinitionError / RoutingError: programming defects. They propagate out
  of ``run`` / ``run_batch`` unchanged.

Quality shortfalls and exhausted retries are not errors; they are routed by the
quality gate.
"""

from typing import Optional


class WorkflowError(Exception):
    """Base class for every error raised by this package."""


class InputError(WorkflowError):
    """Invalid input reference, query or run option."""


class StageError(WorkflowError):
    """A stage could not produce its artifact."""

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class ConversionError(StageError):
    def __init__(self, message: str):
        super().__init__(message, stage="convert")


class AnalysisError(StageError):
    def __init__(self, message: str):
        super().__init__(message, stage="analyze")


class DraftError(StageError):
    def __init__(self, message: str):
        super().__init__(message, stage="write")


class SearchError(StageError):
    def __init__(self, message: str):
        super().__init__(message, stage="search")


class GraphDefinitionError(WorkflowError):
    """The pipeline graph is malformed (unknown stage, incomplete route map)."""


class RoutingError(WorkflowError):
    """A router returned a label outside its declared label set."""
