"""
Research paper workflow engine.

Pipelines of async stages (convert -> analyze -> write -> quality gate) run on
LangGraph, with per-field state reducers, bounded quality-gate retries and a
batch coordinator that fans out over many papers and compares the results.

Usage:
    from research_workflow import ResearchWorkflow, PipelineKind

    workflow = ResearchWorkflow(converter, analyzer, drafter)
    handle = workflow.create_pipeline(PipelineKind.REVIEW)
    state = await workflow.run(handle, "paper.pdf", "What problem does it solve?")
"""

from research_workflow.config import Config, QualityThresholds
from research_workflow.errors import (
    AnalysisError,
    ConversionError,
    DraftError,
    GraphDefinitionError,
    InputError,
    RoutingError,
    SearchError,
    StageError,
    WorkflowError,
)
from research_workflow.models.records import (
    AnalysisRecord,
    GateDecision,
    PaperResult,
    QualityCheck,
    RetryInfo,
    WorkflowStatus,
)
from research_workflow.models.reducers import apply_update
from research_workflow.models.state import ResearchState, create_initial_state
from research_workflow.pipelines import PipelineKind
from research_workflow.workflow import PipelineHandle, ResearchWorkflow, ValidationResult

__all__ = [
    # Entry points
    "ResearchWorkflow",
    "PipelineHandle",
    "PipelineKind",
    "ValidationResult",
    "Config",
    "QualityThresholds",
    # State
    "ResearchState",
    "create_initial_state",
    "apply_update",
    "WorkflowStatus",
    "GateDecision",
    "AnalysisRecord",
    "QualityCheck",
    "RetryInfo",
    "PaperResult",
    # Errors
    "WorkflowError",
    "InputError",
    "StageError",
    "ConversionError",
    "AnalysisError",
    "DraftError",
    "SearchError",
    "GraphDefinitionError",
    "RoutingError",
]
