from typing import Annotated, List, Optional

from typing_extensions import TypedDict

from research_workflow.models import reducers
from research_workflow.models.reducers import now_ms
from research_workflow.models.records import (
    AnalysisRecord,
    GateDecision,
    PaperMetadata,
    PaperResult,
    QualityCheck,
    RetryInfo,
    WorkflowStatus,
)


DEFAULT_MAX_RETRIES = 3


class ResearchState(TypedDict, total=False):
    """
    State schema threaded through every pipeline run.

    Notes:
    - LangGraph state is still a dict at runtime; this is a schema/type contract.
    - Every field carries its reducer, so node outputs are merged by the same
      rules as ``reducers.apply_update``.
    - log and aggregated_results are append-only.
    """

    # Inputs
    input_ref: Annotated[Optional[str], reducers.keep_latest]
    input_refs: Annotated[Optional[List[str]], reducers.keep_latest]
    query: Annotated[Optional[str], reducers.keep_latest]
    max_retries: Annotated[Optional[int], reducers.keep_latest]

    # Artifacts
    metadata: Annotated[Optional[PaperMetadata], reducers.keep_latest]
    markdown: Annotated[Optional[str], reducers.keep_latest]
    summary: Annotated[Optional[str], reducers.keep_latest]
    analysis: Annotated[Optional[AnalysisRecord], reducers.merge_analysis]
    draft: Annotated[Optional[str], reducers.keep_latest]
    quality_check: Annotated[Optional[QualityCheck], reducers.keep_latest]

    # Control
    gate_decision: Annotated[Optional[GateDecision], reducers.keep_latest]
    status: Annotated[WorkflowStatus, reducers.merge_status]
    retry_info: Annotated[Optional[RetryInfo], reducers.merge_retry_info]
    error: Annotated[Optional[str], reducers.keep_latest]

    # Bookkeeping
    start_time: Annotated[Optional[int], reducers.keep_latest]
    last_updated: Annotated[Optional[int], reducers.keep_latest]
    log: Annotated[List[str], reducers.append_items]

    # Batch
    current_index: Annotated[Optional[int], reducers.keep_latest]
    total_inputs: Annotated[Optional[int], reducers.keep_latest]
    aggregated_results: Annotated[List[PaperResult], reducers.append_items]


def create_initial_state(
    input_ref: Optional[str],
    query: str,
    max_retries: int = DEFAULT_MAX_RETRIES,
    input_refs: Optional[List[str]] = None,
) -> ResearchState:
    """Create a fresh state for a pipeline or batch run."""
    started = now_ms()
    refs = list(input_refs) if input_refs else ([input_ref] if input_ref else [])
    target = input_ref or f"{len(refs)} inputs"
    return ResearchState(
        input_ref=input_ref,
        input_refs=refs,
        query=query,
        max_retries=max_retries,
        status=WorkflowStatus.IDLE,
        retry_info=RetryInfo(attempt=0, max_attempts=max_retries),
        start_time=started,
        last_updated=started,
        log=[f"Workflow initialized for {target}"],
        current_index=0,
        total_inputs=max(len(refs), 1),
        aggregated_results=[],
    )
