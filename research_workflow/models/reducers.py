"""
Field-level merge policies for ResearchState.

Each reducer takes ``(current, incoming)`` and returns the merged value. The
same functions are attached to the ResearchState annotations, so LangGraph
merges node output exactly like ``apply_update`` does.

An incoming value of ``None`` always means "absent": the current value is kept.
"""

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from research_workflow.models.records import AnalysisRecord, RetryInfo, WorkflowStatus

logger = logging.getLogger(__name__)

Reducer = Callable[[Any, Any], Any]
RecordT = TypeVar("RecordT", bound=BaseModel)

# completed < error; retry is handled separately (always wins, anything may follow it)
STATUS_RANK: Dict[WorkflowStatus, int] = {
    WorkflowStatus.RETRY: -1,
    WorkflowStatus.IDLE: 0,
    WorkflowStatus.CONVERTING: 1,
    WorkflowStatus.ANALYZING: 2,
    WorkflowStatus.WRITING: 3,
    WorkflowStatus.QUALITY_CHECK: 4,
    WorkflowStatus.COMPLETED: 5,
    WorkflowStatus.ERROR: 6,
}

TERMINAL_STATUSES = frozenset({WorkflowStatus.COMPLETED, WorkflowStatus.ERROR})
PROCESSING_STATUSES = frozenset(
    {
        WorkflowStatus.CONVERTING,
        WorkflowStatus.ANALYZING,
        WorkflowStatus.WRITING,
        WorkflowStatus.QUALITY_CHECK,
    }
)


def now_ms() -> int:
    return int(time.time() * 1000)


############################################################
# 1️⃣  REDUCERS
############################################################


def keep_latest(current: Any, incoming: Any) -> Any:
    return current if incoming is None else incoming


def append_items(current: Optional[List[Any]], incoming: Any) -> List[Any]:
    """Append-only list merge preserving order."""
    if incoming is None:
        return list(current or [])
    if isinstance(incoming, (str, bytes)) or not isinstance(incoming, Iterable):
        incoming = [incoming]
    return list(current or []) + list(incoming)


def _coerce_status(value: Any) -> Optional[WorkflowStatus]:
    if value is None or isinstance(value, WorkflowStatus):
        return value
    try:
        return WorkflowStatus(value)
    except ValueError:
        logger.warning(f"⚠️  Ignoring unknown status {value!r}")
        return None


def merge_status(current: Any, incoming: Any) -> Optional[WorkflowStatus]:
    """
    Progression table for ``status``.

    - retry always wins
    - error wins unless the current status is completed
    - otherwise the incoming status is accepted only if it does not move backwards
    """
    current = _coerce_status(current)
    incoming = _coerce_status(incoming)

    if incoming is None:
        return current
    if current is None or incoming is WorkflowStatus.RETRY:
        return incoming
    if incoming is WorkflowStatus.ERROR:
        return current if current is WorkflowStatus.COMPLETED else incoming
    if STATUS_RANK[incoming] >= STATUS_RANK[current]:
        return incoming
    return current


def _coerce_record(value: Any, model: Type[RecordT]) -> Optional[RecordT]:
    """Accept a record, or a plain mapping of its fields; anything else is dropped."""
    if value is None or isinstance(value, model):
        return value
    if isinstance(value, Mapping):
        try:
            return model.model_validate(dict(value))
        except ValidationError as exc:
            logger.warning(f"⚠️  Ignoring invalid {model.__name__}: {exc.error_count()} validation errors")
            return None
    logger.warning(f"⚠️  Ignoring {model.__name__} of type {type(value).__name__}")
    return None


def merge_analysis(
    current: Optional[AnalysisRecord], incoming: Optional[AnalysisRecord]
) -> Optional[AnalysisRecord]:
    """Concatenate list sub-fields, take non-empty scalar sub-fields from ``incoming``."""
    current = _coerce_record(current, AnalysisRecord)
    incoming = _coerce_record(incoming, AnalysisRecord)
    if incoming is None:
        return current
    if current is None:
        return incoming

    return AnalysisRecord(
        research_gap=[*current.research_gap, *incoming.research_gap],
        related_papers=[*current.related_papers, *incoming.related_papers],
        key_findings=[*current.key_findings, *incoming.key_findings],
        methodology=incoming.methodology or current.methodology,
        conclusions=incoming.conclusions or current.conclusions,
        strengths=[*current.strengths, *incoming.strengths],
        limitations=[*current.limitations, *incoming.limitations],
        suggestions=[*current.suggestions, *incoming.suggestions],
    )


def merge_retry_info(
    current: Optional[RetryInfo], incoming: Optional[RetryInfo]
) -> Optional[RetryInfo]:
    """Replace, but carry ``last_error`` forward when the incoming record has none."""
    current = _coerce_record(current, RetryInfo)
    incoming = _coerce_record(incoming, RetryInfo)
    if incoming is None:
        return current
    if current is not None and incoming.last_error is None and current.last_error:
        return incoming.model_copy(update={"last_error": current.last_error})
    return incoming


REDUCERS: Dict[str, Reducer] = {
    "log": append_items,
    "aggregated_results": append_items,
    "status": merge_status,
    "analysis": merge_analysis,
    "retry_info": merge_retry_info,
}


def apply_update(state: Mapping[str, Any], update: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Merge a partial update into a state and return the new state.

    Pure: neither argument is mutated. Keys with no registered reducer use
    last-write-wins; keys absent from ``update`` (or set to None) are untouched.
    """
    merged = dict(state)
    if not update:
        return merged

    for key, value in update.items():
        if value is None:
            continue
        reducer = REDUCERS.get(key, keep_latest)
        merged[key] = reducer(merged.get(key), value)

    return merged


def batch_apply(state: Mapping[str, Any], updates: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    merged = dict(state)
    for update in updates:
        merged = apply_update(merged, update)
    return merged


############################################################
# 2️⃣  UPDATE BUILDERS
############################################################


def make_update(update: Mapping[str, Any], log_message: Optional[str] = None) -> Dict[str, Any]:
    """Stamp ``last_updated`` and optionally append one log line."""
    stamped = dict(update)
    stamped["last_updated"] = now_ms()
    if log_message:
        stamped["log"] = [*stamped.get("log", []), log_message]
    return stamped


def make_error_update(message: str, stage: Optional[str] = None) -> Dict[str, Any]:
    where = f" in {stage}" if stage else ""
    return make_update(
        {"status": WorkflowStatus.ERROR, "error": message},
        f"Error{where}: {message}",
    )


def make_retry_update(attempt: int, max_attempts: int, reason: str) -> Dict[str, Any]:
    return make_update(
        {
            "status": WorkflowStatus.RETRY,
            "retry_info": RetryInfo(attempt=attempt, max_attempts=max_attempts, reason=reason),
        },
        f"Retry {attempt}/{max_attempts}: {reason}",
    )


def should_retry(state: Mapping[str, Any]) -> bool:
    info: Optional[RetryInfo] = state.get("retry_info")
    if info is None:
        return False
    return info.attempt < info.max_attempts


############################################################
# 3️⃣  SELECTORS
############################################################


def get_phase(state: Mapping[str, Any]) -> str:
    status = _coerce_status(state.get("status"))
    return (status or WorkflowStatus.IDLE).value


def is_terminal(state: Mapping[str, Any]) -> bool:
    return _coerce_status(state.get("status")) in TERMINAL_STATUSES


def is_processing(state: Mapping[str, Any]) -> bool:
    return _coerce_status(state.get("status")) in PROCESSING_STATUSES


def get_progress(state: Mapping[str, Any]) -> int:
    """Share of batch inputs finished so far, as a percentage."""
    total = state.get("total_inputs") or 0
    if total <= 0:
        return 0
    done = min(state.get("current_index") or 0, total)
    return round(done / total * 100)


def get_errors(state: Mapping[str, Any]) -> List[str]:
    errors = []
    if state.get("error"):
        errors.append(state["error"])
    info = state.get("retry_info")
    if info is not None and info.last_error:
        errors.append(info.last_error)
    return errors


def get_quality_metrics(state: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    check = state.get("quality_check")
    if check is None:
        return None
    return {"score": check.score, "issues": len(check.issues), "passed": check.passed}


def get_duration_ms(state: Mapping[str, Any]) -> int:
    start = state.get("start_time")
    if not start:
        return 0
    return (state.get("last_updated") or now_ms()) - start


def format_duration(ms: int) -> str:
    seconds = ms // 1000
    minutes = seconds // 60
    hours = minutes // 60

    if hours > 0:
        return f"{hours}h {minutes % 60}m {seconds % 60}s"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


############################################################
# 4️⃣  VALIDATORS
############################################################


def has_required_fields(state: Mapping[str, Any]) -> bool:
    return bool(state.get("input_ref") or state.get("input_refs"))


def has_conversion_result(state: Mapping[str, Any]) -> bool:
    return bool(state.get("markdown"))


def has_analysis_result(state: Mapping[str, Any]) -> bool:
    analysis = state.get("analysis")
    return analysis is not None and len(analysis.key_findings) > 0


def has_draft_result(state: Mapping[str, Any]) -> bool:
    return bool(state.get("draft"))


def is_complete_result(state: Mapping[str, Any]) -> bool:
    return (
        has_conversion_result(state)
        and has_analysis_result(state)
        and has_draft_result(state)
    )
