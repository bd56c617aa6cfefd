"""
Quality gate for research pipelines.

The gate scores the current artifacts, records a QualityCheck, and decides one
of four routes (see GateDecision):

- PROCEED: passed, or failed with no specific stage to blame
- RETRY_ANALYZE / RETRY_WRITE: failed, retries left, attempt incremented
- TERMINAL_ACCEPT: failed with ``retry_info.attempt >= max_retries``

Three scoring variants exist (GateMode). Every deduction is independent, and the
final score is clamped to [0, 100].
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from research_workflow.config import QualityThresholds
from research_workflow.models.records import (
    GateDecision,
    QualityCheck,
    RetryInfo,
    WorkflowStatus,
)
from research_workflow.models.state import DEFAULT_MAX_RETRIES

logger = logging.getLogger(__name__)

HEADING_PATTERN = re.compile(r"^#{1,6}\s", re.MULTILINE)
CONCLUSION_PATTERN = re.compile(r"conclusion", re.IGNORECASE)

# analysis-only variant treats short sections as missing
MIN_SECTION_LENGTH = 50


class GateMode(str, Enum):
    ANALYSIS = "analysis"
    DRAFT = "draft"
    COMBINED = "combined"


@dataclass
class GateResult:
    quality_check: QualityCheck
    decision: GateDecision
    retry_info: RetryInfo


############################################################
# 1️⃣  SCORING
############################################################


class _Scorecard:
    def __init__(self):
        self.score = 100
        self.issues: List[str] = []
        self.suggestions: List[str] = []

    def deduct(self, points: int, issue: str, suggestion: Optional[str] = None):
        self.score -= points
        self.issues.append(issue)
        if suggestion:
            self.suggestions.append(suggestion)

    def result(self, pass_threshold: int) -> QualityCheck:
        score = max(0, min(100, self.score))
        return QualityCheck(
            passed=score >= pass_threshold,
            score=score,
            issues=self.issues,
            suggestions=self.suggestions,
        )


def _score_analysis(state: Mapping[str, Any], t: QualityThresholds, card: _Scorecard):
    summary = state.get("summary")
    if not summary:
        card.deduct(30, "No summary generated")
    elif len(summary) < t.min_summary_length:
        card.deduct(
            15,
            f"Summary too short ({len(summary)} < {t.min_summary_length})",
            "Consider expanding the summary with more context",
        )

    analysis = state.get("analysis")
    if analysis is None:
        card.deduct(40, "No analysis generated")
        return

    if len(analysis.key_findings) < t.min_analysis_items:
        card.deduct(
            20,
            f"Insufficient key findings ({len(analysis.key_findings)} < {t.min_analysis_items})",
            "Extract more key findings from the paper",
        )
    if len(analysis.methodology or "") < MIN_SECTION_LENGTH:
        card.deduct(
            10,
            "Methodology description missing or too brief",
            "Provide a more detailed methodology description",
        )
    if len(analysis.conclusions or "") < MIN_SECTION_LENGTH:
        card.deduct(
            10,
            "Conclusions missing or too brief",
            "Expand the conclusions with more detail",
        )
    if not analysis.research_gap:
        card.deduct(
            10,
            "No research gaps identified",
            "Identify research gaps addressed by this paper",
        )


def _score_draft(state: Mapping[str, Any], t: QualityThresholds, card: _Scorecard):
    draft = state.get("draft")
    if not draft:
        card.deduct(50, "No draft generated")
        return

    if len(draft) < t.min_draft_length:
        card.deduct(
            30,
            f"Draft too short ({len(draft)} < {t.min_draft_length})",
            "Expand the draft with more detail and analysis",
        )
    if not HEADING_PATTERN.search(draft):
        card.deduct(
            10,
            "Draft lacks proper structure (no headings)",
            "Add headings to organize the draft",
        )
    if not CONCLUSION_PATTERN.search(draft):
        card.deduct(10, "Draft missing conclusion section", "Add a conclusion section")


def _score_combined(state: Mapping[str, Any], t: QualityThresholds, card: _Scorecard):
    summary = state.get("summary")
    if not summary:
        card.deduct(20, "No summary generated")
    elif len(summary) < t.min_summary_length:
        card.deduct(10, f"Summary too short ({len(summary)} < {t.min_summary_length})")

    analysis = state.get("analysis")
    if analysis is None:
        card.deduct(30, "No analysis generated")
    else:
        if len(analysis.key_findings) < t.min_analysis_items:
            card.deduct(
                15,
                f"Insufficient key findings ({len(analysis.key_findings)} < {t.min_analysis_items})",
            )
        if not analysis.methodology:
            card.deduct(10, "No methodology description")
        if not analysis.conclusions:
            card.deduct(10, "No conclusions")

    draft = state.get("draft")
    if not draft:
        card.deduct(30, "No draft generated")
    elif len(draft) < t.min_draft_length:
        card.deduct(15, f"Draft too short ({len(draft)} < {t.min_draft_length})")


_SCORERS = {
    GateMode.ANALYSIS: _score_analysis,
    GateMode.DRAFT: _score_draft,
    GateMode.COMBINED: _score_combined,
}


def score_quality(
    state: Mapping[str, Any],
    mode: GateMode,
    thresholds: Optional[QualityThresholds] = None,
) -> QualityCheck:
    """Score the artifacts relevant to ``mode``. Depends only on lengths and counts."""
    thresholds = thresholds or QualityThresholds()
    card = _Scorecard()
    _SCORERS[GateMode(mode)](state, thresholds, card)
    return card.result(thresholds.pass_threshold)


############################################################
# 2️⃣  ROUTING DECISION
############################################################


def _classify_deficiency(state: Mapping[str, Any], t: QualityThresholds) -> GateDecision:
    # analysis is checked first, even if the draft is also short
    analysis = state.get("analysis")
    if analysis is None or len(analysis.key_findings) < t.min_analysis_items:
        return GateDecision.RETRY_ANALYZE

    draft = state.get("draft")
    if not draft or len(draft) < t.min_draft_length:
        return GateDecision.RETRY_WRITE

    return GateDecision.PROCEED


def _max_retries(state: Mapping[str, Any]) -> int:
    value = state.get("max_retries")
    return DEFAULT_MAX_RETRIES if value is None else value


def evaluate_gate(
    state: Mapping[str, Any],
    mode: GateMode,
    thresholds: Optional[QualityThresholds] = None,
) -> GateResult:
    thresholds = thresholds or QualityThresholds()
    quality_check = score_quality(state, mode, thresholds)

    max_retries = _max_retries(state)
    current: Optional[RetryInfo] = state.get("retry_info")
    attempt = current.attempt if current is not None else 0
    retry_info = RetryInfo(
        attempt=attempt,
        max_attempts=max_retries,
        reason=current.reason if current is not None else None,
    )

    if quality_check.passed:
        return GateResult(quality_check, GateDecision.PROCEED, retry_info)

    if attempt >= max_retries:
        return GateResult(quality_check, GateDecision.TERMINAL_ACCEPT, retry_info)

    decision = _classify_deficiency(state, thresholds)
    retry_info = RetryInfo(
        attempt=attempt + 1,
        max_attempts=max_retries,
        reason=f"Quality score {quality_check.score} below {thresholds.pass_threshold}",
    )
    return GateResult(quality_check, decision, retry_info)


############################################################
# 3️⃣  GATE STAGE + ROUTER
############################################################


def make_quality_gate_stage(
    mode: GateMode,
    thresholds: Optional[QualityThresholds] = None,
    proceed_status: WorkflowStatus = WorkflowStatus.COMPLETED,
):
    """
    Build the quality-gate stage for a pipeline.

    Args:
        mode: Which artifacts to score
        thresholds: Gate thresholds (defaults to QualityThresholds())
        proceed_status: Status written when the gate proceeds (``writing`` for a
            gate placed before the draft stage, ``completed`` at the end)

    Returns:
        Async stage writing quality_check, retry_info, gate_decision and status
    """
    thresholds = thresholds or QualityThresholds()
    label = f"{GateMode(mode).value.capitalize()} quality check"

    async def quality_gate(state: Dict[str, Any]) -> Dict[str, Any]:
        result = evaluate_gate(state, mode, thresholds)
        check = result.quality_check
        verdict = "PASSED" if check.passed else "FAILED"
        logger.info(f"🧪 {label}: {verdict} ({check.score}/100) -> {result.decision.value}")

        log = [f"{label}: {verdict}", f"Score: {check.score}/100", f"Issues: {len(check.issues)}"]
        if not check.passed:
            log.extend(f"Suggestion: {s}" for s in check.suggestions)

        if result.decision is GateDecision.TERMINAL_ACCEPT:
            logger.warning("⚠️  Max retries exceeded, accepting current quality")
            status = WorkflowStatus.COMPLETED
            log.append("Max retries exceeded, accepting current quality")
        elif result.decision in (GateDecision.RETRY_ANALYZE, GateDecision.RETRY_WRITE):
            status = WorkflowStatus.RETRY
            log.append(
                f"Retry {result.retry_info.attempt}/{result.retry_info.max_attempts}: "
                f"{result.decision.value}"
            )
        else:
            status = proceed_status

        return {
            "quality_check": check,
            "retry_info": result.retry_info,
            "gate_decision": result.decision,
            "status": status,
            "log": log,
        }

    quality_gate.__name__ = f"{GateMode(mode).value}_quality_gate"
    return quality_gate


def route_quality_gate(state: Mapping[str, Any]) -> GateDecision:
    """Router for a gate stage: returns the decision the gate stored."""
    decision = state.get("gate_decision")
    if decision is None:
        return GateDecision.PROCEED
    return GateDecision(decision)


############################################################
# 4️⃣  CUSTOM RULES
############################################################

Rule = Callable[[Mapping[str, Any]], Tuple[bool, str]]


def quality_check_with_rules(
    state: Mapping[str, Any], rules: Sequence[Rule]
) -> QualityCheck:
    """Each failing rule costs 10 points; any failure fails the check."""
    score = 100
    issues = []
    for rule in rules:
        passed, message = rule(state)
        if not passed:
            score -= 10
            issues.append(message or "Custom rule failed")

    return QualityCheck(passed=not issues, score=max(0, score), issues=issues)


def _analysis(state):
    return state.get("analysis")


QUALITY_RULES: Dict[str, Rule] = {
    "has_summary": lambda s: (
        len(s.get("summary") or "") > 50,
        "Summary is missing or too short",
    ),
    "has_analysis": lambda s: (
        _analysis(s) is not None and len(_analysis(s).key_findings) > 2,
        "Analysis is missing or has insufficient findings",
    ),
    "has_methodology": lambda s: (
        _analysis(s) is not None and len(_analysis(s).methodology) > 30,
        "Methodology description is missing or too brief",
    ),
    "has_conclusions": lambda s: (
        _analysis(s) is not None and len(_analysis(s).conclusions) > 30,
        "Conclusions are missing or too brief",
    ),
    "has_draft": lambda s: (
        len(s.get("draft") or "") > 300,
        "Draft is missing or too short",
    ),
    "has_structure": lambda s: (
        bool(HEADING_PATTERN.search(s.get("draft") or "")),
        "Draft lacks proper structure",
    ),
    "has_no_errors": lambda s: (
        not s.get("error"),
        "Workflow has errors",
    ),
}
