"""Builders for analysis records and drafts used across unit tests."""

from research_workflow.models.records import AnalysisRecord, KeyFinding, ResearchGap

LONG_SUMMARY = (
    "The paper introduces a sparse attention scheme that scales linearly with sequence "
    "length and evaluates it on long-document benchmarks."
)
LONG_METHODOLOGY = (
    "A transformer encoder with block-sparse attention trained on 40GB of web text, "
    "evaluated against dense baselines."
)
LONG_CONCLUSIONS = (
    "Sparse attention matches dense accuracy while cutting memory use, making long "
    "documents tractable on a single GPU."
)


def build_analysis(
    findings: int = 3,
    gaps: int = 1,
    methodology: str = LONG_METHODOLOGY,
    conclusions: str = LONG_CONCLUSIONS,
) -> AnalysisRecord:
    return AnalysisRecord(
        key_findings=[KeyFinding(finding=f"Finding {i}") for i in range(findings)],
        research_gap=[ResearchGap(description=f"Gap {i}") for i in range(gaps)],
        methodology=methodology,
        conclusions=conclusions,
    )


def build_draft(length: int, heading: bool = True, conclusion: bool = True) -> str:
    head = "# Report\n\n" if heading else ""
    tail = "\n\n## Conclusion\nDone." if conclusion else ""
    body_len = max(0, length - len(head) - len(tail))
    return head + ("lorem ipsum " * (body_len // 12 + 1))[:body_len] + tail


