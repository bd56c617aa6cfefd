"""
Deterministic collaborators for end-to-end pipeline tests.

Every fake records its calls so tests can assert how often each stage ran.
"""

import asyncio
from pathlib import Path

from research_workflow.errors import ConversionError
from research_workflow.services.interfaces import ConversionResult

SUMMARY = (
    "This paper studies retrieval-augmented generation for scientific question answering "
    "and reports consistent gains over closed-book baselines."
)
METHODOLOGY = (
    "Dense passage retrieval over 2M abstracts feeds a sequence-to-sequence reader that "
    "is fine-tuned on expert-written answers."
)
CONCLUSIONS = (
    "Grounding answers in retrieved abstracts improves factuality and makes citations "
    "checkable by readers."
)


def analysis_text(findings=3, gaps=1, methodology=METHODOLOGY, conclusions=CONCLUSIONS, summary=SUMMARY):
    """Render a model response in the sectioned markdown the decoder reads."""
    parts = [f"## Summary\n{summary}\n"]
    if gaps:
        parts.append("## Research Gaps\n" + "".join(f"{i + 1}. Gap {i}\n" for i in range(gaps)))
    if findings:
        parts.append("## Key Findings\n" + "".join(f"{i + 1}. Finding {i}\n" for i in range(findings)))
    if methodology:
        parts.append(f"## Methodology\n{methodology}\n")
    if conclusions:
        parts.append(f"## Conclusions\n{conclusions}\n")
    return "\n".join(parts)


def draft_text(length, heading=True, conclusion=True):
    head = "# Literature Review\n\n" if heading else ""
    tail = "\n\n## Conclusion\nRetrieval helps." if conclusion else ""
    body_len = max(0, length - len(head) - len(tail))
    return head + ("the field moves on " * (body_len // 19 + 1))[:body_len] + tail


class FakeConverter:
    def __init__(self, failing=(), delays=None):
        self.failing = set(failing)
        self.delays = delays or {}
        self.calls = []

    async def convert(self, input_ref):
        self.calls.append(input_ref)
        await asyncio.sleep(self.delays.get(input_ref, 0))
        if input_ref in self.failing:
            raise ConversionError(f"Failed to convert PDF: {input_ref} is corrupt")
        stem = Path(input_ref).stem
        return ConversionResult(
            text=f"# Paper {stem}\n\nWe study retrieval for question answering.",
            title=f"Paper {stem}",
            page_count=4,
        )


class ScriptedAnalyzer:
    """Returns the scripted responses in order, repeating the last one."""

    def __init__(self, *responses):
        self.responses = list(responses) or [analysis_text()]
        self.calls = []

    async def analyze(self, prompt):
        self.calls.append(prompt)
        return self.responses[min(len(self.calls), len(self.responses)) - 1]


class ScriptedDrafter:
    """Like ScriptedAnalyzer, with a fixed answer for comparison prompts."""

    def __init__(self, *responses, comparison="# Comparison\n\nBoth papers agree.\n\n## Conclusion\nDone."):
        self.responses = list(responses) or [draft_text(800)]
        self.comparison = comparison
        self.calls = []
        self.comparison_calls = []

    async def generate(self, prompt):
        if prompt.task == "comparison":
            self.comparison_calls.append(prompt)
            return self.comparison
        self.calls.append(prompt)
        return self.responses[min(len(self.calls), len(self.responses)) - 1]
