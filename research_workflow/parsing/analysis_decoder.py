"""
Best-effort decoder turning free-text model output into an AnalysisRecord.

Sections are located by their heading (markdown ``#`` headings or bold lines)
and read until the next heading. Every section is optional: a missing or
unparseable section leaves the field at its empty default. ``ok`` reports
whether at least one section was recognised.

The decoder is independent of the executor; swap it by passing any object with
a compatible ``parse`` method to the analyze stage.
"""

import re
from typing import List, Optional, Protocol, Tuple

from research_workflow.models.records import (
    AnalysisRecord,
    KeyFinding,
    RelatedPaper,
    ResearchGap,
)

SUMMARY_FALLBACK_CHARS = 200

_HEADING_LINE = r"^[ \t]*(?:#{1,6}[ \t]+(?:\d+[.)][ \t]*)?|\*\*(?:\d+[.)][ \t]*)?)"
_NEXT_HEADING = r"(?=^[ \t]*#{1,6}[ \t]|^[ \t]*\*\*[^\n]*\*\*:?[ \t]*$|\Z)"

_LIST_ITEM = re.compile(r"^[ \t]*(?:\d+[.)]|[-*•])[ \t]+(.+?)[ \t]*$", re.MULTILINE)
_MARKDOWN_TITLE = re.compile(r"^#{1,3}\s+(.+)$", re.MULTILINE)
_YEAR = re.compile(r"\b(19|20)\d{2}\b")


def _section(*names: str) -> re.Pattern:
    alternatives = "|".join(names)
    return re.compile(
        rf"{_HEADING_LINE}(?:{alternatives})\b[^\n]*\n(?P<body>.*?){_NEXT_HEADING}",
        re.IGNORECASE | re.MULTILINE | re.DOTALL,
    )


SECTIONS = {
    "research_gap": _section("Research Gaps", "Research Gap", "Gaps"),
    "related_papers": _section("Related Papers", "Related Work"),
    "key_findings": _section("Key Findings", "Findings", "Contributions"),
    "methodology": _section("Methodology", "Methods"),
    "conclusions": _section("Conclusions", "Conclusion"),
    "strengths": _section("Strengths", "Advantages"),
    "limitations": _section("Limitations", "Weaknesses"),
    "suggestions": _section("Suggestions", "Future Work"),
    "summary": _section("Summary", "Overview", "Abstract"),
}


def parse_list_items(text: str) -> List[str]:
    """Numbered (``1.``) and bulleted (``-``, ``*``) items, in document order."""
    items = []
    for match in _LIST_ITEM.finditer(text):
        item = match.group(1).replace("**", "").strip()
        if item:
            items.append(item)
    return items


def extract_paragraph(text: str) -> str:
    """First paragraph of a section body, joined onto one line."""
    paragraph = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped:
            if paragraph:
                break
            continue
        if re.match(r"^#{1,6}\s", stripped):
            break
        paragraph.append(stripped)

    return re.sub(r"#{1,6}\s", "", " ".join(paragraph)).strip()


def _find(name: str, text: str) -> Optional[str]:
    match = SECTIONS[name].search(text)
    return match.group("body") if match else None


def _related_paper(item: str) -> Optional[RelatedPaper]:
    title = item.split("(")[0].strip().strip('"').strip()
    if not title:
        return None
    year = _YEAR.search(item[len(title):])
    return RelatedPaper(
        title=title,
        year=int(year.group(0)) if year else None,
        relevance_score=0.7,
        relationship="similar",
    )


class Decoder(Protocol):
    def parse(self, text: str) -> Tuple[AnalysisRecord, bool]: ...


class AnalysisDecoder:
    """Regex section decoder for analysis responses."""

    def parse(self, text: str) -> Tuple[AnalysisRecord, bool]:
        record = AnalysisRecord()
        found = 0
        text = text or ""

        body = _find("research_gap", text)
        if body is not None:
            found += 1
            record.research_gap = [
                ResearchGap(category="general", description=item, significance="medium")
                for item in parse_list_items(body)
            ]

        body = _find("related_papers", text)
        if body is not None:
            found += 1
            papers = (_related_paper(item) for item in parse_list_items(body))
            record.related_papers = [p for p in papers if p is not None]

        body = _find("key_findings", text)
        if body is not None:
            found += 1
            record.key_findings = [
                KeyFinding(finding=item, evidence="", confidence="medium")
                for item in parse_list_items(body)
            ]

        for name in ("methodology", "conclusions"):
            body = _find(name, text)
            if body is not None:
                found += 1
                setattr(record, name, extract_paragraph(body))

        for name in ("strengths", "limitations", "suggestions"):
            body = _find(name, text)
            if body is not None:
                found += 1
                setattr(record, name, parse_list_items(body))

        return record, found > 0


def extract_summary(markdown: str, text: str) -> str:
    """
    Summary for the state.

    Order: the response's summary/overview/abstract section, then the paper's
    first markdown heading, then the first 200 characters of the paper.
    """
    body = _find("summary", text or "")
    if body is not None:
        paragraph = extract_paragraph(body)
        if paragraph:
            return paragraph

    title = _MARKDOWN_TITLE.search(markdown or "")
    if title:
        return title.group(1).strip()

    return (markdown or "")[:SUMMARY_FALLBACK_CHARS] + "..."
