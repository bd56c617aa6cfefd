"""Unit tests for the best-effort analysis decoder."""

from research_workflow.parsing.analysis_decoder import (
    AnalysisDecoder,
    extract_paragraph,
    extract_summary,
    parse_list_items,
)

FULL_RESPONSE = """## Summary
The paper proposes a retrieval-augmented parser that improves accuracy on noisy scanned documents.

## Research Gaps
1. OCR noise is ignored by prior parsers
2. No benchmark for mixed-layout documents

## Related Papers
- LayoutLM: Pre-training of Text and Layout (Xu et al., 2020)
- Donut (Kim et al., 2022)

## Key Findings
1. Accuracy improves by 12 points on noisy scans
2. Retrieval halves hallucinated fields
3. Gains hold across four languages

## Methodology
A two-stage pipeline: dense retrieval over layout templates,
then a seq2seq decoder conditioned on the retrieved template.

Second paragraph that should be ignored.

## Conclusions
Retrieval is a cheap way to make document parsers robust.

## Strengths
- Clear ablations
* Public code

## Limitations
- Only English training data

## Future Work
1. Extend to handwriting
"""


class TestParseListItems:
    def test_numbered_and_bulleted(self):
        text = "1. one\n2. two\n- three\n* four\n"
        assert parse_list_items(text) == ["one", "two", "three", "four"]

    def test_ignores_prose(self):
        assert parse_list_items("Just a sentence.\nAnother one.") == []


class TestExtractParagraph:
    def test_stops_at_blank_line(self):
        assert extract_paragraph("\nline one\nline two\n\nother") == "line one line two"

    def test_stops_at_heading(self):
        assert extract_paragraph("text\n## Next\nmore") == "text"


class TestAnalysisDecoder:
    """Tests for AnalysisDecoder.parse."""

    def test_full_response(self):
        record, ok = AnalysisDecoder().parse(FULL_RESPONSE)

        assert ok
        assert [g.description for g in record.research_gap] == [
            "OCR noise is ignored by prior parsers",
            "No benchmark for mixed-layout documents",
        ]
        assert all(g.category == "general" and g.significance == "medium" for g in record.research_gap)
        assert [p.title for p in record.related_papers] == [
            "LayoutLM: Pre-training of Text and Layout",
            "Donut",
        ]
        assert record.related_papers[0].year == 2020
        assert record.related_papers[0].relevance_score == 0.7
        assert len(record.key_findings) == 3
        assert record.key_findings[0].confidence == "medium"
        assert record.methodology.startswith("A two-stage pipeline")
        assert "Second paragraph" not in record.methodology
        assert record.conclusions == "Retrieval is a cheap way to make document parsers robust."
        assert record.strengths == ["Clear ablations", "Public code"]
        assert record.limitations == ["Only English training data"]
        assert record.suggestions == ["Extend to handwriting"]

    def test_partial_response_leaves_defaults(self):
        record, ok = AnalysisDecoder().parse("## Key Findings\n- Only one finding\n")

        assert ok
        assert [f.finding for f in record.key_findings] == ["Only one finding"]
        assert record.research_gap == []
        assert record.methodology == ""
        assert record.conclusions == ""

    def test_bold_headings(self):
        text = "**Key Findings**\n1. First\n2. Second\n\n**Methodology**\nSurvey of 200 users.\n"
        record, ok = AnalysisDecoder().parse(text)

        assert ok
        assert len(record.key_findings) == 2
        assert record.methodology == "Survey of 200 users."

    def test_unrecognised_text(self):
        record, ok = AnalysisDecoder().parse("The model declined to answer.")
        assert not ok
        assert record.key_findings == []

    def test_empty_text(self):
        record, ok = AnalysisDecoder().parse("")
        assert not ok


class TestExtractSummary:
    def test_prefers_summary_section(self):
        summary = extract_summary("# Title\n\nbody", FULL_RESPONSE)
        assert summary.startswith("The paper proposes a retrieval-augmented parser")

    def test_falls_back_to_markdown_heading(self):
        assert extract_summary("# Paper Title\n\nbody", "no sections here") == "Paper Title"

    def test_falls_back_to_prefix(self):
        markdown = "x" * 300
        assert extract_summary(markdown, "") == "x" * 200 + "..."
