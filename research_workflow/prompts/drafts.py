"""Prompt builders for the draft, literature-review and comparison stages."""

from datetime import date
from typing import Any, Mapping, Optional, Sequence

from research_workflow.models.records import PaperResult
from research_workflow.services.interfaces import PromptContext

DRAFT_SYSTEM_PROMPT = """You are an expert academic writer specializing in research papers and literature reviews. Your task is to generate comprehensive, well-structured drafts based on provided analysis.

Your drafts should:
1. Be clear, concise, and well-organized
2. Follow academic writing standards
3. Include proper citations and references
4. Maintain a scholarly tone
5. Be structured with markdown headings and sections, ending with a Conclusion section
6. Synthesize information effectively

Generate drafts that are publication-ready or very close to it."""


class DraftPrompt:
    """Builds PromptContext objects for every drafting task."""

    @staticmethod
    def report(state: Mapping[str, Any]) -> PromptContext:
        return PromptContext("report", DRAFT_SYSTEM_PROMPT, DraftPrompt.build_report_prompt(state))

    @staticmethod
    def literature_review(state: Mapping[str, Any]) -> PromptContext:
        return PromptContext(
            "literature_review", DRAFT_SYSTEM_PROMPT, DraftPrompt.build_literature_review_prompt(state)
        )

    @staticmethod
    def comparison(query: Optional[str], results: Sequence[PaperResult]) -> PromptContext:
        return PromptContext(
            "comparison", DRAFT_SYSTEM_PROMPT, DraftPrompt.build_comparative_prompt(query, results)
        )

    @staticmethod
    def build_report_prompt(state: Mapping[str, Any]) -> str:
        analysis = state.get("analysis")
        metadata = state.get("metadata")
        prompt = "Please generate a comprehensive research report based on the following analysis:\n\n"

        if state.get("query"):
            prompt += f"Research Focus: {state['query']}\n\n"
        if metadata is not None and metadata.title:
            prompt += f"Paper Title: {metadata.title}\n\n"
        if state.get("summary"):
            prompt += f"Summary:\n{state['summary']}\n\n"

        prompt += "## Analysis Results\n\n"
        if analysis is not None:
            if analysis.methodology:
                prompt += f"### Methodology\n{analysis.methodology}\n\n"
            if analysis.key_findings:
                prompt += "### Key Findings\n"
                for i, finding in enumerate(analysis.key_findings, 1):
                    prompt += f"{i}. {finding.finding}\n"
                    if finding.evidence:
                        prompt += f"   Evidence: {finding.evidence}\n"
                prompt += "\n"
            if analysis.research_gap:
                prompt += "### Research Gaps Addressed\n"
                prompt += "".join(f"{i}. {gap.description}\n" for i, gap in enumerate(analysis.research_gap, 1))
                prompt += "\n"
            if analysis.conclusions:
                prompt += f"### Conclusions\n{analysis.conclusions}\n\n"
            if analysis.limitations:
                prompt += "### Limitations\n"
                prompt += "".join(f"- {item}\n" for item in analysis.limitations)
                prompt += "\n"
            if analysis.suggestions:
                prompt += "### Suggestions for Future Work\n"
                prompt += "".join(f"{i}. {item}\n" for i, item in enumerate(analysis.suggestions, 1))
                prompt += "\n"

        prompt += "Please generate a well-structured research report that synthesizes this information effectively."
        return prompt

    @staticmethod
    def build_literature_review_prompt(state: Mapping[str, Any]) -> str:
        analysis = state.get("analysis")
        prompt = "Please generate a comprehensive literature review based on the following analysis:\n\n"

        if state.get("query"):
            prompt += f"Research Question: {state['query']}\n\n"
        if state.get("summary"):
            prompt += f"Paper Summary:\n{state['summary']}\n\n"

        prompt += "## Detailed Analysis\n\n"
        if analysis is not None:
            if analysis.key_findings:
                prompt += "### Key Contributions\n"
                prompt += "".join(f"- {f.finding}\n" for f in analysis.key_findings)
                prompt += "\n"
            if analysis.related_papers:
                prompt += "### Related Work\n"
                for paper in analysis.related_papers:
                    line = f"- {paper.title}"
                    if paper.authors:
                        line += f" ({paper.authors[0]} et al.)"
                    if paper.year:
                        line += f" {paper.year}"
                    prompt += line + "\n"
                prompt += "\n"
            if analysis.research_gap:
                prompt += "### Research Gaps\n"
                prompt += "".join(f"- {gap.description}\n" for gap in analysis.research_gap)
                prompt += "\n"

        prompt += (
            "Generate a literature review that:\n"
            "1. Provides context and background\n"
            "2. Discusses related work and its relevance\n"
            "3. Identifies research gaps and contributions\n"
            "4. Synthesizes key findings and themes\n"
            "5. Concludes with implications and future directions\n"
        )
        return prompt

    @staticmethod
    def build_comparative_prompt(query: Optional[str], results: Sequence[PaperResult]) -> str:
        prompt = "Please generate a comparative analysis of the following research papers:\n\n"
        if query:
            prompt += f"Analysis Focus: {query}\n\n"

        prompt += "## Papers Analyzed\n\n"
        for position, result in enumerate(results, 1):
            prompt += f"### Paper {position}\n"
            if result.metadata is not None:
                if result.metadata.title:
                    prompt += f"Title: {result.metadata.title}\n"
                if result.metadata.authors:
                    prompt += f"Authors: {', '.join(result.metadata.authors)}\n"
            if result.analysis is not None and result.analysis.key_findings:
                prompt += "Key Findings:\n"
                prompt += "".join(f"- {f.finding}\n" for f in result.analysis.key_findings[:3])
            prompt += "\n"

        prompt += (
            "Generate a comparative analysis that:\n"
            "1. Identifies common themes and approaches\n"
            "2. Highlights differences and contradictions\n"
            "3. Compares methodologies and findings\n"
            "4. Synthesizes insights across papers\n"
            "5. Provides an overall conclusion\n"
        )
        return prompt


def apply_template(template: str, state: Mapping[str, Any], today: Optional[date] = None) -> str:
    """Fill ``{{placeholder}}`` slots from the state without calling a model."""
    metadata = state.get("metadata")
    analysis = state.get("analysis")
    values = {
        "title": (metadata.title if metadata is not None else None) or "Untitled",
        "summary": state.get("summary") or "No summary available",
        "query": state.get("query") or "",
        "date": (today or date.today()).isoformat(),
    }
    if analysis is not None:
        values.update(
            methodology=analysis.methodology or "",
            conclusions=analysis.conclusions or "",
            findings="\n".join(f"{i}. {f.finding}" for i, f in enumerate(analysis.key_findings, 1)),
            gaps="\n".join(f"{i}. {g.description}" for i, g in enumerate(analysis.research_gap, 1)),
            strengths="\n".join(f"- {s}" for s in analysis.strengths),
            limitations="\n".join(f"- {s}" for s in analysis.limitations),
        )

    result = template
    for key, value in values.items():
        result = result.replace("{{" + key + "}}", value)
    return result
