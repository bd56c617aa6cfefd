from typing import Any, Mapping

from research_workflow.services.interfaces import PromptContext

ANALYSIS_SYSTEM_PROMPT = """You are an expert academic research analyst with deep knowledge across multiple fields. Your task is to analyze research papers and extract key insights.

For each paper, provide the following sections, each under its own markdown heading:
1. Research Gaps: what questions or problems the paper addresses that were not previously solved
2. Related Papers: relevant papers that build on, contradict, or extend this work
3. Key Findings: the main contributions and discoveries with supporting evidence
4. Methodology: the research approach and methods used
5. Conclusions: the main takeaways and implications
6. Strengths: what the paper does well
7. Limitations: weaknesses or constraints
8. Suggestions: recommendations for future work

Begin with a short "## Summary" section. Use numbered or bulleted lists for list sections.
Be thorough, accurate, and scholarly in your analysis."""

TRUNCATION_MARKER = "\n\n[Content truncated...]"


class AnalysisPrompt:
    """Prompt builder for the analyze stage."""

    def __init__(self, max_markdown_chars: int = 100_000):
        self.max_markdown_chars = max_markdown_chars

    def build(self, state: Mapping[str, Any]) -> PromptContext:
        return PromptContext(
            task="analysis",
            system_prompt=ANALYSIS_SYSTEM_PROMPT,
            user_prompt=self.build_prompt(state, self.max_markdown_chars),
        )

    @staticmethod
    def build_prompt(state: Mapping[str, Any], max_markdown_chars: int = 100_000) -> str:
        markdown = state.get("markdown") or ""
        if len(markdown) > max_markdown_chars:
            markdown = markdown[:max_markdown_chars] + TRUNCATION_MARKER

        prompt = "Please analyze the following research paper"
        query = state.get("query")
        if query:
            prompt += f' with this research focus in mind: "{query}"'
        prompt += "\n\n"

        metadata = state.get("metadata")
        if metadata is not None and metadata.title:
            prompt += f"Title: {metadata.title}\n\n"
        if metadata is not None and metadata.authors:
            prompt += f"Authors: {', '.join(metadata.authors)}\n\n"

        prompt += f"Paper Content (Markdown format):\n\n{markdown}\n\n"
        prompt += "Please provide a comprehensive analysis following the structure outlined in the system prompt."
        return prompt
