"""
Analyze stage.

Sends the converted paper to the Analyzer collaborator, decodes the response
into an AnalysisRecord and extracts a summary. With a Search collaborator the
analysis is enriched with related papers found online.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from research_workflow.errors import AnalysisError, SearchError
from research_workflow.models.records import AnalysisRecord, RelatedPaper, WorkflowStatus
from research_workflow.parsing.analysis_decoder import AnalysisDecoder, Decoder, extract_summary
from research_workflow.prompts.analysis import AnalysisPrompt
from research_workflow.services.interfaces import Analyzer, Search

logger = logging.getLogger(__name__)

MAX_SEARCH_TERMS = 3
MAX_SEARCH_PAPERS = 5
TERM_WORDS = 5


def extract_search_terms(markdown: str, analysis: AnalysisRecord) -> List[str]:
    """Search terms: methodology prefix, paper title, first two findings (deduplicated)."""
    terms = []
    if analysis.methodology:
        terms.append(" ".join(analysis.methodology.split()[:TERM_WORDS]))

    title = re.search(r"^#{1,3}\s+(.+)$", markdown or "", re.MULTILINE)
    if title:
        terms.append(title.group(1).strip())

    for finding in analysis.key_findings[:2]:
        terms.append(" ".join(finding.finding.split()[:TERM_WORDS]))

    return [t for t in dict.fromkeys(terms) if t]


async def _search_related(search: Search, terms: List[str], per_term: int) -> List[RelatedPaper]:
    papers: List[RelatedPaper] = []
    for term in terms[:MAX_SEARCH_TERMS]:
        try:
            hits = await search.search(term, per_term)
        except SearchError as exc:
            logger.warning(f"⚠️  Search failed for '{term}': {exc.message}")
            continue

        for hit in hits:
            papers.append(
                RelatedPaper(
                    title=hit.title,
                    authors=list(hit.authors or []),
                    year=hit.year,
                    url=hit.url,
                    relevance_score=min(1.0, max(0.0, hit.relevance_score or 0.5)),
                    relationship="similar",
                )
            )
    return papers


def make_analyze_stage(
    analyzer: Analyzer,
    decoder: Optional[Decoder] = None,
    prompt: Optional[AnalysisPrompt] = None,
    search: Optional[Search] = None,
    search_results_per_term: int = 3,
):
    """
    Build the analyze stage.

    Expects:
        state["markdown"]: converted paper
        state["query"], state["metadata"]: optional prompt context

    Returns (partial update):
        analysis, summary, status=writing, log

    Raises:
        AnalysisError: no markdown, or the analyzer failed
    """
    decoder = decoder or AnalysisDecoder()
    prompt = prompt or AnalysisPrompt()

    async def analyze(state: Dict[str, Any]) -> Dict[str, Any]:
        markdown = state.get("markdown")
        if not markdown:
            raise AnalysisError("No markdown content to analyze")

        logger.info("🔬 Analyzing paper...")
        raw = await analyzer.analyze(prompt.build(state))

        analysis, ok = decoder.parse(raw)
        if not ok:
            logger.warning("⚠️  No analysis sections recognised in model output")
        summary = extract_summary(markdown, raw)

        log = [
            "Paper analysis completed",
            f"Extracted {len(analysis.key_findings)} key findings",
            f"Identified {len(analysis.research_gap)} research gaps",
            f"Found {len(analysis.related_papers)} related papers",
        ]

        if search is not None:
            terms = extract_search_terms(markdown, analysis)
            found = await _search_related(search, terms, search_results_per_term)
            analysis = analysis.model_copy(
                update={"related_papers": [*analysis.related_papers, *found[:MAX_SEARCH_PAPERS]]}
            )
            logger.info(f"🔎 Found {len(found)} additional related papers")
            log.append(f"Web search completed: {len(found)} related papers found")

        return {
            "status": WorkflowStatus.WRITING,
            "analysis": analysis,
            "summary": summary,
            "log": log,
        }

    return analyze
