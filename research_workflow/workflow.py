# workflow.py
"""
Entry point for running research pipelines.

    workflow = ResearchWorkflow.from_config()
    handle = workflow.create_pipeline(PipelineKind.REVIEW)
    final_state = await workflow.run(handle, "paper.pdf", "What is novel here?")

Collaborators are passed in explicitly, so tests can hand in deterministic fakes.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from dotenv import load_dotenv

from research_workflow.agents.writer import make_comparison_stage
from research_workflow.batch import BatchCoordinator, summarize_batch
from research_workflow.config import Config
from research_workflow.engine.graph import PipelineGraph, ProgressCallback
from research_workflow.errors import InputError
from research_workflow.models.reducers import format_duration, get_duration_ms
from research_workflow.models.state import ResearchState, create_initial_state
from research_workflow.pipelines import Collaborators, PipelineKind, build_pipeline_graph
from research_workflow.services.interfaces import Analyzer, Converter, Drafter, Search

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

MAX_RETRIES_LIMIT = 10
MAX_BATCH_INPUTS = 20


@dataclass
class PipelineHandle:
    kind: PipelineKind
    graph: PipelineGraph


@dataclass
class ValidationResult:
    valid: bool
    error: Optional[str] = None


def _is_pdf(ref: Optional[str]) -> bool:
    return bool(ref) and ref.lower().endswith(".pdf")


class ResearchWorkflow:
    def __init__(
        self,
        converter: Converter,
        analyzer: Analyzer,
        drafter: Drafter,
        search: Optional[Search] = None,
        config: Optional[Config] = None,
    ):
        self.collaborators = Collaborators(converter, analyzer, drafter, search)
        self.config = config or Config()

    @classmethod
    def from_config(cls, config: Optional[Config] = None, use_search: bool = False) -> "ResearchWorkflow":
        """Wire up the default PDF converter, chat model and (optionally) Semantic Scholar."""
        from research_workflow.services.llm import ChatModelAnalyzer, ChatModelDrafter, build_chat_model
        from research_workflow.services.pdf_converter import PdfConverter
        from research_workflow.services.semantic_scholar import SemanticScholarSearch

        config = config or Config.from_env()
        llm = build_chat_model(config)
        search = (
            SemanticScholarSearch(
                api_key=config.semantic_scholar_api_key,
                max_results=config.web_search_max_results,
            )
            if use_search
            else None
        )
        return cls(
            converter=PdfConverter(),
            analyzer=ChatModelAnalyzer(llm),
            drafter=ChatModelDrafter(llm),
            search=search,
            config=config,
        )

    ############################################################
    # 1️⃣  PIPELINES
    ############################################################

    def create_pipeline(self, kind: PipelineKind) -> PipelineHandle:
        kind = PipelineKind(kind)
        graph = build_pipeline_graph(kind, self.collaborators, self.config)
        logger.info(f"🔧 Created {kind.value} pipeline with stages: {graph.stages}")
        return PipelineHandle(kind=kind, graph=graph)

    async def run(
        self,
        handle: PipelineHandle,
        input_ref: str,
        query: str,
        max_retries: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ResearchState:
        """
        Run one input through the pipeline.

        A MULTI handle runs its per-input (single) pipeline on ``input_ref``.

        Args:
            on_progress: Called as ``(phase, percent, message)`` after every stage

        Returns:
            Final state with status ``completed`` or ``error``

        Raises:
            InputError: invalid input, before any stage runs
        """
        max_retries = self.config.max_retries if max_retries is None else max_retries
        kind = PipelineKind.SINGLE if handle.kind is PipelineKind.MULTI else handle.kind
        validation = self.validate_inputs(
            kind, input_ref=input_ref, query=query, max_retries=max_retries
        )
        if not validation.valid:
            raise InputError(validation.error)

        state = create_initial_state(input_ref, query, max_retries)
        final_state = await handle.graph.run(state, on_progress=on_progress)
        logger.info(f"⏱️  Run finished in {format_duration(get_duration_ms(final_state))}")
        return final_state

    async def run_batch(
        self,
        handle: PipelineHandle,
        inputs: Sequence[str],
        query: str,
        concurrency: Optional[int] = None,
        max_retries: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ResearchState:
        """Run every input through the handle's pipeline, then compare the successful ones."""
        max_retries = self.config.max_retries if max_retries is None else max_retries
        validation = self.validate_inputs(
            PipelineKind.MULTI, input_refs=inputs, query=query, max_retries=max_retries
        )
        if not validation.valid:
            raise InputError(validation.error)

        coordinator = BatchCoordinator(
            run_one=handle.graph.run,
            synthesis=make_comparison_stage(self.collaborators.drafter),
            max_retries=max_retries,
        )
        concurrency = self.config.batch_concurrency if concurrency is None else concurrency
        return await coordinator.run_batch(inputs, query, concurrency, on_progress=on_progress)

    ############################################################
    # 2️⃣  VALIDATION
    ############################################################

    @staticmethod
    def validate_inputs(
        kind: PipelineKind,
        input_ref: Optional[str] = None,
        query: Optional[str] = None,
        max_retries: Optional[int] = None,
        input_refs: Optional[Sequence[str]] = None,
    ) -> ValidationResult:
        kind = PipelineKind(kind)

        if kind is PipelineKind.MULTI:
            if not input_refs:
                return ValidationResult(False, "At least one PDF path is required")
            if len(input_refs) > MAX_BATCH_INPUTS:
                return ValidationResult(False, f"Maximum {MAX_BATCH_INPUTS} PDFs can be processed at once")
            for ref in input_refs:
                if not _is_pdf(ref):
                    return ValidationResult(False, f"Invalid PDF file: {ref}")
        else:
            if not input_ref:
                return ValidationResult(False, "PDF path is required")
            if not _is_pdf(input_ref):
                return ValidationResult(False, "Input file must be a PDF")

        if not query or not query.strip():
            return ValidationResult(False, "Query is required")

        # single pipelines have no gate
        if kind is not PipelineKind.SINGLE and max_retries is not None:
            if not 0 <= max_retries <= MAX_RETRIES_LIMIT:
                return ValidationResult(False, f"Max retries must be between 0 and {MAX_RETRIES_LIMIT}")

        return ValidationResult(True)

    ############################################################
    # 3️⃣  SUMMARIES
    ############################################################

    @staticmethod
    def summarize(state: ResearchState) -> Dict[str, Any]:
        if state.get("aggregated_results"):
            return summarize_batch(state)

        analysis = state.get("analysis")
        quality_check = state.get("quality_check")
        retry_info = state.get("retry_info")
        draft = state.get("draft") or ""
        status = state.get("status")
        return {
            "status": getattr(status, "value", status),
            "error": state.get("error"),
            "quality_score": quality_check.score if quality_check is not None else None,
            "quality_passed": quality_check.passed if quality_check is not None else None,
            "retries": retry_info.attempt if retry_info is not None else 0,
            "key_findings": len(analysis.key_findings) if analysis is not None else 0,
            "research_gaps": len(analysis.research_gap) if analysis is not None else 0,
            "related_papers": len(analysis.related_papers) if analysis is not None else 0,
            "draft_length": len(draft),
            "duration": format_duration(get_duration_ms(state)),
        }

    @staticmethod
    def draw_mermaid(handle: PipelineHandle) -> str:
        return handle.graph.draw_mermaid()
