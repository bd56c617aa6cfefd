"""
Command-line runner for the research workflow.

Usage:
    research-workflow single paper.pdf --query "What is the main contribution?"
    research-workflow review paper.pdf --query "..." --max-retries 2
    research-workflow multi a.pdf b.pdf c.pdf --query "..." --concurrency 3 --progress
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from research_workflow.agents.writer import save_draft
from research_workflow.config import Config
from research_workflow.errors import InputError
from research_workflow.models.records import WorkflowStatus
from research_workflow.pipelines import PipelineKind
from research_workflow.utils.timing import setup_logging
from research_workflow.workflow import ResearchWorkflow

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Analyze research papers with a LangGraph workflow")
    subparsers = parser.add_subparsers(dest="kind", required=True)

    for kind, help_text in (
        (PipelineKind.SINGLE, "convert -> analyze -> write"),
        (PipelineKind.CHECKED, "single pipeline followed by a combined quality gate"),
        (PipelineKind.REVIEW, "literature review with analysis and draft quality gates"),
    ):
        sub = subparsers.add_parser(kind.value, help=help_text)
        sub.add_argument("pdf", help="Path to the PDF to analyze")
        _add_common_arguments(sub)

    multi = subparsers.add_parser(PipelineKind.MULTI.value, help="analyze several PDFs and compare them")
    multi.add_argument("pdfs", nargs="+", help="Paths to the PDFs to analyze")
    multi.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Pipelines run at once (default: BATCH_CONCURRENCY or 3). 1 = sequential.",
    )
    _add_common_arguments(multi)
    return parser


def _add_common_arguments(parser: argparse.ArgumentParser):
    parser.add_argument("--query", "-q", required=True, help="Research focus for the analysis")
    parser.add_argument("--max-retries", type=int, default=None, help="Quality-gate retry budget")
    parser.add_argument("--output", "-o", default=None, help="Output directory (default: OUTPUT_DIR)")
    parser.add_argument("--search", action="store_true", help="Enrich analysis with Semantic Scholar")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--progress", action="store_true", help="Print stage progress to stderr")


def print_progress(phase: str, percent: int, message: str):
    print(f"[{percent:3d}%] {message}", file=sys.stderr, flush=True)


def save_outputs(state: Dict[str, Any], output_dir: str) -> List[Path]:
    """Write markdown, analysis JSON and the draft for a finished state."""
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    saved = []

    stem = Path(state.get("input_ref") or "batch").stem
    if state.get("markdown"):
        path = directory / f"{stem}.md"
        path.write_text(state["markdown"], encoding="utf-8")
        saved.append(path)
    if state.get("analysis") is not None:
        path = directory / f"{stem}_analysis.json"
        path.write_text(state["analysis"].model_dump_json(indent=2), encoding="utf-8")
        saved.append(path)
    for result in state.get("aggregated_results") or []:
        if result.analysis is not None:
            path = directory / f"{Path(result.input_ref).stem}_analysis.json"
            path.write_text(result.analysis.model_dump_json(indent=2), encoding="utf-8")
            saved.append(path)
    if state.get("draft"):
        saved.append(save_draft(state["draft"], state, output_dir))
    return saved


async def run_cli(args: argparse.Namespace, config: Config) -> Dict[str, Any]:
    workflow = ResearchWorkflow.from_config(config, use_search=args.search)
    handle = workflow.create_pipeline(PipelineKind(args.kind))
    on_progress = print_progress if args.progress else None

    if handle.kind is PipelineKind.MULTI:
        return await workflow.run_batch(
            handle,
            args.pdfs,
            args.query,
            concurrency=args.concurrency,
            max_retries=args.max_retries,
            on_progress=on_progress,
        )
    return await workflow.run(
        handle, args.pdf, args.query, max_retries=args.max_retries, on_progress=on_progress
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = Config.from_env()
    setup_logging(level=logging.DEBUG if args.verbose else getattr(logging, config.log_level, logging.INFO))

    try:
        state = asyncio.run(run_cli(args, config))
    except InputError as e:
        logger.error(f"❌ Invalid input: {e}")
        return 2

    summary = ResearchWorkflow.summarize(state)
    print(json.dumps(summary, indent=2, default=str))

    if state.get("status") == WorkflowStatus.ERROR:
        logger.error(f"❌ Workflow failed: {state.get('error')}")
        return 1

    for path in save_outputs(state, args.output or config.output_dir):
        logger.info(f"💾 Saved {path}")
    logger.info("🎉 Workflow completed successfully!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
