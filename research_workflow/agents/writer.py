"""
Draft stages: report, literature review, template fill and cross-paper comparison.
"""

import logging
import re
import time
from pathlib import Path
from typing import Any, Callable, Dict, Mapping

from research_workflow.errors import DraftError
from research_workflow.models.records import WorkflowStatus
from research_workflow.prompts.drafts import DraftPrompt, apply_template
from research_workflow.services.interfaces import Drafter, PromptContext

logger = logging.getLogger(__name__)

PromptBuilder = Callable[[Mapping[str, Any]], PromptContext]


def make_write_stage(
    drafter: Drafter,
    prompt_builder: PromptBuilder = DraftPrompt.report,
    status: WorkflowStatus = WorkflowStatus.COMPLETED,
    label: str = "Draft",
):
    """
    Build a drafting stage.

    Args:
        drafter: Drafter collaborator
        prompt_builder: Turns the state into a PromptContext
        status: Status written on success (``quality_check`` when a gate follows)
        label: Name used in log lines

    Raises:
        DraftError: no analysis in the state, or the drafter failed
    """

    async def write(state: Dict[str, Any]) -> Dict[str, Any]:
        if state.get("analysis") is None:
            raise DraftError(f"No analysis available for {label.lower()} generation")

        logger.info(f"✍️  Generating {label.lower()}...")
        draft = await drafter.generate(prompt_builder(state))
        if not draft:
            raise DraftError(f"{label} generation returned no text")

        return {
            "status": status,
            "draft": draft,
            "log": [f"{label} generated successfully", f"{label} length: {len(draft)} characters"],
        }

    return write


def make_template_stage(template: str, status: WorkflowStatus = WorkflowStatus.COMPLETED):
    """Drafting stage that fills a ``{{placeholder}}`` template instead of calling a model."""

    async def write_from_template(state: Dict[str, Any]) -> Dict[str, Any]:
        if state.get("analysis") is None:
            raise DraftError("No analysis available for draft generation")
        return {
            "status": status,
            "draft": apply_template(template, state),
            "log": ["Draft generated from custom template"],
        }

    return write_from_template


def make_comparison_stage(drafter: Drafter):
    """
    Synthesis stage for batch runs.

    Expects:
        state["aggregated_results"]: PaperResult records (failed ones are skipped)
    """

    async def compare(state: Dict[str, Any]) -> Dict[str, Any]:
        results = [r for r in state.get("aggregated_results") or [] if r.succeeded]
        if not results:
            raise DraftError("No aggregated results available for comparative analysis")

        logger.info(f"🧩 Comparing {len(results)} papers...")
        draft = await drafter.generate(DraftPrompt.comparison(state.get("query"), results))
        if not draft:
            raise DraftError("Comparative analysis returned no text")

        return {
            "status": WorkflowStatus.COMPLETED,
            "draft": draft,
            "log": [
                "Comparative analysis generated successfully",
                f"Analysis length: {len(draft)} characters",
            ],
        }

    return compare


def save_draft(draft: str, state: Mapping[str, Any], output_dir: str) -> Path:
    """Write the draft as ``<title>_analysis.md`` under ``output_dir``."""
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)

    metadata = state.get("metadata")
    if metadata is not None and metadata.title:
        base_name = re.sub(r"[^a-z0-9]", "_", metadata.title, flags=re.IGNORECASE).lower()
    else:
        base_name = f"paper_{int(time.time() * 1000)}"

    path = directory / f"{base_name}_analysis.md"
    path.write_text(draft, encoding="utf-8")
    logger.info(f"💾 Draft saved to {path}")
    return path
