"""
Convert stage: turns the input reference into markdown plus paper metadata.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict

from research_workflow.errors import ConversionError
from research_workflow.models.records import PaperMetadata, WorkflowStatus
from research_workflow.services.interfaces import Converter

logger = logging.getLogger(__name__)


def _build_metadata(input_ref: str, result) -> PaperMetadata:
    path = Path(input_ref)
    filesize = os.path.getsize(path) if path.is_file() else 0
    return PaperMetadata(
        filename=path.name,
        filepath=str(path.resolve()) if path.exists() else input_ref,
        filesize=filesize,
        title=result.title,
        authors=result.authors,
        page_count=result.page_count,
        word_count=result.word_count or len(result.text.split()),
        processing_time_ms=result.processing_time_ms,
    )


def make_convert_stage(converter: Converter):
    """
    Build the convert stage.

    Expects:
        state["input_ref"]: path (or other reference) understood by the converter

    Returns (partial update):
        markdown, metadata, status=analyzing, log

    Raises:
        ConversionError: missing reference, or the converter failed
    """

    async def convert(state: Dict[str, Any]) -> Dict[str, Any]:
        input_ref = state.get("input_ref")
        if not input_ref:
            raise ConversionError("No input reference provided")

        logger.info(f"📄 Converting {input_ref}...")
        result = await converter.convert(input_ref)
        if not result.text or not result.text.strip():
            raise ConversionError(f"Conversion produced no text for {input_ref}")

        metadata = _build_metadata(input_ref, result)
        logger.info(f"✅ Converted {metadata.filename}: {metadata.word_count} words")

        return {
            "status": WorkflowStatus.ANALYZING,
            "markdown": result.text,
            "metadata": metadata,
            "log": [
                f"Conversion completed: {metadata.word_count} words",
                *([f"Pages: {metadata.page_count}"] if metadata.page_count else []),
            ],
        }

    return convert
