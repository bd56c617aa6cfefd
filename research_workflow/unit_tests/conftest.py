"""Shared fixtures for unit tests."""

import pytest

from research_workflow.models.records import PaperMetadata, RetryInfo, WorkflowStatus
from research_workflow.models.state import create_initial_state
from research_workflow.unit_tests.helpers import LONG_SUMMARY, build_analysis, build_draft


@pytest.fixture
def base_state():
    """A state with every artifact present and good enough to pass any gate."""
    state = create_initial_state("paper.pdf", "What is new?", max_retries=3)
    state["status"] = WorkflowStatus.QUALITY_CHECK
    state["markdown"] = "# Sparse Attention\n\nBody."
    state["metadata"] = PaperMetadata(filename="paper.pdf", filepath="/tmp/paper.pdf", title="Sparse Attention")
    state["summary"] = LONG_SUMMARY
    state["analysis"] = build_analysis()
    state["draft"] = build_draft(600)
    state["retry_info"] = RetryInfo(attempt=0, max_attempts=3)
    return state
