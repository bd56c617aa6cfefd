"""
Pipeline graphs.

single:   convert -> analyze -> write -> END
checked:  convert -> analyze -> write -> quality_gate -> [analyze | write | END]
review:   convert -> analyze -> analysis_gate -> [analyze | write | END]
                    write(review) -> draft_gate -> [analyze | write | END]
multi:    single pipeline per input, then a comparison over the successful ones
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from research_workflow.agents.analyzer import make_analyze_stage
from research_workflow.agents.converter import make_convert_stage
from research_workflow.agents.quality import GateMode, make_quality_gate_stage, route_quality_gate
from research_workflow.agents.writer import make_write_stage
from research_workflow.config import Config
from research_workflow.engine.graph import END, PipelineGraph
from research_workflow.models.records import GateDecision, WorkflowStatus
from research_workflow.prompts.analysis import AnalysisPrompt
from research_workflow.prompts.drafts import DraftPrompt
from research_workflow.services.interfaces import Analyzer, Converter, Drafter, Search


class PipelineKind(str, Enum):
    SINGLE = "single"
    CHECKED = "checked"
    REVIEW = "review"
    MULTI = "multi"


@dataclass
class Collaborators:
    converter: Converter
    analyzer: Analyzer
    drafter: Drafter
    search: Optional[Search] = None


def _common_stages(graph: PipelineGraph, collab: Collaborators, config: Config):
    graph.add_stage("convert", make_convert_stage(collab.converter))
    graph.add_stage(
        "analyze",
        make_analyze_stage(
            collab.analyzer,
            prompt=AnalysisPrompt(config.max_markdown_chars),
            search=collab.search,
            search_results_per_term=config.search_results_per_term,
        ),
    )
    graph.add_edge("convert", "analyze")


def build_single_graph(collab: Collaborators, config: Config) -> PipelineGraph:
    graph = PipelineGraph("single", recursion_limit=config.graph_recursion_limit)
    _common_stages(graph, collab, config)
    graph.add_stage("write", make_write_stage(collab.drafter, DraftPrompt.report))
    graph.add_edge("analyze", "write")
    graph.add_edge("write", END)
    return graph.set_entry("convert")


def build_checked_graph(collab: Collaborators, config: Config) -> PipelineGraph:
    graph = PipelineGraph("checked", recursion_limit=config.graph_recursion_limit)
    _common_stages(graph, collab, config)
    graph.add_stage(
        "write",
        make_write_stage(collab.drafter, DraftPrompt.report, status=WorkflowStatus.QUALITY_CHECK),
    )
    graph.add_stage("quality_gate", make_quality_gate_stage(GateMode.COMBINED, config.quality))

    graph.add_edge("analyze", "write")
    graph.add_edge("write", "quality_gate")
    graph.add_conditional_edges(
        "quality_gate",
        route_quality_gate,
        {
            GateDecision.PROCEED: END,
            GateDecision.RETRY_ANALYZE: "analyze",
            GateDecision.RETRY_WRITE: "write",
            GateDecision.TERMINAL_ACCEPT: END,
        },
    )
    return graph.set_entry("convert")


def build_review_graph(collab: Collaborators, config: Config) -> PipelineGraph:
    graph = PipelineGraph("review", recursion_limit=config.graph_recursion_limit)
    _common_stages(graph, collab, config)
    graph.add_stage(
        "analysis_gate",
        make_quality_gate_stage(GateMode.ANALYSIS, config.quality, proceed_status=WorkflowStatus.WRITING),
    )
    graph.add_stage(
        "write",
        make_write_stage(
            collab.drafter,
            DraftPrompt.literature_review,
            status=WorkflowStatus.QUALITY_CHECK,
            label="Literature review",
        ),
    )
    graph.add_stage("draft_gate", make_quality_gate_stage(GateMode.DRAFT, config.quality))

    graph.add_edge("analyze", "analysis_gate")
    graph.add_conditional_edges(
        "analysis_gate",
        route_quality_gate,
        {
            GateDecision.PROCEED: "write",
            GateDecision.RETRY_ANALYZE: "analyze",
            GateDecision.RETRY_WRITE: "write",
            GateDecision.TERMINAL_ACCEPT: END,
        },
    )
    graph.add_edge("write", "draft_gate")
    graph.add_conditional_edges(
        "draft_gate",
        route_quality_gate,
        {
            GateDecision.PROCEED: END,
            GateDecision.RETRY_ANALYZE: "analyze",
            GateDecision.RETRY_WRITE: "write",
            GateDecision.TERMINAL_ACCEPT: END,
        },
    )
    return graph.set_entry("convert")


_BUILDERS = {
    PipelineKind.SINGLE: build_single_graph,
    PipelineKind.CHECKED: build_checked_graph,
    PipelineKind.REVIEW: build_review_graph,
    # each batch input runs the single pipeline
    PipelineKind.MULTI: build_single_graph,
}


def build_pipeline_graph(kind: PipelineKind, collab: Collaborators, config: Config) -> PipelineGraph:
    return _BUILDERS[PipelineKind(kind)](collab, config)
