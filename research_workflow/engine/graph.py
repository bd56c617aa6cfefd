"""
Pipeline graph definition and executor.

A PipelineGraph holds async stages plus their outgoing edges and compiles them
into a LangGraph StateGraph over ResearchState. Traversal rules:

- after every stage the update is merged through the ResearchState reducers
- if the merged status is ``error`` the run ends, whatever the edges say
- otherwise the unconditional edge, or the router's label, picks the next stage

A StageError raised inside a stage becomes ``{status: error, error: message}``.
Any other exception escapes ``run`` unchanged.
"""

import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple

from langgraph.graph import END, START, StateGraph

from research_workflow.errors import GraphDefinitionError, RoutingError, StageError
from research_workflow.models.records import WorkflowStatus
from research_workflow.models.reducers import make_error_update, make_update
from research_workflow.models.state import DEFAULT_MAX_RETRIES, ResearchState
from research_workflow.utils.timing import timer

logger = logging.getLogger(__name__)

StageFn = Callable[[ResearchState], Awaitable[Optional[Dict[str, Any]]]]
Router = Callable[[ResearchState], Enum]
ProgressCallback = Callable[[str, int, str], None]

__all__ = ["END", "PipelineGraph", "ProgressCallback", "StageFn", "Router"]

# percent reported once a stage has moved the run into this status; retry keeps the last value
PHASE_PROGRESS: Dict[WorkflowStatus, int] = {
    WorkflowStatus.CONVERTING: 10,
    WorkflowStatus.ANALYZING: 25,
    WorkflowStatus.WRITING: 50,
    WorkflowStatus.QUALITY_CHECK: 75,
    WorkflowStatus.COMPLETED: 100,
    WorkflowStatus.ERROR: 100,
}


def describe_update(stage: str, update: Mapping[str, Any]) -> str:
    """One-line progress message for a stage update."""
    if update.get("status") == WorkflowStatus.ERROR:
        return f"{stage} failed: {update.get('error')}"

    check = update.get("quality_check")
    if check is not None:
        verdict = "passed" if check.passed else "failed"
        return f"{stage}: score {check.score}/100, {verdict}, {len(check.issues)} issues"

    analysis = update.get("analysis")
    if analysis is not None:
        return (
            f"{stage}: {len(analysis.key_findings)} key findings, "
            f"{len(analysis.research_gap)} research gaps"
        )

    draft = update.get("draft")
    if draft:
        return f"{stage}: draft of {len(draft)} characters"
    return f"{stage} completed"


class PipelineGraph:
    def __init__(self, name: str, recursion_limit: int = 100):
        """
        Args:
            name: Pipeline name used in logs
            recursion_limit: Minimum LangGraph super-step cap; raised per run to
                fit the retry budget (see recursion_limit_for)
        """
        self.name = name
        self.recursion_limit = recursion_limit
        self._stages: Dict[str, StageFn] = {}
        self._edges: Dict[str, str] = {}
        self._routes: Dict[str, Tuple[Router, Dict[Enum, str]]] = {}
        self._entry: Optional[str] = None
        self._compiled: Dict[str, Any] = {}

    ############################################################
    # 1️⃣  DEFINITION
    ############################################################

    def add_stage(self, name: str, fn: StageFn) -> "PipelineGraph":
        if name in self._stages:
            raise GraphDefinitionError(f"Stage '{name}' is already defined")
        if name in ResearchState.__annotations__ or name in (START, END):
            raise GraphDefinitionError(f"Stage name '{name}' clashes with a reserved name")
        self._stages[name] = fn
        if self._entry is None:
            self._entry = name
        self._compiled.clear()
        return self

    def add_edge(self, source: str, target: str) -> "PipelineGraph":
        self._check_source(source)
        self._edges[source] = target
        self._compiled.clear()
        return self

    def add_conditional_edges(
        self, source: str, router: Router, routes: Mapping[Enum, str]
    ) -> "PipelineGraph":
        """
        Route out of ``source`` by label.

        ``routes`` must map every member of the router's label enum to a stage
        name or END.
        """
        self._check_source(source)
        if not routes:
            raise GraphDefinitionError(f"No routes declared for '{source}'")

        label_types = {type(label) for label in routes}
        if len(label_types) != 1:
            raise GraphDefinitionError(f"Routes for '{source}' mix label types: {label_types}")
        label_type = label_types.pop()
        missing = [member for member in label_type if member not in routes]
        if missing:
            raise GraphDefinitionError(
                f"Routes for '{source}' do not cover labels: {[m.value for m in missing]}"
            )

        self._routes[source] = (router, dict(routes))
        self._compiled.clear()
        return self

    def set_entry(self, name: str) -> "PipelineGraph":
        if name not in self._stages:
            raise GraphDefinitionError(f"Unknown entry stage '{name}'")
        self._entry = name
        return self

    @property
    def stages(self):
        return list(self._stages)

    def _check_source(self, source: str):
        if source not in self._stages:
            raise GraphDefinitionError(f"Unknown stage '{source}'")
        if source in self._edges or source in self._routes:
            raise GraphDefinitionError(f"Stage '{source}' already has outgoing edges")

    def _targets(self, source: str):
        if source in self._edges:
            return {self._edges[source]}
        _, routes = self._routes[source]
        return set(routes.values())

    def _validate(self):
        for name in self._stages:
            if name not in self._edges and name not in self._routes:
                raise GraphDefinitionError(f"Stage '{name}' has no outgoing edge")
            for target in self._targets(name):
                if target != END and target not in self._stages:
                    raise GraphDefinitionError(f"Stage '{name}' routes to unknown stage '{target}'")

    ############################################################
    # 2️⃣  EXECUTION WRAPPERS
    ############################################################

    def _wrap_stage(self, name: str, fn: StageFn):
        async def run_stage(state: ResearchState) -> Dict[str, Any]:
            logger.info(f"▶️  [{self.name}] {name}")
            try:
                with timer(f"{self.name}.{name}"):
                    update = await fn(state)
            except StageError as exc:
                message = exc.message or type(exc).__name__
                logger.error(f"❌ [{self.name}] {name} failed: {message}")
                return make_error_update(message, exc.stage or name)
            return make_update(update or {})

        run_stage.__name__ = name
        return run_stage

    def _make_router(self, name: str):
        def route(state: ResearchState) -> str:
            if state.get("status") == WorkflowStatus.ERROR:
                logger.debug(f"🔀 [{self.name}] {name} -> END (error)")
                return END

            if name in self._edges:
                return self._edges[name]

            router, routes = self._routes[name]
            label = router(state)
            if label not in routes:
                raise RoutingError(f"Router for '{name}' returned undeclared label {label!r}")
            target = routes[label]
            logger.info(f"🔀 [{self.name}] {name} --{label.value}--> {target}")
            return target

        route.__name__ = f"route_{name}"
        return route

    ############################################################
    # 3️⃣  COMPILE / RUN
    ############################################################

    def compile(self, entry: Optional[str] = None):
        """Build (and cache) the LangGraph pipeline for an entry stage."""
        entry = entry or self._entry
        if entry is None:
            raise GraphDefinitionError(f"Pipeline '{self.name}' has no stages")
        if entry not in self._stages:
            raise GraphDefinitionError(f"Unknown entry stage '{entry}'")
        if entry in self._compiled:
            return self._compiled[entry]

        self._validate()

        workflow = StateGraph(ResearchState)
        for name, fn in self._stages.items():
            workflow.add_node(name, self._wrap_stage(name, fn))

        workflow.add_edge(START, entry)
        for name in self._stages:
            targets = self._targets(name) | {END}
            workflow.add_conditional_edges(
                name, self._make_router(name), {t: t for t in targets}
            )

        compiled = workflow.compile()
        self._compiled[entry] = compiled
        return compiled

    def recursion_limit_for(self, state: Mapping[str, Any]) -> int:
        """
        Super-step cap for one run.

        Every gate cycle revisits at most every stage once and a gate allows at
        most ``max_retries`` cycles, so ``len(stages) * (max_retries + 2)``
        steps always suffice. The configured limit is kept as a floor.
        """
        max_retries = state.get("max_retries")
        if max_retries is None:
            max_retries = DEFAULT_MAX_RETRIES
        return max(self.recursion_limit, len(self._stages) * (max(0, max_retries) + 2))

    async def run(
        self,
        initial_state: ResearchState,
        entry: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ResearchState:
        """
        Drive the pipeline from ``entry`` until a stage routes to END.

        Args:
            initial_state: State from create_initial_state
            entry: Stage to start from (default: the graph's entry stage)
            on_progress: Called as ``(phase, percent, message)`` after every stage
        """
        pipeline = self.compile(entry)
        config = {"recursion_limit": self.recursion_limit_for(initial_state)}
        logger.info(f"🚀 Starting pipeline '{self.name}'...")

        if on_progress is None:
            final_state = await pipeline.ainvoke(initial_state, config=config)
        else:
            final_state = await self._stream(pipeline, initial_state, config, on_progress)

        status = final_state.get("status")
        logger.info(f"✅ Pipeline '{self.name}' finished with status {getattr(status, 'value', status)}")
        return final_state

    async def _stream(self, pipeline, initial_state, config, on_progress: ProgressCallback):
        on_progress("start", 0, f"Starting {self.name} pipeline")
        final_state = initial_state
        percent = 0

        async for mode, chunk in pipeline.astream(
            initial_state, config=config, stream_mode=["updates", "values"]
        ):
            if mode == "values":
                final_state = chunk
                continue
            for stage, update in chunk.items():
                update = update or {}
                status = update.get("status")
                percent = PHASE_PROGRESS.get(status, percent)
                on_progress(stage, percent, describe_update(stage, update))

        status = final_state.get("status")
        on_progress("complete", 100, f"Pipeline finished with status {getattr(status, 'value', status)}")
        return final_state

    def draw_mermaid(self, entry: Optional[str] = None) -> str:
        return self.compile(entry).get_graph().draw_mermaid()
