"""
Batch coordinator: runs one pipeline per input and fans the results back in.

- concurrency == 1: inputs run one after another, in order
- concurrency == C > 1: inputs run in waves of at most C; a wave is awaited in
  full before the next one starts
- each PaperResult carries the index of its input, assigned at dispatch
- a pipeline ending in ``status=error`` yields a record with ``error`` set and
  no artifacts; siblings keep running
- any other exception re-raises once its wave has finished
- the comparison stage runs once, only when at least two inputs succeeded; if
  it raises anything at all the batch is still ``completed``
- ``on_progress(phase, percent, message)`` is called at start, after every
  record and at the end
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from research_workflow.engine.graph import ProgressCallback
from research_workflow.errors import InputError
from research_workflow.models.records import PaperResult, WorkflowStatus
from research_workflow.models.reducers import (
    apply_update,
    format_duration,
    get_duration_ms,
    get_progress,
    make_update,
)
from research_workflow.models.state import ResearchState, create_initial_state

logger = logging.getLogger(__name__)

RunOne = Callable[[ResearchState], Awaitable[ResearchState]]
SynthesisStage = Callable[[ResearchState], Awaitable[Dict[str, Any]]]

MIN_RESULTS_FOR_SYNTHESIS = 2


def to_result_record(index: int, input_ref: str, final_state: ResearchState) -> PaperResult:
    if final_state.get("status") == WorkflowStatus.ERROR:
        return PaperResult(
            index=index,
            input_ref=input_ref,
            error=final_state.get("error") or "Pipeline ended in error",
        )

    return PaperResult(
        index=index,
        input_ref=input_ref,
        markdown=final_state.get("markdown"),
        summary=final_state.get("summary"),
        analysis=final_state.get("analysis"),
        metadata=final_state.get("metadata"),
        draft=final_state.get("draft"),
        quality_check=final_state.get("quality_check"),
    )


class BatchCoordinator:
    def __init__(
        self,
        run_one: RunOne,
        synthesis: Optional[SynthesisStage] = None,
        max_retries: int = 3,
    ):
        """
        Args:
            run_one: Runs a single-input pipeline to its terminal state
            synthesis: Stage producing the comparative draft from the batch state
            max_retries: Quality-gate retry budget given to every input
        """
        self.run_one = run_one
        self.synthesis = synthesis
        self.max_retries = max_retries

    async def _run_input(self, index: int, input_ref: str, query: str, total: int) -> PaperResult:
        state = create_initial_state(input_ref, query, self.max_retries)
        state["current_index"] = index
        state["total_inputs"] = total

        logger.info(f"📄 [{index + 1}/{total}] Processing {input_ref}")
        final_state = await self.run_one(state)
        record = to_result_record(index, input_ref, final_state)

        if record.succeeded:
            logger.info(f"✅ [{index + 1}/{total}] {input_ref} completed")
        else:
            logger.warning(f"⚠️  [{index + 1}/{total}] {input_ref} failed: {record.error}")
        return record

    @staticmethod
    def _record_update(record: PaperResult) -> Dict[str, Any]:
        outcome = "completed" if record.succeeded else f"failed: {record.error}"
        return make_update(
            {"aggregated_results": [record], "current_index": record.index + 1},
            f"Paper {record.index + 1} ({record.input_ref}) {outcome}",
        )

    def _add_record(self, state, record: PaperResult, on_progress: Optional[ProgressCallback]):
        state = apply_update(state, self._record_update(record))
        if on_progress is not None:
            outcome = "completed" if record.succeeded else "failed"
            total = state.get("total_inputs")
            on_progress("processing", get_progress(state), f"Paper {record.index + 1}/{total} {outcome}")
        return state

    async def _run_sequential(self, state, inputs, query, on_progress=None) -> Dict[str, Any]:
        for index, input_ref in enumerate(inputs):
            record = await self._run_input(index, input_ref, query, len(inputs))
            state = self._add_record(state, record, on_progress)
        return state

    async def _run_waves(self, state, inputs, query, concurrency, on_progress=None) -> Dict[str, Any]:
        total = len(inputs)
        for wave_start in range(0, total, concurrency):
            wave = inputs[wave_start : wave_start + concurrency]
            logger.info(f"🌊 Dispatching wave of {len(wave)} (inputs {wave_start + 1}-{wave_start + len(wave)})")

            outcomes = await asyncio.gather(
                *(
                    self._run_input(wave_start + offset, input_ref, query, total)
                    for offset, input_ref in enumerate(wave)
                ),
                return_exceptions=True,
            )

            for outcome in outcomes:
                if isinstance(outcome, BaseException):
                    raise outcome

            # gather keeps argument order, so records stay in input order
            for record in outcomes:
                state = self._add_record(state, record, on_progress)
        return state

    async def _synthesize(self, state: Dict[str, Any]) -> Dict[str, Any]:
        successes = [r for r in state.get("aggregated_results", []) if r.succeeded]
        if self.synthesis is None or len(successes) < MIN_RESULTS_FOR_SYNTHESIS:
            logger.info(f"⏭️  Skipping comparative analysis ({len(successes)} successful)")
            return apply_update(
                state, make_update({}, f"Comparative analysis skipped ({len(successes)} successful)")
            )

        logger.info(f"🧩 Generating comparative analysis for {len(successes)} papers...")
        try:
            update = await self.synthesis(state)
        except Exception as exc:
            # the per-paper records are already final; a failed comparison only loses the draft
            message = getattr(exc, "message", None) or str(exc) or type(exc).__name__
            logger.exception(f"❌ Comparative analysis failed: {message}")
            return apply_update(state, make_update({}, f"Comparative analysis failed: {message}"))
        return apply_update(state, make_update(update or {}))

    async def run_batch(
        self,
        inputs: Sequence[str],
        query: str,
        concurrency: int = 1,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ResearchState:
        """
        Run every input and return the batch-level state.

        Args:
            inputs: PDF paths, one pipeline run each
            query: Research question shared by every run
            concurrency: 1 for sequential, otherwise the wave size
            on_progress: Called as ``(phase, percent, message)``; percent is the
                share of inputs finished
        """
        if concurrency < 1:
            raise InputError(f"Concurrency must be at least 1, got {concurrency}")

        inputs = list(inputs)
        state: Dict[str, Any] = create_initial_state(
            None, query, self.max_retries, input_refs=inputs
        )
        mode = "sequential" if concurrency == 1 else f"parallel (concurrency={concurrency})"
        logger.info(f"🚀 Starting batch of {len(inputs)} inputs, {mode}")
        state = apply_update(
            state, make_update({"status": WorkflowStatus.CONVERTING}, f"Batch started: {len(inputs)} inputs, {mode}")
        )
        if on_progress is not None:
            on_progress("start", 0, f"Batch started: {len(inputs)} inputs, {mode}")

        if concurrency == 1:
            state = await self._run_sequential(state, inputs, query, on_progress)
        else:
            state = await self._run_waves(state, inputs, query, concurrency, on_progress)

        state = await self._synthesize(state)

        summary = summarize_batch(state)
        completed_message = f"Batch completed: {summary['successful']}/{summary['total']} successful"
        state = apply_update(
            state, make_update({"status": WorkflowStatus.COMPLETED}, completed_message)
        )
        logger.info(
            f"✅ Batch finished in {format_duration(get_duration_ms(state))}: "
            f"{summary['successful']} succeeded, {summary['failed']} failed"
        )
        if on_progress is not None:
            on_progress("complete", 100, completed_message)
        return state


def summarize_batch(state: Dict[str, Any]) -> Dict[str, Any]:
    results: List[PaperResult] = state.get("aggregated_results") or []
    successful = sum(1 for r in results if r.succeeded)
    return {
        "total": len(results),
        "successful": successful,
        "failed": len(results) - successful,
        "has_comparison": bool(state.get("draft")),
        "duration": format_duration(get_duration_ms(state)),
    }
