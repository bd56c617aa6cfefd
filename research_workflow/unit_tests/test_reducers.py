"""Unit tests for the state reducers in reducers.py."""

import copy

import pytest

from research_workflow.models.records import (
    AnalysisRecord,
    KeyFinding,
    QualityCheck,
    RetryInfo,
    WorkflowStatus,
)
from research_workflow.models.reducers import (
    append_items,
    apply_update,
    batch_apply,
    format_duration,
    get_errors,
    get_progress,
    get_quality_metrics,
    has_analysis_result,
    is_complete_result,
    is_processing,
    is_terminal,
    keep_latest,
    make_error_update,
    make_retry_update,
    merge_analysis,
    merge_retry_info,
    merge_status,
    should_retry,
)
from research_workflow.models.state import create_initial_state
from research_workflow.unit_tests.helpers import build_analysis

S = WorkflowStatus


class TestKeepLatest:
    """Tests for last-write-wins fields."""

    def test_incoming_value_wins(self):
        assert keep_latest("old", "new") == "new"

    def test_none_keeps_current(self):
        assert keep_latest("old", None) == "old"

    def test_falsy_values_still_replace(self):
        assert keep_latest("old", "") == ""
        assert keep_latest(5, 0) == 0


class TestAppendItems:
    """Tests for append-only list fields (log, aggregated_results)."""

    def test_appends_in_order(self):
        assert append_items(["a"], ["b", "c"]) == ["a", "b", "c"]

    def test_handles_missing_current(self):
        assert append_items(None, ["a"]) == ["a"]

    def test_single_string_is_one_entry(self):
        assert append_items(["a"], "b") == ["a", "b"]

    def test_does_not_mutate_inputs(self):
        current = ["a"]
        incoming = ["b"]
        append_items(current, incoming)
        assert current == ["a"]
        assert incoming == ["b"]


class TestMergeStatus:
    """Tests for the status progression table."""

    @pytest.mark.parametrize(
        "current,incoming,expected",
        [
            (S.IDLE, S.CONVERTING, S.CONVERTING),
            (S.ANALYZING, S.WRITING, S.WRITING),
            (S.WRITING, S.ANALYZING, S.WRITING),
            (S.QUALITY_CHECK, S.COMPLETED, S.COMPLETED),
            (S.COMPLETED, S.WRITING, S.COMPLETED),
            (S.WRITING, S.WRITING, S.WRITING),
        ],
    )
    def test_monotonic_progression(self, current, incoming, expected):
        assert merge_status(current, incoming) == expected

    @pytest.mark.parametrize("current", list(S))
    def test_retry_always_wins(self, current):
        assert merge_status(current, S.RETRY) == S.RETRY

    @pytest.mark.parametrize("current", [s for s in S if s is not S.COMPLETED])
    def test_error_wins_unless_completed(self, current):
        assert merge_status(current, S.ERROR) == S.ERROR

    def test_error_never_overrides_completed(self):
        assert merge_status(S.COMPLETED, S.ERROR) == S.COMPLETED

    def test_any_status_may_follow_retry(self):
        assert merge_status(S.RETRY, S.ANALYZING) == S.ANALYZING
        assert merge_status(S.RETRY, S.IDLE) == S.IDLE

    def test_only_retry_leaves_error(self):
        assert merge_status(S.ERROR, S.COMPLETED) == S.ERROR
        assert merge_status(S.ERROR, S.RETRY) == S.RETRY

    def test_accepts_plain_strings(self):
        assert merge_status("analyzing", "writing") == S.WRITING

    def test_unknown_status_is_ignored(self):
        assert merge_status(S.WRITING, "bogus") == S.WRITING


class TestMergeAnalysis:
    """Tests for analysis record merging."""

    def test_concatenates_lists_and_prefers_new_scalars(self):
        first = build_analysis(findings=1, gaps=1, methodology="old method", conclusions="old")
        second = build_analysis(findings=2, gaps=0, methodology="new method", conclusions="")

        merged = merge_analysis(first, second)

        assert [f.finding for f in merged.key_findings] == ["Finding 0", "Finding 0", "Finding 1"]
        assert len(merged.research_gap) == 1
        assert merged.methodology == "new method"
        assert merged.conclusions == "old"

    def test_missing_sides(self):
        record = AnalysisRecord(key_findings=[KeyFinding(finding="x")])
        assert merge_analysis(None, record) is record
        assert merge_analysis(record, None) is record


class TestMergeRetryInfo:
    """Tests for retry info merging."""

    def test_replaces_counters(self):
        merged = merge_retry_info(RetryInfo(attempt=1, max_attempts=3), RetryInfo(attempt=2, max_attempts=3))
        assert merged.attempt == 2

    def test_carries_last_error_forward(self):
        current = RetryInfo(attempt=1, max_attempts=3, last_error="timeout")
        merged = merge_retry_info(current, RetryInfo(attempt=2, max_attempts=3, reason="low score"))
        assert merged.last_error == "timeout"
        assert merged.reason == "low score"

    def test_new_last_error_wins(self):
        current = RetryInfo(attempt=1, max_attempts=3, last_error="timeout")
        merged = merge_retry_info(current, RetryInfo(attempt=2, max_attempts=3, last_error="refused"))
        assert merged.last_error == "refused"


class TestApplyUpdate:
    """Tests for the pure state merge."""

    def test_does_not_mutate_arguments(self):
        state = create_initial_state("a.pdf", "q")
        update = {"log": ["x"], "draft": "text"}
        state_before = copy.deepcopy(state)
        update_before = copy.deepcopy(update)

        apply_update(state, update)

        assert state == state_before
        assert update == update_before

    def test_absent_and_none_fields_untouched(self):
        state = {"draft": "keep", "summary": "keep"}
        merged = apply_update(state, {"draft": None})
        assert merged == {"draft": "keep", "summary": "keep"}

    def test_unknown_keys_are_last_write_wins(self):
        assert apply_update({"extra": 1}, {"extra": 2})["extra"] == 2

    def test_empty_update(self):
        assert apply_update({"a": 1}, None) == {"a": 1}

    def test_log_is_concatenation_of_updates(self):
        updates = [{"log": ["a", "b"]}, {"draft": "x"}, {"log": ["c"]}, {"log": []}, {"log": ["d"]}]
        state = batch_apply({"log": []}, updates)
        assert state["log"] == ["a", "b", "c", "d"]

    def test_replace_field_is_deterministic(self):
        s = {"quality_check": QualityCheck(passed=True, score=90)}
        u1 = {"quality_check": QualityCheck(passed=False, score=10, issues=["x"])}
        u2 = {"quality_check": QualityCheck(passed=True, score=75)}

        assert apply_update(apply_update(s, u1), u2)["quality_check"] == apply_update(s, u2)["quality_check"]

    def test_plain_mappings_are_validated_into_records(self):
        state = {"analysis": build_analysis(findings=1), "retry_info": RetryInfo(attempt=1, last_error="timeout")}
        update = {
            "analysis": {"key_findings": [{"finding": "From a dict"}], "methodology": "dict method"},
            "retry_info": {"attempt": 2, "max_attempts": 3},
        }

        merged = apply_update(state, update)

        assert isinstance(merged["analysis"], AnalysisRecord)
        assert [f.finding for f in merged["analysis"].key_findings] == ["Finding 0", "From a dict"]
        assert merged["analysis"].methodology == "dict method"
        assert isinstance(merged["retry_info"], RetryInfo)
        assert merged["retry_info"].attempt == 2
        assert merged["retry_info"].last_error == "timeout"

    def test_mapping_into_empty_state(self):
        merged = apply_update({}, {"analysis": {"conclusions": "done"}, "retry_info": {"attempt": 1}})
        assert merged["analysis"].conclusions == "done"
        assert merged["retry_info"].attempt == 1

    def test_invalid_mapping_keeps_current_record(self):
        analysis = build_analysis()
        retry_info = RetryInfo(attempt=1)
        state = {"analysis": analysis, "retry_info": retry_info}

        merged = apply_update(
            state,
            {"analysis": {"key_findings": "not a list"}, "retry_info": {"attempt": -5}},
        )

        assert merged["analysis"] is analysis
        assert merged["retry_info"] is retry_info

    def test_unsupported_type_keeps_current_record(self):
        analysis = build_analysis()
        assert apply_update({"analysis": analysis}, {"analysis": ["a", "b"]})["analysis"] is analysis


class TestUpdateBuilders:
    def test_error_update(self):
        update = make_error_update("boom", "convert")
        assert update["status"] == S.ERROR
        assert update["error"] == "boom"
        assert update["log"] == ["Error in convert: boom"]
        assert "last_updated" in update

    def test_retry_update(self):
        update = make_retry_update(2, 3, "low score")
        assert update["status"] == S.RETRY
        assert update["retry_info"].attempt == 2
        assert update["log"] == ["Retry 2/3: low score"]

    def test_should_retry(self):
        assert should_retry({"retry_info": RetryInfo(attempt=1, max_attempts=3)})
        assert not should_retry({"retry_info": RetryInfo(attempt=3, max_attempts=3)})
        assert not should_retry({})


class TestSelectors:
    def test_terminal_and_processing(self):
        assert is_terminal({"status": S.COMPLETED})
        assert is_terminal({"status": "error"})
        assert not is_terminal({"status": S.RETRY})
        assert is_processing({"status": S.WRITING})
        assert not is_processing({"status": S.IDLE})

    def test_progress(self):
        assert get_progress({"total_inputs": 1, "current_index": 0}) == 0
        assert get_progress({"total_inputs": 4, "current_index": 1}) == 25
        assert get_progress({"total_inputs": 1, "current_index": 1}) == 100
        assert get_progress({"total_inputs": 3, "current_index": 2}) == 67
        assert get_progress({"total_inputs": 2, "current_index": 5}) == 100
        assert get_progress({}) == 0

    def test_errors(self):
        state = {"error": "boom", "retry_info": RetryInfo(attempt=1, max_attempts=2, last_error="earlier")}
        assert get_errors(state) == ["boom", "earlier"]

    def test_quality_metrics(self):
        assert get_quality_metrics({}) is None
        metrics = get_quality_metrics({"quality_check": QualityCheck(passed=False, score=40, issues=["a", "b"])})
        assert metrics == {"score": 40, "issues": 2, "passed": False}

    def test_validators(self, base_state):
        assert has_analysis_result(base_state)
        assert is_complete_result(base_state)
        base_state["draft"] = ""
        assert not is_complete_result(base_state)


class TestFormatDuration:
    @pytest.mark.parametrize(
        "ms,expected",
        [(3_000, "3s"), (123_000, "2m 3s"), (3_723_000, "1h 2m 3s"), (999, "0s")],
    )
    def test_formats(self, ms, expected):
        assert format_duration(ms) == expected
