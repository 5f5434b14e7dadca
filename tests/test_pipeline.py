from __future__ import annotations

import pytest

from lumigator_installer.pipeline import run_pipeline
from lumigator_installer.state_store import ensure_defaults, mark_step_completed


class RecordingStep:
    def __init__(self, step_id, log):
        self.step_id = step_id
        self.log = log

    def run(self, state):
        self.log.append(self.step_id)
        return state


class FailingStep:
    step_id = "30_boom"

    def run(self, state):
        raise RuntimeError("boom")


def _steps(log):
    return [RecordingStep(s, log) for s in ("10_a", "20_b", "30_c", "40_d")]


def test_runs_all_steps_in_order():
    log = []
    result = run_pipeline(state=ensure_defaults({}), steps=_steps(log))
    assert log == ["10_a", "20_b", "30_c", "40_d"]
    assert result.ran_steps == log
    assert result.state["execution"]["completed_steps"] == log
    assert result.state["execution"]["current_step"] is None


def test_skips_completed_unless_forced():
    log = []
    state = ensure_defaults({})
    mark_step_completed(state, "10_a")
    mark_step_completed(state, "20_b")

    result = run_pipeline(state=state, steps=_steps(log))
    assert log == ["30_c", "40_d"]
    assert result.skipped_steps == ["10_a", "20_b"]

    log.clear()
    run_pipeline(state=state, steps=_steps(log), force=True)
    assert log == ["10_a", "20_b", "30_c", "40_d"]


def test_start_at_and_stop_after():
    log = []
    run_pipeline(state=ensure_defaults({}), steps=_steps(log), start_at="20_b", stop_after="30_c")
    assert log == ["20_b", "30_c"]


def test_unknown_step_ids_rejected():
    with pytest.raises(ValueError, match="start_at"):
        run_pipeline(state=ensure_defaults({}), steps=_steps([]), start_at="99_nope")
    with pytest.raises(ValueError, match="stop_after"):
        run_pipeline(state=ensure_defaults({}), steps=_steps([]), stop_after="99_nope")


def test_failure_leaves_current_step_set():
    log = []
    state = ensure_defaults({})
    steps = [RecordingStep("10_a", log), FailingStep(), RecordingStep("40_d", log)]

    with pytest.raises(RuntimeError):
        run_pipeline(state=state, steps=steps)

    assert log == ["10_a"]
    assert state["execution"]["current_step"] == "30_boom"
    assert state["execution"]["completed_steps"] == ["10_a"]


def test_stop_after_before_start_at_is_rejected():
    with pytest.raises(ValueError, match="comes before"):
        run_pipeline(state=ensure_defaults({}), steps=_steps([]), start_at="30_c", stop_after="10_a")
