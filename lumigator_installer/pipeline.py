from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .state_store import is_step_completed, mark_step_completed

logger = logging.getLogger(__name__)


class Step(Protocol):
    """One installer stage. Reads and updates the shared state dict."""

    step_id: str

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class PipelineResult:
    state: Dict[str, Any]
    ran_steps: List[str]
    skipped_steps: List[str]


def select_steps(
    steps: Sequence[Step],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
) -> Sequence[Step]:
    """The contiguous slice of steps from start_at through stop_after."""

    ids = [s.step_id for s in steps]
    for flag, step_id in (("start_at", start_at), ("stop_after", stop_after)):
        if step_id is not None and step_id not in ids:
            raise ValueError(f"Unknown {flag} step {step_id!r}; expected one of {ids}")

    first = ids.index(start_at) if start_at is not None else 0
    last = ids.index(stop_after) if stop_after is not None else len(ids) - 1
    if last < first:
        raise ValueError(f"stop_after {stop_after!r} comes before start_at {start_at!r}")
    return steps[first : last + 1]


def run_pipeline(
    *,
    state: Dict[str, Any],
    steps: Sequence[Step],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
) -> PipelineResult:
    """Run the selected steps in order.

    Steps already listed in execution.completed_steps (a resumed state) are
    skipped unless force is set. On failure execution.current_step still names
    the step that raised.
    """

    execution = state.setdefault("execution", {})
    ran: List[str] = []
    skipped: List[str] = []

    for step in select_steps(steps, start_at, stop_after):
        execution["current_step"] = step.step_id

        if is_step_completed(state, step.step_id) and not force:
            logger.info("Skipping step %s (already completed)", step.step_id)
            skipped.append(step.step_id)
            continue

        logger.info("Running step %s", step.step_id)
        began = time.monotonic()
        state = step.run(state)
        execution = state.setdefault("execution", {})
        mark_step_completed(state, step.step_id)
        ran.append(step.step_id)
        logger.debug("Step %s finished in %.1fs", step.step_id, time.monotonic() - began)

    if stop_after is not None:
        logger.info("Stopped after %s", stop_after)
    execution["current_step"] = None
    return PipelineResult(state=state, ran_steps=ran, skipped_steps=skipped)
