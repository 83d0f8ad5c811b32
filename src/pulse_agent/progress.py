"""Forward-only progress tracking for the three pipeline stages."""

from __future__ import annotations

from typing import Callable, List, Optional

from .errors import ProgressError
from .models import PipelineStep

STEP_BLUEPRINT: tuple[tuple[str, str, str], ...] = (
    ("brief", "Brief understanding", "Parse intent, persona, and tone guidance"),
    ("intel", "Signal sweep", "Collect breaking headlines & trending insights"),
    ("compose", "Craft narratives", "Assemble newsletter and blog deliverables"),
)

ProgressObserver = Callable[[PipelineStep], None]


def default_steps() -> List[PipelineStep]:
    """Fresh step list with every step pending."""
    return [
        PipelineStep(id=step_id, label=label, description=description)
        for step_id, label, description in STEP_BLUEPRINT
    ]


def null_observer(step: PipelineStep) -> None:
    return None


class RecordingObserver:
    """Keeps (step id, status) pairs in the order transitions happened."""

    def __init__(self) -> None:
        self.events: List[tuple[str, str]] = []

    def __call__(self, step: PipelineStep) -> None:
        self.events.append((step.id, step.status))


class ProgressTracker:
    """
    State machine over brief -> intel -> compose.

    Each step moves pending -> active -> complete exactly once, and only after
    every earlier step is complete. Violations raise ProgressError.
    """

    def __init__(self, observer: Optional[ProgressObserver] = None) -> None:
        self._steps = default_steps()
        self._observer = observer or null_observer

    def _index(self, step_id: str) -> int:
        for idx, step in enumerate(self._steps):
            if step.id == step_id:
                return idx
        raise ProgressError(f"Unknown pipeline step: {step_id!r}")

    def _require_prior_complete(self, idx: int, action: str) -> None:
        blocking = [s.id for s in self._steps[:idx] if s.status != "complete"]
        if blocking:
            raise ProgressError(
                f"Cannot {action} {self._steps[idx].id!r} before "
                f"{', '.join(repr(b) for b in blocking)} complete."
            )

    def _transition(self, step_id: str, expected: str, target: str, action: str) -> None:
        idx = self._index(step_id)
        step = self._steps[idx]
        if step.status != expected:
            raise ProgressError(
                f"Cannot {action} {step_id!r}: status is {step.status!r}, expected {expected!r}."
            )
        self._require_prior_complete(idx, action)
        step.status = target
        self._observer(step.model_copy())

    def start(self, step_id: str) -> None:
        self._transition(step_id, "pending", "active", "start")

    def complete(self, step_id: str) -> None:
        self._transition(step_id, "active", "complete", "complete")

    def status(self, step_id: str) -> str:
        return self._steps[self._index(step_id)].status

    @property
    def finished(self) -> bool:
        return all(step.status == "complete" for step in self._steps)

    def snapshot(self) -> List[PipelineStep]:
        """Copies of the current steps; callers may mutate them freely."""
        return [step.model_copy() for step in self._steps]
