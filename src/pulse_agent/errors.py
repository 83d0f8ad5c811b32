"""Error types surfaced by the pulse agent pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .models import PipelineStep

GENERATION_FAILURE_MESSAGE = (
    "Agent failed to generate outputs. Please refine the brief and retry."
)
TRANSPORT_FAILURE_MESSAGE = (
    "Unable to complete generation. Please check network connectivity and retry."
)


class PulseAgentError(RuntimeError):
    """Base class for pipeline errors."""


class GenerationFailure(PulseAgentError):
    """
    Composition could not produce a requested deliverable.

    `steps` holds the last-known progress snapshot; the failed step stays active.
    """

    def __init__(
        self,
        message: str = GENERATION_FAILURE_MESSAGE,
        *,
        steps: Optional[List["PipelineStep"]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.steps = list(steps or [])


class TransportFailure(PulseAgentError):
    """The caller could not reach the pipeline at all."""

    def __init__(self, message: str = TRANSPORT_FAILURE_MESSAGE) -> None:
        super().__init__(message)
        self.message = message


class ProgressError(PulseAgentError):
    """A pipeline step was started or completed out of order."""
