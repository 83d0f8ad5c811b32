"""Data models for the pulse agent pipeline."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

StepId = Literal["brief", "intel", "compose"]
StepStatus = Literal["pending", "active", "complete"]


class _CamelModel(BaseModel):
    """Accept snake_case or camelCase input; dump camelCase for the web client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Brief(_CamelModel):
    """Normalized request describing what to generate."""

    topic: str = "emerging technology"
    tone: str = "Analytical"
    audience: str = "General readership"
    cadence: str = "Weekly Pulse"
    writing_style: str = "Editorial"
    include_newsletter: bool = True
    include_blog: bool = True
    extra_notes: str = ""
    focus_region: str = "Global"


class SignalItem(_CamelModel):
    """A discussion or article surfaced during the signal sweep."""

    title: str
    url: Optional[str] = None
    author: Optional[str] = None
    created_at: datetime
    points: Optional[int] = Field(None, description="Engagement score reported by the source.")


class GenerationMetadata(_CamelModel):
    topic: str
    tone: str
    audience: str
    timeframe: str
    generated_at: datetime


class GenerationResult(_CamelModel):
    """Deliverables produced for one brief."""

    newsletter: Optional[str] = None
    blog: Optional[str] = None
    idea_pitches: List[str] = Field(default_factory=list)
    sources: List[SignalItem] = Field(default_factory=list)
    metadata: GenerationMetadata


class PipelineStep(_CamelModel):
    id: StepId
    label: str
    description: str
    status: StepStatus = "pending"


class PipelineRun(_CamelModel):
    """Success envelope returned to callers: the result plus final step states."""

    result: GenerationResult
    steps: List[PipelineStep]
