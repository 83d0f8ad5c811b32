"""Brief-to-artifact pipeline.

Three strictly sequential stages, each reported through a ProgressTracker:
- brief (normalize the partial request)
- intel (signal sweep; upstream failures degrade to fewer signals)
- compose (draft deliverables; any failure aborts the run)

Collector and composer are injectable so the pipeline can run offline in
tests. Runs share no state: every call builds its own tracker, brief, signals,
and result.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, List, Mapping, Optional

from .composer import compose_artifacts
from .config import DEFAULT_BRIEF_DEFAULTS, BriefDefaults, Settings, get_settings
from .errors import GenerationFailure
from .logger import get_logger
from .models import Brief, GenerationResult, PipelineRun, SignalItem
from .normalizer import normalize_brief
from .progress import ProgressObserver, ProgressTracker
from .signals import collect_signals

logger = get_logger(__name__)

CollectorFn = Callable[[Brief], Awaitable[List[SignalItem]]]
ComposerFn = Callable[[Brief, List[SignalItem]], Awaitable[GenerationResult]]


async def run_pipeline(
    payload: Mapping[str, Any] | Brief | None,
    *,
    settings: Optional[Settings] = None,
    defaults: Optional[BriefDefaults] = None,
    collector_fn: CollectorFn | None = None,
    composer_fn: ComposerFn | None = None,
    observer: Optional[ProgressObserver] = None,
) -> PipelineRun:
    """
    Run one brief through normalize -> collect -> compose.

    Returns the result with all steps complete, or raises a single
    GenerationFailure carrying the last-known steps (the failed step stays
    active). Cancellation propagates to whichever external call is pending.
    """
    settings = settings or get_settings()
    defaults = defaults or DEFAULT_BRIEF_DEFAULTS

    async def _default_collector(brief: Brief) -> List[SignalItem]:
        return await collect_signals(brief, settings=settings, defaults=defaults)

    async def _default_composer(brief: Brief, signals: List[SignalItem]) -> GenerationResult:
        return await compose_artifacts(brief, signals, settings=settings, defaults=defaults)

    collector_fn = collector_fn or _default_collector
    composer_fn = composer_fn or _default_composer
    tracker = ProgressTracker(observer)

    tracker.start("brief")
    brief = normalize_brief(payload, defaults)
    tracker.complete("brief")
    logger.info(
        "Brief ready: topic=%r cadence=%r newsletter=%s blog=%s",
        brief.topic,
        brief.cadence,
        brief.include_newsletter,
        brief.include_blog,
    )

    tracker.start("intel")
    try:
        signals = list(await collector_fn(brief))
    except Exception as exc:
        logger.error("Signal sweep aborted for %r: %s", brief.topic, exc, exc_info=True)
        raise GenerationFailure(steps=tracker.snapshot()) from exc
    tracker.complete("intel")
    if not signals:
        logger.warning("No signals collected for %r; composing without sources.", brief.topic)

    tracker.start("compose")
    try:
        result = await asyncio.wait_for(
            composer_fn(brief, signals), timeout=settings.generation_timeout
        )
    except asyncio.TimeoutError as exc:
        logger.error(
            "Composition for %r timed out after %.1fs.", brief.topic, settings.generation_timeout
        )
        raise GenerationFailure(steps=tracker.snapshot()) from exc
    except Exception as exc:
        logger.error("Composition failed for %r: %s", brief.topic, exc, exc_info=True)
        raise GenerationFailure(steps=tracker.snapshot()) from exc
    tracker.complete("compose")

    logger.info(
        "Run complete for %r: %d source(s), %d idea pitch(es).",
        brief.topic,
        len(result.sources),
        len(result.idea_pitches),
    )
    return PipelineRun(result=result, steps=tracker.snapshot())


def generate(payload: Mapping[str, Any] | Brief | None, **kwargs: Any) -> PipelineRun:
    """Blocking wrapper around run_pipeline for synchronous callers."""
    return asyncio.run(run_pipeline(payload, **kwargs))


def format_markdown(result: GenerationResult) -> str:
    """Render a run as one Markdown document (deliverables, ideas, sources)."""
    meta = result.metadata
    lines = [
        f"Topic: {meta.topic}",
        f"Tone: {meta.tone} | Audience: {meta.audience}",
        f"Timeframe: {meta.timeframe}",
        f"Generated: {meta.generated_at.isoformat()}",
    ]
    if result.newsletter:
        lines.extend(["", "---", "", result.newsletter])
    if result.blog:
        lines.extend(["", "---", "", result.blog])
    if result.idea_pitches:
        lines.extend(["", "## Idea follow-ups", ""])
        lines.extend(f"- {idea}" for idea in result.idea_pitches)
    if result.sources:
        lines.extend(["", "## Sources", ""])
        for idx, source in enumerate(result.sources, start=1):
            label = f"[{source.title}]({source.url})" if source.url else source.title
            details = [d for d in (source.author, _points_label(source.points)) if d]
            suffix = f" ({', '.join(details)})" if details else ""
            lines.append(f"{idx}. {label}{suffix}")
    return "\n".join(lines)


def _points_label(points: Optional[int]) -> Optional[str]:
    if points is None:
        return None
    return f"{points} points"
