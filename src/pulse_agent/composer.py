"""Compose newsletter, blog, and idea pitches from a brief and its signals.

Each requested deliverable gets its own model call with its own prompt. Any
call that errors or returns unusable text raises GenerationFailure; there is
no partial result.

Signals are numbered [1]..[n] in the prompt. After drafting, the markers used
across deliverables and idea pitches are renumbered in order of first
appearance and the result's `sources` holds exactly those signals, in that order.
"""

from __future__ import annotations

import json
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from openai import AsyncOpenAI

from .config import DEFAULT_BRIEF_DEFAULTS, BriefDefaults, Settings, get_settings
from .errors import GenerationFailure
from .logger import get_logger
from .models import Brief, GenerationMetadata, GenerationResult, SignalItem
from .schema import validate_payload

logger = get_logger(__name__)

PROMPTS_DIR = Path(__file__).resolve().parent / "prompts"
# A bare [n] in prose; skips indexing like arr[0] and link text like [1](url).
CITATION_PATTERN = re.compile(r"(\s?)(?<!\w)\[(\d{1,3})\](?!\()")
CODE_SPAN_PATTERN = re.compile(r"(```.*?```|`[^`\n]*`)", re.DOTALL)
MAX_IDEA_PITCHES = 5

GenerateFn = Callable[[str, str], Awaitable[str]]


# --- Helpers --------------------------------------------------------------

def build_client(api_key: Optional[str] = None) -> AsyncOpenAI:
    """Create an async OpenAI client; separated for easier testing."""
    return AsyncOpenAI(api_key=api_key)


def _require_api_key(settings: Settings) -> str:
    if not settings.openai_api_key:
        raise GenerationFailure(
            "OPENAI_API_KEY is required. Set it in the environment or .env file."
        )
    return settings.openai_api_key


def _load_prompt_file(filename: str) -> str:
    return (PROMPTS_DIR / filename).read_text(encoding="utf-8")


def _response_text_or_raise(response: object, *, step: str) -> str:
    """Extract response text or raise a clear error when output is missing."""
    text = getattr(response, "output_text", None)
    if isinstance(text, str) and text.strip():
        return text

    status = getattr(response, "status", None)
    if status == "incomplete":
        details = getattr(response, "incomplete_details", None)
        reason = getattr(details, "reason", None) if details else None
        hint = ""
        if reason == "max_output_tokens":
            hint = " Increase MAX_TOKENS or unset it (0) to remove the cap."
        raise GenerationFailure(f"{step} response incomplete (reason={reason}).{hint}")

    err = getattr(response, "error", None)
    if err:
        raise GenerationFailure(f"{step} response error: {err}")

    raise GenerationFailure(f"{step} response missing output text.")


def openai_generate_fn(client: AsyncOpenAI, settings: Settings) -> GenerateFn:
    """Bind the Responses API to the (instructions, message) -> text contract."""

    async def _generate(instructions: str, message: str) -> str:
        request_kwargs = {
            "model": settings.composer_model,
            "input": [
                {"role": "system", "content": instructions},
                {"role": "user", "content": message},
            ],
        }
        if settings.max_tokens and settings.max_tokens > 0:
            request_kwargs["max_output_tokens"] = settings.max_tokens
        # gpt-5 family rejects the temperature parameter; omit it for compatibility.
        if not settings.composer_model.startswith("gpt-5"):
            request_kwargs["temperature"] = settings.temperature
        response = await client.responses.create(**request_kwargs)
        return _response_text_or_raise(response, step="Composer")

    return _generate


def format_timeframe(
    brief: Brief, now: datetime, defaults: Optional[BriefDefaults] = None
) -> str:
    """Label the cadence window, e.g. 'Last 7 days (Oct 12 - Oct 19, 2026)'."""
    defaults = defaults or DEFAULT_BRIEF_DEFAULTS
    days = defaults.window_days(brief.cadence)
    start = now - timedelta(days=days)
    return (
        f"Last {days} days ({start:%b} {start.day} - {now:%b} {now.day}, {now.year})"
    )


def _signal_line(index: int, signal: SignalItem) -> str:
    parts = [f"[{index}] {signal.title}"]
    if signal.author:
        parts.append(f"by {signal.author}")
    if signal.points is not None:
        parts.append(f"{signal.points} points")
    parts.append(signal.created_at.date().isoformat())
    if signal.url:
        parts.append(signal.url)
    return " | ".join(parts)


def build_user_message(brief: Brief, signals: Sequence[SignalItem], timeframe: str) -> str:
    """Brief fields plus the numbered signal digest shared by every prompt."""
    lines = [
        f"Topic: {brief.topic}",
        f"Tone: {brief.tone}",
        f"Audience: {brief.audience}",
        f"Cadence: {brief.cadence}",
        f"Writing style: {brief.writing_style}",
        f"Focus region: {brief.focus_region}",
        f"Timeframe: {timeframe}",
        f"Editor notes: {brief.extra_notes or 'None'}",
        "",
        "Signals:",
    ]
    if signals:
        lines.extend(_signal_line(idx, signal) for idx, signal in enumerate(signals, start=1))
    else:
        lines.append("No live signals were collected for this window.")
    return "\n".join(lines)


def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = re.sub(r"^```[a-zA-Z]*\s*", "", stripped)
        stripped = re.sub(r"\s*```$", "", stripped)
    return stripped


def parse_idea_pitches(text: str) -> List[str]:
    """Parse the ideas JSON object; raise GenerationFailure when it is unusable."""
    try:
        payload = json.loads(_strip_code_fence(text))
        validate_payload(payload)
    except ValueError as exc:  # JSONDecodeError is a ValueError
        raise GenerationFailure(f"Idea pitches unusable: {exc}") from exc
    ideas = [" ".join(idea.split()) for idea in payload["ideas"]]
    return [idea for idea in ideas if idea][:MAX_IDEA_PITCHES]


def apply_citations(
    texts: Sequence[Optional[str]], signals: Sequence[SignalItem]
) -> Tuple[List[Optional[str]], List[SignalItem]]:
    """
    Renumber citation markers across texts and return the cited signals.

    Markers outside 1..len(signals) are removed. Inline code and fenced
    blocks are left as written.
    """
    order: dict[int, int] = {}
    for text in texts:
        if not text:
            continue
        for prose in CODE_SPAN_PATTERN.split(text)[::2]:
            for match in CITATION_PATTERN.finditer(prose):
                number = int(match.group(2))
                if 1 <= number <= len(signals) and number not in order:
                    order[number] = len(order) + 1

    def _replace(match: re.Match[str]) -> str:
        number = int(match.group(2))
        if number not in order:
            return ""
        return f"{match.group(1)}[{order[number]}]"

    def _rewrite(text: str) -> str:
        parts = CODE_SPAN_PATTERN.split(text)
        parts[::2] = [CITATION_PATTERN.sub(_replace, prose) for prose in parts[::2]]
        return "".join(parts)

    rewritten = [_rewrite(text) if text else text for text in texts]
    sources = [signals[number - 1] for number in order]
    return rewritten, sources


async def _draft(generate: GenerateFn, prompt_name: str, message: str, *, step: str) -> str:
    instructions = _load_prompt_file(prompt_name)
    try:
        text = await generate(instructions, message)
    except GenerationFailure:
        raise
    except Exception as exc:
        raise GenerationFailure(f"{step} generation failed: {exc}") from exc
    if not isinstance(text, str) or not text.strip():
        raise GenerationFailure(f"{step} generation returned no text.")
    logger.debug("%s drafted (%d chars).", step, len(text))
    return text.strip()


# --- Composer -------------------------------------------------------------

async def compose_artifacts(
    brief: Brief,
    signals: Sequence[SignalItem],
    *,
    generate_fn: GenerateFn | None = None,
    client: Optional[AsyncOpenAI] = None,
    settings: Optional[Settings] = None,
    defaults: Optional[BriefDefaults] = None,
    now: Optional[datetime] = None,
) -> GenerationResult:
    """
    Draft the requested deliverables and idea pitches for one brief.

    Deliverables excluded by the include flags come back as None. Raises
    GenerationFailure when any requested call fails.
    """
    settings = settings or get_settings()
    now = now or datetime.now(timezone.utc)
    if generate_fn is None:
        active_client = client or build_client(_require_api_key(settings))
        generate_fn = openai_generate_fn(active_client, settings)

    timeframe = format_timeframe(brief, now, defaults)
    message = build_user_message(brief, signals, timeframe)

    newsletter = (
        await _draft(generate_fn, "newsletter.txt", message, step="Newsletter")
        if brief.include_newsletter
        else None
    )
    blog = (
        await _draft(generate_fn, "blog.txt", message, step="Blog")
        if brief.include_blog
        else None
    )
    ideas_text = await _draft(generate_fn, "ideas.txt", message, step="Idea pitches")
    idea_pitches = parse_idea_pitches(ideas_text)

    texts, sources = apply_citations([newsletter, blog, *idea_pitches], signals)
    newsletter, blog = texts[0], texts[1]
    idea_pitches = [idea.strip() for idea in texts[2:] if idea and idea.strip()]

    return GenerationResult(
        newsletter=newsletter,
        blog=blog,
        idea_pitches=idea_pitches,
        sources=list(sources),
        metadata=GenerationMetadata(
            topic=brief.topic,
            tone=brief.tone,
            audience=brief.audience,
            timeframe=timeframe,
            generated_at=now,
        ),
    )
