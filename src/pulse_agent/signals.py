"""Signal sweep: pull recent discussions for a brief from external sources.

Every upstream call is allowed to fail. Failures and timeouts are logged and
degrade to fewer (or zero) signals; the sweep itself never raises for them.
"""

from __future__ import annotations

import asyncio
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, List, Optional, Protocol, Sequence

import httpx

from .config import DEFAULT_BRIEF_DEFAULTS, BriefDefaults, Settings, get_settings
from .logger import get_logger
from .models import Brief, SignalItem

logger = get_logger(__name__)


class SignalSource(Protocol):
    name: str

    async def fetch(self, query: str, *, since: datetime) -> List[SignalItem]: ...


def _parse_timestamp(raw: Any) -> Optional[datetime]:
    if isinstance(raw, (int, float)):
        return datetime.fromtimestamp(raw, tz=timezone.utc)
    if not isinstance(raw, str) or not raw.strip():
        return None
    txt = raw.strip()
    # fromisoformat rejects a trailing "Z" on older interpreters.
    if txt.endswith(("Z", "z")):
        txt = f"{txt[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(txt)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _hit_to_signal(hit: dict) -> Optional[SignalItem]:
    """Map one Algolia hit to a SignalItem; hits without a title or timestamp are skipped."""
    title = (hit.get("title") or hit.get("story_title") or "").strip()
    if not title:
        return None
    created_at = _parse_timestamp(hit.get("created_at_i")) or _parse_timestamp(
        hit.get("created_at")
    )
    if created_at is None:
        return None
    points = hit.get("points")
    return SignalItem(
        title=title,
        url=(hit.get("url") or hit.get("story_url") or None),
        author=hit.get("author") or None,
        created_at=created_at,
        points=points if isinstance(points, int) else None,
    )


class HackerNewsSource:
    """Hacker News stories via the public Algolia search API."""

    name = "hackernews"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._transport = transport

    async def fetch(self, query: str, *, since: datetime) -> List[SignalItem]:
        params = {
            "query": query,
            "tags": "story",
            "numericFilters": f"created_at_i>{int(since.timestamp())}",
            "hitsPerPage": self.settings.signals_per_query,
        }
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.settings.request_timeout),
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            response = await client.get(self.settings.signal_search_url, params=params)
            response.raise_for_status()
            payload = response.json()

        hits = payload.get("hits") if isinstance(payload, dict) else None
        if not isinstance(hits, list):
            raise ValueError(f"{self.name} response missing hits list.")
        signals = [_hit_to_signal(hit) for hit in hits if isinstance(hit, dict)]
        return [signal for signal in signals if signal is not None]


def build_queries(brief: Brief, defaults: Optional[BriefDefaults] = None) -> List[str]:
    """Topic query first; add a region-scoped query unless the brief is global."""
    defaults = defaults or DEFAULT_BRIEF_DEFAULTS
    queries = [brief.topic]
    if brief.focus_region and brief.focus_region != defaults.focus_region:
        queries.append(f"{brief.topic} {brief.focus_region}")
    return queries


def _normalize_title(title: str) -> str:
    return " ".join(re.sub(r"[^\w\s]", " ", title.lower()).split())


def _dedupe_key(item: SignalItem) -> str:
    if item.url:
        return "url:" + item.url.strip().rstrip("/").lower()
    return "title:" + _normalize_title(item.title)


def dedupe_signals(items: Iterable[SignalItem]) -> List[SignalItem]:
    """Keep the first occurrence per URL (or per normalized title when URL is missing)."""
    seen: set[str] = set()
    unique: List[SignalItem] = []
    for item in items:
        key = _dedupe_key(item)
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


def signal_score(item: SignalItem, now: datetime, gravity: float) -> float:
    """Engagement decayed by age: (points + 1) / (age_hours + 2) ** gravity."""
    created = item.created_at if item.created_at.tzinfo else item.created_at.replace(
        tzinfo=timezone.utc
    )
    age_hours = max(0.0, (now - created).total_seconds() / 3600)
    return ((item.points or 0) + 1) / (age_hours + 2) ** gravity


def rank_signals(
    items: Sequence[SignalItem], *, now: datetime, gravity: float
) -> List[SignalItem]:
    """Sort by score, highest first; ties keep their incoming order."""
    return sorted(items, key=lambda item: signal_score(item, now, gravity), reverse=True)


async def _fetch_safely(source: SignalSource, query: str, since: datetime) -> List[SignalItem]:
    try:
        return await source.fetch(query, since=since)
    except Exception as exc:  # degrade: the sweep continues without this call
        logger.warning(
            "Signal source %s failed for query %r: %s",
            getattr(source, "name", type(source).__name__),
            query,
            exc,
        )
        return []


async def collect_signals(
    brief: Brief,
    *,
    sources: Optional[Sequence[SignalSource]] = None,
    settings: Optional[Settings] = None,
    defaults: Optional[BriefDefaults] = None,
    now: Optional[datetime] = None,
) -> List[SignalItem]:
    """
    Query every source for every query, then dedupe, rank, and truncate.

    Calls still running when `collection_timeout` expires are cancelled and
    contribute nothing; finished calls keep their results.
    """
    settings = settings or get_settings()
    defaults = defaults or DEFAULT_BRIEF_DEFAULTS
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(days=defaults.window_days(brief.cadence))
    active_sources = list(sources) if sources is not None else [HackerNewsSource(settings)]
    queries = build_queries(brief, defaults)

    tasks = [
        asyncio.create_task(_fetch_safely(source, query, since))
        for source in active_sources
        for query in queries
    ]
    if not tasks:
        return []

    try:
        done, pending = await asyncio.wait(tasks, timeout=settings.collection_timeout)
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()

    if pending:
        logger.warning(
            "Signal sweep hit %.1fs timeout; %d of %d calls abandoned.",
            settings.collection_timeout,
            len(pending),
            len(tasks),
        )
        await asyncio.gather(*pending, return_exceptions=True)

    merged: List[SignalItem] = []
    for task in tasks:
        if task in done:
            merged.extend(task.result())

    unique = dedupe_signals(merged)
    ranked = rank_signals(unique, now=now, gravity=settings.ranking_gravity)
    signals = ranked[: settings.max_signals]
    logger.info(
        "Collected %d signal(s) for %r (%d raw, %d unique).",
        len(signals),
        brief.topic,
        len(merged),
        len(unique),
    )
    return signals
