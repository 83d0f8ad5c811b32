"""Fill in defaults for partial briefs submitted by the form or CLI."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic.alias_generators import to_camel

from .config import DEFAULT_BRIEF_DEFAULTS, BriefDefaults
from .models import Brief

TEXT_FIELDS = (
    "topic",
    "tone",
    "audience",
    "cadence",
    "writing_style",
    "extra_notes",
    "focus_region",
)
FLAG_FIELDS = ("include_newsletter", "include_blog")


def _lookup(payload: Mapping[str, Any], field: str) -> Any:
    """Read a field by snake_case name, falling back to its camelCase alias when unset."""
    value = payload.get(field)
    if value is None:
        value = payload.get(to_camel(field))
    return value


def _clean_text(value: Any, default: str) -> str:
    if not isinstance(value, str):
        return default
    trimmed = value.strip()
    return trimmed or default


def normalize_brief(
    partial: Mapping[str, Any] | Brief | None,
    defaults: Optional[BriefDefaults] = None,
) -> Brief:
    """
    Return a fully populated Brief.

    Strings are trimmed and blank values fall back to the configured default.
    Flags keep an explicit bool (including False); anything else takes the
    default. Malformed input is coerced, never rejected.
    """
    defaults = defaults or DEFAULT_BRIEF_DEFAULTS
    if isinstance(partial, Brief):
        payload: Mapping[str, Any] = partial.model_dump()
    elif isinstance(partial, Mapping):
        payload = partial
    else:
        payload = {}

    values: dict[str, Any] = {}
    for field in TEXT_FIELDS:
        values[field] = _clean_text(_lookup(payload, field), getattr(defaults, field))
    for field in FLAG_FIELDS:
        raw = _lookup(payload, field)
        values[field] = raw if isinstance(raw, bool) else getattr(defaults, field)
    return Brief(**values)
