"""Helpers to load and validate the packaged JSON schemas."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

SCHEMAS_DIR = Path(__file__).resolve().parent / "schemas"
IDEA_PITCHES_SCHEMA = "idea_pitches.schema.json"


@lru_cache(maxsize=4)
def load_schema(name: str = IDEA_PITCHES_SCHEMA) -> Dict[str, Any]:
    """Load and cache a schema shipped with the package."""
    return json.loads((SCHEMAS_DIR / name).read_text(encoding="utf-8"))


def format_errors(errors: Iterable[ValidationError]) -> str:
    """Turn jsonschema errors into a concise human-readable string."""
    parts = []
    for err in errors:
        location = ".".join(str(piece) for piece in err.absolute_path) or "<root>"
        parts.append(f"{location}: {err.message}")
    return "; ".join(parts)


def validate_payload(
    payload: Any, schema: Optional[Dict[str, Any]] = None
) -> Any:
    """
    Validate a payload against a schema (idea pitches by default).

    Raises ValueError with a readable message if validation fails.
    """
    schema_dict = schema or load_schema()
    validator = Draft202012Validator(schema_dict)
    errors = list(validator.iter_errors(payload))
    if errors:
        raise ValueError(f"Schema validation failed: {format_errors(errors)}")
    return payload
