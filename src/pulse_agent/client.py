"""Caller-side helper that submits a brief to a running pulse agent service."""

from __future__ import annotations

from typing import Any, Mapping, Optional

import httpx

from .errors import GENERATION_FAILURE_MESSAGE, GenerationFailure, TransportFailure
from .logger import get_logger
from .models import Brief, PipelineRun

logger = get_logger(__name__)

DEFAULT_BASE_URL = "http://127.0.0.1:8000"


async def request_generation(
    brief: Mapping[str, Any] | Brief,
    *,
    base_url: str = DEFAULT_BASE_URL,
    timeout: float = 120.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> PipelineRun:
    """
    POST a brief to /api/generate and return the parsed run.

    Connection problems raise TransportFailure ("retry now"); a non-2xx reply
    raises GenerationFailure with the server's message ("refine the brief").
    """
    body = brief.to_payload() if isinstance(brief, Brief) else dict(brief)
    try:
        async with httpx.AsyncClient(
            base_url=base_url, timeout=httpx.Timeout(timeout), transport=transport
        ) as client:
            response = await client.post("/api/generate", json=body)
    except httpx.TransportError as exc:
        logger.warning("Could not reach pulse agent at %s: %s", base_url, exc)
        raise TransportFailure() from exc

    if response.is_error:
        raise GenerationFailure(_error_message(response))

    try:
        return PipelineRun.model_validate(response.json())
    except ValueError as exc:  # JSONDecodeError and pydantic ValidationError
        logger.warning(
            "Pulse agent at %s returned an unreadable result (HTTP %d): %s",
            base_url,
            response.status_code,
            exc,
        )
        raise GenerationFailure() from exc


def _error_message(response: httpx.Response) -> str:
    """Server-supplied error text when the body is {"error": "..."}, else the generic message."""
    try:
        data = response.json()
    except ValueError:
        return GENERATION_FAILURE_MESSAGE
    if isinstance(data, dict) and isinstance(data.get("error"), str) and data["error"].strip():
        return data["error"]
    return GENERATION_FAILURE_MESSAGE
