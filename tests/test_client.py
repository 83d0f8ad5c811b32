import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from pulse_agent.client import request_generation
from pulse_agent.errors import (
    GENERATION_FAILURE_MESSAGE,
    TRANSPORT_FAILURE_MESSAGE,
    GenerationFailure,
    TransportFailure,
)
from pulse_agent.models import Brief

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

RUN_PAYLOAD = {
    "result": {
        "newsletter": "Edition",
        "blog": "Essay",
        "ideaPitches": ["Next"],
        "sources": [],
        "metadata": {
            "topic": "AI",
            "tone": "Analytical",
            "audience": "General readership",
            "timeframe": "Last 7 days (Oct 12 - Oct 19, 2026)",
            "generatedAt": NOW.isoformat(),
        },
    },
    "steps": [
        {"id": "brief", "label": "Brief understanding", "description": "d", "status": "complete"},
        {"id": "intel", "label": "Signal sweep", "description": "d", "status": "complete"},
        {"id": "compose", "label": "Craft narratives", "description": "d", "status": "complete"},
    ],
}


def _request(brief, handler):
    return asyncio.run(
        request_generation(
            brief, base_url="http://pulse.test", transport=httpx.MockTransport(handler)
        )
    )


def test_request_generation_parses_run_and_sends_camel_case():
    sent = {}

    def handler(request: httpx.Request) -> httpx.Response:
        sent["path"] = request.url.path
        sent["body"] = json.loads(request.content)
        return httpx.Response(200, json=RUN_PAYLOAD)

    run = _request(Brief(topic="AI", include_blog=False), handler)

    assert sent["path"] == "/api/generate"
    assert sent["body"]["topic"] == "AI"
    assert sent["body"]["includeBlog"] is False
    assert run.result.idea_pitches == ["Next"]
    assert run.result.metadata.generated_at == NOW
    assert [step.status for step in run.steps] == ["complete"] * 3


def test_server_error_becomes_generation_failure():
    def handler(request):
        return httpx.Response(500, json={"error": GENERATION_FAILURE_MESSAGE})

    with pytest.raises(GenerationFailure) as excinfo:
        _request({"topic": "AI"}, handler)

    assert excinfo.value.message == GENERATION_FAILURE_MESSAGE


def test_connection_error_becomes_transport_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportFailure) as excinfo:
        _request({"topic": "AI"}, handler)

    assert excinfo.value.message == TRANSPORT_FAILURE_MESSAGE
    assert excinfo.value.message != GENERATION_FAILURE_MESSAGE


def test_non_object_error_body_gets_generic_message():
    def handler(request):
        return httpx.Response(502, json="Bad gateway")

    with pytest.raises(GenerationFailure) as excinfo:
        _request({"topic": "AI"}, handler)

    assert excinfo.value.message == GENERATION_FAILURE_MESSAGE


@pytest.mark.parametrize(
    "reply",
    [
        httpx.Response(200, text="<html>captive portal</html>"),
        httpx.Response(200, json={"result": {}}),
        httpx.Response(200, content=b"null"),
    ],
)
def test_unreadable_success_body_becomes_generation_failure(reply):
    with pytest.raises(GenerationFailure) as excinfo:
        _request({"topic": "AI"}, lambda request: reply)

    assert excinfo.value.message == GENERATION_FAILURE_MESSAGE
