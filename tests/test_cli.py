import json
from datetime import datetime, timezone

from typer.testing import CliRunner

from pulse_agent import cli
from pulse_agent.errors import GenerationFailure, TransportFailure
from pulse_agent.models import GenerationMetadata, GenerationResult, PipelineRun
from pulse_agent.progress import default_steps

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
runner = CliRunner()


def _make_run(topic="AI") -> PipelineRun:
    steps = default_steps()
    for step in steps:
        step.status = "complete"
    return PipelineRun(
        result=GenerationResult(
            newsletter="# Edition",
            blog="# Essay",
            idea_pitches=["Next angle"],
            metadata=GenerationMetadata(
                topic=topic,
                tone="Analytical",
                audience="General readership",
                timeframe="Last 7 days (Oct 12 - Oct 19, 2026)",
                generated_at=NOW,
            ),
        ),
        steps=steps,
    )


def test_build_payload_only_includes_set_fields():
    payload = cli._build_payload("AI", None, None, None, "Narrative", None, None, True, False)

    assert payload == {
        "topic": "AI",
        "writingStyle": "Narrative",
        "includeNewsletter": True,
        "includeBlog": False,
    }


def test_run_writes_json_output(monkeypatch, tmp_path):
    received = {}

    async def fake_pipeline(payload, observer=None):
        received.update(payload)
        return _make_run(payload["topic"])

    monkeypatch.setattr(cli, "run_pipeline", fake_pipeline)
    out_file = tmp_path / "result.json"

    result = runner.invoke(cli.app, ["--topic", "AI safety", "--no-blog", "--out", str(out_file)])

    assert result.exit_code == 0, result.output
    assert received["includeBlog"] is False
    written = json.loads(out_file.read_text(encoding="utf-8"))
    assert written["result"]["metadata"]["topic"] == "AI safety"
    assert written["result"]["ideaPitches"] == ["Next angle"]


def test_run_writes_markdown_output(monkeypatch, tmp_path):
    async def fake_pipeline(payload, observer=None):
        return _make_run()

    monkeypatch.setattr(cli, "run_pipeline", fake_pipeline)
    out_file = tmp_path / "result.md"

    result = runner.invoke(cli.app, ["--out", str(out_file)])

    assert result.exit_code == 0, result.output
    text = out_file.read_text(encoding="utf-8")
    assert "# Edition" in text
    assert "- Next angle" in text


def test_run_exits_nonzero_on_generation_failure(monkeypatch):
    async def failing_pipeline(payload, observer=None):
        raise GenerationFailure()

    monkeypatch.setattr(cli, "run_pipeline", failing_pipeline)

    result = runner.invoke(cli.app, ["--topic", "AI"])

    assert result.exit_code == 1


def test_remote_distinguishes_transport_failure(monkeypatch):
    async def unreachable(payload, base_url):
        raise TransportFailure()

    monkeypatch.setattr(cli, "request_generation", unreachable)

    result = runner.invoke(cli.app, ["remote", "--topic", "AI"])

    assert result.exit_code == 2


def test_remote_writes_output(monkeypatch, tmp_path):
    async def fake_remote(payload, base_url):
        assert base_url == "http://pulse.test"
        return _make_run(payload["topic"])

    monkeypatch.setattr(cli, "request_generation", fake_remote)
    out_file = tmp_path / "remote.json"

    result = runner.invoke(
        cli.app,
        ["remote", "--topic", "AI", "--url", "http://pulse.test", "--out", str(out_file)],
    )

    assert result.exit_code == 0, result.output
    assert json.loads(out_file.read_text(encoding="utf-8"))["result"]["metadata"]["topic"] == "AI"
