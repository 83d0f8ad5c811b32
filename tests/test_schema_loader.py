import pytest

from pulse_agent.schema import load_schema, validate_payload


def test_load_schema_returns_idea_pitch_schema():
    schema = load_schema()

    assert schema["title"] == "IdeaPitches"
    assert schema["required"] == ["ideas"]


def test_validate_payload_accepts_ideas_list():
    payload = {"ideas": ["Angle one", "Angle two"]}

    assert validate_payload(payload) is payload


def test_validate_payload_reports_location_of_bad_item():
    with pytest.raises(ValueError, match=r"ideas\.1"):
        validate_payload({"ideas": ["ok", 3]})


def test_validate_payload_rejects_non_object():
    with pytest.raises(ValueError, match="<root>"):
        validate_payload(["ideas"])
