import json

import pytest

from cultivate.services.suggestions.errors import PipelineError, PipelineStage
from cultivate.services.suggestions.parsing import normalize_suggestion_envelope, parse_llm_response
from tests.conftest import SCENARIO_SUGGESTIONS

ONE = SCENARIO_SUGGESTIONS[1]


def test_bare_array():
    assert parse_llm_response(json.dumps(SCENARIO_SUGGESTIONS)) == SCENARIO_SUGGESTIONS


def test_suggestions_envelope():
    assert parse_llm_response(json.dumps({"suggestions": SCENARIO_SUGGESTIONS})) == SCENARIO_SUGGESTIONS


def test_contact_updates_envelope():
    assert parse_llm_response(json.dumps({"contact_updates": [ONE]})) == [ONE]


def test_single_object_becomes_one_item_list():
    assert parse_llm_response(json.dumps(ONE)) == [ONE]


def test_empty_array_is_fine():
    assert parse_llm_response("[]") == []
    assert parse_llm_response('{"suggestions": []}') == []


def test_markdown_fence_and_preamble_are_tolerated():
    fenced = "```json\n" + json.dumps(SCENARIO_SUGGESTIONS) + "\n```"
    assert parse_llm_response(fenced) == SCENARIO_SUGGESTIONS
    chatty = "Here are the updates:\n" + json.dumps([ONE]) + "\nLet me know!"
    assert parse_llm_response(chatty) == [ONE]


def test_bracketed_note_in_preamble_does_not_shadow_payload():
    text = "Note [1]: " + json.dumps({"suggestions": SCENARIO_SUGGESTIONS}) + " (see [2])"
    assert parse_llm_response(text) == SCENARIO_SUGGESTIONS
    text = "Refs {a}, [3]:\n" + json.dumps([ONE])
    assert parse_llm_response(text) == [ONE]


@pytest.mark.parametrize("text", ["", "   ", "not json at all", "[{broken"])
def test_unparseable_text_raises_parse_error(text):
    with pytest.raises(PipelineError) as exc:
        parse_llm_response(text)
    assert exc.value.stage == PipelineStage.PARSE


@pytest.mark.parametrize(
    "data",
    [
        {"updates": [ONE]},
        {"suggestions": "none"},
        42,
        "text",
    ],
)
def test_unknown_envelopes_raise(data):
    with pytest.raises(PipelineError):
        normalize_suggestion_envelope(data)


def test_elements_are_not_filtered_here():
    assert normalize_suggestion_envelope([1, None, ONE]) == [1, None, ONE]
