"""
Pytest configuration and shared fixtures.

Services are exercised against the in-memory stores in tests/fakes.py; no
database or LLM endpoint is needed.
"""

import json

import pytest

from cultivate.core import Settings
from tests.fakes import make_artifact, make_contact, make_stores

SCENARIO_SUGGESTIONS = [
    {
        "field_path": "personal_context.family.partner",
        "action": "update",
        "suggested_value": {"name": "Sarah", "relationship": "partner"},
        "confidence": 0.95,
        "reasoning": "Speaker refers to 'my partner Sarah'.",
    },
    {
        "field_path": "personal_context.upcoming_changes",
        "action": "add",
        "suggested_value": "Relocation to Boston next month",
        "confidence": 0.9,
        "reasoning": "They are moving to Boston next month.",
    },
]

HALLUCINATED_SUGGESTION = {
    "field_path": "personal_context.pets",
    "action": "add",
    "suggested_value": "Dog named Rex",
    "confidence": 0.6,
    "reasoning": "Guess.",
}


@pytest.fixture
def settings() -> Settings:
    return Settings(
        extraction_timeout_seconds=0.2,
        extraction_max_tokens=1024,
        extraction_temperature=0.1,
        extraction_json_mode=False,
    )


@pytest.fixture
def contact():
    return make_contact()


@pytest.fixture
def artifact():
    return make_artifact()


@pytest.fixture
def stores(contact, artifact):
    return make_stores(contacts=[contact], artifacts=[artifact])


@pytest.fixture
def scenario_response() -> str:
    return json.dumps(SCENARIO_SUGGESTIONS)
