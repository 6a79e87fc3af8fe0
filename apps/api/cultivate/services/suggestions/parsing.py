"""
LLM response parsing for contact update suggestions.

Raw text -> JSON -> canonical list of candidate dicts. Accepted envelopes:
- [{field_path, action, ...}, ...]  # bare array
- {"suggestions": [...]}
- {"contact_updates": [...]}  # older prompt wording
- {field_path, action, ...}  # batch collapsed to one item
"""

import json
import logging
from typing import Any

from cultivate.services.suggestions.errors import PipelineError, PipelineStage

logger = logging.getLogger(__name__)

_ENVELOPE_KEYS = ("suggestions", "contact_updates")


def _strip_json_fence(text: str) -> str:
    """Remove markdown code fences from JSON response."""
    text = text.strip()
    if not text.startswith("```"):
        return text

    lines = text.split("\n")
    if lines[0].startswith("```"):
        lines = lines[1:]
    if lines and lines[-1].strip() == "```":
        lines = lines[:-1]

    return "\n".join(lines).strip()


def _extract_json_from_text(text: str) -> str:
    """
    Find the JSON array/object in text, skipping any preamble or trailing prose.

    The whole text wins when it parses. Otherwise the longest value that decodes
    from any "[" or "{" is taken, so bracketed notes in the preamble such as
    "Note [1]:" do not shadow the payload.
    """
    text = text.strip()
    try:
        json.loads(text)
        return text
    except json.JSONDecodeError:
        pass

    decoder = json.JSONDecoder()
    best = ""
    for start_idx, char in enumerate(text):
        if char not in "[{":
            continue
        try:
            _, end_idx = decoder.raw_decode(text, start_idx)
        except json.JSONDecodeError:
            continue
        if end_idx - start_idx > len(best):
            best = text[start_idx:end_idx]

    if not best:
        raise ValueError("No valid JSON found in text")
    return best


def normalize_suggestion_envelope(data: Any) -> list[Any]:
    """
    Normalize any accepted envelope to a list of candidates.

    Elements are not checked here; the validator drops malformed ones.

    Raises:
        PipelineError: If the JSON is not one of the accepted envelopes
    """
    if isinstance(data, list):
        return data

    if isinstance(data, dict):
        for key in _ENVELOPE_KEYS:
            if key in data:
                inner = data[key]
                if isinstance(inner, list):
                    return inner
                if isinstance(inner, dict):
                    return [inner]
                raise PipelineError(
                    PipelineStage.PARSE,
                    f"Expected '{key}' to be an array, got {type(inner).__name__}",
                )
        if "field_path" in data:
            return [data]
        raise PipelineError(
            PipelineStage.PARSE,
            "Unexpected response structure. Expected an array, 'suggestions' key, "
            f"or a single suggestion. Got keys: {list(data.keys())[:5]}",
        )

    raise PipelineError(
        PipelineStage.PARSE,
        f"Expected JSON object or array, got {type(data).__name__}",
    )


def parse_llm_response(response_text: str) -> list[Any]:
    """
    Parse raw LLM output into a list of candidate suggestions.

    Raises:
        PipelineError: If the text is empty, not JSON, or an unknown envelope
    """
    if not response_text or not response_text.strip():
        raise PipelineError(
            PipelineStage.PARSE,
            "LLM returned empty response. Service may be rate-limited or failed.",
        )

    try:
        cleaned = _strip_json_fence(response_text)
        json_str = _extract_json_from_text(cleaned)
        data = json.loads(json_str)
    except (ValueError, json.JSONDecodeError) as e:
        raise PipelineError(
            PipelineStage.PARSE,
            f"LLM returned invalid JSON: {str(e)[:200]}",
            cause=e,
        )

    candidates = normalize_suggestion_envelope(data)
    logger.info("Parsed %d candidate suggestions from LLM response", len(candidates))
    return candidates
