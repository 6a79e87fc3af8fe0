"""
Suggestion validation against the field path registry.

Runs after the LLM response is normalized to a list and before anything is
persisted. Each candidate is checked on its own:
- structure: string field_path, known action, suggested_value present
- path: listed verbatim in the registry
- shape: suggested_value agrees with the path's expected type (not for remove)

Invalid candidates are dropped and logged; a batch never fails as a whole.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Literal, Optional

from cultivate.domain import SUGGESTION_ACTIONS
from cultivate.field_registry import expected_type, is_valid_field_path

logger = logging.getLogger(__name__)

Shape = Literal["array", "object", "scalar"]

STRUCTURE_ERROR = (
    "Invalid suggestion structure: expected field_path (string), "
    "action (add|update|remove) and suggested_value"
)


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: Optional[str] = None


def value_shape(value: Any) -> Shape:
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return "scalar"


def _has_valid_structure(candidate: Any) -> bool:
    return (
        isinstance(candidate, dict)
        and isinstance(candidate.get("field_path"), str)
        and candidate.get("action") in SUGGESTION_ACTIONS
        and "suggested_value" in candidate
    )


def _check_shape(field_path: str, action: str, value: Any) -> Optional[str]:
    expected = expected_type(field_path)
    if expected == "unknown":
        return None
    actual = value_shape(value)

    if expected == "array":
        if action == "add":
            # add takes one element (or a list of elements) for the array
            if actual == "object":
                return (
                    f"Field {field_path} expects array elements, but got {actual}. "
                    "For arrays, use action 'add' with individual items."
                )
            return None
        if actual != "array":
            return (
                f"Field {field_path} expects an array, but got {actual}. "
                "For arrays, use action 'add' with individual items, not the whole array."
            )
        return None

    if expected == "object" and actual != "object":
        return f"Field {field_path} expects an object, but got {actual}."

    if expected == "string" and actual != "scalar":
        return f"Field {field_path} expects a string, but got {actual}."

    return None


def validate(candidate: Any) -> ValidationResult:
    """Validate one raw suggestion dict from the LLM."""
    if not _has_valid_structure(candidate):
        return ValidationResult(False, STRUCTURE_ERROR)

    field_path = candidate["field_path"]
    if not is_valid_field_path(field_path):
        return ValidationResult(
            False,
            f"Invalid field path: {field_path}. This field does not exist in our contact schema.",
        )

    action = candidate["action"]
    if action == "remove":
        return ValidationResult(True)

    error = _check_shape(field_path, action, candidate["suggested_value"])
    if error:
        return ValidationResult(False, error)
    return ValidationResult(True)


def _preview(candidate: Any) -> str:
    try:
        return json.dumps(candidate, default=str)[:300]
    except (TypeError, ValueError):
        return repr(candidate)[:300]


def filter_valid(candidates: list[Any]) -> list[dict]:
    """Return the valid candidates in their original order."""
    valid: list[dict] = []
    rejected = 0
    for i, candidate in enumerate(candidates):
        result = validate(candidate)
        if result.valid:
            valid.append(candidate)
            continue
        rejected += 1
        logger.warning("Dropping suggestion %d: %s | %s", i, result.error, _preview(candidate))

    if rejected:
        logger.warning(
            "Filtered out %d of %d suggestions that failed validation",
            rejected,
            len(candidates),
        )
    return valid
