"""
LLM prompt templates for contact update extraction.

Pipeline order:
  1. SYSTEM            - conservative analyst role, field path discipline
  2. EXTRACT_UPDATES   - transcription + current profile -> JSON array of suggestions
"""

from .contact_updates import (
    PROMPT_SYSTEM,
    PROMPT_EXTRACT_UPDATES,
    PromptPayload,
    build_prompt,
    fill_prompt,
)

__all__ = [
    "PROMPT_SYSTEM",
    "PROMPT_EXTRACT_UPDATES",
    "PromptPayload",
    "build_prompt",
    "fill_prompt",
]
