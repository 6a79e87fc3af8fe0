"""
Contact update extraction prompts.

Takes a voice memo transcription plus the contact's current profile and asks
the LLM for a JSON array of field-level suggestions, restricted to the field
paths in cultivate.field_registry.

Placeholders (double-brace, replaced by fill_prompt):
  - {{CONTACT_NAME}}, {{CONTACT_COMPANY}}, {{CONTACT_TITLE}}
  - {{PROFESSIONAL_CONTEXT_JSON}}, {{PERSONAL_CONTEXT_JSON}}
  - {{TRANSCRIPTION}}
  - {{FIELD_PATHS}} - registry documentation
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Optional

from cultivate.domain import ContactSnapshot
from cultivate.field_registry import render_prompt_documentation

_PLACEHOLDER = re.compile(r"\{\{([A-Z_]+)\}\}")

PROMPT_SYSTEM = """You are a conservative relationship-intelligence analyst.
You extract profile updates for a contact from voice memo transcriptions.

STRICT RULES:
1) Only suggest updates that are explicitly mentioned or strongly implied in the memo.
2) Never invent field paths. Use only the field paths you are given, exactly as written.
3) Follow the requested response shape exactly: a JSON array and nothing else."""

PROMPT_EXTRACT_UPDATES = """Contact Name: {{CONTACT_NAME}}
Contact Company: {{CONTACT_COMPANY}}
Contact Title: {{CONTACT_TITLE}}

Current Professional Context (JSON):
{{PROFESSIONAL_CONTEXT_JSON}}

Current Personal Context (JSON):
{{PERSONAL_CONTEXT_JSON}}

Voice Memo Transcription:
\"\"\"
{{TRANSCRIPTION}}
\"\"\"

INSTRUCTIONS:
Analyze the transcription in the context of the contact's current information and
suggest specific updates (add, update, or remove) for the contact's profile fields.
- If information is already present and correct, do not suggest it again.
- If the memo contradicts existing information, suggest "update".
- If the memo adds new information to a field, suggest "add".
- If the memo says something is no longer true, suggest "remove" with the value to remove
  (or null to clear the field).

{{FIELD_PATHS}}

CONFIDENCE SCORING:
- 0.9-1.0: fact stated explicitly in the memo
- 0.7-0.8: strong inference from what was said
- 0.5-0.6: weak inference; only include if clearly useful

OUTPUT FORMAT (STRICT):
Return ONLY a JSON array of suggestion objects. No prose, no markdown, no code fences.
Each object must have exactly these keys:
{
  "field_path": "one of the valid field paths above",
  "action": "add" | "update" | "remove",
  "suggested_value": <string, array or object matching the field type>,
  "confidence": <number 0.0 to 1.0>,
  "reasoning": "one short sentence citing the memo"
}
If there are no relevant updates, return [].

Example for adding to an array:
{"field_path": "personal_context.interests", "action": "add", "suggested_value": "Skiing", "confidence": 0.9, "reasoning": "Memo mentions a recent ski trip."}
Example for updating a string:
{"field_path": "title", "action": "update", "suggested_value": "Senior Manager", "confidence": 0.8, "reasoning": "Contact mentioned a promotion to Senior Manager."}
"""


@dataclass(frozen=True)
class PromptPayload:
    system: str
    user: str


def _context_json(value: dict[str, Any]) -> str:
    return json.dumps(value or {}, indent=2, sort_keys=True, ensure_ascii=False, default=str)


def fill_prompt(
    template: str,
    *,
    contact_name: Optional[str] = None,
    contact_company: Optional[str] = None,
    contact_title: Optional[str] = None,
    professional_context_json: Optional[str] = None,
    personal_context_json: Optional[str] = None,
    transcription: Optional[str] = None,
) -> str:
    values = {
        "FIELD_PATHS": render_prompt_documentation(),
        "CONTACT_NAME": contact_name,
        "CONTACT_COMPANY": contact_company,
        "CONTACT_TITLE": contact_title,
        "PROFESSIONAL_CONTEXT_JSON": professional_context_json,
        "PERSONAL_CONTEXT_JSON": personal_context_json,
        "TRANSCRIPTION": transcription,
    }

    # one pass: substituted text is never scanned for placeholders again
    def _sub(match: re.Match) -> str:
        value = values.get(match.group(1))
        return match.group(0) if value is None else value

    return _PLACEHOLDER.sub(_sub, template)


def build_prompt(transcription: str, contact: ContactSnapshot) -> PromptPayload:
    """Pure: the same transcription and contact always yield the same prompt."""
    user = fill_prompt(
        PROMPT_EXTRACT_UPDATES,
        contact_name=contact.name or "Unknown",
        contact_company=contact.company or "Unknown",
        contact_title=contact.title or "Unknown",
        professional_context_json=_context_json(contact.professional_context),
        personal_context_json=_context_json(contact.personal_context),
        transcription=transcription,
    )
    return PromptPayload(system=PROMPT_SYSTEM, user=user)
