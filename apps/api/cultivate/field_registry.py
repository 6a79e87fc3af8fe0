"""
Field path registry for contact update suggestions.

Every path a suggestion may target is listed verbatim here, grouped the way
the contact record is laid out: direct columns, personal_context and
professional_context. Used to document the schema for the LLM and to
validate what comes back.
"""

from typing import Literal

from cultivate.domain import DIRECT_CONTACT_FIELDS

ExpectedType = Literal["array", "object", "string", "unknown"]

DIRECT_PATHS: tuple[str, ...] = DIRECT_CONTACT_FIELDS

PERSONAL_PATHS: tuple[str, ...] = (
    "personal_context.family.partner",
    "personal_context.family.partner.name",
    "personal_context.family.partner.relationship",
    "personal_context.family.partner.details",
    "personal_context.family.children",
    "personal_context.family.parents",
    "personal_context.family.siblings",
    "personal_context.interests",
    "personal_context.values",
    "personal_context.milestones",
    "personal_context.anecdotes",
    "personal_context.communication_style",
    "personal_context.relationship_goal",
    "personal_context.conversation_starters.personal",
    "personal_context.conversation_starters.professional",
    "personal_context.key_life_events",
    "personal_context.current_challenges",
    "personal_context.upcoming_changes",
    "personal_context.living_situation",
    "personal_context.hobbies",
    "personal_context.travel_plans",
    "personal_context.motivations",
    "personal_context.education",
)

PROFESSIONAL_PATHS: tuple[str, ...] = (
    "professional_context.current_role",
    "professional_context.current_company",
    "professional_context.goals",
    "professional_context.background.focus_areas",
    "professional_context.background.previous_companies",
    "professional_context.background.expertise_areas",
    "professional_context.current_ventures",
    "professional_context.speaking_topics",
    "professional_context.achievements",
    "professional_context.current_role_description",
    "professional_context.key_responsibilities",
    "professional_context.team_details",
    "professional_context.work_challenges",
    "professional_context.networking_objectives",
    "professional_context.skill_development",
    "professional_context.career_transitions",
    "professional_context.projects_involved",
    "professional_context.collaborations",
    "professional_context.upcoming_projects",
    "professional_context.skills",
    "professional_context.industry_knowledge",
    "professional_context.mentions.colleagues",
    "professional_context.mentions.clients",
    "professional_context.mentions.competitors",
    "professional_context.mentions.collaborators",
    "professional_context.mentions.mentors",
    "professional_context.mentions.industry_contacts",
    "professional_context.opportunities_to_help",
    "professional_context.introduction_needs",
    "professional_context.resource_needs",
    "professional_context.pending_requests",
    "professional_context.collaboration_opportunities",
)

ALL_FIELD_PATHS = frozenset(DIRECT_PATHS + PERSONAL_PATHS + PROFESSIONAL_PATHS)

ARRAY_PATHS = frozenset({
    "personal_context.family.children",
    "personal_context.interests",
    "personal_context.values",
    "personal_context.milestones",
    "personal_context.anecdotes",
    "personal_context.conversation_starters.personal",
    "personal_context.conversation_starters.professional",
    "personal_context.key_life_events",
    "personal_context.current_challenges",
    "personal_context.upcoming_changes",
    "personal_context.hobbies",
    "personal_context.travel_plans",
    "personal_context.motivations",
    "personal_context.education",
    "professional_context.goals",
    "professional_context.background.previous_companies",
    "professional_context.background.expertise_areas",
    "professional_context.speaking_topics",
    "professional_context.achievements",
    "professional_context.key_responsibilities",
    "professional_context.work_challenges",
    "professional_context.networking_objectives",
    "professional_context.skill_development",
    "professional_context.career_transitions",
    "professional_context.projects_involved",
    "professional_context.collaborations",
    "professional_context.upcoming_projects",
    "professional_context.skills",
    "professional_context.industry_knowledge",
    "professional_context.mentions.colleagues",
    "professional_context.mentions.clients",
    "professional_context.mentions.competitors",
    "professional_context.mentions.collaborators",
    "professional_context.mentions.mentors",
    "professional_context.mentions.industry_contacts",
    "professional_context.opportunities_to_help",
    "professional_context.introduction_needs",
    "professional_context.resource_needs",
    "professional_context.pending_requests",
    "professional_context.collaboration_opportunities",
})

OBJECT_PATHS = frozenset({
    "personal_context.family.partner",
})

STRING_PATHS = frozenset({
    *DIRECT_PATHS,
    "personal_context.family.parents",
    "personal_context.family.siblings",
    "personal_context.communication_style",
    "personal_context.relationship_goal",
    "personal_context.living_situation",
    "professional_context.current_role",
    "professional_context.current_company",
    "professional_context.background.focus_areas",
    "professional_context.current_ventures",
    "professional_context.current_role_description",
    "professional_context.team_details",
})

_ARRAY_HINT = 'array of strings - use action "add" for individual items'


def is_valid_field_path(path: str) -> bool:
    """Exact-match lookup; no prefix or wildcard matching."""
    return isinstance(path, str) and path in ALL_FIELD_PATHS


def expected_type(path: str) -> ExpectedType:
    if path in ARRAY_PATHS:
        return "array"
    if path in OBJECT_PATHS:
        return "object"
    if path in STRING_PATHS:
        return "string"
    return "unknown"


def _describe(path: str) -> str:
    t = expected_type(path)
    return f'- "{path}" ({_ARRAY_HINT if t == "array" else t})'


def render_prompt_documentation() -> str:
    """Registry as prompt text. Same output on every call."""
    lines = ["VALID FIELD PATHS FOR CONTACT UPDATES:", "", "DIRECT CONTACT FIELDS:"]
    lines.extend(_describe(p) for p in DIRECT_PATHS)
    lines += ["", "PERSONAL CONTEXT:"]
    lines.extend(_describe(p) for p in PERSONAL_PATHS)
    lines += ["", "PROFESSIONAL CONTEXT:"]
    lines.extend(_describe(p) for p in PROFESSIONAL_PATHS)
    lines += [
        "",
        "IMPORTANT RULES:",
        "- Only use field paths from this exact list",
        '- For array fields, use action "add" with individual string items, not entire arrays',
        '- For object fields like "personal_context.family.partner", use action "update" with the complete object',
        "- Never create new field paths not listed above",
    ]
    return "\n".join(lines)
