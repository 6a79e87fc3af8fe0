"""Which contact fields an artifact wrote, and where a field's value came from."""

import logging
from typing import Any, Optional

from cultivate.domain import (
    PROVENANCE_SUGGESTION_STATUSES,
    ArtifactSnapshot,
    FieldContribution,
    FieldSourceInfo,
    SuggestionRecordSnapshot,
)
from cultivate.services.suggestions.errors import ArtifactNotFoundError
from cultivate.stores.base import ArtifactStore, ContactStore, SuggestionStore

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 150
TITLE_WORDS = 10

_METADATA_TITLE_KEYS = {
    "linkedin_profile": ("headline", "LinkedIn Profile"),
    "email": ("subject", "Email"),
    "meeting": ("title", "Meeting Notes"),
    "note": ("title", "Note"),
}


def _first_words(text: str, n: int = TITLE_WORDS) -> str:
    words = text.split()
    head = " ".join(words[:n])
    return head + "..." if len(words) > n else head


def artifact_title(artifact: ArtifactSnapshot) -> str:
    if artifact.type == "voice_memo":
        text = (artifact.transcription or "").strip()
        return _first_words(text) if text else "Voice Memo Recording"
    if artifact.type in _METADATA_TITLE_KEYS:
        key, default = _METADATA_TITLE_KEYS[artifact.type]
        title = artifact.metadata.get(key)
        if title:
            return str(title)
        if artifact.type == "note" and artifact.content:
            return artifact.content[:50]
        return default
    if artifact.metadata.get("title"):
        return str(artifact.metadata["title"])
    return _first_words(artifact.content) if artifact.content else "Artifact"


def artifact_excerpt(artifact: ArtifactSnapshot) -> Optional[str]:
    text = artifact.content or (artifact.transcription if artifact.type == "voice_memo" else None)
    if not text:
        return None
    return text[:EXCERPT_LENGTH] + ("..." if len(text) > EXCERPT_LENGTH else "")


def _value_from_records(records: list[SuggestionRecordSnapshot], path: str) -> tuple[bool, Any, Optional[str]]:
    """Newest approved/partial record whose applied selection covers path."""
    for record in records:
        if record.status not in PROVENANCE_SUGGESTION_STATUSES:
            continue
        if record.user_selections and not record.user_selections.get(path):
            continue
        matches = [s for s in record.suggestions if s.field_path == path]
        if matches:
            return True, matches[-1].suggested_value, record.id
    return False, None, None


def _value_from_artifact(artifact: ArtifactSnapshot, path: str) -> Any:
    metadata = artifact.metadata
    if path in metadata:
        return metadata[path]
    node: Any = metadata
    for key in path.split("."):
        if not isinstance(node, dict) or key not in node:
            node = None
            break
        node = node[key]
    if node is not None:
        return node
    leaf = path.rsplit(".", 1)[-1]
    if leaf in metadata:
        return metadata[leaf]
    return artifact.content


class ProvenanceService:
    def __init__(self, contacts: ContactStore, artifacts: ArtifactStore, suggestions: SuggestionStore):
        self.contacts = contacts
        self.artifacts = artifacts
        self.suggestions = suggestions

    async def get_artifact_contributions(
        self,
        contact_id: str,
        artifact_id: str,
        user_id: Optional[str] = None,
    ) -> list[FieldContribution]:
        """Field paths whose field_sources entry is artifact_id, with the value supplied."""
        contact = await self.contacts.get_contact(contact_id, user_id)
        if contact is None:
            return []
        paths = sorted(p for p, source in contact.field_sources.items() if source == artifact_id)
        if not paths:
            return []

        records = await self.suggestions.list_for_artifact(artifact_id, user_id)
        artifact: Optional[ArtifactSnapshot] = None
        contributions = []
        for path in paths:
            found, value, record_id = _value_from_records(records, path)
            if found:
                contributions.append(FieldContribution(
                    field_path=path, value=value, source="suggestion", suggestion_record_id=record_id,
                ))
                continue
            if artifact is None:
                artifact = await self.artifacts.get_artifact(artifact_id, user_id)
            if artifact is None:
                logger.warning("field_sources on contact %s points at missing artifact %s", contact_id, artifact_id)
                continue
            contributions.append(FieldContribution(
                field_path=path, value=_value_from_artifact(artifact, path), source="artifact",
            ))
        return contributions

    async def describe_field_source(
        self,
        contact_id: str,
        field_path: str,
        user_id: Optional[str] = None,
    ) -> Optional[FieldSourceInfo]:
        """None when the field has no recorded source."""
        contact = await self.contacts.get_contact(contact_id, user_id)
        if contact is None:
            return None
        artifact_id = contact.field_sources.get(field_path)
        if not artifact_id:
            return None
        artifact = await self.artifacts.get_artifact(artifact_id, user_id)
        if artifact is None:
            raise ArtifactNotFoundError(f"Source artifact {artifact_id} for {field_path} not found")
        return FieldSourceInfo(
            field_path=field_path,
            artifact_id=artifact.id,
            artifact_type=artifact.type,
            timestamp=artifact.created_at,
            title=artifact_title(artifact),
            excerpt=artifact_excerpt(artifact),
        )
