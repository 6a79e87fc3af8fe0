from datetime import datetime, timezone

import pytest

from cultivate.domain import ContactUpdateSuggestion, SuggestionRecordSnapshot
from cultivate.services.suggestions import (
    SuggestionApplyError,
    SuggestionLifecycle,
    SuggestionNotFoundError,
    SuggestionStateError,
)
from tests.fakes import (
    OTHER_USER_ID,
    USER_ID,
    FakeArtifactStore,
    FakeContactStore,
    FakeSuggestionStore,
    make_contact,
    make_stores,
    stores_from,
)

THREE = [
    ContactUpdateSuggestion(
        field_path="personal_context.family.partner",
        action="update",
        suggested_value={"name": "Sarah", "relationship": "partner"},
        confidence=0.95,
        reasoning="Partner named.",
    ),
    ContactUpdateSuggestion(
        field_path="personal_context.upcoming_changes",
        action="add",
        suggested_value="Relocation to Boston next month",
        confidence=0.9,
        reasoning="Moving.",
    ),
    ContactUpdateSuggestion(
        field_path="title",
        action="update",
        suggested_value="VP of Engineering",
        confidence=0.6,
        reasoning="Maybe promoted.",
    ),
]


def make_record(record_id="rec-1", status="pending", suggestions=THREE, **overrides) -> SuggestionRecordSnapshot:
    data = {
        "id": record_id,
        "artifact_id": "artifact-1",
        "contact_id": "contact-1",
        "user_id": USER_ID,
        "suggestions": suggestions,
        "field_paths": [s.field_path for s in suggestions],
        "confidence_scores": {s.field_path: s.confidence for s in suggestions},
        "status": status,
        "priority": "high",
        "created_at": datetime(2026, 1, 2, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return SuggestionRecordSnapshot(**data)


@pytest.fixture
def stores():
    return make_stores(contacts=[make_contact()], records=[make_record()])


@pytest.fixture
def lifecycle(stores):
    return SuggestionLifecycle(stores.contacts, stores.suggestions, stores.unit)


@pytest.mark.asyncio
async def test_approve_all(stores, lifecycle):
    record = await lifecycle.approve("rec-1")

    assert record.status == "approved"
    assert record.reviewed_at is not None
    assert record.applied_at is not None
    assert record.user_selections == {p: True for p in make_record().field_paths}
    contact = stores.contacts.rows["contact-1"]
    assert contact.title == "VP of Engineering"
    assert contact.personal_context["family"]["partner"] == {"name": "Sarah", "relationship": "partner"}
    assert contact.personal_context["upcoming_changes"] == ["Relocation to Boston next month"]
    assert contact.field_sources == {p: "artifact-1" for p in make_record().field_paths}
    assert stores.suggestions.rows["rec-1"].status == "approved"


@pytest.mark.asyncio
async def test_approve_subset_is_partial(stores, lifecycle):
    selected = ["personal_context.family.partner", "personal_context.upcoming_changes"]
    record = await lifecycle.approve("rec-1", selected)

    assert record.status == "partial"
    assert record.user_selections == {
        "personal_context.family.partner": True,
        "personal_context.upcoming_changes": True,
        "title": False,
    }
    contact = stores.contacts.rows["contact-1"]
    assert contact.title == "Director of Engineering"
    assert set(contact.field_sources) == set(selected)


@pytest.mark.asyncio
async def test_partial_then_rest_becomes_approved_without_restamping(stores, lifecycle):
    first = await lifecycle.approve("rec-1", ["title"])
    second = await lifecycle.approve("rec-1", ["personal_context.family.partner", "personal_context.upcoming_changes"])

    assert first.status == "partial"
    assert second.status == "approved"
    assert second.applied_at == first.applied_at
    assert second.reviewed_at == first.reviewed_at
    assert len(stores.contacts.update_calls) == 2


@pytest.mark.asyncio
async def test_failed_contact_write_leaves_record_pending(stores, lifecycle):
    stores.contacts.fail_updates = True
    before_contact = stores.contacts.rows["contact-1"]

    with pytest.raises(SuggestionApplyError):
        await lifecycle.approve("rec-1")

    record = stores.suggestions.rows["rec-1"]
    assert record.status == "pending"
    assert record.reviewed_at is None
    assert record.applied_at is None
    assert record.user_selections == {}
    assert stores.contacts.rows["contact-1"] == before_contact


@pytest.mark.asyncio
async def test_missing_contact_is_apply_error(lifecycle, stores):
    stores.contacts.rows.clear()
    with pytest.raises(SuggestionApplyError):
        await lifecycle.approve("rec-1")
    assert stores.suggestions.rows["rec-1"].status == "pending"


@pytest.mark.asyncio
async def test_empty_selection_is_recorded_as_rejection(stores, lifecycle):
    record = await lifecycle.approve("rec-1", [])
    assert record.status == "rejected"
    assert record.reviewed_at is not None
    assert record.applied_at is None
    assert stores.contacts.update_calls == []


@pytest.mark.asyncio
async def test_unknown_selection_is_rejected(lifecycle, stores):
    with pytest.raises(ValueError):
        await lifecycle.approve("rec-1", ["personal_context.pets"])
    assert stores.suggestions.rows["rec-1"].status == "pending"


@pytest.mark.asyncio
async def test_reject(stores, lifecycle):
    record = await lifecycle.reject("rec-1")
    assert record.status == "rejected"
    assert record.reviewed_at is not None
    assert record.dismissed_at is None
    assert stores.contacts.update_calls == []


@pytest.mark.asyncio
async def test_skip(stores, lifecycle):
    record = await lifecycle.skip("rec-1")
    assert record.status == "skipped"
    assert record.dismissed_at is not None
    assert record.reviewed_at is None
    assert stores.contacts.update_calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["approved", "rejected", "skipped"])
@pytest.mark.parametrize("operation", ["approve", "reject", "skip"])
async def test_terminal_states_refuse_transitions(status, operation):
    stores = make_stores(contacts=[make_contact()], records=[make_record(status=status)])
    lifecycle = SuggestionLifecycle(stores.contacts, stores.suggestions, stores.unit)
    with pytest.raises(SuggestionStateError):
        await getattr(lifecycle, operation)("rec-1")
    assert stores.suggestions.rows["rec-1"].status == status


@pytest.mark.asyncio
async def test_partial_cannot_be_rejected_or_skipped(lifecycle):
    await lifecycle.approve("rec-1", ["title"])
    with pytest.raises(SuggestionStateError):
        await lifecycle.reject("rec-1")
    with pytest.raises(SuggestionStateError):
        await lifecycle.skip("rec-1")


@pytest.mark.asyncio
async def test_other_users_record_is_not_found(lifecycle):
    with pytest.raises(SuggestionNotFoundError):
        await lifecycle.approve("rec-1", user_id=OTHER_USER_ID)
    with pytest.raises(SuggestionNotFoundError):
        await lifecycle.reject("missing")


@pytest.mark.asyncio
async def test_mark_viewed_stamps_once(stores, lifecycle):
    first = await lifecycle.mark_viewed("rec-1")
    second = await lifecycle.mark_viewed("rec-1")
    assert first.viewed_at is not None
    assert second.viewed_at == first.viewed_at
    assert second.status == "pending"


@pytest.mark.asyncio
async def test_bulk_reject_handles_each_record(stores):
    stores.suggestions.rows["rec-2"] = make_record("rec-2", status="approved")
    lifecycle = SuggestionLifecycle(stores.contacts, stores.suggestions, stores.unit)

    results = await lifecycle.bulk_reject(["rec-1", "rec-2", "missing"])

    assert [(r.record_id, r.ok, r.status) for r in results] == [
        ("rec-1", True, "rejected"),
        ("rec-2", False, None),
        ("missing", False, None),
    ]
    assert all(r.error for r in results[1:])
    assert stores.suggestions.rows["rec-2"].status == "approved"


@pytest.mark.asyncio
async def test_bulk_approve_with_selections(stores):
    stores.suggestions.rows["rec-2"] = make_record("rec-2", suggestions=THREE[2:])
    lifecycle = SuggestionLifecycle(stores.contacts, stores.suggestions, stores.unit)

    results = await lifecycle.bulk_approve({"rec-1": ["personal_context.family.partner"], "rec-2": None})

    assert {r.record_id: r.status for r in results} == {"rec-1": "partial", "rec-2": "approved"}



class TitleWriteFails(FakeContactStore):
    """Applies the patch, then fails: the write must not survive the failed approve."""

    async def update_contact_fields(self, contact_id, patch):
        await super().update_contact_fields(contact_id, patch)
        if "title" in patch:
            raise RuntimeError("deadlock detected")


class StatusWriteFails(FakeSuggestionStore):
    async def update_suggestion_record_status(self, record_id, fields):
        raise RuntimeError("connection reset")


@pytest.mark.asyncio
async def test_bulk_approve_failure_keeps_other_records():
    contacts = TitleWriteFails(make_contact())
    suggestions = FakeSuggestionStore(
        make_record("rec-1", suggestions=THREE[:1]),
        make_record("rec-2", suggestions=THREE[2:]),
        make_record("rec-3", suggestions=THREE[1:2]),
    )
    stores = stores_from(contacts, FakeArtifactStore(), suggestions)
    lifecycle = SuggestionLifecycle(stores.contacts, stores.suggestions, stores.unit)

    results = await lifecycle.bulk_approve({"rec-1": None, "rec-2": None, "rec-3": None})

    assert [(r.record_id, r.ok, r.status) for r in results] == [
        ("rec-1", True, "approved"),
        ("rec-2", False, None),
        ("rec-3", True, "approved"),
    ]
    contact = contacts.rows["contact-1"]
    assert contact.title == "Director of Engineering"
    assert "title" not in contact.field_sources
    assert contact.personal_context["family"]["partner"]["name"] == "Sarah"
    assert contact.personal_context["upcoming_changes"] == ["Relocation to Boston next month"]
    assert suggestions.rows["rec-2"].status == "pending"
    assert suggestions.rows["rec-2"].applied_at is None


@pytest.mark.asyncio
async def test_failed_status_write_rolls_back_contact():
    contacts = FakeContactStore(make_contact())
    stores = stores_from(contacts, FakeArtifactStore(), StatusWriteFails(make_record()))
    lifecycle = SuggestionLifecycle(stores.contacts, stores.suggestions, stores.unit)
    before = contacts.rows["contact-1"]

    with pytest.raises(RuntimeError):
        await lifecycle.approve("rec-1")
    assert contacts.rows["contact-1"] == before

    results = await lifecycle.bulk_approve({"rec-1": None})
    assert results[0].ok is False
    assert "connection reset" in results[0].error
    assert contacts.rows["contact-1"] == before


@pytest.mark.asyncio
async def test_list_pending_counts(stores):
    stores.suggestions.rows["rec-2"] = make_record(
        "rec-2", suggestions=THREE[2:], created_at=datetime(2026, 1, 3, tzinfo=timezone.utc)
    )
    stores.suggestions.rows["rec-3"] = make_record("rec-3", status="rejected")
    lifecycle = SuggestionLifecycle(stores.contacts, stores.suggestions, stores.unit)

    pending = await lifecycle.list_pending("contact-1", USER_ID)

    assert [r.id for r in pending.records] == ["rec-2", "rec-1"]
    assert pending.pending_count == 2
    assert pending.high_confidence_count == 2
