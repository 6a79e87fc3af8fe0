import pytest

from cultivate.domain import ContactUpdateSuggestion
from cultivate.services.suggestions.contact_patch import build_contact_patch, get_value_at_path, merge_array
from tests.fakes import make_contact


def _s(field_path, action, value):
    return ContactUpdateSuggestion(field_path=field_path, action=action, suggested_value=value, confidence=0.9)


def test_add_appends_without_duplicates():
    assert merge_array(["Cycling"], "add", "Skiing") == ["Cycling", "Skiing"]
    assert merge_array(["Cycling"], "add", ["cycling ", "Chess"]) == ["Cycling", "Chess"]
    assert merge_array(None, "add", "Skiing") == ["Skiing"]


def test_update_replaces_list():
    assert merge_array(["a", "b"], "update", ["c"]) == ["c"]
    assert merge_array(["a"], "update", "c") == ["c"]


def test_remove_by_value_and_clear():
    assert merge_array(["Old Project X", "New"], "remove", "old project x") == ["New"]
    assert merge_array(["a", "b", "c"], "remove", ["a", "c"]) == ["b"]
    assert merge_array(["a", "b"], "remove", None) == []
    assert merge_array(["a"], "remove", "missing") == ["a"]


def test_patch_nested_paths_and_field_sources():
    contact = make_contact()
    patch = build_contact_patch(
        contact,
        [
            _s("personal_context.family.partner", "update", {"name": "Sarah", "relationship": "partner"}),
            _s("personal_context.upcoming_changes", "add", "Relocation to Boston next month"),
            _s("personal_context.interests", "add", "Skiing"),
        ],
        "artifact-1",
    )
    assert patch["personal_context"] == {
        "interests": ["Cycling", "Skiing"],
        "family": {"partner": {"name": "Sarah", "relationship": "partner"}},
        "upcoming_changes": ["Relocation to Boston next month"],
    }
    assert "professional_context" not in patch
    assert patch["field_sources"] == {
        "personal_context.family.partner": "artifact-1",
        "personal_context.upcoming_changes": "artifact-1",
        "personal_context.interests": "artifact-1",
    }


def test_patch_does_not_mutate_snapshot():
    contact = make_contact()
    build_contact_patch(contact, [_s("personal_context.interests", "add", "Skiing")], "a")
    assert contact.personal_context == {"interests": ["Cycling"]}


def test_direct_fields():
    contact = make_contact()
    patch = build_contact_patch(
        contact,
        [_s("title", "update", "VP of Engineering"), _s("location", "remove", "Chicago"), _s("phone", "add", 5551234)],
        "a",
    )
    assert patch["title"] == "VP of Engineering"
    assert patch["location"] is None
    assert patch["phone"] == "5551234"
    assert "personal_context" not in patch


def test_remove_on_non_array_deletes_key():
    contact = make_contact(professional_context={"current_company": "Northwind", "skills": ["Hiring"]})
    patch = build_contact_patch(contact, [_s("professional_context.current_company", "remove", None)], "a")
    assert patch["professional_context"] == {"skills": ["Hiring"]}


def test_remove_missing_nested_key_is_noop():
    contact = make_contact()
    patch = build_contact_patch(contact, [_s("personal_context.family.partner", "remove", None)], "a")
    assert patch["personal_context"] == {"interests": ["Cycling"]}


def test_nested_write_replaces_non_dict_intermediate():
    contact = make_contact(personal_context={"family": {"partner": "Sarah"}})
    patch = build_contact_patch(contact, [_s("personal_context.family.partner.name", "update", "Sarah")], "a")
    assert patch["personal_context"] == {"family": {"partner": {"name": "Sarah"}}}


def test_unmappable_path_raises():
    with pytest.raises(ValueError):
        build_contact_patch(make_contact(), [_s("personal_context", "update", "x")], "a")


def test_get_value_at_path():
    contact = make_contact(personal_context={"family": {"partner": {"name": "Sarah"}}})
    assert get_value_at_path(contact, "company") == "Northwind"
    assert get_value_at_path(contact, "personal_context.family.partner.name") == "Sarah"
    assert get_value_at_path(contact, "personal_context.family.children") is None
    assert get_value_at_path(contact, "professional_context.skills") == ["Hiring"]
