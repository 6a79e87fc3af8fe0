"""
Apply approved suggestions to a contact, producing a store patch.

Pure: works on deep copies of the contact's context trees and returns
{column: new_value} plus a "field_sources" map to merge. Nothing is written
until the caller hands the patch to ContactStore.update_contact_fields.

Action semantics per path:
- array field: add appends items not already present, update replaces the
  list (a single value becomes a one-item list), remove filters by value
  (strings compared case-insensitively) or clears the list when value is null
- object/string field: add and update set the value, remove deletes the key
- direct column: remove sets it to null
"""

import copy
from typing import Any, Iterable

from cultivate.domain import CONTEXT_ROOTS, DIRECT_CONTACT_FIELDS, ContactSnapshot, ContactUpdateSuggestion
from cultivate.field_registry import expected_type


def get_value_at_path(contact: ContactSnapshot, path: str) -> Any:
    """Current value at a field path, or None when any segment is missing."""
    if path in DIRECT_CONTACT_FIELDS:
        return getattr(contact, path)
    root, _, rest = path.partition(".")
    if root not in CONTEXT_ROOTS or not rest:
        return None
    node: Any = getattr(contact, root)
    for key in rest.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _item_key(item: Any) -> Any:
    if isinstance(item, str):
        return item.strip().casefold()
    return item


def _as_items(value: Any) -> list[Any]:
    if value is None:
        return []
    return list(value) if isinstance(value, list) else [value]


def merge_array(current: Any, action: str, value: Any) -> list[Any]:
    existing = list(current) if isinstance(current, list) else []

    if action == "add":
        seen = [_item_key(x) for x in existing]
        for item in _as_items(value):
            key = _item_key(item)
            if key in seen:
                continue
            existing.append(item)
            seen.append(key)
        return existing

    if action == "update":
        return _as_items(value)

    # remove
    if value is None:
        return []
    drop = [_item_key(x) for x in _as_items(value)]
    return [x for x in existing if _item_key(x) not in drop]


def _set_in_tree(tree: dict[str, Any], keys: list[str], action: str, value: Any, is_array: bool) -> None:
    node = tree
    for key in keys[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            if action == "remove" and not is_array:
                return
            child = {}
            node[key] = child
        node = child

    leaf = keys[-1]
    if is_array or isinstance(node.get(leaf), list):
        node[leaf] = merge_array(node.get(leaf), action, value)
    elif action == "remove":
        node.pop(leaf, None)
    else:
        node[leaf] = copy.deepcopy(value)


def _direct_value(action: str, value: Any) -> Any:
    if action == "remove" or value is None:
        return None
    return value if isinstance(value, str) else str(value)


def build_contact_patch(
    contact: ContactSnapshot,
    suggestions: Iterable[ContactUpdateSuggestion],
    artifact_id: str,
) -> dict[str, Any]:
    """
    Build the patch for applying suggestions, in order, to the contact.

    Returns a dict holding only the touched columns; "field_sources" holds the
    new path -> artifact_id entries (the store merges them into the existing map).
    """
    trees = {root: copy.deepcopy(getattr(contact, root)) for root in CONTEXT_ROOTS}
    touched_roots: set[str] = set()
    patch: dict[str, Any] = {}
    field_sources: dict[str, str] = {}

    for s in suggestions:
        path = s.field_path
        if path in DIRECT_CONTACT_FIELDS:
            patch[path] = _direct_value(s.action, s.suggested_value)
        else:
            root, _, rest = path.partition(".")
            if root not in trees or not rest:
                raise ValueError(f"Cannot apply suggestion to field path: {path}")
            _set_in_tree(
                trees[root],
                rest.split("."),
                s.action,
                s.suggested_value,
                expected_type(path) == "array",
            )
            touched_roots.add(root)
        field_sources[path] = artifact_id

    for root in touched_roots:
        patch[root] = trees[root]
    patch["field_sources"] = field_sources
    return patch
