from __future__ import annotations

from arango_rdb_sync.infrastructure.external.arango_sync.path_resolver import (
    resolve_alias_path,
    resolve_document_field,
)
from arango_rdb_sync.infrastructure.external.arango_sync.types import Document


def _doc(**properties) -> Document:
    return Document(key="u1", id="users/u1", rev="_r1", properties=properties)


def test_nested_field() -> None:
    document = _doc(a={"b": 5})
    assert resolve_document_field(document, "a.b") == 5
    assert resolve_document_field(document, "a.c") is None


def test_path_through_non_map_is_absent() -> None:
    document = _doc(a=[1, 2], s="texto")
    assert resolve_document_field(document, "a.b") is None
    assert resolve_document_field(document, "s.x") is None


def test_reserved_names_return_metadata() -> None:
    document = _doc(_other="x")
    assert resolve_document_field(document, "_key") == "u1"
    assert resolve_document_field(document, "_id") == "users/u1"
    assert resolve_document_field(document, "_rev") == "_r1"


def test_blank_path_is_absent() -> None:
    assert resolve_document_field(_doc(a=1), "") is None
    assert resolve_document_field(_doc(a=1), None) is None


def test_falsy_values_are_kept() -> None:
    document = _doc(active=False, count=0, name="")
    assert resolve_document_field(document, "active") is False
    assert resolve_document_field(document, "count") == 0
    assert resolve_document_field(document, "name") == ""


def test_alias_path() -> None:
    main = _doc(profile={"city": "Lima"})
    team = Document(key="t1", id="teams/t1", rev=None, properties={"name": "Core"})
    context = {"main": main, "team": team}

    assert resolve_alias_path(context, "main.profile.city") == "Lima"
    assert resolve_alias_path(context, "team.name") == "Core"
    assert resolve_alias_path(context, "team._key") == "t1"
    assert resolve_alias_path(context, "company.name") is None


def test_alias_without_path_returns_whole_document() -> None:
    main = _doc(a=1)
    assert resolve_alias_path({"main": main}, "main") is main


def test_alias_with_trailing_dot_is_absent() -> None:
    assert resolve_alias_path({"main": _doc(a=1)}, "main.") is None
