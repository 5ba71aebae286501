"""
Tests del JoinResolver contra el document store en memoria (ver conftest).
"""
from __future__ import annotations

import pytest

from arango_rdb_sync.infrastructure.external.arango_sync.join_resolver import JoinResolver
from arango_rdb_sync.infrastructure.external.arango_sync.sync_config import MergeMapping
from arango_rdb_sync.infrastructure.external.arango_sync.types import EdgeDirection
from arango_rdb_sync.shared.exceptions.sync import ResolutionError


def _merge(*joins: dict) -> MergeMapping:
    return MergeMapping.model_validate(
        {
            "name": "user_overview",
            "targetTable": "user_overview",
            "mainCollection": "users",
            "keyField": "main._key",
            "keyColumn": "user_id",
            "fieldMappings": {"main._key": "user_id"},
            "joins": list(joins),
        }
    )


TEAM_JOIN = {"alias": "team", "collection": "teams", "localField": "main.teamId", "foreignField": "_key"}


def test_direct_join_adds_alias(fake_store) -> None:
    fake_store.add("teams", "t1", name="Core")
    user = fake_store.add("users", "u1", teamId="t1")

    context = JoinResolver(fake_store, _merge(TEAM_JOIN)).resolve(user)

    assert context is not None
    assert context["main"] is user
    assert context["team"].key == "t1"
    assert fake_store.calls_named("find_one") == [("find_one", "teams", "_key", "t1")]


def test_required_join_without_match_skips_document(fake_store) -> None:
    user = fake_store.add("users", "u1", teamId="ghost")
    assert JoinResolver(fake_store, _merge(TEAM_JOIN)).resolve(user) is None


def test_required_join_with_absent_local_value_skips_without_query(fake_store) -> None:
    user = fake_store.add("users", "u1")
    assert JoinResolver(fake_store, _merge(TEAM_JOIN)).resolve(user) is None
    assert fake_store.calls_named("find_one") == []


def test_optional_join_without_match_drops_alias(fake_store) -> None:
    user = fake_store.add("users", "u1", teamId="ghost")
    optional = dict(TEAM_JOIN, required=False)

    context = JoinResolver(fake_store, _merge(optional)).resolve(user)

    assert context is not None
    assert set(context) == {"main"}


def test_later_join_reads_fields_of_earlier_join(fake_store) -> None:
    fake_store.add("users", "lead", name="Lidia")
    fake_store.add("teams", "t1", name="Core", leadId="lead")
    user = fake_store.add("users", "u1", teamId="t1")
    lead_join = {"alias": "lead", "collection": "users", "localField": "team.leadId", "foreignField": "_key"}

    context = JoinResolver(fake_store, _merge(TEAM_JOIN, lead_join)).resolve(user)

    assert context["lead"].properties["name"] == "Lidia"


def test_edge_chain_follows_each_direction(fake_store) -> None:
    # users/u1 -(member_of)-> groups/g1 <-(owns)- companies/c1
    user = fake_store.add("users", "u1")
    fake_store.add("groups", "g1")
    fake_store.add("companies", "c1", name="ACME")
    fake_store.add_edge("member_of", "users/u1", "groups/g1")
    fake_store.add_edge("owns", "companies/c1", "groups/g1")
    join = {
        "alias": "company",
        "edges": [
            {"collection": "member_of", "direction": "forward"},
            {"collection": "owns", "direction": "REVERSE"},
        ],
        "targetCollection": "companies",
    }

    context = JoinResolver(fake_store, _merge(join)).resolve(user)

    assert context["company"].id == "companies/c1"
    assert fake_store.calls_named("next_handle") == [
        ("next_handle", "member_of", EdgeDirection.FORWARD, "users/u1"),
        ("next_handle", "owns", EdgeDirection.REVERSE, "groups/g1"),
    ]
    assert fake_store.calls_named("get_document") == [("get_document", "companies/c1")]


def test_edge_chain_stops_at_first_missing_step(fake_store) -> None:
    user = fake_store.add("users", "u1")
    fake_store.add_edge("owns", "companies/c1", "groups/g1")
    join = {
        "alias": "company",
        "required": False,
        "edges": [
            {"collection": "member_of", "direction": "forward"},
            {"collection": "owns", "direction": "reverse"},
        ],
    }

    context = JoinResolver(fake_store, _merge(join)).resolve(user)

    assert set(context) == {"main"}
    assert [c[1] for c in fake_store.calls_named("next_handle")] == ["member_of"]
    assert fake_store.calls_named("get_document") == []


def test_edge_chain_with_missing_final_document_is_not_found(fake_store) -> None:
    user = fake_store.add("users", "u1")
    fake_store.add_edge("member_of", "users/u1", "groups/deleted")
    join = {"alias": "group", "edges": [{"collection": "member_of"}]}

    assert JoinResolver(fake_store, _merge(join)).resolve(user) is None


def test_edge_chain_collection_mismatch_is_an_error(fake_store) -> None:
    user = fake_store.add("users", "u1")
    fake_store.add("groups", "g1")
    fake_store.add_edge("member_of", "users/u1", "groups/g1")
    join = {"alias": "company", "edges": [{"collection": "member_of"}], "targetCollection": "companies"}

    with pytest.raises(ResolutionError) as exc:
        JoinResolver(fake_store, _merge(join)).resolve(user)
    assert exc.value.error_code == "COLLECTION_MISMATCH"
    assert exc.value.details["handle"] == "groups/g1"


def test_whole_alias_as_local_value_matches_by_handle(fake_store) -> None:
    fake_store.add("profiles", "p1", owner="users/u1", bio="hola")
    user = fake_store.add("users", "u1")
    join = {"alias": "profile", "collection": "profiles", "localField": "main", "foreignField": "owner"}
    context = JoinResolver(fake_store, _merge(join)).resolve(user)

    assert context["profile"].key == "p1"

