"""
Configuración de fixtures para pytest.

- sqlite_engine: base relacional en memoria con las tablas de prueba
- repository: RelationalSyncRepository sobre ese engine
- fake_store: document store en memoria que cumple el protocolo DocumentStore
"""
from __future__ import annotations

from typing import Any, Iterable, Optional

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from arango_rdb_sync.infrastructure.external.arango_sync.path_resolver import resolve_document_field
from arango_rdb_sync.infrastructure.external.arango_sync.rdb_repository import RelationalSyncRepository
from arango_rdb_sync.infrastructure.external.arango_sync.types import Document, EdgeDirection


TEST_SCHEMA = [
    "CREATE TABLE teams (id TEXT PRIMARY KEY, name TEXT, created_at TIMESTAMP)",
    "CREATE TABLE users ("
    " id TEXT PRIMARY KEY, name TEXT, team_id TEXT, birth_date DATE,"
    " wake_up TIME, tags_json TEXT)",
    "CREATE TABLE user_overview ("
    " user_id TEXT PRIMARY KEY, user_name TEXT, team_name TEXT, company_name TEXT)",
    "CREATE TABLE tags (code TEXT PRIMARY KEY)",
]


class FakeDocumentStore:
    """
    Document store en memoria.

    Registra cada llamada en `calls` para poder verificar qué consultas se
    hicieron (y cuáles no).
    """

    def __init__(self) -> None:
        self.collections: dict[str, list[dict[str, Any]]] = {}
        self.edges: dict[str, list[tuple[str, str]]] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.closed_iterators = 0

    def add(self, collection: str, key: str, **properties: Any) -> Document:
        payload = {"_key": key, "_id": f"{collection}/{key}", "_rev": "_r1", **properties}
        self.collections.setdefault(collection, []).append(payload)
        return Document.from_payload(payload)

    def add_edge(self, edge_collection: str, from_handle: str, to_handle: str) -> None:
        self.edges.setdefault(edge_collection, []).append((from_handle, to_handle))

    def ensure_collections(self, names: Iterable[str], edge_names: Iterable[str] = ()) -> list[str]:
        created = []
        for name in names:
            if name not in self.collections:
                self.collections[name] = []
                created.append(name)
        for name in edge_names:
            if name not in self.edges:
                self.edges[name] = []
                created.append(name)
        self.calls.append(("ensure_collections", tuple(created)))
        return created

    def iter_collection(self, collection: str):
        self.calls.append(("iter_collection", collection))
        try:
            for payload in list(self.collections.get(collection, [])):
                yield Document.from_payload(payload)
        finally:
            self.closed_iterators += 1

    def find_one(self, collection: str, field_path: str, value: Any) -> Optional[Document]:
        self.calls.append(("find_one", collection, field_path, value))
        for payload in self.collections.get(collection, []):
            document = Document.from_payload(payload)
            if resolve_document_field(document, field_path) == value:
                return document
        return None

    def next_handle(self, edge_collection: str, direction: EdgeDirection, handle: str) -> Optional[str]:
        self.calls.append(("next_handle", edge_collection, direction, handle))
        for from_handle, to_handle in self.edges.get(edge_collection, []):
            if direction is EdgeDirection.FORWARD and from_handle == handle:
                return to_handle
            if direction is EdgeDirection.REVERSE and to_handle == handle:
                return from_handle
        return None

    def get_document(self, handle: str) -> Optional[Document]:
        self.calls.append(("get_document", handle))
        collection, _, key = handle.partition("/")
        for payload in self.collections.get(collection, []):
            if payload["_key"] == key:
                return Document.from_payload(payload)
        return None

    def calls_named(self, name: str) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] == name]


@pytest.fixture
def sqlite_engine():
    """Engine SQLite en memoria; StaticPool mantiene una única conexión viva."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    with engine.begin() as conn:
        for ddl in TEST_SCHEMA:
            conn.execute(text(ddl))
    yield engine
    engine.dispose()


@pytest.fixture
def repository(sqlite_engine) -> RelationalSyncRepository:
    return RelationalSyncRepository("sqlite://", engine=sqlite_engine)


@pytest.fixture
def fake_store() -> FakeDocumentStore:
    return FakeDocumentStore()
