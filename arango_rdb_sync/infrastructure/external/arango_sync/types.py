"""
Tipos y utilidades puras para el pipeline ArangoDB -> base relacional.

Se mantienen libres de I/O para poder testearlos fácilmente.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generator, Iterable, Mapping, Optional, Protocol

KEY_FIELD = "_key"
ID_FIELD = "_id"
REV_FIELD = "_rev"
RESERVED_FIELDS = (KEY_FIELD, ID_FIELD, REV_FIELD)

MAIN_ALIAS = "main"


@dataclass(frozen=True)
class Document:
    """
    Documento ArangoDB de solo lectura.

    - key: clave primaria dentro de la colección (_key)
    - id: handle global "coleccion/clave" (_id)
    - rev: token de revisión (_rev)
    - properties: resto del documento (mapa anidado)
    """

    key: Optional[str]
    id: Optional[str]
    rev: Optional[str]
    properties: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Document":
        """Construye un Document a partir del JSON devuelto por ArangoDB."""
        properties = {k: v for k, v in payload.items() if k not in RESERVED_FIELDS}
        return cls(
            key=payload.get(KEY_FIELD),
            id=payload.get(ID_FIELD),
            rev=payload.get(REV_FIELD),
            properties=properties,
        )

    @property
    def collection(self) -> Optional[str]:
        """Nombre de la colección, tomado del handle global."""
        if not self.id or "/" not in self.id:
            return None
        return self.id.split("/", 1)[0]

    def as_dict(self) -> dict[str, Any]:
        """Documento completo (metadatos + propiedades) como dict plano."""
        data: dict[str, Any] = {KEY_FIELD: self.key, ID_FIELD: self.id, REV_FIELD: self.rev}
        data.update(self.properties)
        return data


# Alias -> Document resuelto. Vive solo mientras se procesa un documento principal.
AliasContext = dict[str, Document]


class EdgeDirection(str, Enum):
    """
    Sentido en que se recorre una colección de aristas.

    FORWARD filtra por _from y avanza a _to; REVERSE filtra por _to y avanza a _from.
    """

    FORWARD = "forward"
    REVERSE = "reverse"

    @property
    def source_field(self) -> str:
        return "_from" if self is EdgeDirection.FORWARD else "_to"

    @property
    def target_field(self) -> str:
        return "_to" if self is EdgeDirection.FORWARD else "_from"


@dataclass(frozen=True)
class TargetRow:
    """Fila destino lista para UPSERT (se construye y consume por documento)."""

    table: str
    key_column: str
    key_value: Any
    columns: Mapping[str, Any]


class UpsertOutcome(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class DocumentStore(Protocol):
    """
    Operaciones de lectura que el motor necesita del document store.

    Implementaciones:
    - ArangoClient (HTTP).
    - Fake en memoria para tests.
    """

    def ensure_collections(self, names: Iterable[str], edge_names: Iterable[str] = ()) -> list[str]:
        """Crea las colecciones faltantes; retorna las creadas."""

    def iter_collection(self, collection: str) -> Generator[Document, None, None]:
        """Recorre la colección completa (sin límite de paginación)."""

    def find_one(self, collection: str, field_path: str, value: Any) -> Optional[Document]:
        """Primer documento cuyo campo field_path es igual a value."""

    def next_handle(self, edge_collection: str, direction: EdgeDirection, handle: str) -> Optional[str]:
        """Extremo opuesto de la primera arista que parte de handle en el sentido dado."""

    def get_document(self, handle: str) -> Optional[Document]:
        """Documento por handle global, o None si no existe."""
