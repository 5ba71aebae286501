"""
Configuración del sync (mapeo ArangoDB -> base relacional).

Aquí se define la forma del mapeo:
- conexiones a ArangoDB y a la base relacional
- mapeos simples colección -> tabla (con dependencias entre tablas)
- merges: una colección principal + joins (directos o por aristas) -> una tabla

Este módulo no realiza I/O ni valida invariantes entre mapeos: eso lo hace
mapping_loader.validate_specification().
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from .types import KEY_FIELD, EdgeDirection


class _MappingModel(BaseModel):
    """Base común: claves camelCase en el JSON, inmutable una vez cargado."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True
        extra = "ignore"


class ArangoConfig(_MappingModel):
    """Descriptor de conexión a ArangoDB."""

    host: str = Field(default="localhost")
    port: int = Field(default=8529)
    user: str = Field(default="root")
    password: str = Field(default="")
    database: Optional[str] = Field(default=None, description="Base ArangoDB (obligatoria)")
    use_ssl: bool = Field(default=False)


class RdbConfig(_MappingModel):
    """
    Descriptor de conexión a la base relacional.

    url es una URL SQLAlchemy (postgresql+psycopg://host/db, sqlite:///...).
    Si user/password vienen informados, se inyectan en la URL.
    """

    url: Optional[str] = Field(default=None, description="URL SQLAlchemy (obligatoria)")
    user: Optional[str] = Field(default=None)
    password: Optional[str] = Field(default=None)


class CollectionMapping(_MappingModel):
    """
    Config de una colección ArangoDB -> una tabla relacional.

    NOTA sobre la clave:
    - Por defecto la clave es el _key del documento (estable entre corridas).
    - depends_on lista tablas (case-insensitive) que deben poblarse antes.
    """

    collection: str
    table: str
    key_field: str = Field(default=KEY_FIELD)
    key_column: str = Field(default="id")
    field_mappings: dict[str, str] = Field(default_factory=dict)
    depends_on: list[str] = Field(default_factory=list)


class EdgeStep(_MappingModel):
    """Un salto en una cadena de aristas."""

    collection: str
    direction: EdgeDirection = Field(default=EdgeDirection.FORWARD)

    @field_validator("direction", mode="before")
    @classmethod
    def _lower_direction(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value


class JoinSpec(_MappingModel):
    """
    Join de un merge. Exactamente una estrategia:

    - directa: collection + local_field (alias.campo) + foreign_field
    - por aristas: edges (no vacía), con target_collection opcional para
      verificar la colección del documento final
    """

    alias: str
    required: bool = Field(default=True)
    collection: Optional[str] = Field(default=None)
    local_field: Optional[str] = Field(default=None)
    foreign_field: Optional[str] = Field(default=None)
    edges: list[EdgeStep] = Field(default_factory=list)
    target_collection: Optional[str] = Field(default=None)

    @property
    def is_edge_chain(self) -> bool:
        return bool(self.edges)


class MergeMapping(_MappingModel):
    """Colección principal + joins -> una tabla destino."""

    name: str
    target_table: str
    main_collection: str
    key_field: str
    key_column: str
    field_mappings: dict[str, str] = Field(default_factory=dict)
    joins: list[JoinSpec] = Field(default_factory=list)


class SyncSpecification(_MappingModel):
    """Especificación completa de una corrida (se carga una vez, inmutable)."""

    arango: ArangoConfig
    rdb: RdbConfig
    collections: list[CollectionMapping] = Field(default_factory=list)
    merges: list[MergeMapping] = Field(default_factory=list)

    def source_collections(self) -> list[str]:
        """Colecciones de documentos referenciadas (orden estable, sin duplicados)."""
        names: list[str] = []
        for mapping in self.collections:
            names.append(mapping.collection)
        for merge in self.merges:
            names.append(merge.main_collection)
            for join in merge.joins:
                if join.collection:
                    names.append(join.collection)
                if join.target_collection:
                    names.append(join.target_collection)
        return list(dict.fromkeys(n for n in names if n and n.strip()))

    def edge_collections(self) -> list[str]:
        """Colecciones de aristas referenciadas por joins."""
        names = [
            step.collection
            for merge in self.merges
            for join in merge.joins
            for step in join.edges
        ]
        return list(dict.fromkeys(n for n in names if n and n.strip()))
