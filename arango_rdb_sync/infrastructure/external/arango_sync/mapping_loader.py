"""
Carga y validación del archivo de mapeo (JSON).

La validación corre completa antes de abrir cualquier conexión: un
mapeo que pasa por aquí cumple todas las invariantes que el motor
asume (nombres únicos, sin ciclos, rutas alias.campo bien formadas).
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Union

from pydantic import ValidationError

from arango_rdb_sync.shared.exceptions.sync import ConfigurationError

from .dependency_order import dependency_order
from .sync_config import CollectionMapping, JoinSpec, MergeMapping, SyncSpecification
from .types import MAIN_ALIAS

IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
ALIAS_FIELD_PATH = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z0-9_]+)+$")
FIELD_PATH = re.compile(r"^[A-Za-z0-9_\-]+(\.[A-Za-z0-9_\-]+)*$")


def load_specification(path: Union[str, Path]) -> SyncSpecification:
    """Lee, parsea y valida el archivo de mapeo."""
    mapping_path = Path(path)
    if not mapping_path.exists():
        raise ConfigurationError(
            f"No se encontró el archivo de mapeo: {mapping_path.resolve()}",
            error_code="MAPPING_NOT_FOUND",
            details={"path": str(mapping_path)},
        )
    try:
        data = json.loads(mapping_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"El archivo de mapeo no es JSON válido: {e}",
            error_code="INVALID_MAPPING",
            details={"path": str(mapping_path)},
        ) from e
    return parse_specification(data)


def parse_specification(data: Any) -> SyncSpecification:
    """Construye y valida el mapeo desde un dict ya parseado."""
    if not isinstance(data, dict):
        raise ConfigurationError("El mapeo debe ser un objeto JSON", error_code="INVALID_MAPPING")
    try:
        spec = SyncSpecification.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Mapeo inválido: {e}",
            error_code="INVALID_MAPPING",
            details={"errors": e.errors(include_url=False)},
        ) from e
    validate_specification(spec)
    return spec


def validate_specification(spec: SyncSpecification) -> None:
    """
    Valida las invariantes del mapeo.

    Raises:
        ConfigurationError: la primera invariante violada.
    """
    if not spec.arango.database or not spec.arango.database.strip():
        _fail("Falta el nombre de la base ArangoDB")
    if not spec.rdb.url or not spec.rdb.url.strip():
        _fail("Falta la URL de la base relacional")
    if not spec.collections and not spec.merges:
        _fail("Se requiere al menos un mapeo de colección o un merge")

    for mapping in spec.collections:
        _validate_collection_mapping(mapping)
    for mapping in spec.collections:
        for dependency in mapping.depends_on:
            if dependency.strip().lower() == mapping.table.strip().lower():
                _fail(f"La tabla {mapping.table} no puede depender de sí misma", "SELF_DEPENDENCY")
    # Duplicados, dependencias desconocidas y ciclos.
    dependency_order(
        spec.collections,
        name_of=lambda m: m.table,
        dependencies_of=lambda m: m.depends_on,
    )

    merge_names: set[str] = set()
    merge_tables: set[str] = set()
    for merge in spec.merges:
        _validate_merge(merge)
        if merge.name in merge_names:
            _fail(f"Nombre de merge duplicado: {merge.name}", "DUPLICATE_NAME")
        merge_names.add(merge.name)
        table_key = merge.target_table.strip().lower()
        if table_key in merge_tables:
            _fail(f"Tabla destino duplicada entre merges: {merge.target_table}", "DUPLICATE_NAME")
        merge_tables.add(table_key)


def _validate_collection_mapping(mapping: CollectionMapping) -> None:
    if not mapping.collection.strip():
        _fail("El nombre de colección del mapeo es obligatorio")
    if not mapping.table.strip():
        _fail(f"La tabla destino es obligatoria para la colección {mapping.collection}")
    if not mapping.key_field.strip() or not FIELD_PATH.match(mapping.key_field):
        _fail(f"keyField inválido para la tabla {mapping.table}: '{mapping.key_field}'", "MALFORMED_PATH")
    if not mapping.key_column.strip():
        _fail(f"keyColumn es obligatorio para la tabla {mapping.table}")
    for source, target in mapping.field_mappings.items():
        if not FIELD_PATH.match(source):
            _fail(f"Ruta de campo inválida '{source}' en la tabla {mapping.table}", "MALFORMED_PATH")
        if not target or not target.strip():
            _fail(f"Columna destino vacía para '{source}' en la tabla {mapping.table}")
    if any(not d or not d.strip() for d in mapping.depends_on):
        _fail(f"Las dependencias de la tabla {mapping.table} no pueden estar vacías")


def _validate_merge(merge: MergeMapping) -> None:
    if not IDENTIFIER.match(merge.name):
        _fail(f"Nombre de merge inválido: '{merge.name}'")
    if not merge.target_table.strip():
        _fail(f"La tabla destino es obligatoria para el merge {merge.name}")
    if not merge.main_collection.strip():
        _fail(f"La colección principal es obligatoria para el merge {merge.name}")
    if not merge.key_column.strip():
        _fail(f"keyColumn es obligatorio para el merge {merge.name}")
    if not ALIAS_FIELD_PATH.match(merge.key_field):
        _fail(
            f"El keyField del merge {merge.name} debe ser alias.campo: '{merge.key_field}'",
            "MALFORMED_PATH",
        )
    if not merge.field_mappings:
        _fail(f"El merge {merge.name} debe definir fieldMappings")
    for source, target in merge.field_mappings.items():
        if not ALIAS_FIELD_PATH.match(source):
            _fail(f"El merge {merge.name} tiene una ruta que no es alias.campo: '{source}'", "MALFORMED_PATH")
        if not target or not target.strip():
            _fail(f"El merge {merge.name} tiene una columna destino vacía para '{source}'")
    if merge.key_field not in merge.field_mappings:
        _fail(f"El merge {merge.name} debe mapear el keyField {merge.key_field} a una columna")

    aliases: set[str] = set()
    for join in merge.joins:
        _validate_join(merge.name, join, aliases)
        aliases.add(join.alias)


def _validate_join(merge_name: str, join: JoinSpec, aliases: set[str]) -> None:
    if not IDENTIFIER.match(join.alias):
        _fail(f"Alias inválido en el merge {merge_name}: '{join.alias}'")
    if join.alias.lower() == MAIN_ALIAS:
        _fail(f"El alias no puede ser '{MAIN_ALIAS}' en el merge {merge_name}", "RESERVED_ALIAS")
    if join.alias in aliases:
        _fail(f"Alias duplicado '{join.alias}' en el merge {merge_name}", "DUPLICATE_ALIAS")

    has_direct = any(v is not None for v in (join.collection, join.local_field, join.foreign_field))
    if join.is_edge_chain and has_direct:
        _fail(f"El join '{join.alias}' del merge {merge_name} define dos estrategias; use solo una")
    if join.is_edge_chain:
        for step in join.edges:
            if not step.collection or not step.collection.strip():
                _fail(f"Colección de aristas vacía en el join '{join.alias}' del merge {merge_name}")
        return

    if not join.collection or not join.collection.strip():
        _fail(f"El join '{join.alias}' del merge {merge_name} requiere collection o edges")
    if not join.local_field or not ALIAS_FIELD_PATH.match(join.local_field):
        _fail(
            f"localField debe ser alias.campo en el join '{join.alias}' del merge {merge_name}",
            "MALFORMED_PATH",
        )
    if not join.foreign_field or not FIELD_PATH.match(join.foreign_field):
        _fail(
            f"foreignField inválido en el join '{join.alias}' del merge {merge_name}",
            "MALFORMED_PATH",
        )


def _fail(message: str, error_code: str = "INVALID_CONFIGURATION") -> None:
    raise ConfigurationError(message, error_code=error_code)
