"""
Resolución de rutas de campo ("a.b.c") y rutas con alias ("alias.a.b").

Funciones totales: una ruta ausente se resuelve a None, nunca lanza error.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from .types import ID_FIELD, KEY_FIELD, REV_FIELD, AliasContext, Document


def resolve_document_field(document: Document, path: Optional[str]) -> Any:
    """
    Valor del campo en path dentro del documento.

    Los nombres reservados (_key, _id, _rev) retornan metadatos; el resto se
    recorre segmento a segmento sobre los mapas anidados.
    """
    if not path or not path.strip():
        return None
    if path == KEY_FIELD:
        return document.key
    if path == ID_FIELD:
        return document.id
    if path == REV_FIELD:
        return document.rev
    return _resolve_from_map(document.properties, path)


def _resolve_from_map(data: Mapping[str, Any], path: str) -> Any:
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
        if current is None:
            return None
    return current


def resolve_alias_path(context: AliasContext, path: Optional[str]) -> Any:
    """
    Resuelve "alias.ruta" contra el contexto de alias.

    Sin ruta ("alias") retorna el Document completo.
    """
    if not path or not path.strip():
        return None
    alias, separator, remainder = path.partition(".")
    document = context.get(alias)
    if document is None:
        return None
    if not separator:
        return document
    return resolve_document_field(document, remainder)
