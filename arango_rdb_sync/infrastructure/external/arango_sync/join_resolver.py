"""
Resolución de joins de un merge para un documento principal.

Por cada documento principal se construye un contexto de alias que arranca
con {"main": documento} y se completa join a join, en el orden declarado.
Un join posterior puede referenciar campos de uno anterior ("team.leadId").

Resultado por join:
- encontrado: se agrega al contexto bajo su alias
- no encontrado y opcional: el alias se quita del contexto y se sigue
- no encontrado y requerido: el documento se omite (sin error)
"""

from __future__ import annotations

from typing import Optional

from loguru import logger

from arango_rdb_sync.shared.exceptions.sync import ResolutionError

from .path_resolver import resolve_alias_path
from .sync_config import JoinSpec, MergeMapping
from .types import MAIN_ALIAS, AliasContext, Document, DocumentStore


class JoinResolver:
    """
    Ejecuta los joins de un merge contra el document store.

    Uso:
        resolver = JoinResolver(store, merge)
        context = resolver.resolve(main_document)
        if context is None:
            ...  # documento omitido por un join requerido
    """

    def __init__(self, store: DocumentStore, merge: MergeMapping) -> None:
        self._store = store
        self._merge = merge

    def resolve(self, main_document: Document) -> Optional[AliasContext]:
        """
        Contexto de alias completo, o None si un join requerido no se resolvió.

        Raises:
            ResolutionError: el documento final de una cadena de aristas no
                pertenece a la colección declarada.
        """
        context: AliasContext = {MAIN_ALIAS: main_document}
        for join in self._merge.joins:
            joined = self._resolve_join(join, context)
            if joined is None:
                if join.required:
                    logger.debug(
                        f"Merge '{self._merge.name}': documento {main_document.id} omitido, "
                        f"join requerido '{join.alias}' sin resultado"
                    )
                    return None
                context.pop(join.alias, None)
                continue
            context[join.alias] = joined
        return context

    def _resolve_join(self, join: JoinSpec, context: AliasContext) -> Optional[Document]:
        if join.is_edge_chain:
            return self._resolve_edge_chain(join, context[MAIN_ALIAS])
        return self._resolve_direct(join, context)

    def _resolve_direct(self, join: JoinSpec, context: AliasContext) -> Optional[Document]:
        local_value = resolve_alias_path(context, join.local_field)
        if local_value is None:
            return None
        if isinstance(local_value, Document):
            # Alias completo como valor local: se compara por handle global.
            local_value = local_value.id
        return self._store.find_one(join.collection, join.foreign_field, local_value)

    def _resolve_edge_chain(self, join: JoinSpec, main_document: Document) -> Optional[Document]:
        handle = main_document.id
        if not handle:
            return None
        for step in join.edges:
            handle = self._store.next_handle(step.collection, step.direction, handle)
            if handle is None:
                return None

        document = self._store.get_document(handle)
        if document is None:
            return None
        collection = document.collection or handle.partition("/")[0]
        if join.target_collection and collection != join.target_collection:
            raise ResolutionError(
                f"Merge '{self._merge.name}', join '{join.alias}': el documento {handle} "
                f"no pertenece a la colección '{join.target_collection}'",
                error_code="COLLECTION_MISMATCH",
                details={
                    "merge": self._merge.name,
                    "alias": join.alias,
                    "handle": handle,
                    "expected_collection": join.target_collection,
                },
            )
        return document
