"""
Servicio de sincronización ArangoDB -> base relacional.

Diseño (resumen):
- Mapeos simples colección -> tabla, en orden de dependencias
- Luego merges (colección principal + joins), en el orden declarado
- Una transacción por unidad: full scan de la colección origen, UPSERT por
  documento, commit al final
- Cualquier error hace rollback de la unidad y aborta el resto de la corrida

Estrategia de idempotencia:
- UPSERT por columna clave (UPDATE y si no afectó filas, INSERT): re-ejecutar
  sobre los mismos datos no agrega filas.
"""

from __future__ import annotations

from contextlib import closing
from dataclasses import dataclass, field
from typing import Callable, Optional

from loguru import logger
from sqlalchemy.engine import Connection

from arango_rdb_sync.core.config import Settings
from arango_rdb_sync.shared.exceptions.sync import ResolutionError

from .arango_client import ArangoClient, ArangoCredentials
from .dependency_order import dependency_order
from .join_resolver import JoinResolver
from .path_resolver import resolve_alias_path, resolve_document_field
from .rdb_repository import RelationalSyncRepository
from .sync_config import CollectionMapping, MergeMapping, SyncSpecification
from .types import Document, DocumentStore, TargetRow, UpsertOutcome

RowBuilder = Callable[[Document], Optional[TargetRow]]


@dataclass
class UnitResult:
    """Contadores de una unidad de sync (mapeo o merge)."""

    name: str
    table: str
    scanned: int = 0
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0

    def record(self, outcome: UpsertOutcome) -> None:
        if outcome is UpsertOutcome.INSERTED:
            self.inserted += 1
        elif outcome is UpsertOutcome.UPDATED:
            self.updated += 1
        else:
            self.unchanged += 1


@dataclass
class SyncResult:
    units: list[UnitResult] = field(default_factory=list)

    @property
    def upserted_rows(self) -> int:
        return sum(u.inserted + u.updated for u in self.units)

    @property
    def skipped_documents(self) -> int:
        return sum(u.skipped for u in self.units)


def collection_row_builder(mapping: CollectionMapping) -> RowBuilder:
    """Documento -> fila para un mapeo simple colección -> tabla."""

    def build(document: Document) -> TargetRow:
        key_value = resolve_document_field(document, mapping.key_field)
        if key_value is None:
            raise ResolutionError(
                f"Tabla {mapping.table}: el documento {document.id} no tiene el campo clave "
                f"'{mapping.key_field}'",
                error_code="MISSING_KEY",
                details={"table": mapping.table, "document": document.id},
            )
        columns = {
            column: resolve_document_field(document, path)
            for path, column in mapping.field_mappings.items()
        }
        return TargetRow(
            table=mapping.table,
            key_column=mapping.key_column,
            key_value=key_value,
            columns=columns,
        )

    return build


def merge_row_builder(store: DocumentStore, merge: MergeMapping) -> RowBuilder:
    """Documento principal -> fila del merge, o None si un join requerido falla."""
    resolver = JoinResolver(store, merge)

    def build(document: Document) -> Optional[TargetRow]:
        context = resolver.resolve(document)
        if context is None:
            return None
        key_value = resolve_alias_path(context, merge.key_field)
        if key_value is None:
            raise ResolutionError(
                f"Merge '{merge.name}' sin valor para el campo clave {merge.key_field} "
                f"en el documento principal {document.key}",
                error_code="MISSING_KEY",
                details={"merge": merge.name, "document": document.id},
            )
        columns = {
            column: resolve_alias_path(context, path)
            for path, column in merge.field_mappings.items()
        }
        return TargetRow(
            table=merge.target_table,
            key_column=merge.key_column,
            key_value=key_value,
            columns=columns,
        )

    return build


class ArangoToRelationalSync:
    """
    Orquestador de una corrida completa.

    Adquiere la conexión relacional al construirse y la libera en close()
    (o al salir del bloque with), también si la construcción falla a mitad.

    Uso:
        with ArangoToRelationalSync(spec, store=client, repository=repo) as sync:
            result = sync.run(schema="repo_demo")
    """

    def __init__(
        self,
        spec: SyncSpecification,
        *,
        store: DocumentStore,
        repository: RelationalSyncRepository,
        close_store: Optional[Callable[[], None]] = None,
    ) -> None:
        self._spec = spec
        self._store = store
        self._repository = repository
        self._close_store = close_store
        self._conn: Optional[Connection] = None
        try:
            created = self._store.ensure_collections(spec.source_collections(), spec.edge_collections())
            if created:
                logger.info(f"Colecciones creadas en ArangoDB: {', '.join(created)}")
            self._conn = self._repository.connect()
        except BaseException:
            self.close()
            raise

    def __enter__(self) -> "ArangoToRelationalSync":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Libera conexiones. Idempotente."""
        try:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
        finally:
            try:
                self._repository.dispose()
            finally:
                if self._close_store is not None:
                    close_store, self._close_store = self._close_store, None
                    close_store()

    def run(self, schema: Optional[str] = None) -> SyncResult:
        """
        Ejecuta todas las unidades. Si una falla, las siguientes no se intentan.

        Args:
            schema: schema del repositorio destino para tablas no calificadas.
        """
        if self._conn is None:
            raise RuntimeError("El servicio de sync ya fue cerrado")
        if schema is not None:
            self._repository.use_schema(schema)

        ordered = dependency_order(
            self._spec.collections,
            name_of=lambda m: m.table,
            dependencies_of=lambda m: m.depends_on,
        )
        result = SyncResult()
        for mapping in ordered:
            result.units.append(
                self._sync_unit(
                    name=mapping.collection,
                    table=mapping.table,
                    collection=mapping.collection,
                    build_row=collection_row_builder(mapping),
                )
            )
        for merge in self._spec.merges:
            result.units.append(
                self._sync_unit(
                    name=merge.name,
                    table=merge.target_table,
                    collection=merge.main_collection,
                    build_row=merge_row_builder(self._store, merge),
                )
            )

        logger.info(
            f"Sync completado. unidades={len(result.units)}, upserts={result.upserted_rows}, "
            f"omitidos={result.skipped_documents}"
        )
        return result

    def _sync_unit(self, *, name: str, table: str, collection: str, build_row: RowBuilder) -> UnitResult:
        conn = self._conn
        logger.info(f"Sync '{name}': ArangoDB '{collection}' -> tabla {table}")
        unit = UnitResult(name=name, table=table)

        trans = conn.begin()
        try:
            with closing(self._store.iter_collection(collection)) as documents:
                for document in documents:
                    unit.scanned += 1
                    row = build_row(document)
                    if row is None:
                        unit.skipped += 1
                        continue
                    unit.record(self._repository.upsert(conn, row))
            trans.commit()
        except Exception:
            trans.rollback()
            logger.exception(f"Sync '{name}' falló; rollback de la tabla {table}")
            raise

        logger.info(
            f"Sync '{name}' OK: leidos={unit.scanned}, insertados={unit.inserted}, "
            f"actualizados={unit.updated}, sin_cambios={unit.unchanged}, omitidos={unit.skipped}"
        )
        return unit


def build_from_spec(spec: SyncSpecification, settings: Settings) -> ArangoToRelationalSync:
    """
    Constructor "oficial" del pipeline a partir del mapeo cargado.

    Las contraseñas de ARANGO_PASSWORD / RDB_PASSWORD (si existen) tienen
    prioridad sobre las del archivo de mapeo.
    """
    arango = spec.arango
    client = ArangoClient(
        ArangoCredentials(
            host=arango.host,
            port=arango.port,
            user=arango.user,
            password=settings.ARANGO_PASSWORD if settings.ARANGO_PASSWORD is not None else arango.password,
            database=arango.database,
            use_ssl=arango.use_ssl,
        ),
        timeout_s=settings.ARANGO_TIMEOUT_S,
        max_retries=settings.ARANGO_MAX_RETRIES,
        batch_size=settings.ARANGO_BATCH_SIZE,
    )
    try:
        client.ensure_database()
        repository = RelationalSyncRepository(
            spec.rdb.url,
            user=spec.rdb.user,
            password=settings.RDB_PASSWORD if settings.RDB_PASSWORD is not None else spec.rdb.password,
            schema=settings.target_schema,
            echo=settings.DB_ECHO,
        )
    except BaseException:
        client.close()
        raise
    return ArangoToRelationalSync(spec, store=client, repository=repository, close_store=client.close)
