"""
Cliente mínimo de la API HTTP de ArangoDB (sin SDKs externos).

Requisitos cubiertos:
- requests
- cursores AQL con continuación por lotes (full scan sin límite)
- rate-limit/backoff (429, 503, 5xx)
- liberación del cursor en el servidor si el consumidor abandona el stream
- creación de base de datos y colecciones faltantes
"""

from __future__ import annotations

import re
import time
from contextlib import closing
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional
from urllib.parse import quote

import requests
from loguru import logger

from arango_rdb_sync.shared.exceptions.sync import StoreConnectionError, SyncError

from .types import Document, EdgeDirection

# Tipos de colección de la API: 2 = documentos, 3 = aristas.
DOCUMENT_COLLECTION_TYPE = 2
EDGE_COLLECTION_TYPE = 3

_ATTRIBUTE = re.compile(r"^[A-Za-z0-9_\-]+$")


@dataclass(frozen=True)
class ArangoCredentials:
    host: str
    port: int
    user: str
    password: str
    database: str
    use_ssl: bool = False


class ArangoApiError(SyncError):
    """Error de integración con ArangoDB."""

    def __init__(self, message: str, status_code: Optional[int] = None, error_num: Optional[int] = None):
        super().__init__(
            message=message,
            error_code="ARANGO_API_ERROR",
            details={"status_code": status_code, "error_num": error_num},
        )
        self.status_code = status_code
        self.error_num = error_num


def build_attribute_access(root: str, field_path: str) -> str:
    """
    Acceso AQL seguro a un atributo anidado: doc.`a`.`b`.

    Solo se aceptan segmentos alfanuméricos (más _ y -) para no inyectar AQL.
    """
    parts = field_path.split(".")
    if not field_path or any(not _ATTRIBUTE.match(p) for p in parts):
        raise ArangoApiError(f"Ruta de campo inválida para AQL: '{field_path}'")
    return root + "".join(f".`{p}`" for p in parts)


class ArangoClient:
    """
    Cliente HTTP de ArangoDB. Implementa el protocolo DocumentStore.

    Importante:
    - Solo lectura sobre documentos: nunca modifica datos.
    - No hace cast de tipos: los valores llegan tal cual los devuelve el JSON.
    """

    def __init__(
        self,
        credentials: ArangoCredentials,
        *,
        session: Optional[requests.Session] = None,
        timeout_s: int = 30,
        max_retries: int = 5,
        min_backoff_s: float = 0.5,
        max_backoff_s: float = 20.0,
        batch_size: int = 1000,
    ) -> None:
        self._creds = credentials
        scheme = "https" if credentials.use_ssl else "http"
        self._base_url = f"{scheme}://{credentials.host}:{credentials.port}"
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s
        self._batch_size = batch_size
        self._owns_session = session is None
        self._session = session or requests.Session()
        self._session.auth = (credentials.user, credentials.password)

    @property
    def database(self) -> str:
        return self._creds.database

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    def ensure_database(self) -> None:
        """Crea la base de datos si no existe (vía _system)."""
        payload = self._request_json("GET", "/_api/database/user", database="_system")
        existing = payload.get("result") or []
        if self._creds.database in existing:
            return
        logger.info(f"Creando base ArangoDB '{self._creds.database}'")
        self._request_json(
            "POST", "/_api/database", database="_system", body={"name": self._creds.database}
        )

    def list_collections(self) -> list[str]:
        """Nombres de colecciones no-sistema de la base."""
        payload = self._request_json("GET", "/_api/collection", params={"excludeSystem": "true"})
        return [c["name"] for c in payload.get("result") or [] if not c.get("isSystem")]

    def ensure_collections(self, names: Iterable[str], edge_names: Iterable[str] = ()) -> list[str]:
        """
        Crea las colecciones faltantes. Retorna las que se crearon.

        Los nombres de colección en ArangoDB distinguen mayúsculas: la
        comparación de existencia es exacta.
        """
        existing = set(self.list_collections())
        created: list[str] = []
        wanted = [(n, DOCUMENT_COLLECTION_TYPE) for n in names]
        wanted += [(n, EDGE_COLLECTION_TYPE) for n in edge_names]
        for name, collection_type in wanted:
            if not name or name in existing:
                continue
            logger.info(f"Creando colección ArangoDB '{name}' (tipo {collection_type})")
            self._request_json("POST", "/_api/collection", body={"name": name, "type": collection_type})
            existing.add(name)
            created.append(name)
        return created

    # ------------------------------------------------------------------
    # Consultas
    # ------------------------------------------------------------------

    def query(self, aql: str, bind_vars: Optional[dict[str, Any]] = None, *, batch_size: Optional[int] = None) -> Iterator[Any]:
        """
        Ejecuta AQL y produce cada resultado.

        - Pide lotes de batch_size y sigue la continuación del cursor.
        - Si el consumidor cierra el generator antes de agotarlo, el cursor
          se borra en el servidor.
        """
        body = {
            "query": aql,
            "bindVars": bind_vars or {},
            "batchSize": batch_size or self._batch_size,
        }
        payload = self._request_json("POST", "/_api/cursor", body=body)
        cursor_id = payload.get("id")
        has_more = bool(payload.get("hasMore"))
        try:
            while True:
                for item in payload.get("result") or []:
                    yield item
                if not has_more:
                    break
                payload = self._request_json("PUT", f"/_api/cursor/{quote(str(cursor_id), safe='')}")
                has_more = bool(payload.get("hasMore"))
        finally:
            if has_more and cursor_id:
                self._delete_cursor(cursor_id)

    def first(self, aql: str, bind_vars: Optional[dict[str, Any]] = None) -> Any:
        """Primer resultado de la consulta o None."""
        with closing(self.query(aql, bind_vars, batch_size=1)) as results:
            return next(results, None)

    def iter_collection(self, collection: str) -> Iterator[Document]:
        with closing(self.query("FOR doc IN @@collection RETURN doc", {"@collection": collection})) as results:
            for payload in results:
                yield Document.from_payload(payload)

    def find_one(self, collection: str, field_path: str, value: Any) -> Optional[Document]:
        access = build_attribute_access("doc", field_path)
        aql = f"FOR doc IN @@collection FILTER {access} == @value LIMIT 1 RETURN doc"
        payload = self.first(aql, {"@collection": collection, "value": value})
        return Document.from_payload(payload) if payload is not None else None

    def next_handle(self, edge_collection: str, direction: EdgeDirection, handle: str) -> Optional[str]:
        aql = (
            f"FOR edge IN @@edges FILTER edge.{direction.source_field} == @handle "
            f"LIMIT 1 RETURN edge.{direction.target_field}"
        )
        return self.first(aql, {"@edges": edge_collection, "handle": handle})

    def get_document(self, handle: str) -> Optional[Document]:
        """Documento por handle (coleccion/clave). 404 -> None."""
        collection, _, key = handle.partition("/")
        if not collection or not key:
            return None
        path = f"/_api/document/{quote(collection, safe='')}/{quote(key, safe='')}"
        payload = self._request_json("GET", path, allow_not_found=True)
        return Document.from_payload(payload) if payload is not None else None

    def sample_document(self, collection: str) -> Optional[Document]:
        payload = self.first("FOR doc IN @@collection LIMIT 1 RETURN doc", {"@collection": collection})
        return Document.from_payload(payload) if payload is not None else None

    def count(self, collection: str) -> int:
        payload = self._request_json("GET", f"/_api/collection/{quote(collection, safe='')}/count")
        return int(payload.get("count") or 0)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _delete_cursor(self, cursor_id: str) -> None:
        try:
            self._request_json("DELETE", f"/_api/cursor/{quote(str(cursor_id), safe='')}", allow_not_found=True)
        except SyncError as e:
            # El cursor expira solo en el servidor; no ocultamos el error original.
            logger.warning(f"No se pudo liberar el cursor {cursor_id}: {e.message}")

    def _request_json(
        self,
        method: str,
        path: str,
        *,
        database: Optional[str] = None,
        params: Optional[dict[str, Any]] = None,
        body: Optional[dict[str, Any]] = None,
        allow_not_found: bool = False,
    ) -> Optional[dict[str, Any]]:
        """
        Request HTTP con backoff para 429/5xx.

        Estrategia:
        - 429/503: respeta Retry-After si existe, si no exponencial con jitter simple.
        - 5xx: exponencial con jitter.
        - 404 con allow_not_found: retorna None.
        - 4xx restantes: error inmediato (config/auth/AQL mal).
        """
        db_name = database or self._creds.database
        url = f"{self._base_url}/_db/{quote(db_name, safe='')}{path}"

        for attempt in range(self._max_retries + 1):
            try:
                resp = self._session.request(
                    method=method,
                    url=url,
                    params=params,
                    json=body,
                    timeout=self._timeout_s,
                )
            except requests.RequestException as e:
                raise StoreConnectionError(
                    "arangodb", f"No se pudo conectar con ArangoDB en {self._base_url}: {e}"
                ) from e

            if 200 <= resp.status_code < 300:
                return resp.json() if resp.content else {}

            if resp.status_code == 404 and allow_not_found:
                return None

            # Errores recuperables
            if resp.status_code == 429 or 500 <= resp.status_code < 600:
                if attempt >= self._max_retries:
                    raise ArangoApiError(
                        f"ArangoDB error {resp.status_code} tras {attempt} reintentos: {resp.text}",
                        status_code=resp.status_code,
                    )

                retry_after = resp.headers.get("Retry-After")
                if retry_after:
                    try:
                        sleep_s = float(retry_after)
                    except ValueError:
                        sleep_s = self._min_backoff_s
                else:
                    base = min(self._max_backoff_s, self._min_backoff_s * (2**attempt))
                    sleep_s = base + (0.15 * base)

                time.sleep(sleep_s)
                continue

            if resp.status_code in (401, 403):
                raise StoreConnectionError(
                    "arangodb", f"ArangoDB rechazó las credenciales ({resp.status_code}): {resp.text}"
                )

            # Errores no recuperables
            error_num = None
            try:
                error_num = resp.json().get("errorNum")
            except ValueError:
                pass
            raise ArangoApiError(
                f"ArangoDB {method} {path} falló {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
                error_num=error_num,
            )
        return None
