"""
CLI: ArangoDB -> base relacional (one-way sync).

Uso recomendado:
  - Ejecutar como job (cron/systemd timer).

Variables de entorno (opcionales, ver arango_rdb_sync.core.config):
  - MAPPING_PATH (default: config/mapping.json)
  - TARGET_SCHEMA
  - ARANGO_PASSWORD / RDB_PASSWORD
  - LOG_LEVEL / LOG_FILE

Ejecución:
  python scripts/arango_to_rdb_sync.py sync
  python scripts/arango_to_rdb_sync.py sync config/mapping.json --schema repo_demo
  python scripts/arango_to_rdb_sync.py describe-arango
  python scripts/arango_to_rdb_sync.py describe-rdb
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv
from loguru import logger

# Cargar variables desde .env si existe (raíz del proyecto), sin pisar el entorno.
_PROJECT_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(_PROJECT_ROOT / ".env", override=False)

from arango_rdb_sync.core.config import Settings
from arango_rdb_sync.core.events import shutdown, startup
from arango_rdb_sync.infrastructure.external.arango_sync.arango_client import (
    ArangoClient,
    ArangoCredentials,
)
from arango_rdb_sync.infrastructure.external.arango_sync.coercion import to_canonical_json
from arango_rdb_sync.infrastructure.external.arango_sync.mapping_loader import load_specification
from arango_rdb_sync.infrastructure.external.arango_sync.rdb_repository import RelationalSyncRepository
from arango_rdb_sync.infrastructure.external.arango_sync.sync_config import SyncSpecification
from arango_rdb_sync.infrastructure.external.arango_sync.sync_service import build_from_spec
from arango_rdb_sync.shared.exceptions.base import AppException

COMMANDS = ("sync", "describe-arango", "describe-rdb")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sincroniza colecciones ArangoDB hacia tablas relacionales.")
    parser.add_argument("command", nargs="?", default="sync", choices=COMMANDS)
    parser.add_argument("config", nargs="?", default=None, help="Ruta del mapeo JSON (default: MAPPING_PATH).")
    parser.add_argument("--schema", default=None, help="Schema destino para tablas no calificadas.")
    parser.add_argument("--log-level", default=None, help="Override de LOG_LEVEL.")
    return parser


def run_sync(spec: SyncSpecification, settings: Settings, schema: Optional[str]) -> None:
    with build_from_spec(spec, settings) as service:
        result = service.run(schema=schema or settings.target_schema)
    logger.info(f"Sync OK: upserted_rows={result.upserted_rows}, skipped={result.skipped_documents}")


def describe_arango(spec: SyncSpecification, settings: Settings) -> None:
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
    )
    try:
        print(f"Colecciones en la base {arango.database}:")
        for name in sorted(client.list_collections()):
            print(f"- {name} (aprox. {client.count(name)} docs)")
            sample = client.sample_document(name)
            print(f"  sample: {to_canonical_json(dict(sample.properties)) if sample else '<vacía>'}")
    finally:
        client.close()


def describe_rdb(spec: SyncSpecification, settings: Settings, schema: Optional[str]) -> None:
    repository = RelationalSyncRepository(
        spec.rdb.url,
        user=spec.rdb.user,
        password=settings.RDB_PASSWORD if settings.RDB_PASSWORD is not None else spec.rdb.password,
        schema=schema or settings.target_schema,
    )
    try:
        with repository.connect() as conn:
            for table, columns in repository.describe_tables(conn).items():
                print(f"- {table}")
                for col in columns:
                    nullable = "NULLABLE" if col["nullable"] else "NOT NULL"
                    print(f"  {col['name']} {col['type']} {nullable}")
    finally:
        repository.dispose()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings()
    startup(settings, log_level=args.log_level)

    try:
        spec = load_specification(args.config or settings.MAPPING_PATH)
        if args.command == "sync":
            run_sync(spec, settings, args.schema)
        elif args.command == "describe-arango":
            describe_arango(spec, settings)
        else:
            describe_rdb(spec, settings, args.schema)
    except AppException as e:
        logger.error(f"Operación fallida [{e.error_code}]: {e.message}")
        shutdown(success=False)
        return 1

    shutdown(success=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
