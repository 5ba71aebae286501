"""
Excepciones del pipeline ArangoDB -> base relacional.

Taxonomía:
- ConfigurationError: el mapeo es inválido (antes de conectar).
- StoreConnectionError: no se pudo abrir o mantener una conexión a un store.
- ResolutionError: un join o la clave de un documento no se pudo resolver.
- CoercionError: un valor no se puede convertir al tipo de la columna destino.
- PersistenceError: la base relacional rechazó una sentencia.

Todas, salvo ConfigurationError, abortan la transacción de la unidad en curso
y se propagan fuera de la corrida.
"""
from typing import Any, Optional

from arango_rdb_sync.shared.exceptions.base import AppException


class SyncError(AppException):
    """Excepción base para errores del sync."""

    def __init__(self, message: str, error_code: str = "SYNC_ERROR", details=None):
        super().__init__(message=message, error_code=error_code, details=details)


class ConfigurationError(SyncError):
    """Especificación de mapeo estructuralmente inválida."""

    def __init__(self, message: str, error_code: str = "INVALID_CONFIGURATION", details=None):
        super().__init__(message=message, error_code=error_code, details=details)


class CyclicDependencyError(ConfigurationError):
    """Excepción cuando las dependencias entre tablas forman un ciclo."""

    def __init__(self, pending: list[str]):
        super().__init__(
            message=f"Dependencias cíclicas entre tablas: {', '.join(pending)}",
            error_code="CYCLIC_DEPENDENCY",
            details={"tables": pending},
        )


class StoreConnectionError(SyncError):
    """Fallo al conectar (o mantener la conexión) con un store."""

    def __init__(self, store: str, message: str):
        super().__init__(
            message=message,
            error_code="CONNECTION_ERROR",
            details={"store": store},
        )


class ResolutionError(SyncError):
    """Fallo al resolver un join o la clave de un documento."""

    def __init__(self, message: str, error_code: str = "RESOLUTION_ERROR", details=None):
        super().__init__(message=message, error_code=error_code, details=details)


class CoercionError(SyncError):
    """Excepción cuando un valor no se puede convertir al tipo de la columna."""

    def __init__(self, value: Any, target_type: str, column: Optional[str] = None):
        where = f" (columna '{column}')" if column else ""
        super().__init__(
            message=f"No se pudo convertir el valor '{value}' a {target_type}{where}",
            error_code="COERCION_ERROR",
            details={"value": str(value), "target_type": target_type, "column": column},
        )


class PersistenceError(SyncError):
    """La base relacional rechazó una sentencia."""

    def __init__(self, table: str, message: str):
        super().__init__(
            message=message,
            error_code="PERSISTENCE_ERROR",
            details={"table": table},
        )
