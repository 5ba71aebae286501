"""
Normalización y coerción de valores documento -> columna relacional.

Dos etapas:
1. normalize(): lleva cualquier valor del documento a un valor intermedio
   canónico (texto, número, booleano, fecha/hora tipada o JSON como texto).
2. coerce_to_column_type(): convierte ese valor intermedio a la
   representación exacta que exige el tipo declarado de la columna destino.

Solo las columnas DATE, TIMESTAMP y TIME requieren conversión; el resto de
tipos recibe el valor normalizado tal cual.
"""

from __future__ import annotations

import json
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional

from sqlalchemy.types import Date, DateTime, Time, TypeEngine

from arango_rdb_sync.shared.exceptions.sync import CoercionError
from arango_rdb_sync.shared.utils.datetime_utils import DateTimeUtils

from .types import Document


class ColumnKind(str, Enum):
    """Familia de tipo de la columna destino, relevante para la coerción."""

    DATE = "DATE"
    TIMESTAMP = "TIMESTAMP"
    TIME = "TIME"
    OTHER = "OTHER"


def column_kind_for(sql_type: Optional[TypeEngine]) -> ColumnKind:
    """Clasifica un tipo SQLAlchemy reflejado."""
    if sql_type is None:
        return ColumnKind.OTHER
    # TIMESTAMP y DATETIME heredan de DateTime.
    if isinstance(sql_type, DateTime):
        return ColumnKind.TIMESTAMP
    if isinstance(sql_type, Date):
        return ColumnKind.DATE
    if isinstance(sql_type, Time):
        return ColumnKind.TIME
    return ColumnKind.OTHER


def to_canonical_json(value: Any) -> str:
    """JSON determinista: claves ordenadas, separadores compactos, UTF-8 legible."""
    return json.dumps(
        value,
        ensure_ascii=False,
        sort_keys=True,
        separators=(",", ":"),
        default=_json_default,
    )


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    if isinstance(value, Document):
        return value.as_dict()
    return str(value)


def normalize(value: Any) -> Any:
    """
    Valor intermedio canónico para un valor crudo del documento.

    - None, texto, números y booleanos pasan sin cambios.
    - datetime aware se normaliza a UTC; date y time se conservan.
    - mapas y secuencias se serializan a JSON canónico.
    - un Document completo (alias sin ruta) se serializa a JSON.
    - cualquier otra cosa se convierte a texto.
    """
    if value is None:
        return None
    if isinstance(value, (str, bool, int, float, Decimal)):
        return value
    if isinstance(value, datetime):
        return DateTimeUtils.ensure_utc(value)
    if isinstance(value, (date, time)):
        return value
    if isinstance(value, Document):
        return to_canonical_json(value.as_dict())
    if isinstance(value, (Mapping, list, tuple, set, frozenset)):
        return to_canonical_json(value)
    return str(value)


def coerce_to_column_type(value: Any, kind: ColumnKind, *, column: Optional[str] = None) -> Any:
    """
    Convierte un valor normalizado al tipo de la columna.

    Raises:
        CoercionError: el valor no se puede representar en el tipo destino.
    """
    if value is None:
        return None
    if kind is ColumnKind.DATE:
        return _coerce_to_date(value, column)
    if kind is ColumnKind.TIMESTAMP:
        return _coerce_to_timestamp(value, column)
    if kind is ColumnKind.TIME:
        return _coerce_to_time(value, column)
    return value


def _coerce_to_date(value: Any, column: Optional[str]) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        parsed = DateTimeUtils.parse_date(text)
        if parsed is None:
            raise CoercionError(text, "DATE", column)
        return parsed
    raise CoercionError(value, "DATE", column)


def _coerce_to_timestamp(value: Any, column: Optional[str]) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        parsed = DateTimeUtils.parse_local_datetime(text)
        if parsed is not None:
            return parsed
        parsed = DateTimeUtils.parse_instant(text)
        if parsed is not None:
            return parsed
        parsed_date = DateTimeUtils.parse_date(text)
        if parsed_date is not None:
            return datetime.combine(parsed_date, time.min)
        raise CoercionError(text, "TIMESTAMP", column)
    raise CoercionError(value, "TIMESTAMP", column)


def _coerce_to_time(value: Any, column: Optional[str]) -> Optional[time]:
    if isinstance(value, datetime):
        return value.time()
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        parsed = DateTimeUtils.parse_time(text)
        if parsed is None:
            raise CoercionError(text, "TIME", column)
        return parsed
    raise CoercionError(value, "TIME", column)
