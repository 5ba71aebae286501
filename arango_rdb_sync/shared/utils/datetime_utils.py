"""
Utilidades para manejo de fechas y horas.

Los parsers son estrictos: cada uno acepta exactamente una forma ISO 8601
extendida y retorna None si el texto no la cumple, para que el caller pueda
probar varias formas en orden. fromisoformat() acepta formas básicas
(20230501), semanas ISO (2023-W18-1) y horas truncadas (T10); por eso el
texto se valida primero contra la forma extendida.
"""
import re
from datetime import date, datetime, time, timezone
from typing import Optional

_DATE = r"\d{4}-\d{2}-\d{2}"
_TIME = r"\d{2}:\d{2}(?::\d{2}(?:\.\d{1,6})?)?"

ISO_DATE = re.compile(rf"^{_DATE}$")
ISO_TIME = re.compile(rf"^{_TIME}$")
ISO_LOCAL_DATETIME = re.compile(rf"^{_DATE}[Tt]{_TIME}$")
ISO_INSTANT = re.compile(rf"^{_DATE}[Tt]{_TIME}(?:[Zz]|[+-]\d{{2}}:\d{{2}})$")


class DateTimeUtils:
    """Clase de utilidades para operaciones con fechas y horas."""

    @staticmethod
    def ensure_utc(dt: datetime) -> datetime:
        """
        Normaliza un datetime aware a UTC.

        Los datetime naive se consideran hora local del documento y se
        retornan sin cambios.
        """
        if dt.tzinfo is None:
            return dt
        return dt.astimezone(timezone.utc)

    @staticmethod
    def parse_local_datetime(text: str) -> Optional[datetime]:
        """
        Parsea fecha-hora local ISO (2023-05-01T10:15 o 2023-05-01T10:15:30), sin zona horaria.

        Args:
            text: Texto a parsear

        Returns:
            Optional[datetime]: datetime naive o None si no aplica
        """
        if not ISO_LOCAL_DATETIME.match(text):
            return None
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None

    @staticmethod
    def parse_instant(text: str) -> Optional[datetime]:
        """
        Parsea un instante ISO con zona (2023-05-01T10:15:30Z o con offset).

        Returns:
            Optional[datetime]: datetime aware en UTC o None si no aplica
        """
        if not ISO_INSTANT.match(text):
            return None
        candidate = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
        try:
            parsed = datetime.fromisoformat(candidate)
        except ValueError:
            return None
        return parsed.astimezone(timezone.utc)

    @staticmethod
    def parse_date(text: str) -> Optional[date]:
        """Parsea una fecha calendario ISO (2023-05-01)."""
        if not ISO_DATE.match(text):
            return None
        try:
            return date.fromisoformat(text)
        except ValueError:
            return None

    @staticmethod
    def parse_time(text: str) -> Optional[time]:
        """Parsea una hora local ISO (10:15 o 10:15:30), sin zona horaria."""
        if not ISO_TIME.match(text):
            return None
        try:
            return time.fromisoformat(text)
        except ValueError:
            return None
