"""
Inicio y cierre del job: logging y validacion de configuracion.
"""
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from arango_rdb_sync.core.config import Settings


def startup(settings: Settings, log_level: Optional[str] = None) -> None:
    """
    Configura loguru para el job.

    - stderr con el nivel configurado (o el override de CLI)
    - archivo rotativo en LOG_FILE
    """
    level = (log_level or settings.LOG_LEVEL).upper()

    logger.remove()
    logger.add(sys.stderr, level=level)

    if settings.LOG_FILE:
        Path(settings.LOG_FILE).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            settings.LOG_FILE,
            rotation="50 MB",
            retention="10 days",
            level=level,
        )

    logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Entorno: {settings.ENVIRONMENT}")
    _validate_config(settings)


def _validate_config(settings: Settings) -> None:
    """Advierte sobre configuracion incompleta (no bloquea)."""
    warnings = []

    if not Path(settings.MAPPING_PATH).exists():
        warnings.append(f"MAPPING_PATH no existe: {settings.MAPPING_PATH}")
    if settings.is_development and not settings.target_schema:
        warnings.append("TARGET_SCHEMA vacio - se escribira en el schema por defecto")

    for warning in warnings:
        logger.warning(f"CONFIG: {warning}")


def shutdown(success: bool) -> None:
    """Registra el cierre del job."""
    if success:
        logger.success("Job finalizado correctamente")
    else:
        logger.error("Job finalizado con errores")
