"""
Configuracion central del job de sync.
Gestiona variables de entorno y valores por defecto.

El mapeo (colecciones, tablas, joins) vive en un archivo JSON aparte
(MAPPING_PATH); aqui solo van ajustes de ejecucion y overrides de credenciales.
"""
from typing import Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Clase de configuracion del sync.
    Lee variables de entorno y proporciona valores por defecto.

    Overrides de credenciales:
    - ARANGO_PASSWORD / RDB_PASSWORD reemplazan las del archivo de mapeo,
      para no versionar secretos junto al mapeo.
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="ArangoDB -> RDB Sync")
    APP_VERSION: str = Field(default="1.0.0")
    ENVIRONMENT: str = Field(default="production")

    # Mapeo y destino
    MAPPING_PATH: str = Field(default="config/mapping.json")
    # Schema del repositorio destino (tablas no calificadas se escriben ahi)
    TARGET_SCHEMA: str = Field(default="")

    # Credenciales (override del archivo de mapeo)
    ARANGO_PASSWORD: Optional[str] = Field(default=None)
    RDB_PASSWORD: Optional[str] = Field(default=None)

    # Cliente ArangoDB
    ARANGO_TIMEOUT_S: int = Field(default=30)
    ARANGO_MAX_RETRIES: int = Field(default=5)
    ARANGO_BATCH_SIZE: int = Field(default=1000)

    # Base relacional
    DB_ECHO: bool = Field(default=False)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/sync.log")

    @computed_field
    @property
    def target_schema(self) -> Optional[str]:
        """Schema destino efectivo (None si no se configuro)."""
        return self.TARGET_SCHEMA.strip() or None

    @computed_field
    @property
    def is_development(self) -> bool:
        """Indica si el entorno es de desarrollo."""
        return self.ENVIRONMENT.lower() == "development"

    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env


# Instancia global de configuracion
settings = Settings()
