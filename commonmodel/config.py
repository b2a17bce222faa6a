import json
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from commonmodel.errors.application_errors import ConnectionGroupNotFound


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(".env", "commonmodel/.env"), env_ignore_empty=True, extra="ignore"
    )

    # Connection group name -> SQLAlchemy URL
    DATABASE_GROUPS: dict[str, str] = {"default": "sqlite:///./local.db"}
    DEFAULT_GROUP: str = "default"

    SQLALCHEMY_ECHO: bool = False
    SQLALCHEMY_POOL_SIZE: int = 5
    SQLALCHEMY_MAX_OVERFLOW: int = 10
    SQLALCHEMY_POOL_TIMEOUT: int = 30

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "./"
    LOG_FILE: str = "commonmodel.log"
    OTEL_SERVICE_NAME: str = "commonmodel"

    @field_validator("DATABASE_GROUPS", mode="before")
    @classmethod
    def _parse_groups(cls, v: Any) -> Any:
        if isinstance(v, str):
            return json.loads(v)
        return v

    def database_url(self, group: str | None = None) -> str:
        name = group or self.DEFAULT_GROUP
        try:
            return self.DATABASE_GROUPS[name]
        except KeyError:
            raise ConnectionGroupNotFound(name) from None


settings = Settings()
