from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    mongo_uri: str = Field(..., description="MongoDB connection string")
    mongo_db: str = "portfolio_db"
    mongo_collection: str = "portfolio"
    mongo_server_selection_timeout_ms: int = Field(default=5000, description="Driver server selection timeout")

    http_host: str = "0.0.0.0"
    http_port: int = 3002
    base_path: str = "/ms-portfolio-bs/v1"

    seed_file: str = Field(default="client_portfolio.json", description="Path of the JSON seed file")

    log_level: str = "INFO"
    enable_database_tracing: bool = Field(default=False, description="Wrap store calls in OpenTelemetry spans")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("mongo_uri")
    @classmethod
    def _require_uri(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("MONGO_URI is not set")
        return value

    @field_validator("base_path")
    @classmethod
    def _normalize_base_path(cls, value: str) -> str:
        value = value.strip()
        if not value:
            return ""
        return "/" + value.strip("/")


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process. Raises ValidationError when MONGO_URI is missing."""
    return Settings()
