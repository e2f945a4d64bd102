from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_prefix="PUBDASH_",
    )

    # =========================
    # Environment
    # =========================
    environment: Literal["development", "test", "staging", "production"] = "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    # =========================
    # API
    # =========================
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: Annotated[list[str], NoDecode] = Field(default_factory=list)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    request_timeout_seconds: int = 60

    # =========================
    # Database
    # =========================
    database_url: str = "sqlite:///./pubdash.db"

    # =========================
    # Query execution backend
    # =========================
    query_service_base_url: str = "http://localhost:8010"
    query_service_timeout_seconds: int = 30
    query_service_secret: str = "change-me-query-service-secret"
    query_service_token_ttl_seconds: int = 120
    log_public_queries: bool = True
    log_public_query_payloads: bool = False

    # ============================================================
    # Validators
    # ============================================================

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value: str | list[str] | None) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            raw_items = [item.strip() for item in value.split(",")]
            return [item for item in raw_items if item]
        return value

    @field_validator("database_url", mode="before")
    @classmethod
    def normalize_postgres_url(cls, value: str | None) -> str | None:
        if value and value.startswith(("postgres://", "postgresql://")):
            return value.replace("postgres://", "postgresql+psycopg://", 1).replace(
                "postgresql://", "postgresql+psycopg://", 1
            )
        return value

    @field_validator("query_service_secret")
    @classmethod
    def validate_query_service_secret(cls, value: str, info: ValidationInfo) -> str:
        if not value:
            raise ValueError("QUERY_SERVICE_SECRET must be configured")

        env = info.data.get("environment")
        if env == "production" and len(value) < 32:
            raise ValueError("QUERY_SERVICE_SECRET must be at least 32 characters in production")
        return value

    @model_validator(mode="after")
    def validate_production_rules(self) -> "Settings":
        if self.is_production:
            if not self.cors_origins:
                raise ValueError("CORS_ORIGINS must be configured in production")

            if "*" in self.cors_origins:
                raise ValueError("Wildcard CORS is not allowed in production")

            if self.log_level == "DEBUG":
                raise ValueError("DEBUG logging is not allowed in production")

        return self


@lru_cache()
def get_settings() -> Settings:
    return Settings()
