import os
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .vault import fetch_vault_secret

load_dotenv(".env")

INSECURE_MARKERS = ("postgres:postgres@", "changeme", "change-me", "replace-me", "root@")


def _default_db_url() -> str:
    env_url = os.getenv("APP_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_url:
        return env_url

    user = os.getenv("POSTGRES_USER", "postgres")
    password = os.getenv("POSTGRES_PASSWORD", "postgres")
    db_name = os.getenv("POSTGRES_DB", "books")
    host = os.getenv("POSTGRES_HOST", "localhost")
    port = os.getenv("POSTGRES_PORT", "5432")
    return f"postgresql+psycopg://{user}:{password}@{host}:{port}/{db_name}"


class Settings(BaseSettings):
    app_name: str = "Book Catalog"
    version: str = "1.0.0"
    database_url: str = Field(default_factory=_default_db_url)
    storage_backend: Literal["sql", "memory"] = "sql"
    api_prefix: str = ""
    cors_origins: str = ""
    log_level: str = "INFO"
    otel_enabled: bool = False
    strict_security: bool = False
    vault_addr: str | None = None
    vault_token: str | None = None
    vault_kv_mount: str = "kv"
    vault_secret_path: str = "book-catalog/config"

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def allowed_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


def get_settings() -> Settings:
    settings = Settings()
    if settings.vault_addr and settings.vault_token:
        secret = fetch_vault_secret(
            addr=settings.vault_addr,
            token=settings.vault_token,
            mount=settings.vault_kv_mount,
            path=settings.vault_secret_path,
        )
        if secret.get("database_url"):
            settings.database_url = secret["database_url"]
    if settings.strict_security:
        if settings.storage_backend == "sql" and any(marker in settings.database_url for marker in INSECURE_MARKERS):
            raise RuntimeError("Insecure database credentials detected")
        if settings.vault_token and settings.vault_token.lower() == "root":
            raise RuntimeError("Insecure Vault token detected")
    return settings
