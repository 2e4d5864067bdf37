from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_SESSION_SECRET = "change_this_in_production"


def _to_async_driver(url: str) -> str:
    """
    Ensure the SQLAlchemy URL uses an async driver.
    - postgres:// / postgresql:// / postgresql+psycopg:// -> postgresql+asyncpg://
    - sqlite:///file.db -> sqlite+aiosqlite:///file.db
    """
    for prefix in ("postgres://", "postgresql://", "postgresql+psycopg://"):
        if url.startswith(prefix):
            return "postgresql+asyncpg://" + url[len(prefix):]
    if url.startswith("sqlite://"):
        return "sqlite+aiosqlite://" + url[len("sqlite://"):]
    return url


class Settings(BaseSettings):
    # --- storage ---
    database_url: str = Field(
        default="sqlite+aiosqlite:///./hackerChess.db", alias="DATABASE_URL"
    )
    db_pool_size: int = Field(default=8, alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=12, alias="DB_MAX_OVERFLOW")
    db_pool_timeout: float = Field(default=25, alias="DB_POOL_TIMEOUT")

    # --- sessions ---
    session_secret: SecretStr = Field(
        default=SecretStr(DEV_SESSION_SECRET), alias="SESSION_SECRET"
    )
    session_backend: Literal["database", "memory"] = Field(
        default="database", alias="SESSION_BACKEND"
    )
    session_cookie_name: str = Field(default="hacker_sid", alias="SESSION_COOKIE_NAME")
    session_ttl_hours: int = Field(default=24, ge=1, alias="SESSION_TTL_HOURS")
    session_prune_interval: int = Field(
        default=15 * 60, ge=0, alias="SESSION_PRUNE_INTERVAL"
    )
    cookie_secure: bool = Field(default=False, alias="COOKIE_SECURE")
    algorithm: str = "HS256"

    # --- passwords ---
    password_work_factor: int = Field(default=3, ge=1, alias="PASSWORD_WORK_FACTOR")

    # --- http ---
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")
    max_body_bytes: int = Field(default=2 * 1024 * 1024, alias="MAX_BODY_BYTES")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def normalise_database_url(cls, value: str) -> str:
        value = str(value).strip().strip('"').strip("'")
        return _to_async_driver(value)

    @property
    def storage_mode(self) -> str:
        if self.database_url.startswith("memory"):
            return "memory"
        if self.database_url.startswith("sqlite"):
            return "sqlite"
        return "postgres"

    @property
    def origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def session_max_age(self) -> int:
        return self.session_ttl_hours * 3600


@lru_cache
def get_settings() -> Settings:
    return Settings()
