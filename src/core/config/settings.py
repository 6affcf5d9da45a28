# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SchoolBoard configuration.

Each concern reads its own environment prefix:

    DB_*            PostgreSQL connection and pool
    REDIS_*         performance read cache backend
    JWT_*           session tokens (expiry also from the unprefixed
                    ACCESS_TOKEN_EXPIRE_MINUTES / REFRESH_TOKEN_EXPIRE_DAYS)
    CORS_*          browser origins
    IMPORT_*        bulk uploads
    PERFORMANCE_*   reporting cache and directory paging

Settings aggregates them and adds environment, debug and log level. Values
also load from a local ``.env`` file.

Example:
    >>> settings = get_settings()
    >>> settings.imports.flag_file_duplicates
    False
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

INSECURE_JWT_SECRET = "change-this-in-production"


class DatabaseSettings(BaseSettings):
    """PostgreSQL connection settings.

    Attributes:
        user: Role used by the application.
        password: Role password.
        host: Server host.
        port: Server port.
        database: Database name.
        pool_size: Persistent connections per process.
        max_overflow: Extra connections allowed under load.
        pool_timeout: Seconds to wait for a free connection.
        echo: Log every SQL statement.
    """

    model_config = SettingsConfigDict(env_prefix="DB_", extra="ignore")

    user: str = "schoolboard"
    password: SecretStr = SecretStr("schoolboard_password")
    host: str = "localhost"
    port: int = 5432
    database: str = "schoolboard"
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    echo: bool = False

    def _url(self, driver: str) -> str:
        return URL.create(
            drivername=driver,
            username=self.user,
            password=self.password.get_secret_value(),
            host=self.host,
            port=self.port,
            database=self.database,
        ).render_as_string(hide_password=False)

    @property
    def url(self) -> str:
        """asyncpg URL used by the application and by alembic."""
        return self._url("postgresql+asyncpg")


class RedisSettings(BaseSettings):
    """Redis backend for cached performance aggregates.

    Attributes:
        host: Server host.
        port: Server port.
        password: Optional AUTH password.
        database: Logical database number.
        max_connections: Connection pool size.
        key_prefix: Namespace prepended to every key.
    """

    model_config = SettingsConfigDict(env_prefix="REDIS_", extra="ignore")

    host: str = "localhost"
    port: int = 6379
    password: SecretStr | None = None
    database: int = 0
    max_connections: int = 20
    key_prefix: str = "schoolboard"

    @property
    def url(self) -> str:
        secret = self.password.get_secret_value() if self.password else ""
        auth = f":{secret}@" if secret else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.database}"


class JWTSettings(BaseSettings):
    """Signing and lifetime of session tokens issued at login."""

    model_config = SettingsConfigDict(env_prefix="JWT_", extra="ignore")

    secret_key: SecretStr = SecretStr(INSECURE_JWT_SECRET)
    algorithm: str = "HS256"
    access_token_expire_minutes: int = Field(
        default=60,
        validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    refresh_token_expire_days: int = Field(
        default=7,
        validation_alias="REFRESH_TOKEN_EXPIRE_DAYS",
    )


class CORSSettings(BaseSettings):
    """Origins allowed to call the API from a browser.

    ``origins`` is a comma-separated list, e.g.
    ``CORS_ORIGINS=https://board.school.org,http://localhost:3000``.
    """

    model_config = SettingsConfigDict(env_prefix="CORS_", extra="ignore")

    origins: str = "http://localhost:3000"
    allow_credentials: bool = True
    allow_methods: list[str] = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    allow_headers: list[str] = ["Authorization", "Content-Type", "X-Request-ID"]

    @property
    def origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.origins.split(",") if origin.strip()]


class ImportSettings(BaseSettings):
    """Bulk upload configuration.

    Attributes:
        flag_file_duplicates: Mark repeated keys within one uploaded file
            as duplicates, in addition to keys already stored.
        max_upload_bytes: Largest accepted upload.
        temp_password_length: Length of generated teacher passwords.
    """

    model_config = SettingsConfigDict(env_prefix="IMPORT_", extra="ignore")

    flag_file_duplicates: bool = False
    max_upload_bytes: int = 5 * 1024 * 1024
    temp_password_length: int = Field(default=10, ge=8, le=64)


class PerformanceSettings(BaseSettings):
    """Performance reporting configuration.

    Attributes:
        cache_enabled: Cache aggregated reads in Redis.
        cache_ttl_seconds: Lifetime of a cached (scope, term) aggregate.
        max_page_size: Upper bound for directory page size.
    """

    model_config = SettingsConfigDict(env_prefix="PERFORMANCE_", extra="ignore")

    cache_enabled: bool = True
    cache_ttl_seconds: int = Field(default=60, ge=1)
    max_page_size: int = Field(default=100, ge=1)


class Settings(BaseSettings):
    """Root settings. Obtain through get_settings()."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    db: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    imports: ImportSettings = Field(default_factory=ImportSettings)
    performance: PerformanceSettings = Field(default_factory=PerformanceSettings)

    @model_validator(mode="after")
    def check_production(self) -> Self:
        """Refuse to start production with the placeholder JWT secret.

        Raises:
            ValueError: If JWT_SECRET_KEY was not set in production.
        """
        if self.is_production and self.jwt.secret_key.get_secret_value() == INSECURE_JWT_SECRET:
            raise ValueError(
                "JWT secret key must be changed from default in production. "
                "Set JWT_SECRET_KEY environment variable."
            )
        return self

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings loaded once per process."""
    return Settings()


def clear_settings_cache() -> None:
    """Forget the cached settings so the next get_settings() reloads them."""
    get_settings.cache_clear()
