# app/core/config.py - Environment driven configuration for the Taskboard API
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import List

class Settings(BaseSettings):
    """
    Settings for the Taskboard API, read from the environment and .env
    """
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Database Settings
    DATABASE_URL: str = Field(
        "sqlite+aiosqlite:///./data/tasks.db",
        description="Async SQLAlchemy database URL (aiosqlite or asyncpg)"
    )

    # Application Settings
    ENVIRONMENT: str = Field("development", description="Environment name")
    LOG_LEVEL: str = Field("INFO", description="Log level")
    HOST: str = Field("0.0.0.0", description="Bind address when run directly")
    PORT: int = Field(9090, description="Bind port when run directly")

    # Logging Configuration
    ENABLE_JSON_LOGGING: bool = Field(False, description="Enable JSON structured logging")

    # OpenTelemetry Tracing Settings
    ENABLE_OTEL_EXPORTER: bool = Field(False, description="Enable the OpenTelemetry tracer provider")
    ENABLE_OTEL_CONSOLE_EXPORT: bool = Field(False, description="Print finished spans to the console")

    # CORS Settings
    CORS_ORIGINS: str = Field(
        "http://localhost:3000,http://127.0.0.1:3000",
        description="Comma-separated list of allowed CORS origins"
    )

    # Rate Limiting Settings
    RATE_LIMIT_ENABLED: bool = Field(True, description="Enable rate limiting")
    DEFAULT_RATE_LIMIT: str = Field("300/minute", description="Default rate limit")

    # Performance Settings
    DB_POOL_SIZE: int = Field(20, description="Database connection pool size")
    DB_MAX_OVERFLOW: int = Field(0, description="Database max overflow connections")

    # Display labels for status / priority
    LABEL_LOCALE: str = Field("zh-CN", description="Locale of status and priority labels (zh-CN or en)")

    @property
    def cors_origins_list(self) -> List[str]:
        """Convert CORS_ORIGINS string to list"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def should_use_json_logging(self) -> bool:
        """Use JSON logging in production or when explicitly enabled"""
        return self.ENVIRONMENT == "production" or self.ENABLE_JSON_LOGGING

# Create settings instance
settings = Settings()
