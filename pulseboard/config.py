"""
Pulseboard - Configuration Management

Centralized configuration using Pydantic Settings.
All secrets and connection strings are loaded from environment variables.

Security: No secrets are hardcoded. Use .env for local development.
"""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        DATABASE_URL: SQLAlchemy async URL (aiosqlite locally, asyncpg in production)
        SECRET_KEY: JWT signing key for session tokens
        SESSION_EXPIRE_HOURS: Hard lifetime of a session token
        BCRYPT_ROUNDS: bcrypt work factor for new password hashes
        ALLOWED_ORIGINS: CORS allowed origins for the dashboard frontend
        *_RATE_LIMIT: Requests allowed per client IP within RATE_LIMIT_WINDOW_SECONDS
        RATE_LIMIT_TRUST_FORWARDED: Key limits on X-Forwarded-For (only behind a proxy that sets it)
        REALTIME_*: Broadcast hub timer settings (0 disables the periodic push)
        METRICS_*: Synthetic metrics generator settings
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "Pulseboard"
    VERSION: str = "0.1.0"

    # Database (PostgreSQL for production, SQLite for development)
    DATABASE_URL: str = "sqlite+aiosqlite:///./pulseboard.db"
    DATABASE_ECHO: bool = False

    # Security
    SECRET_KEY: str = ""  # Must be set via environment
    JWT_ALGORITHM: str = "HS256"
    SESSION_EXPIRE_HOURS: int = 24
    SESSION_SWEEP_INTERVAL_SECONDS: float = 3600.0
    BCRYPT_ROUNDS: int = 12

    # Accounts
    ALLOW_REGISTRATION: bool = True
    BOOTSTRAP_ADMIN_EMAIL: str = ""
    BOOTSTRAP_ADMIN_PASSWORD: str = ""

    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:5173"]

    # Rate limiting (per client IP)
    RATE_LIMIT_WINDOW_SECONDS: float = 15 * 60
    API_RATE_LIMIT: int = 1000
    AUTH_RATE_LIMIT: int = 20
    EXPORT_RATE_LIMIT: int = 10
    RATE_LIMIT_TRUST_FORWARDED: bool = False

    # Export
    EXPORT_MAX_ROWS: int = 50000

    # Real-time hub
    REALTIME_BROADCAST_INTERVAL_SECONDS: float = 5.0
    REALTIME_RECENT_METRICS: int = 10

    # Metrics generator
    METRICS_GENERATOR_ENABLED: bool = True
    METRICS_BASE_INTERVAL_SECONDS: float = 4.0
    METRICS_JITTER_SECONDS: float = 1.0
    METRICS_AUDIT_PROBABILITY: float = 0.1

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""


settings = Settings()
