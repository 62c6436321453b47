from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from functools import lru_cache
from typing import List, Optional


class Settings(BaseSettings):
    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Database - PostgreSQL for production, SQLite for development
    database_url: str = Field(
        default="sqlite:///./wayfare.db",
        alias="DATABASE_URL"
    )

    # CORS - Frontend URLs from environment (comma-separated)
    # Shared by the web app and the realtime relay
    allowed_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000,http://localhost:9002,http://127.0.0.1:9002",
        alias="ALLOWED_ORIGINS"
    )

    # ==============================================
    # Realtime Relay
    # ==============================================
    websocket_host: str = Field(default="0.0.0.0", alias="WEBSOCKET_HOST")
    websocket_port: int = Field(default=3001, alias="WEBSOCKET_PORT")
    message_max_length: int = Field(default=5000, alias="MESSAGE_MAX_LENGTH")

    # ==============================================
    # Availability Engine
    # ==============================================
    # Turnaround window on each side of a transfer pickup
    transfer_buffer_hours: float = Field(default=3, alias="TRANSFER_BUFFER_HOURS")

    # Booking horizon and maximum stay / rental length
    max_advance_days: int = Field(default=730, alias="MAX_ADVANCE_DAYS")
    max_stay_nights: int = Field(default=365, alias="MAX_STAY_NIGHTS")

    # Auto-complete job for finished stays/rentals (0 disables it)
    status_update_interval_minutes: int = Field(default=60, alias="STATUS_UPDATE_INTERVAL_MINUTES")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    # Rate limiter storage, in-memory when empty
    redis_url: Optional[str] = Field(default=None, alias="REDIS_URL")

    @field_validator('database_url')
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Hosted Postgres providers hand out postgres:// but SQLAlchemy needs postgresql://"""
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator('transfer_buffer_hours')
    @classmethod
    def validate_buffer(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("TRANSFER_BUFFER_HOURS must be positive")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def cors_origins(self) -> List[str]:
        """
        Parse allowed origins from comma-separated string.
        Returns a list suitable for CORSMiddleware.
        """
        if not self.allowed_origins:
            return ["http://localhost:3000"]

        origins = []
        for origin in self.allowed_origins.split(","):
            origin = origin.strip().rstrip("/")  # Remove trailing slashes
            if origin and origin not in origins:
                origins.append(origin)

        return origins if origins else ["http://localhost:3000"]

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Initialize settings on module load
settings = get_settings()
