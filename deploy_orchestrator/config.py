"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file without clobbering values already in the environment
load_dotenv()

class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = True

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Pipeline
    pipeline_step_delay_seconds: float = Field(default=2.0, ge=0)
    rollback_step_delay_seconds: float = Field(default=1.5, ge=0)
    shutdown_grace_seconds: float = Field(default=10.0, ge=0)

    # History
    history_default_limit: int = Field(default=10, ge=1)
    history_max_limit: int = Field(default=100, ge=1)

    # Simulated collaborators
    publish_fail_platforms: list[str] = Field(default_factory=list)
    telemetry_available: bool = True

    # Project ownership (project_id -> owner_id), JSON encoded in the env
    project_owners: dict[str, str] = Field(default_factory=dict)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["console", "json"] = "console"
    log_directory: str | None = None
    log_file_name: str = "deploy-orchestrator.log"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

