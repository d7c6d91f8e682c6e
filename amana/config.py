"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # App
    app_name: str = "Amana Assistant"
    debug: bool = False
    log_level: str = "INFO"

    # CORS - comma-separated allowed origins for the dashboard
    allowed_origins: str = "http://localhost:3000,http://localhost:5173"

    # OpenAI - empty key means every model call fails over to the offline paths
    openai_api_key: str = ""

    # Database (SQLite for local dev, PostgreSQL for production)
    database_url: str = "sqlite+aiosqlite:///./amana.db"

    # LLM defaults
    default_model: str = "gpt-4o"
    classification_temperature: float = 0.8
    classification_max_tokens: int = 300
    response_temperature: float = 0.9
    response_max_tokens: int = 250
    llm_timeout_seconds: float = 8.0
    llm_max_retries: int = 2

    # Context windows
    recent_activity_limit: int = 10
    common_entities_limit: int = 5
    common_entities_min: int = 3
    classification_history_turns: int = 5
    response_history_turns: int = 6

    # Pass deterministic action replies through the response generator
    polish_action_replies: bool = False

    @property
    def cors_origins(self) -> list:
        """Parse allowed origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "AMANA_"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
