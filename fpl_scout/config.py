"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # FPL API
    fpl_api_base_url: str = "https://fantasy.premierleague.com/api"

    # CORS - comma-separated list of allowed origins
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    # Logging
    log_level: str = "INFO"

    # Cache TTL in seconds
    cache_ttl_bootstrap: int = 300  # 5 minutes for bootstrap-static
    cache_ttl_fixtures: int = 600  # 10 minutes for fixtures
    cache_ttl_players: int = 300  # derived player records
    cache_ttl_narrative: int = 1800  # 30 minutes per player narrative

    # External narrative generation (OpenAI-compatible chat completions).
    # Disabled when no URL is configured; the rule-based scorer is always used.
    narrative_api_url: str | None = None
    narrative_api_key: str | None = None
    narrative_model: str = "llama-3.1-70b-versatile"
    narrative_timeout: float = 10.0

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def narrative_enabled(self) -> bool:
        """Whether an external narrative collaborator is configured."""
        return bool(self.narrative_api_url)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
