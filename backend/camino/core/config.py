"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Camino Planner Backend"
    debug: bool = False
    log_level: str = "INFO"

    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    planner_timeout_s: float = 12.0

    step_timeout_s: float = 10.0
    step_max_retries: int = 1
    step_hard_max: int | None = None

    geocoder_url: str = "https://nominatim.openstreetmap.org/search"
    geocoder_timeout_s: float = 5.0
    geocoder_user_agent: str = "CaminoPlanner/1.0 (+https://example.com)"
    geocoder_cache_size: int = 256

    database_url: str = "sqlite://"
    plan_ttl_minutes: int = 120
    plan_eviction_enabled: bool = True
    plan_eviction_interval_minutes: int = 10

    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "camino"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
