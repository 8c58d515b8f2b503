from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Values are read from process environment and optionally from `.env`.
    """

    github_org: str = "AI-Develops"
    github_api_base_url: str = "https://api.github.com"
    github_token: str | None = None
    request_timeout_seconds: float = 15.0
    cache_ttl_seconds: int = 300
    cache_namespace: str = "orgindex"
    database_url: str = "sqlite+pysqlite:///./orgindex-cache.db"
    rate_limit_max_wait_seconds: int = 3600
    log_level: str = "INFO"
    sentry_dsn: str | None = None
    environment: str = "development"
    release: str | None = None
    sentry_traces_sample_rate: float = 0.1

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
