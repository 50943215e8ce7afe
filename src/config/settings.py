"""Application settings loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings

DAY_SECONDS = 24 * 60 * 60


class Settings(BaseSettings):
    # Counter store (shared by rate limiting and sessions)
    counter_store_backend: str = "memory"  # "memory" | "redis" | "dynamodb"
    redis_url: str = "redis://localhost:6379/0"
    dynamodb_table_name: str = "docqa-gateway-state"
    aws_region: str = "us-east-1"
    rate_limit_prefix: str = "ratelimit"

    # Admission policies
    global_upload_limit: int = 50
    client_upload_limit: int = 1
    client_query_limit: int = 5
    rate_limit_window_seconds: int = DAY_SECONDS
    rate_limit_bucket_seconds: int = 60

    # Sessions
    session_ttl_seconds: int = DAY_SECONDS
    session_max_chars: int = 30_000

    # Request validation
    max_upload_bytes: int = 10 * 1024 * 1024
    max_question_chars: int = 250

    # Completion provider (OpenAI-compatible)
    completion_base_url: str = "https://api.groq.com/openai/v1"
    completion_api_key: str = ""
    completion_model: str = "llama-3.3-70b-versatile"
    completion_max_tokens: int = 1024
    completion_temperature: float = 0.7
    completion_timeout_seconds: float = 60.0

    # Transport
    cors_origins: str = "http://localhost:5173"  # Comma-separated
    trust_forwarded_for: bool = False

    # Logging
    log_level: str = "INFO"
    audit_log_file: str = ""  # Empty = stdout only

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
