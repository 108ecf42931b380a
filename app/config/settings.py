from pydantic_settings import BaseSettings
from typing import Optional

DEFAULT_JWT_SECRET = "change-me-in-env"


class Settings(BaseSettings):
    # API Configuration
    debug: bool = False
    environment: str = "development"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_prefix: str = "/api/v1"

    # Model provider selection: "openai" or "gemini"
    ai_provider: str = "openai"

    # OpenAI Configuration (secrets come from environment)
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    openai_model: str = "gpt-4o-mini"

    # Gemini Configuration (optional)
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-pro"

    # Model call policy
    # 4 attempts total with 2s, 4s, 8s between them
    model_max_retries: int = 3
    model_backoff_seconds: float = 2.0
    model_max_completion_tokens: int = 8000
    model_temperature: float = 0.7

    # JIRA Integration (configure via environment)
    jira_base_url: Optional[str] = None
    jira_email: Optional[str] = None
    jira_api_token: Optional[str] = None
    jira_cache_ttl_seconds: float = 30.0

    # Database Configuration
    database_url: str = "sqlite:///./data/generations.db"

    # Security
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_access_ttl_seconds: int = 3600
    jwt_refresh_ttl_seconds: int = 1209600

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
