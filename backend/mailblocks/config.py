"""
Configuration management using pydantic-settings
"""
from pydantic_settings import BaseSettings
from typing import List, Literal, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # AI providers (only needed for AI block editing)
    anthropic_api_key: Optional[str] = None
    openrouter_api_key: Optional[str] = None
    ai_provider: Literal["anthropic", "openrouter"] = "anthropic"
    anthropic_model: str = "claude-sonnet-4-20250514"
    openrouter_model: str = "anthropic/claude-sonnet-4"
    ai_max_tokens: int = 8192
    ai_timeout_seconds: float = 120.0

    # Application
    base_url: str = "http://localhost:8000"
    cors_origins: str = "http://localhost:3000"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Validation
    max_email_size_kb: int = 102

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse comma-separated CORS origins"""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def is_anthropic_configured(self) -> bool:
        return bool(self.anthropic_api_key)

    @property
    def is_openrouter_configured(self) -> bool:
        return bool(self.openrouter_api_key)


# Global settings instance
settings = Settings()
