"""
Application configuration management
"""

from functools import lru_cache
from typing import List, Optional
import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Environment
    environment: str = Field("development")
    debug: bool = Field(False)
    port: int = Field(8000)
    log_level: str = Field("INFO")

    # AI Model Configuration
    ai_model: str = Field("openai:gpt-4o-mini")
    ai_temperature: float = Field(0.1)

    # OpenAI Configuration
    openai_api_key: Optional[str] = Field(None)
    openai_model_name: str = Field("gpt-4o-mini")
    openai_base_url: Optional[str] = Field(None)

    # Anthropic Configuration
    anthropic_api_key: Optional[str] = Field(None)
    anthropic_model_name: str = Field("claude-3-5-sonnet-latest")
    anthropic_base_url: Optional[str] = Field(None)

    # Google Configuration
    google_api_key: Optional[str] = Field(None)
    gemini_model_name: str = Field("gemini-1.5-pro")

    # Threadline check execution
    threadline_timeout: float = Field(40.0)
    threadline_api_key: Optional[str] = Field(None)
    threadline_account: Optional[str] = Field(None)

    # Security
    allowed_origins: List[str] = Field(default_factory=lambda: [])

    # Rate limiting
    rate_limit_enabled: bool = Field(True)
    check_rate_limit: str = Field("30/minute")

    # Request limits
    max_request_size: int = Field(10 * 1024 * 1024)  # 10MB default
    max_diff_size: int = Field(5 * 1024 * 1024)

    @field_validator("ai_model")
    @classmethod
    def validate_ai_model(cls, v: str) -> str:
        """Validate provider-prefixed model name"""
        provider, _, model_id = v.partition(":")
        if provider not in ("openai", "anthropic", "gemini") or not model_id:
            raise ValueError(
                "AI model must be provider-prefixed (openai:, anthropic:, gemini:)"
            )
        return v

    @field_validator("threadline_timeout")
    @classmethod
    def validate_threadline_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Threadline timeout must be positive")
        return v

    @field_validator("allowed_origins")
    @classmethod
    def validate_origins(cls, v: List[str]) -> List[str]:
        """Set secure defaults for CORS origins based on environment"""
        if not v:
            # Production stays closed unless configured explicitly
            return (
                ["http://localhost:3000", "http://localhost:8000"]
                if os.getenv("ENVIRONMENT", "development") != "production"
                else []
            )
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.environment.lower() == "production"

    def __repr__(self) -> str:
        """Secure representation that doesn't expose secrets"""
        return (
            f"<{self.__class__.__name__} ai_model={self.ai_model} "
            f"environment={self.environment}>"
        )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Return the cached settings instance"""
    return Settings()


# Global settings instance
settings = get_settings()
