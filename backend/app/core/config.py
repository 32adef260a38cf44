"""
Configuración centralizada de la aplicación
"""
import json
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Configuración de la aplicación"""

    # API Settings
    API_TITLE: str = "MunshiJi Advisor API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "AI business advisor for SME shops"

    # Record store (PostgreSQL). Optional so the advisor can boot without it;
    # the builder falls back to an empty context when reads fail.
    DATABASE_URL: Optional[str] = None

    # Language model gateway
    ANTHROPIC_API_KEY: Optional[str] = None
    LLM_MODEL: str = "claude-haiku-4-5-20251001"
    LLM_MAX_TOKENS: int = 2048
    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_CONCURRENCY: int = 4

    # Timeouts (seconds)
    TOOL_TIMEOUT_SECONDS: float = 30.0
    SYNTHESIS_TIMEOUT_SECONDS: float = 60.0

    # Number of previous conversation turns forwarded to the final model call
    HISTORY_WINDOW: int = 4

    # CORS - Can be string (comma-separated) or JSON array
    ALLOWED_ORIGINS: Optional[str] = "http://localhost:3000,http://localhost:5173"

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into list"""
        if not self.ALLOWED_ORIGINS:
            return ["http://localhost:3000"]

        # Try JSON parse first (for array format)
        try:
            origins = json.loads(self.ALLOWED_ORIGINS)
            if isinstance(origins, list):
                return origins
        except (json.JSONDecodeError, ValueError):
            pass

        # Fall back to comma-separated string
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()


settings = get_settings()
