import os
from typing import List, Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings and configuration"""

    # ============ APP SETTINGS ============
    APP_NAME: str = "Gemini Chat Relay"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"

    # ============ SERVER SETTINGS ============
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", 5000))
    RELOAD: bool = os.getenv("RELOAD", "False").lower() == "true"

    # ============ CORS SETTINGS ============
    # Comma-separated, e.g. "http://localhost:3000,https://app.example.com"
    ALLOWED_ORIGINS: str = "*"

    # ============ GEMINI SETTINGS ============
    LLM_TYPE: str = "gemini"
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    GEMINI_BASE_URL: str = os.getenv(
        "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta/models"
    )
    LLM_TIMEOUT: int = int(os.getenv("LLM_TIMEOUT", 120))

    # Sampling overrides, provider defaults apply when unset
    LLM_TEMPERATURE: Optional[float] = None
    LLM_TOP_P: Optional[float] = None
    LLM_TOP_K: Optional[int] = None
    LLM_MAX_OUTPUT_TOKENS: Optional[int] = None

    # ============ STREAMING SETTINGS ============
    STREAM_ERROR_MESSAGE: str = "Server error"

    # ============ LOGGING SETTINGS ============
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_FILE: Optional[str] = os.getenv("LOG_FILE", None)

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


# Instantiate settings
settings = Settings()
