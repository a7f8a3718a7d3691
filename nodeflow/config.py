"""
Configuration settings for the NodeFlow service.
"""

from typing import List, Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""
    
    # Application
    APP_NAME: str = "NodeFlow"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: Literal["development", "production", "test"] = "development"
    
    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    SHUTDOWN_GRACE_SECONDS: int = 10
    
    # Generation backend
    GOOGLE_API_KEY: Optional[str] = None
    DEFAULT_MODEL: str = "gemini-2.0-flash-exp"
    DEFAULT_SYSTEM_PROMPT: str = "You are a helpful assistant."
    GEMINI_API_BASE: str = "https://generativelanguage.googleapis.com/v1beta"
    UPSTREAM_TIMEOUT: float = 30.0  # Seconds per attempt
    UPSTREAM_MAX_RETRIES: int = 2
    UPSTREAM_RETRY_DELAY: float = 1.0  # Fixed, not exponential
    
    # Response cache
    CACHE_TTL_SECONDS: float = 300.0
    CACHE_MAX_ENTRIES: int = 1000
    
    # Rate limiting
    RATE_LIMIT_WINDOW_MS: int = 15 * 60 * 1000
    RATE_LIMIT_MAX_REQUESTS: int = 100
    EXECUTION_RATE_LIMIT_MAX_REQUESTS: int = 20
    
    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]
    CORS_ORIGIN_REGEX: str = r"https://.*\.(vercel\.app|netlify\.app|github\.io)"
    
    # Logging
    LOG_LEVEL: str = "INFO"
    
    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"
    
    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"
    
    @property
    def DEBUG(self) -> bool:
        """Expose error details and tracebacks outside production."""
        return not self.is_production


# Global settings instance
settings = Settings()
