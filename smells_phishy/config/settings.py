"""Application settings and configuration."""

import os
from enum import Enum
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Environment types for deployment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Application settings."""

    # Environment
    ENVIRONMENT: Environment = Environment.DEVELOPMENT

    # Application
    APP_NAME: str = "Smells Phishy"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # CORS (the browser extension and the web frontend)
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]
    CORS_ALLOW_CREDENTIALS: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    # Monitoring
    ENABLE_METRICS: bool = True

    # Redis (optional, the rate limiter falls back to process memory)
    REDIS_URL: Optional[str] = None

    # Rate Limiting - scans per caller
    RATE_LIMIT_PREFIX: str = "smells-phishy"
    RATE_LIMIT_MAX_REQUESTS: int = 10
    RATE_LIMIT_WINDOW_SECONDS: int = 3600  # 1 hour
    RATE_LIMIT_CLEANUP_INTERVAL: int = 600  # 10 minutes

    # Threat Intelligence (Layer 1)
    GOOGLE_SAFE_BROWSING_API_KEY: Optional[str] = None
    PHISHTANK_API_KEY: Optional[str] = None
    URLSCAN_API_KEY: Optional[str] = None
    THREAT_INTEL_TIMEOUT: float = 3.0
    THREAT_INTEL_MAX_LOOKUPS: int = 5  # per-item lookups for PhishTank and urlscan.io
    THREAT_INTEL_SHORT_CIRCUIT: bool = True

    # Gemini AI Configuration (Layer 2)
    GEMINI_API_KEY: Optional[str] = None
    GOOGLE_GEMINI_API_KEY: Optional[str] = None  # Alternative env var name
    GEMINI_MODEL: str = "gemini-1.5-flash"
    GEMINI_TIMEOUT: float = 30.0
    # Free tier is 15/minute and 1,500/day, keep a buffer
    GEMINI_DAILY_LIMIT: int = 1400
    GEMINI_MINUTE_LIMIT: int = 14

    # Request limits
    MAX_EMAIL_CONTENT_LENGTH: int = 50000
    MAX_CHECK_URLS: int = 10

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log renderer choice."""
        v = v.lower()
        if v not in ("json", "console"):
            raise ValueError("LOG_FORMAT must be 'json' or 'console'")
        return v

    @field_validator("REDIS_URL")
    @classmethod
    def validate_redis_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate Redis URL format."""
        if not v:
            return None
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("REDIS_URL must be a valid Redis connection string")
        return v

    @field_validator("RATE_LIMIT_MAX_REQUESTS", "RATE_LIMIT_WINDOW_SECONDS",
                     "GEMINI_DAILY_LIMIT", "GEMINI_MINUTE_LIMIT")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("limits must be positive")
        return v

    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT == Environment.PRODUCTION

    def is_development(self) -> bool:
        """Check if running in development."""
        return self.ENVIRONMENT == Environment.DEVELOPMENT

    def get_gemini_api_key(self) -> Optional[str]:
        """Get Gemini API key."""
        # Check settings first, then environment variables
        if self.GEMINI_API_KEY:
            return self.GEMINI_API_KEY
        if self.GOOGLE_GEMINI_API_KEY:
            return self.GOOGLE_GEMINI_API_KEY
        return os.getenv('GEMINI_API_KEY') or os.getenv('GOOGLE_GEMINI_API_KEY')

    def configured_providers(self) -> dict:
        """Report which external services have credentials."""
        return {
            "google_safe_browsing": bool(self.GOOGLE_SAFE_BROWSING_API_KEY),
            "phishtank": True,  # app_key is optional
            "urlscan": bool(self.URLSCAN_API_KEY),
            "gemini": bool(self.get_gemini_api_key()),
            "redis": bool(self.REDIS_URL),
        }

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore"  # Ignore extra environment variables
    }


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings
