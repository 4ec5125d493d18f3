"""
Configuration management for the JWT Inspector service.

Uses pydantic-settings to load configuration from environment variables
with sensible defaults for development.
"""

from typing import List, Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from jwt_inspector.core.security import ASYMMETRIC_ALGORITHMS


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "JWT Inspector"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # API
    API_V1_PREFIX: str = "/api/v1"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:5173"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: List[str] = ["*"]
    CORS_ALLOW_HEADERS: List[str] = ["*"]

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    RELOAD: bool = False

    # ==========================================================================
    # Token Inspection Configuration
    # ==========================================================================

    # Algorithms accepted for signature verification. Only asymmetric
    # algorithms may be listed; verification material is public keys only.
    JWT_ALLOWED_ALGORITHMS: List[str] = list(ASYMMETRIC_ALGORITHMS)

    # Request body limits (characters)
    JWT_MAX_TOKEN_LENGTH: int = 16384
    JWT_MAX_JWKS_LENGTH: int = 262144

    # IANA timezone used when annotating exp/iat/nbf for display.
    # Empty = host local time.
    DISPLAY_TIMEZONE: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse comma-separated CORS origins into a list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        elif isinstance(v, list):
            return v
        return []

    @field_validator("JWT_ALLOWED_ALGORITHMS", mode="before")
    @classmethod
    def parse_allowed_algorithms(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse comma-separated algorithm names into a list."""
        if isinstance(v, str):
            return [alg.strip() for alg in v.split(",") if alg.strip()]
        return v

    @field_validator("JWT_ALLOWED_ALGORITHMS")
    @classmethod
    def restrict_to_asymmetric(cls, v: List[str]) -> List[str]:
        """Reject symmetric, 'none' and unknown algorithms."""
        if not v:
            raise ValueError("JWT_ALLOWED_ALGORITHMS must not be empty")
        unsupported = [alg for alg in v if alg not in ASYMMETRIC_ALGORITHMS]
        if unsupported:
            raise ValueError(
                f"Unsupported algorithms {unsupported}; "
                f"allowed: {', '.join(ASYMMETRIC_ALGORITHMS)}"
            )
        return v


# Global settings instance
settings = Settings()
