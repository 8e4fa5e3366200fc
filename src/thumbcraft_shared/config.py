"""Pydantic settings for application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection settings."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    url: str = Field(
        default="",
        description="Database connection URL",
    )
    pool_size: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Connection pool size",
    )
    max_overflow: int = Field(
        default=10,
        ge=0,
        le=100,
        description="Max connections beyond pool size",
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements",
    )


class StorageSettings(BaseSettings):
    """Azure Blob Storage settings for reference photos and thumbnails."""

    model_config = SettingsConfigDict(env_prefix="AZURE_STORAGE_")

    connection_string: str = Field(
        default="",
        description="Azure Storage connection string",
    )
    account_url: str = Field(
        default="",
        description="Azure Storage account URL (for managed identity)",
    )
    use_managed_identity: bool = Field(
        default=False,
        description="Use Azure managed identity for authentication",
    )
    reference_container: str = Field(
        default="reference-images",
        description="Container holding uploaded reference photos",
    )
    thumbnail_container: str = Field(
        default="thumbnails",
        description="Container holding generated thumbnails",
    )


class GenAISettings(BaseSettings):
    """Generative-AI (OpenAI) API settings."""

    model_config = SettingsConfigDict(env_prefix="OPENAI_")

    api_key: str = Field(
        default="",
        description="OpenAI API key",
    )
    text_model: str = Field(
        default="gpt-4o-mini",
        description="Model used to write thumbnail concepts",
    )
    vision_model: str = Field(
        default="gpt-4o-mini",
        description="Model used to score reference photo quality",
    )
    image_model: str = Field(
        default="gpt-image-1",
        description="Model used to render thumbnails",
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Total attempts per call when rate limited",
    )
    concept_temperature: float = Field(
        default=0.9,
        ge=0,
        le=2,
        description="Sampling temperature for concept generation",
    )


class UploadSettings(BaseSettings):
    """Reference photo upload limits."""

    model_config = SettingsConfigDict(env_prefix="UPLOAD_", populate_by_name=True)

    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        validation_alias=AliasChoices("MAX_UPLOAD_SIZE_MB", "UPLOAD_MAX_UPLOAD_SIZE_MB"),
        description="Maximum size of a single photo in megabytes",
    )
    max_images_per_user: int = Field(
        default=20,
        ge=1,
        validation_alias=AliasChoices("MAX_IMAGES_PER_USER", "UPLOAD_MAX_IMAGES_PER_USER"),
        description="Absolute ceiling on photos in one validated batch",
    )
    min_batch_size: int = Field(
        default=3,
        ge=1,
        description="Fewest photos accepted by the upload endpoint",
    )
    max_batch_size: int = Field(
        default=5,
        ge=1,
        description="Most photos accepted by the upload endpoint",
    )
    analyze_quality: bool = Field(
        default=True,
        description="Score each uploaded photo with the vision model",
    )
    direct_upload_score: float = Field(
        default=0.8,
        ge=0,
        le=1,
        description="Quality score given to pre-uploaded storage references",
    )
    analysis_cost: float = Field(
        default=0.0,
        ge=0,
        description="Nominal cost logged per analyzed photo",
    )

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


class GenerationSettings(BaseSettings):
    """Concept and thumbnail generation pricing and limits."""

    model_config = SettingsConfigDict(env_prefix="GENERATION_")

    fast_cost: float = Field(default=0.05, ge=0, description="Cost per fast thumbnail")
    hd_cost: float = Field(default=0.24, ge=0, description="Cost per HD thumbnail")
    fast_quality: str = Field(default="medium", description="Image quality for fast mode")
    hd_quality: str = Field(default="high", description="Image quality for HD mode")
    image_size: str = Field(default="1536x1024", description="Rendered thumbnail size")
    max_reference_images: int = Field(
        default=5,
        ge=1,
        description="Selected reference photos sent with each render",
    )
    max_concepts: int = Field(
        default=10,
        ge=1,
        description="Concepts kept from one generation call",
    )
    concept_cost: float = Field(
        default=0.01,
        ge=0,
        description="Nominal cost logged per concept batch",
    )
    default_quota: int = Field(
        default=10,
        ge=0,
        description="Credits granted to a new profile",
    )
    enforce_quota_for_selection: bool = Field(
        default=False,
        description="Gate and charge quota when rendering explicitly chosen concepts",
    )

    def cost_for(self, quality_mode: str) -> float:
        return self.hd_cost if quality_mode == "hd" else self.fast_cost

    def quality_for(self, quality_mode: str) -> str:
        return self.hd_quality if quality_mode == "hd" else self.fast_quality


class AuthSettings(BaseSettings):
    """Auth0 login and session cookie settings."""

    model_config = SettingsConfigDict(env_prefix="AUTH_")

    domain: str = Field(default="", description="Auth0 tenant domain")
    client_id: str = Field(default="", description="Auth0 application client id")
    client_secret: str = Field(default="", description="Auth0 application client secret")
    audience: str | None = Field(default=None, description="Optional API audience")
    session_secret: str = Field(default="", description="Secret used to sign login state")
    session_ttl_seconds: int = Field(default=86400, ge=60, description="Session lifetime")
    session_cookie_name: str = Field(default="session", description="Session cookie name")
    default_return_to: str = Field(
        default="http://localhost:3000/dashboard",
        description="Where to send the browser after login",
    )


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_format: bool = Field(
        default=True,
        description="Use JSON format for logs",
    )


class APISettings(BaseSettings):
    """API server settings."""

    model_config = SettingsConfigDict(env_prefix="API_")

    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins",
    )
    cors_origin_regex: str | None = Field(
        default=None,
        description="Regex for additional allowed origins",
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_nested_delimiter="__",
    )

    service_name: str = Field(
        default="thumbcraft",
        description="Service name for logging",
    )
    service_version: str = Field(
        default="0.1.0",
        description="Service version",
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    genai: GenAISettings = Field(default_factory=GenAISettings)
    upload: UploadSettings = Field(default_factory=UploadSettings)
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    api: APISettings = Field(default_factory=APISettings)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        The application settings.
    """
    return Settings()


def refresh_settings() -> Settings:
    """Clear settings cache and return fresh settings.

    Returns:
        Fresh application settings.
    """
    get_settings.cache_clear()
    return get_settings()
