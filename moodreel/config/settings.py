from typing import Literal, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class LumaConfig(BaseSettings):
    """Luma Dream Machine generation API configuration"""

    api_key: SecretStr | None = None
    base_url: str = "https://api.lumalabs.ai/dream-machine/v1"
    relay_upstream: str = Field(
        default="https://api.lumalabs.ai",
        description="Host the /api/luma relay forwards to.",
    )
    relay_path: str = "/dream-machine/v1/generations"
    image_model: str = "ray-2"
    video_model: str = "ray-2"
    aspect_ratio: str = "16:9"
    request_timeout: float = Field(default=300.0, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="LUMA_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class GeminiConfig(BaseSettings):
    """Google Generative Language configuration."""

    api_key: SecretStr | None = None
    model: str = "gemini-pro"
    base_url: str = "https://generativelanguage.googleapis.com/v1beta/models"
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    timeout: float = Field(default=60.0, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class BedrockConfig(BaseSettings):
    """Amazon Bedrock configuration."""

    region: str = Field(
        default="us-east-1",
        validation_alias="BEDROCK_REGION",
    )
    model_id: str = Field(
        default="amazon.nova-micro-v1:0",
        validation_alias="BEDROCK_MODEL_ID",
    )
    max_tokens: int = Field(
        default=1024,
        validation_alias="BEDROCK_MAX_TOKENS",
        ge=1,
        le=4096,
    )
    temperature: float = Field(
        default=0.7,
        validation_alias="BEDROCK_TEMPERATURE",
        ge=0.0,
        le=1.0,
    )
    top_p: float = Field(
        default=0.9,
        validation_alias="BEDROCK_TOP_P",
        ge=0.0,
        le=1.0,
    )
    access_key: Optional[str] = Field(default=None, validation_alias="AWS_ACCESS_KEY_ID")
    secret_key: SecretStr | None = Field(
        default=None,
        validation_alias="AWS_SECRET_ACCESS_KEY",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class PipelineConfig(BaseSettings):
    """Segmentation and analysis defaults."""

    default_segment_duration: int = 30
    min_segment_duration: int = 10
    max_segment_duration: int = 120
    analysis_language: str = "English"
    max_upload_bytes: int = Field(default=100 * 1024 * 1024, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="PIPELINE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "MoodReel Backend"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3001
    log_file: str = "logs/app.log"
    pipeline_log_file: str = "logs/pipeline.log"

    llm_provider: Literal["gemini", "bedrock"] = "gemini"

    # Luma
    luma: LumaConfig = Field(default_factory=LumaConfig)

    # Text analysis providers
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    bedrock: BedrockConfig = Field(default_factory=BedrockConfig)

    # Pipeline
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    cors_allow_headers: list[str] = ["Content-Type", "Authorization", "X-Requested-With"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
