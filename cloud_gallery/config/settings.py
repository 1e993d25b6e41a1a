"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Mock mode enables local development without a real bucket.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like cors_origins), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "Cloud Gallery API"
    api_version: str = "0.1.0"
    environment: str = Field(
        default="development",
        description="Deployment environment. Error details are hidden from clients in 'production'."
    )
    port: int = Field(
        default=3001,
        description="Port for the development server"
    )

    # S3 Storage Configuration
    aws_access_key_id: str = Field(
        default="",
        description="AWS access key ID. Falls back to the default boto3 credential chain when empty."
    )
    aws_secret_access_key: str = Field(
        default="",
        description="AWS secret access key"
    )
    aws_region: str = Field(
        default="us-east-1",
        description="Bucket region. Also used to build public object URLs."
    )
    aws_s3_bucket_name: str = Field(
        default="kesseh-galleries",
        description="Bucket holding the gallery images"
    )
    s3_endpoint_url: Optional[str] = Field(
        default=None,
        description="Custom endpoint for S3-compatible stores (MinIO, R2). Unset for AWS."
    )
    storage_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Total attempts per storage call, including botocore retries"
    )
    storage_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of a real bucket. Enables local dev without object storage."
    )

    # Gallery Behavior
    image_prefix: str = Field(
        default="images/",
        description="Key prefix under which uploads are stored and listed"
    )
    default_page_size: int = Field(
        default=12,
        ge=1,
        description="Images per page when the client does not send a limit"
    )
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        description="Maximum size of a single uploaded image in MB"
    )
    listing_max_pages: int = Field(
        default=1000,
        ge=1,
        description="Maximum store listing pages fetched per request. Guards against a store that never stops paging."
    )
    listing_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Overall time budget for enumerating a prefix"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:5173",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def expose_error_details(self) -> bool:
        """Diagnostic details are only returned to clients outside production."""
        return not self.is_production

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing required fields.
        This is separate from Pydantic validation because requirements
        depend on whether we're in mock mode.
        """
        missing = []

        if self.storage_mock_mode:
            return missing

        if not self.aws_s3_bucket_name:
            missing.append("AWS_S3_BUCKET_NAME")

        # An access key without its secret (or vice versa) is always a mistake;
        # both empty means the default credential chain is used.
        if self.aws_access_key_id and not self.aws_secret_access_key:
            missing.append("AWS_SECRET_ACCESS_KEY")
        if self.aws_secret_access_key and not self.aws_access_key_id:
            missing.append("AWS_ACCESS_KEY_ID")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()
