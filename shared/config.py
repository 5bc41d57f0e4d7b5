"""
Shared configuration management for the API façade.
"""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    # Environment
    environment: str = Field(default="prod", validation_alias=AliasChoices("ENVIRONMENT", "environment"))
    log_level: str = Field(default="info", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))

    # Listener
    host: str = Field(default="0.0.0.0", validation_alias=AliasChoices("HOST", "host"))
    port: int = Field(default=8080, validation_alias=AliasChoices("PORT", "port"))
    request_timeout_seconds: float = Field(
        default=60.0,
        validation_alias=AliasChoices("REQUEST_TIMEOUT_SECONDS", "request_timeout_seconds"),
    )

    # AWS
    aws_region: str = Field(default="us-east-1", validation_alias=AliasChoices("AWS_REGION", "aws_region"))
    aws_endpoint_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("AWS_ENDPOINT_URL", "aws_endpoint_url"),
    )
    dynamodb_table: str = Field(default="", validation_alias=AliasChoices("DYNAMODB_TABLE", "dynamodb_table"))
    s3_bucket_data: str = Field(default="", validation_alias=AliasChoices("S3_BUCKET_DATA", "s3_bucket_data"))
    s3_bucket_static: str = Field(default="", validation_alias=AliasChoices("S3_BUCKET_STATIC", "s3_bucket_static"))

    # Redis
    redis_endpoint: str = Field(default="localhost", validation_alias=AliasChoices("REDIS_ENDPOINT", "redis_endpoint"))
    redis_port: int = Field(default=6379, validation_alias=AliasChoices("REDIS_PORT", "redis_port"))

    @property
    def redis_address(self) -> str:
        """host:port of the Redis server."""
        return f"{self.redis_endpoint}:{self.redis_port}"

    @property
    def redis_url(self) -> str:
        return f"redis://{self.redis_address}/0"


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str = "api"


def get_config(service_name: str = "api", **overrides) -> ServiceConfig:
    """Build the configuration for a service from the environment."""
    return ServiceConfig(service_name=service_name, **overrides)
