"""Configuration management with Pydantic Settings.

Environment variables are loaded from:
1. Environment variables (highest priority)
2. .env file (development)
3. Defaults (lowest priority)
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging level."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Logging format."""

    JSON = "json"
    TEXT = "text"


class TunnelSettings(BaseSettings):
    """Port-forward tunnel into the cluster's event publishing service."""

    model_config = SettingsConfigDict(env_prefix="TUNNEL_")

    service_name: str = Field(
        default="eventing-publisher-proxy",
        description="In-cluster service the tunnel targets",
    )
    namespace: str = Field(default="kyma-system", description="Namespace of the target service")
    remote_port: int = Field(default=8080, description="Service port to forward to")
    local_host: str = Field(default="127.0.0.1", description="Local bind address")
    local_port: int = Field(
        default=9091,
        description="Local port to listen on (0 lets the OS choose)",
    )
    ready_timeout_seconds: float = Field(
        default=30.0,
        description="Maximum time to wait for the tunnel to become ready",
    )

    @field_validator("remote_port")
    @classmethod
    def validate_remote_port(cls, v: int) -> int:
        if not 1 <= v <= 65535:
            raise ValueError("remote_port must be between 1 and 65535")
        return v

    @field_validator("local_port")
    @classmethod
    def validate_local_port(cls, v: int) -> int:
        if not 0 <= v <= 65535:
            raise ValueError("local_port must be between 0 and 65535")
        return v


class RelaySettings(BaseSettings):
    """Event relay configuration."""

    model_config = SettingsConfigDict(env_prefix="RELAY_")

    publish_path: str = Field(default="/publish", description="Publish endpoint path")
    timeout_seconds: float = Field(default=30.0, description="Forwarded request timeout")


class Settings(BaseSettings):
    """Main application settings.

    All settings can be overridden via environment variables.
    For nested settings, use the appropriate prefix (e.g., TUNNEL_LOCAL_PORT).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="cluster-bridge", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        alias="ENV",
        description="Deployment environment",
    )

    # Logging configuration
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_format: LogFormat = Field(default=LogFormat.JSON, description="Logging format")

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Server bind host")
    port: int = Field(default=8000, description="Server bind port")
    debug: bool = Field(default=False, description="Enable debug mode")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Ensure the listening port is usable."""
        if not 1 <= v <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses LRU cache to avoid re-parsing environment variables.
    """
    return Settings()


class ClusterBridgeSettings(Settings):
    """Settings specific to the Cluster Bridge service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    default_cluster_name: str = Field(
        default="default",
        description="Directory name under which the active cluster is aliased",
    )
    default_namespace: str = Field(
        default="default",
        description="Namespace used when a request does not name one",
    )

    # Nested settings
    tunnel: TunnelSettings = Field(default_factory=TunnelSettings)
    relay: RelaySettings = Field(default_factory=RelaySettings)
