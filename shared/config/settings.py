"""
Settings Module
===============

Pydantic-based configuration with environment variable loading.

Version: 0.1.0
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class RegistryMode(str, Enum):
    """Ledger operation mode."""

    MOCK = "mock"
    LIVE = "live"


class ContentStoreMode(str, Enum):
    """Content store operation mode."""

    MOCK = "mock"
    LIVE = "live"


class RegistrySettings(BaseSettings):
    """Ledger contract configuration."""

    model_config = SettingsConfigDict(env_prefix="REGISTRY_")

    mode: RegistryMode = RegistryMode.MOCK

    rpc_url: str = ""
    contract_address: str = ""
    abi_path: Path | None = None
    extended: bool = True
    chain_id: int | None = None

    # Transaction handling
    confirmations: int = Field(default=2, ge=0)
    confirmation_timeout_seconds: float = 600.0
    poll_interval_seconds: float = 2.0
    call_timeout_seconds: float = 30.0
    gas_limit: int = 5_500_000


class SignerSettings(BaseSettings):
    """Credentials for state-changing ledger calls."""

    model_config = SettingsConfigDict(env_prefix="SIGNER_")

    private_key: SecretStr = SecretStr("")
    mnemonic: SecretStr = SecretStr("")
    account_index: int = 0

    @property
    def configured(self) -> bool:
        """Check if any credential is present."""
        return bool(
            self.private_key.get_secret_value() or self.mnemonic.get_secret_value()
        )


class IPFSSettings(BaseSettings):
    """IPFS API and gateway configuration."""

    model_config = SettingsConfigDict(env_prefix="IPFS_")

    mode: ContentStoreMode = ContentStoreMode.MOCK

    host: str = "ipfs.infura.io"
    port: int = 5001
    protocol: str = "https"
    gateway_url: str = "https://gateway.pinata.cloud"

    # Hosted API credentials (basic auth)
    project_id: str = ""
    project_secret: SecretStr = SecretStr("")

    cid_version: int = Field(default=0, ge=0, le=1)
    timeout_seconds: float = 60.0
    max_upload_bytes: int = 50 * 1024 * 1024

    @property
    def api_url(self) -> str:
        """Generate the HTTP API base URL."""
        return f"{self.protocol}://{self.host}:{self.port}"


class CORSSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into list."""
        return [o.strip() for o in self.origins.split(",") if o.strip()]


class Settings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables with sensible defaults.
    Use the global `settings` singleton or call `get_settings()`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # General
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: LogLevel = LogLevel.INFO
    service_port: int = Field(default=8010, alias="DIPLOMA_SERVICE_PORT")

    # Ledger and content store
    registry: RegistrySettings = Field(default_factory=RegistrySettings)
    signer: SignerSettings = Field(default_factory=SignerSettings)
    ipfs: IPFSSettings = Field(default_factory=IPFSSettings)

    # Security
    cors: CORSSettings = Field(default_factory=CORSSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Ensure log level is uppercase."""
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings singleton.
    """
    return Settings()
