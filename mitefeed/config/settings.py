"""
MiteFeed Configuration System
============================

Simple configuration management with environment variables and Pydantic models.
Environment variables override Field defaults with clear precedence.
"""

from pathlib import Path
from typing import Optional
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from ..utils.exceptions import ConfigurationError, ErrorCode


DEFAULT_USER_AGENT = "mitefeed/1.0 (+https://github.com/mitefeed/mitefeed)"


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class HttpSettings(BaseModel):
    """Outbound HTTP configuration."""
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User-Agent sent with every request")
    request_timeout: int = Field(default=30, ge=1, le=300, description="Total request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates against certifi's bundle")

    @field_validator('user_agent')
    @classmethod
    def validate_user_agent(cls, v):
        """User agent must be a single non-empty header value."""
        v = v.strip()
        if not v:
            raise ValueError("user_agent cannot be empty")
        if "\n" in v or "\r" in v:
            raise ValueError("user_agent cannot contain line breaks")
        return v


class StorageSettings(BaseModel):
    """Local subscription storage layout."""
    data_dir: str = Field(default="data", description="Directory holding subscriptions and feed contents")
    subscriptions_file: str = Field(default="feeds.json", description="Subscription list file name")
    settings_file: str = Field(default="config.json", description="Reader settings file name")
    contents_dir: str = Field(default="contents", description="Directory for stored feed documents")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default=None, description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class MiteFeedSettings(BaseSettings):
    """Main application settings."""

    http: HttpSettings = Field(default_factory=HttpSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    # Application metadata
    app_name: str = Field(default="MiteFeed", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "MITEFEED_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Validate complete configuration."""
        errors = []

        try:
            data_dir = Path(self.storage.data_dir)
            if data_dir.exists() and not data_dir.is_dir():
                errors.append(f"Data path is not a directory: {data_dir}")
        except OSError as e:
            errors.append(f"Invalid data directory: {e}")

        for name in (self.storage.subscriptions_file, self.storage.settings_file):
            if Path(name).name != name:
                errors.append(f"Storage file name must not contain directories: {name}")

        if self.logging.file_path:
            try:
                log_path = Path(self.logging.file_path)
                log_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid log file path: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID
            )

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings() -> MiteFeedSettings:
    """Load settings from environment variables and defaults.

    Returns:
        Loaded and validated settings

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        # Precedence: environment, then .env, then Field defaults
        settings = MiteFeedSettings()
        settings.validate_configuration()
        return settings

    except Exception as e:
        if isinstance(e, ConfigurationError):
            raise
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_INVALID
        )


# Global settings instance
_settings: Optional[MiteFeedSettings] = None


def get_settings(reload: bool = False) -> MiteFeedSettings:
    """Get global settings instance (singleton pattern).

    Args:
        reload: Force reload of settings

    Returns:
        Global settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
