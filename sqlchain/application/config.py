"""
Application Configuration - Central configuration management.

Builder defaults and logging settings, loaded from environment variables
(a ``.env`` file is honoured through python-dotenv).
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from dotenv import load_dotenv


class Environment(Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class BuilderConfig:
    """Query builder defaults."""

    table_prefix: str = ""
    default_wildcard: str = "{%}"
    auto_sanitize: bool = True

    @classmethod
    def from_env(cls) -> "BuilderConfig":
        """Create configuration from environment variables."""
        return cls(
            table_prefix=os.getenv("SQLCHAIN_TABLE_PREFIX", ""),
            default_wildcard=os.getenv("SQLCHAIN_WILDCARD", "{%}") or "{%}",
            auto_sanitize=_env_bool("SQLCHAIN_AUTO_SANITIZE", "true"),
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"
    file: str | None = None
    mask_sql_literals: bool = False

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        """Create configuration from environment variables."""
        file_path = os.getenv("LOG_FILE")
        return cls(
            level=os.getenv("LOG_LEVEL", "INFO"),
            format=os.getenv("LOG_FORMAT", "json"),
            file=file_path if file_path else None,
            mask_sql_literals=_env_bool("LOG_MASK_SQL_LITERALS", "false"),
        )


@dataclass
class ApplicationConfig:
    """Main application configuration."""

    environment: Environment = Environment.DEVELOPMENT
    builder: BuilderConfig = field(default_factory=BuilderConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "ApplicationConfig":
        """
        Create configuration from environment variables.

        Raises:
            ValueError: If ``ENVIRONMENT`` names an unknown environment
        """
        load_dotenv()

        env_str = os.getenv("ENVIRONMENT", "development")
        try:
            environment = Environment(env_str)
        except ValueError:
            raise ValueError(f"Invalid environment: {env_str}")

        return cls(
            environment=environment,
            builder=BuilderConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "environment": self.environment.value,
            "builder": {
                "table_prefix": self.builder.table_prefix,
                "default_wildcard": self.builder.default_wildcard,
                "auto_sanitize": self.builder.auto_sanitize,
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
                "file": self.logging.file,
                "mask_sql_literals": self.logging.mask_sql_literals,
            },
        }

    def validate(self) -> bool:
        """
        Validate the configuration.

        Returns:
            True if valid, raises exception otherwise
        """
        if not self.builder.default_wildcard.strip():
            raise ValueError("Default LIKE wildcard cannot be blank")
        if self.environment == Environment.PRODUCTION and not self.builder.auto_sanitize:
            raise ValueError("Auto-sanitization cannot be disabled in production")
        return True


_config: ApplicationConfig | None = None


def get_config() -> ApplicationConfig:
    """
    Get the application configuration, loading it from the environment once.

    Returns:
        ApplicationConfig: The application configuration
    """
    global _config
    if _config is None:
        _config = ApplicationConfig.from_env()
    return _config


def set_config(config: ApplicationConfig) -> None:
    """
    Set the application configuration.

    Args:
        config: The new configuration
    """
    global _config
    _config = config


def reset_config() -> None:
    """Reset the cached configuration."""
    global _config
    _config = None
