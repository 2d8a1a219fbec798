"""
Configuration management system with environment variable validation.
Provides centralized configuration for the moderation platform components.
"""

import os
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, ValidationError, ConfigDict, model_validator
from pydantic_settings import BaseSettings
from enum import Enum
from dotenv import load_dotenv


class LogLevel(str, Enum):
    """Supported logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class DatabaseConfig(BaseModel):
    """Database connection configuration."""
    url: Optional[str] = None
    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, ge=1, le=65535, description="Database port")
    database: str = Field("content_platform", description="Database name")
    username: str = Field("postgres", description="Database username")
    password: str = Field("", description="Database password")
    pool_size: int = Field(10, ge=1, le=100, description="Connection pool size")
    max_overflow: int = Field(20, ge=0, le=100, description="Max pool overflow")
    echo: bool = Field(False, description="Echo SQL statements")

    def get_url(self) -> str:
        """Get PostgreSQL connection URL."""
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.username}:{self.password}@{self.host}:{self.port}/{self.database}"


class WebServerConfig(BaseModel):
    """Web server configuration."""
    host: str = Field("0.0.0.0", description="Server host")
    port: int = Field(8000, ge=1024, le=65535, description="Server port")
    cors_origins: List[str] = Field(default_factory=list, description="CORS allowed origins")
    workers: int = Field(1, ge=1, le=16, description="Number of worker processes")


class LoggingConfig(BaseModel):
    """Structured logging configuration."""
    json_format: bool = Field(True, description="Emit JSON log lines on the console")
    log_dir: Optional[str] = Field(None, description="Directory for rotating log files")
    max_bytes: int = Field(50 * 1024 * 1024, ge=1024, description="Rotate files after this size")
    backup_count: int = Field(5, ge=0, le=100, description="Rotated files to keep")


class ModerationConfig(BaseModel):
    """Unified moderation view settings."""
    flagged_threshold: int = Field(
        75, ge=0, le=100,
        description="Spam score above which topics and replies show as flagged by the system"
    )
    preview_length: int = Field(200, ge=1, description="Characters kept in content previews")
    reply_fetch_limit: int = Field(100, ge=1, description="Most recent replies loaded per listing")


class SpamScoringConfig(BaseModel):
    """Weights and thresholds of the spam scoring engine."""
    keyword_weight: float = Field(0.5, ge=0.0, le=1.0)
    pattern_weight: float = Field(0.3, ge=0.0, le=1.0)
    heuristic_weight: float = Field(0.2, ge=0.0, le=1.0)
    spam_threshold: int = Field(75, ge=0, le=100, description="Combined score at which content is spam")
    keyword_match_points: int = Field(10, ge=1, description="Points per keyword match and severity unit")
    reason_keyword_limit: int = Field(3, ge=1, description="Keywords quoted in the analysis reason")

    @model_validator(mode="after")
    def validate_weights(self):
        """Weights must form a weighted average."""
        total = self.keyword_weight + self.pattern_weight + self.heuristic_weight
        if abs(total - 1.0) > 1e-6:
            raise ValueError("Spam scoring weights must sum to 1.0")
        return self


class SystemConfig(BaseSettings):
    """
    Main system configuration with environment variable validation.

    Environment variables are automatically loaded and validated.
    Supports .env files and system environment variables.
    """

    # Environment and logging
    environment: str = Field("development", description="Environment name")
    log_level: LogLevel = Field(LogLevel.INFO, description="Logging level")
    debug: bool = Field(False, description="Enable debug mode")
    app_name: str = Field("Content Platform Moderation", description="Application name")
    version: str = Field("1.0.0", description="Application version")

    # Component configurations
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    web_server: WebServerConfig = Field(default_factory=WebServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    moderation: ModerationConfig = Field(default_factory=ModerationConfig)
    spam: SpamScoringConfig = Field(default_factory=SpamScoringConfig)

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore"
    )

    @classmethod
    def from_env(cls) -> 'SystemConfig':
        """Load configuration from environment variables."""
        try:
            return cls()
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}")

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'SystemConfig':
        """Load configuration from dictionary."""
        try:
            return cls(**config_dict)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}")

    def validate_required_env_vars(self) -> List[str]:
        """
        Validate that all required environment variables are set.

        Only production deployments must point at a real database; other
        environments run on the defaults.

        Returns:
            List of missing environment variable names
        """
        if self.environment != "production" or os.getenv("DATABASE__URL"):
            return []

        missing_vars = []
        required_vars = [
            "DATABASE__HOST",
            "DATABASE__DATABASE",
            "DATABASE__USERNAME",
            "DATABASE__PASSWORD",
        ]

        for var in required_vars:
            if not os.getenv(var):
                missing_vars.append(var)

        return missing_vars


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""
    pass


def load_config() -> SystemConfig:
    """
    Load and validate system configuration.

    Returns:
        Validated SystemConfig instance

    Raises:
        ConfigurationError: If configuration is invalid or missing required values
    """
    load_dotenv()
    config = SystemConfig.from_env()

    missing_vars = config.validate_required_env_vars()
    if missing_vars:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing_vars)}"
        )

    return config


def create_sample_env_file(filepath: str = ".env.example") -> None:
    """
    Create a sample .env file with all configuration options.

    Args:
        filepath: Path to create the sample file
    """
    sample_content = '''# Content Platform Moderation Configuration

# Environment
ENVIRONMENT=development
LOG_LEVEL=INFO
DEBUG=false

# Database Configuration
DATABASE__URL=
DATABASE__HOST=localhost
DATABASE__PORT=5432
DATABASE__DATABASE=content_platform
DATABASE__USERNAME=postgres
DATABASE__PASSWORD=your_password_here
DATABASE__POOL_SIZE=10
DATABASE__MAX_OVERFLOW=20

# Web Server Configuration
WEB_SERVER__HOST=0.0.0.0
WEB_SERVER__PORT=8000
WEB_SERVER__CORS_ORIGINS=["http://localhost:3000"]

# Logging
LOGGING__JSON_FORMAT=true
LOGGING__LOG_DIR=

# Moderation
MODERATION__FLAGGED_THRESHOLD=75
MODERATION__PREVIEW_LENGTH=200
MODERATION__REPLY_FETCH_LIMIT=100

# Spam Scoring
SPAM__KEYWORD_WEIGHT=0.5
SPAM__PATTERN_WEIGHT=0.3
SPAM__HEURISTIC_WEIGHT=0.2
SPAM__SPAM_THRESHOLD=75
'''

    with open(filepath, 'w') as f:
        f.write(sample_content)


# Global configuration instance
_config: Optional[SystemConfig] = None


def get_config() -> SystemConfig:
    """
    Get the global configuration instance.

    Returns:
        SystemConfig instance
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config
