"""
Configuration management for Dialog Ledger.

This module implements hierarchical configuration loading with validation,
following the pattern: CLI args > env vars > user config > defaults.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = Field(
        default="data/dialog_ledger.db", description="Database file path"
    )
    encryption_enabled: bool = Field(
        default=True, description="Encrypt turn text at rest"
    )
    echo: bool = Field(default=False, description="Echo SQL statements")


class ConversationConfig(BaseModel):
    """Conversation and session index behaviour."""

    title_length: int = Field(
        default=40, ge=1, le=200, description="Summary title length in characters"
    )
    lazy_sentinel: str = Field(
        default="none", description="Conversation id that requests lazy creation"
    )

    @field_validator("lazy_sentinel")
    @classmethod
    def validate_sentinel(cls, v):
        if not v or not v.strip():
            raise ValueError("Lazy sentinel cannot be empty")
        return v.strip().lower()


class GeminiConfig(BaseModel):
    """Text generation provider configuration."""

    model: str = Field(default="gemini-1.5-flash", description="Gemini model name")
    base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini API base URL",
    )
    max_output_tokens: int | None = Field(
        default=None, ge=1, description="Maximum tokens to generate"
    )


class YouTubeConfig(BaseModel):
    """Video lookup provider configuration."""

    base_url: str = Field(
        default="https://www.googleapis.com/youtube/v3",
        description="YouTube Data API base URL",
    )
    safe_search: str = Field(default="moderate", description="Safe search level")

    @field_validator("safe_search")
    @classmethod
    def validate_safe_search(cls, v):
        valid_levels = {"none", "moderate", "strict"}
        if v not in valid_levels:
            raise ValueError(f"Safe search must be one of {valid_levels}")
        return v


class APIConfig(BaseModel):
    """API configuration."""

    timeout: int = Field(
        default=30, ge=1, le=300, description="Request timeout in seconds"
    )
    retries: int = Field(default=2, ge=0, le=10, description="Number of retries")
    backoff_factor: float = Field(
        default=2.0, ge=1.0, le=10.0, description="Exponential backoff factor"
    )
    max_backoff: int = Field(
        default=60, ge=1, description="Maximum backoff time in seconds"
    )


class OrchestratorConfig(BaseModel):
    """Default content source toggles for new submissions."""

    text_enabled: bool = Field(default=True, description="Stream a generated answer")
    video_enabled: bool = Field(default=False, description="Look up a related video")

    @model_validator(mode="after")
    def validate_sources(self):
        if not self.text_enabled and not self.video_enabled:
            raise ValueError("At least one content source must be enabled")
        return self


class AppSettings(BaseSettings):
    """Main application settings using environment variables."""

    # Application info
    app_name: str = Field(default="Dialog Ledger", description="Application name")
    environment: str = Field(
        default="development",
        description="Environment (development/staging/production)",
    )

    # API Keys
    gemini_api_key: str | None = Field(
        default=None, description="Gemini API key", repr=False
    )
    youtube_api_key: str | None = Field(
        default=None, description="YouTube Data API key", repr=False
    )

    # Security
    database_encryption_key: str | None = Field(
        default=None, description="Database encryption key", repr=False
    )

    # Identity used by the CLI
    default_owner_id: str | None = Field(
        default=None, description="Owner id used when none is given"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    # Directories
    data_dir: str = Field(default="./data", description="Data directory")

    # Configuration sections
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    conversation: ConversationConfig = Field(default_factory=ConversationConfig)
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    youtube: YouTubeConfig = Field(default_factory=YouTubeConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="forbid",
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        valid_environments = {"development", "staging", "production"}
        if v not in valid_environments:
            raise ValueError(f"Environment must be one of {valid_environments}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @model_validator(mode="after")
    def validate_encryption_keys(self):
        """Validate encryption keys are present when encryption is enabled."""
        if (
            self.database.encryption_enabled
            and not self.database_encryption_key
            and self.environment == "production"
        ):
            raise ValueError(
                "Database encryption key is required when encryption is enabled in production"
            )

        return self

    def get_api_key(self, provider: str) -> str | None:
        """Get API key for a specific provider."""
        provider = provider.lower()
        if provider == "gemini":
            return self.gemini_api_key
        if provider == "youtube":
            return self.youtube_api_key
        return None

    def has_api_key(self, provider: str) -> bool:
        """Check if API key is configured for provider."""
        return self.get_api_key(provider) is not None

    def get_database_url(self) -> str:
        """SQLite URL for the configured database path."""
        return f"sqlite:///{Path(self.database.path)}"


class ConfigurationManager:
    """Manages hierarchical configuration loading and validation."""

    def __init__(self):
        self._settings: AppSettings | None = None
        self._user_config: dict[str, Any] = {}

    def load_configuration(
        self,
        config_path: Path | None = None,
        override_env: dict[str, str] | None = None,
    ) -> AppSettings:
        """
        Load configuration with hierarchy: CLI/override > env vars > user config > defaults.

        Args:
            config_path: Path to user configuration file
            override_env: Environment variable overrides (simulating CLI args)

        Returns:
            Validated AppSettings instance
        """
        if config_path and config_path.exists():
            self._user_config = self._load_yaml_config(config_path)

        if override_env:
            for key, value in override_env.items():
                os.environ[key] = value

        init_kwargs = {}
        if self._user_config:
            init_kwargs.update(self._user_config)

        self._settings = AppSettings(**init_kwargs)

        self._validate_configuration()

        return self._settings

    def _load_yaml_config(self, config_path: Path) -> dict[str, Any]:
        """Load configuration from YAML file."""
        try:
            with open(config_path, encoding="utf-8") as f:
                config = yaml.safe_load(f)
                return config or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML configuration: {e}") from e
        except FileNotFoundError:
            return {}

    def _validate_configuration(self):
        """Perform additional configuration validation."""
        if not self._settings:
            raise ValueError("Configuration not loaded")

        self._ensure_directory(self._settings.data_dir)
        self._ensure_directory(str(Path(self._settings.database.path).parent))

    def _ensure_directory(self, dir_path: str):
        """Ensure directory exists, create if necessary."""
        path = Path(dir_path)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ValueError(f"Cannot create directory {dir_path}: {e}") from e

    @property
    def settings(self) -> AppSettings:
        """Get current settings (load default if not loaded)."""
        if self._settings is None:
            self._settings = self.load_configuration()
        return self._settings

    def reset(self):
        """Reset the configuration manager (useful for testing)."""
        self._settings = None
        self._user_config = {}

    def export_config_template(self, output_path: Path):
        """Export a configuration template file."""
        template = {
            "app_name": "Dialog Ledger",
            "environment": "development",
            "database": {
                "path": "data/dialog_ledger.db",
                "encryption_enabled": True,
            },
            "conversation": {"title_length": 40, "lazy_sentinel": "none"},
            "gemini": {"model": "gemini-1.5-flash"},
            "api": {"timeout": 30, "retries": 2, "backoff_factor": 2.0},
            "orchestrator": {"text_enabled": True, "video_enabled": False},
        }

        with open(output_path, "w", encoding="utf-8") as f:
            yaml.dump(template, f, default_flow_style=False, indent=2)


# Global configuration manager instance
config_manager = ConfigurationManager()


def get_settings() -> AppSettings:
    """Get the current application settings."""
    return config_manager.settings


def load_config(config_path: Path | None = None) -> AppSettings:
    """Load configuration from file and environment."""
    return config_manager.load_configuration(config_path)
