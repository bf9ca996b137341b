"""Configuration management for grid mailer."""

import json
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Key names used by the original console application's app settings.
LEGACY_KEYS: Dict[str, Tuple[str, ...]] = {
    "DefaultEmailFrom": ("default_email_from",),
    "DefaultEmailTo": ("default_email_to",),
    "DefaultDisplayName": ("default_display_name",),
    "SendGridUserName": ("sendgrid", "username"),
    "SendGridPassword": ("sendgrid", "password"),
    "SendGridApiKey": ("sendgrid", "api_key"),
}


class SendGridConfig(BaseModel):
    """SendGrid credentials."""

    username: Optional[str] = Field(None, description="SendGrid user name ('apikey' for API keys)")
    password: Optional[str] = Field(None, description="SendGrid password or API key")
    api_key: Optional[str] = Field(None, description="SendGrid API key")


class AuditConfig(BaseModel):
    """Audit copy of outgoing bodies."""

    enabled: bool = Field(False, description="Write each body to disk before sending")
    directory: str = Field(".", description="Directory for audit copies")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field("INFO", description="Logging level")
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )
    file_path: Optional[str] = Field(None, description="Path to log file")
    max_file_size: int = Field(10 * 1024 * 1024, description="Maximum log file size in bytes")
    backup_count: int = Field(5, description="Number of backup log files to keep")
    console_output: bool = Field(True, description="Enable console logging")


class Settings(BaseSettings):
    """Main application settings.

    Nothing here is required at load time; missing defaults and credentials
    are reported where they are first needed.
    """

    default_email_from: Optional[str] = Field(None, description="Sender address")
    default_email_to: Optional[str] = Field(None, description="Fallback recipient")
    default_display_name: Optional[str] = Field(None, description="Sender display name")

    sendgrid: SendGridConfig = Field(default_factory=SendGridConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="GRID_MAILER_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Environment wins over values passed in from a config file.
        return env_settings, init_settings, file_secret_settings


def _normalize_legacy_keys(config: Dict[str, Any]) -> Dict[str, Any]:
    """Map the original CamelCase key names onto the nested snake_case layout."""
    result: Dict[str, Any] = {}
    for key, value in config.items():
        path = LEGACY_KEYS.get(key)
        if path is None:
            if isinstance(value, dict) and isinstance(result.get(key), dict):
                result[key].update(value)
            else:
                result[key] = value
            continue
        target = result
        for part in path[:-1]:
            target = target.setdefault(part, {})
        target[path[-1]] = value
    return result


def _load_config_file(config_file: Path) -> Dict[str, Any]:
    """Load configuration from YAML or JSON file."""
    if not config_file.exists():
        return {}

    with open(config_file, "r") as f:
        if config_file.suffix.lower() in [".yaml", ".yml"]:
            data = yaml.safe_load(f) or {}
        elif config_file.suffix.lower() == ".json":
            data = json.load(f)
        else:
            raise ValueError(f"Unsupported config file format: {config_file.suffix}")

    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {config_file}")
    return _normalize_legacy_keys(data)


def load_settings(
    config_dir: Optional[Path] = None,
    env_file: Optional[str] = None,
    config_file: Optional[str] = None,
) -> Settings:
    """
    Load application settings from multiple sources.

    Sources are loaded in order of precedence (later sources override earlier):
    1. Default values
    2. Configuration file (YAML/JSON)
    3. Environment file (.env)
    4. Environment variables

    Args:
        config_dir: Directory containing config files (default: current directory)
        env_file: Path to environment file (default: .env in config_dir)
        config_file: Path to configuration file (default: config.yaml in config_dir)

    Returns:
        Loaded settings instance
    """
    if config_dir is None:
        config_dir = Path.cwd()

    env_path = Path(env_file) if env_file else config_dir / ".env"
    config_path = Path(config_file) if config_file else config_dir / "config.yaml"

    if env_path.exists():
        # Does not override variables already set in the process environment.
        load_dotenv(env_path)

    file_config = _load_config_file(config_path)

    try:
        return Settings(**file_config)
    except Exception as e:
        raise ValueError(f"Failed to load configuration: {e}") from e
