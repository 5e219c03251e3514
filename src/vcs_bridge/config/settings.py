"""
Configuration management for vcs-bridge.
"""
import os
from pathlib import Path
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field
from urllib.parse import urlparse
import yaml
from dotenv import load_dotenv


@dataclass
class AppConfig:
    """Application-level configuration."""
    name: str = "vcs-bridge"
    version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"


@dataclass
class ProviderConfig:
    """Connection settings for one hosting platform."""
    api_base_url: str = ""
    token: Optional[str] = None
    username: Optional[str] = None
    timeout: int = 30
    verify_ssl: bool = True


def _github_defaults() -> ProviderConfig:
    return ProviderConfig(api_base_url="https://api.github.com")


def _gitlab_defaults() -> ProviderConfig:
    return ProviderConfig(api_base_url="https://gitlab.com")


@dataclass
class LoggingConfig:
    """Logging configuration."""
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = "logs/vcs_bridge.log"
    max_size_mb: int = 10
    backup_count: int = 5


@dataclass
class Settings:
    """Main configuration class."""
    app: AppConfig = field(default_factory=AppConfig)
    github: ProviderConfig = field(default_factory=_github_defaults)
    gitlab: ProviderConfig = field(default_factory=_gitlab_defaults)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load_from_file(cls, config_path: Optional[str] = None) -> "Settings":
        """Load settings from YAML file and environment variables."""
        # Load environment variables
        load_dotenv()

        if config_path is None:
            config_path = os.getenv("CONFIG_FILE", "config/config.yaml")

        config_path = Path(config_path)

        config_data = {}
        if config_path.exists():
            with open(config_path, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f) or {}

        settings = cls()

        if config_data:
            settings._update_from_dict(config_data)

        # Environment always wins over the file
        settings._update_from_env()

        return settings

    def _update_from_dict(self, data: Dict[str, Any]) -> None:
        """Update settings from dictionary."""
        for section in ("app", "github", "gitlab", "logging"):
            if section in data and isinstance(data[section], dict):
                self._update_dataclass(getattr(self, section), data[section])

    def _update_from_env(self) -> None:
        """Update settings from environment variables"""
        if os.getenv("GITHUB_TOKEN"):
            self.github.token = os.getenv("GITHUB_TOKEN")
        if os.getenv("GITHUB_API_URL"):
            self.github.api_base_url = os.getenv("GITHUB_API_URL")

        if os.getenv("GITLAB_TOKEN"):
            self.gitlab.token = os.getenv("GITLAB_TOKEN")
        if os.getenv("GITLAB_API_URL"):
            self.gitlab.api_base_url = os.getenv("GITLAB_API_URL")

        if os.getenv("VCS_USERNAME"):
            self.github.username = os.getenv("VCS_USERNAME")
            self.gitlab.username = os.getenv("VCS_USERNAME")

        if os.getenv("DEBUG"):
            self.app.debug = os.getenv("DEBUG").lower() in ("true", "1", "yes")

        if os.getenv("LOG_LEVEL"):
            self.app.log_level = os.getenv("LOG_LEVEL")

        # An empty LOG_FILE disables the file handler
        if "LOG_FILE" in os.environ:
            self.logging.file = os.environ["LOG_FILE"] or None

    @staticmethod
    def _update_dataclass(instance: Any, data: Dict[str, Any]) -> None:
        """Update a dataclass instance with dictionary data."""
        for key, value in data.items():
            if hasattr(instance, key):
                current_value = getattr(instance, key)
                if isinstance(current_value, dict) and isinstance(value, dict):
                    current_value.update(value)
                else:
                    setattr(instance, key, value)

    def provider(self, platform: str) -> ProviderConfig:
        """
        Get the connection section for a platform.

        Args:
            platform: Platform name ("github" or "gitlab")

        Returns:
            ProviderConfig for the platform

        Raises:
            KeyError: If the platform has no configuration section
        """
        sections = {"github": self.github, "gitlab": self.gitlab}
        return sections[platform]

    def vcs_info(self, platform: str):
        """Build the VcsInfo for a platform from its configuration section."""
        from vcs_bridge.core.models import VcsInfo

        section = self.provider(platform)
        return VcsInfo(
            api_endpoint=section.api_base_url or "",
            token=section.token or "",
            username=section.username or "",
        )

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        for name in ("github", "gitlab"):
            section = self.provider(name)
            if section.api_base_url:
                parsed = urlparse(section.api_base_url)
                if parsed.scheme not in ("http", "https") or not parsed.netloc:
                    errors.append(
                        f"{name}.api_base_url must be an http(s) URL, got '{section.api_base_url}'"
                    )
            if section.timeout <= 0:
                errors.append(f"{name}.timeout must be positive")

        if not self.github.token and not self.gitlab.token:
            errors.append(
                "At least one platform token is required "
                "(set GITHUB_TOKEN or GITLAB_TOKEN environment variable)"
            )

        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.app.log_level.upper() not in valid_levels:
            errors.append(f"Log level must be one of: {valid_levels}")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary for serialization."""
        return {
            "app": self.app.__dict__,
            "github": {k: v for k, v in self.github.__dict__.items() if k != "token"},
            "gitlab": {k: v for k, v in self.gitlab.__dict__.items() if k != "token"},
            "logging": self.logging.__dict__,
        }


# Global settings instance
_settings: Optional[Settings] = None


def get_settings(config_path: Optional[str] = None, reload: bool = False) -> Settings:
    """Get the global settings instance."""
    global _settings

    if _settings is None or reload:
        _settings = Settings.load_from_file(config_path)

    return _settings


def reload_settings(config_path: Optional[str] = None) -> Settings:
    """Reload settings from file."""
    return get_settings(config_path, reload=True)
