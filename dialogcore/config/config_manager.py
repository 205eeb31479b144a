"""
Configuration Manager
=====================

Environment-based settings loaded from YAML, with environment variable
overrides, validation and logging setup.
"""

import logging
import os
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import yaml

from ..error_handling import ConfigurationError
from .validation import ConfigValidator

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class Environment(Enum):
    """Environment types for configuration."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


@dataclass
class ConversationConfig:
    """Conversation flow settings."""
    max_history_size: int = 50
    context_timeout_minutes: int = 30
    auto_reset_enabled: bool = True


@dataclass
class EmotionConfig:
    """Emotion detection settings."""
    detection_enabled: bool = True
    min_confidence_threshold: float = 0.3
    history_size: int = 100


@dataclass
class TopicConfig:
    """Topic clustering settings."""
    clustering_enabled: bool = True
    max_active_clusters: int = 5
    relevance_decay_minutes: float = 30.0
    activate_all: bool = False


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    file_path: Optional[str] = None
    console_output: bool = True


@dataclass
class AnalyticsConfig:
    """Conversation analytics settings."""
    enabled: bool = True
    session_tracking: bool = True
    max_events: int = 1000


@dataclass
class Settings:
    """Application settings."""
    environment: Environment = Environment.DEVELOPMENT
    app_name: str = "DialogCore"
    version: str = "1.0.0"
    debug_mode: bool = False

    conversation: ConversationConfig = field(default_factory=ConversationConfig)
    emotion: EmotionConfig = field(default_factory=EmotionConfig)
    topics: TopicConfig = field(default_factory=TopicConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        data = asdict(self)
        data['environment'] = self.environment.value
        return data

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION

    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEVELOPMENT


# dotted settings path -> (environment variable, converter)
ENV_OVERRIDES: Dict[str, tuple] = {
    'conversation.max_history_size': ('DIALOGCORE_MAX_HISTORY_SIZE', int),
    'conversation.context_timeout_minutes': ('DIALOGCORE_CONTEXT_TIMEOUT_MINUTES', int),
    'topics.max_active_clusters': ('DIALOGCORE_MAX_ACTIVE_CLUSTERS', int),
    'topics.relevance_decay_minutes': ('DIALOGCORE_RELEVANCE_DECAY_MINUTES', float),
    'logging.level': ('DIALOGCORE_LOG_LEVEL', str.upper),
}


class ConfigManager:
    """Loads, validates and holds application settings."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._find_config_path()
        self._settings: Optional[Settings] = None

        # Load initial configuration
        self.load_config()

    def _find_config_path(self) -> str:
        """Find configuration file path based on environment."""
        env = os.environ.get("ENVIRONMENT", "development")
        config_dir = Path(__file__).parent

        # Try environment-specific config first
        env_config = config_dir / f"settings.{env}.yaml"
        if env_config.exists():
            return str(env_config)

        # Fall back to default config
        default_config = config_dir / "settings.yaml"
        if default_config.exists():
            return str(default_config)

        raise FileNotFoundError("No configuration file found")

    def load_config(self) -> Settings:
        """Load configuration from file."""
        try:
            with open(self.config_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load configuration: {e}")
            raise

        if not isinstance(config_data, dict):
            raise ConfigurationError(
                f"Configuration root must be a mapping: {self.config_path}"
            )

        # Merge environment variables
        config_data = self._merge_environment_variables(config_data)

        result = ConfigValidator.validate_settings(config_data)
        for warning in result.warnings:
            logger.warning(f"Configuration warning at {warning.field_path}: {warning.message}")
        if not result.is_valid:
            details = "; ".join(f"{e.field_path}: {e.message}" for e in result.errors)
            raise ConfigurationError(
                f"Invalid configuration in {self.config_path}: {details}",
                errors=[e.field_path for e in result.errors]
            )

        self._settings = self._create_settings_from_dict(config_data)
        logger.info(f"Configuration loaded from {self.config_path}")
        return self._settings

    def reload_config(self) -> Settings:
        """Reload configuration, keeping the current settings on failure."""
        try:
            return self.load_config()
        except (OSError, yaml.YAMLError, ConfigurationError) as e:
            logger.error(f"Failed to reload configuration: {e}")
            if self._settings is None:
                raise
            return self._settings

    def _merge_environment_variables(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Merge environment variables with configuration data."""
        for config_path, (env_var, convert) in ENV_OVERRIDES.items():
            env_value = os.environ.get(env_var)
            if not env_value:
                continue
            try:
                value = convert(env_value)
            except ValueError:
                raise ConfigurationError(
                    f"Environment variable {env_var} has invalid value {env_value!r}",
                    variable=env_var
                )
            self._set_nested_value(config_data, config_path, value)
            logger.debug(f"Configuration override {config_path} from {env_var}")

        return config_data

    def _set_nested_value(self, data: Dict[str, Any], path: str, value: Any):
        """Set nested dictionary value using dot notation."""
        keys = path.split('.')
        current = data

        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value

    def _create_settings_from_dict(self, config_data: Dict[str, Any]) -> Settings:
        """Create Settings object from configuration dictionary."""
        settings_dict: Dict[str, Any] = {}

        # Basic settings
        settings_dict['environment'] = Environment(config_data.get('environment', 'development'))
        settings_dict['app_name'] = config_data.get('app_name', 'DialogCore')
        settings_dict['version'] = str(config_data.get('version', '1.0.0'))
        settings_dict['debug_mode'] = config_data.get('debug_mode', False)

        sections: Dict[str, Callable[..., Any]] = {
            'conversation': ConversationConfig,
            'emotion': EmotionConfig,
            'topics': TopicConfig,
            'logging': LoggingConfig,
            'analytics': AnalyticsConfig,
        }
        for name, config_class in sections.items():
            if name in config_data:
                try:
                    settings_dict[name] = config_class(**(config_data[name] or {}))
                except TypeError as e:
                    raise ConfigurationError(
                        f"Unknown option in '{name}' section: {e}",
                        original_error=e, section=name
                    )

        return Settings(**settings_dict)

    @property
    def settings(self) -> Settings:
        """Get current settings."""
        if not self._settings:
            self.load_config()
        if self._settings is None:
            raise RuntimeError("Failed to load configuration")
        return self._settings


def setup_logging(logging_config: Optional[LoggingConfig] = None) -> None:
    """Configure root logging from settings."""
    logging_config = logging_config or LoggingConfig()

    handlers: list = []
    if logging_config.console_output:
        handlers.append(logging.StreamHandler())
    if logging_config.file_path:
        handlers.append(logging.FileHandler(logging_config.file_path))
    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=getattr(logging, logging_config.level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True
    )


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def get_settings() -> Settings:
    """Get current application settings."""
    return get_config_manager().settings
