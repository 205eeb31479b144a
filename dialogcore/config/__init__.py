"""
Configuration Management Module
===============================

This module provides:
- Settings dataclasses for every engine component
- Environment-specific YAML configuration loading
- Environment variable overrides
- Configuration validation
- Logging setup
"""

from .config_manager import (
    Settings, ConfigManager, Environment,
    ConversationConfig, EmotionConfig, TopicConfig, LoggingConfig, AnalyticsConfig,
    setup_logging, get_config_manager, get_settings
)

from .validation import (
    ConfigValidator, ValidationError, ValidationResult
)

__all__ = [
    # Configuration Management
    "Settings", "ConfigManager", "Environment",
    "ConversationConfig", "EmotionConfig", "TopicConfig", "LoggingConfig", "AnalyticsConfig",
    "setup_logging", "get_config_manager", "get_settings",

    # Validation
    "ConfigValidator", "ValidationError", "ValidationResult",
]
