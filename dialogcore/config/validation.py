"""
Configuration Validation
========================

Validation for raw configuration dictionaries with detailed error reporting.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

VALID_ENVIRONMENTS = ["development", "staging", "production", "testing"]
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class ValidationError:
    """Validation error details."""
    field_path: str
    message: str
    severity: str = "error"  # error, warning
    suggested_value: Optional[Any] = None


class ValidationResult:
    """Result of configuration validation."""

    def __init__(self):
        self.errors: List[ValidationError] = []
        self.warnings: List[ValidationError] = []
        self.is_valid = True

    def add_error(self, field_path: str, message: str, suggested_value: Optional[Any] = None):
        """Add validation error."""
        self.errors.append(ValidationError(field_path, message, "error", suggested_value))
        self.is_valid = False

    def add_warning(self, field_path: str, message: str):
        """Add validation warning."""
        self.warnings.append(ValidationError(field_path, message, "warning"))

    def get_summary(self) -> str:
        """Get validation summary."""
        if self.is_valid:
            return f"Configuration valid. {len(self.warnings)} warnings."
        return f"Configuration invalid. {len(self.errors)} errors, {len(self.warnings)} warnings."


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class ConfigValidator:
    """Configuration validator."""

    @staticmethod
    def validate_section_type(settings_dict: Dict[str, Any], name: str, result: ValidationResult) -> Dict[str, Any]:
        """Check a section is a mapping and return it."""
        section = settings_dict.get(name)
        if section is None:
            return {}
        if not isinstance(section, dict):
            result.add_error(name, "Section must be a mapping")
            return {}
        return section

    @staticmethod
    def validate_conversation_config(config: Dict[str, Any], result: ValidationResult):
        """Validate conversation configuration."""
        prefix = "conversation"

        max_history = config.get("max_history_size", 50)
        if not _is_positive_int(max_history):
            result.add_error(f"{prefix}.max_history_size", "Max history size must be positive integer", 50)
        elif max_history > 10000:
            result.add_warning(f"{prefix}.max_history_size", "Large history size may use significant memory")

        timeout = config.get("context_timeout_minutes", 30)
        if not _is_positive_int(timeout):
            result.add_error(f"{prefix}.context_timeout_minutes", "Context timeout must be positive integer", 30)

        auto_reset = config.get("auto_reset_enabled", True)
        if not isinstance(auto_reset, bool):
            result.add_error(f"{prefix}.auto_reset_enabled", "Must be true or false")

    @staticmethod
    def validate_emotion_config(config: Dict[str, Any], result: ValidationResult):
        """Validate emotion detection configuration."""
        prefix = "emotion"

        threshold = config.get("min_confidence_threshold", 0.3)
        if not _is_number(threshold) or not (0.0 <= threshold <= 1.0):
            result.add_error(f"{prefix}.min_confidence_threshold", "Threshold must be between 0.0 and 1.0", 0.3)

        history_size = config.get("history_size", 100)
        if not _is_positive_int(history_size):
            result.add_error(f"{prefix}.history_size", "History size must be positive integer", 100)

        if not config.get("detection_enabled", True):
            result.add_warning(f"{prefix}.detection_enabled", "Emotion detection is disabled")

    @staticmethod
    def validate_topic_config(config: Dict[str, Any], result: ValidationResult):
        """Validate topic clustering configuration."""
        prefix = "topics"

        max_active = config.get("max_active_clusters", 5)
        if not _is_positive_int(max_active):
            result.add_error(f"{prefix}.max_active_clusters", "Max active clusters must be positive integer", 5)

        decay = config.get("relevance_decay_minutes", 30)
        if not _is_number(decay) or decay <= 0:
            result.add_error(f"{prefix}.relevance_decay_minutes", "Relevance decay must be a positive number", 30)
        elif decay > 24 * 60:
            result.add_warning(f"{prefix}.relevance_decay_minutes", "Topics will stay relevant for over a day")

    @staticmethod
    def validate_logging_config(config: Dict[str, Any], result: ValidationResult):
        """Validate logging configuration."""
        prefix = "logging"

        level = config.get("level", "INFO")
        if not isinstance(level, str) or level.upper() not in VALID_LOG_LEVELS:
            result.add_error(f"{prefix}.level", f"Invalid log level. Must be one of: {VALID_LOG_LEVELS}")

        if not config.get("console_output", True) and not config.get("file_path"):
            result.add_warning(f"{prefix}.console_output", "No log output configured")

    @classmethod
    def validate_settings(cls, settings_dict: Dict[str, Any]) -> ValidationResult:
        """Validate complete settings configuration."""
        result = ValidationResult()

        # Environment validation
        environment = settings_dict.get("environment", "development")
        if environment not in VALID_ENVIRONMENTS:
            result.add_error("environment", f"Invalid environment. Must be one of: {VALID_ENVIRONMENTS}")

        cls.validate_conversation_config(cls.validate_section_type(settings_dict, "conversation", result), result)
        cls.validate_emotion_config(cls.validate_section_type(settings_dict, "emotion", result), result)
        cls.validate_topic_config(cls.validate_section_type(settings_dict, "topics", result), result)
        cls.validate_logging_config(cls.validate_section_type(settings_dict, "logging", result), result)
        cls.validate_section_type(settings_dict, "analytics", result)

        # Production-specific validations
        if environment == "production" and settings_dict.get("debug_mode", False):
            result.add_error("debug_mode", "Debug mode must be disabled in production")

        logger.info(f"Configuration validation completed: {result.get_summary()}")
        return result
