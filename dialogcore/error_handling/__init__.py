"""
Error Handling
==============

Exception hierarchy and runtime error tracking for the dialogue engine.

Construction-time misconfiguration (bad regex, conflicting transitions,
invalid settings) raises one of the exceptions below. Per-turn processing
never raises for user input; failures in collaborators such as state-change
listeners are recovered and recorded in an ErrorTracker instead.

Features:
- Exception hierarchy with original error and metadata
- Error classification by category and severity
- Recent error history and per-type statistics
- Error rate detection over a sliding time window
"""

import logging
import time
import traceback
import uuid
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)


class DialogCoreError(Exception):
    """Base exception for dialogue engine errors."""

    def __init__(self, message: str, original_error: Optional[Exception] = None, **kwargs):
        super().__init__(message)
        self.original_error = original_error
        self.metadata = kwargs


class ConfigurationError(DialogCoreError):
    """Exception raised for invalid settings or registries."""
    pass


class RegistryError(ConfigurationError):
    """Exception raised when a pattern, keyword or topic registry is malformed."""
    pass


class PatternCompileError(RegistryError):
    """Exception raised when a registry pattern cannot be compiled or matches empty input."""
    pass


class TransitionConflictError(RegistryError):
    """Exception raised for a duplicate (state, intent) transition entry."""
    pass


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification."""
    CONFIGURATION = "configuration"
    LISTENER = "listener"
    PROCESSING = "processing"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


@dataclass
class ErrorInfo:
    """Detailed error information."""
    error_id: str
    error_type: str
    error_message: str
    severity: ErrorSeverity
    category: ErrorCategory
    source: str
    session_id: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    stack_trace: Optional[str] = None
    context_data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error info to dictionary."""
        return {
            "error_id": self.error_id,
            "error_type": self.error_type,
            "error_message": self.error_message,
            "severity": self.severity.value,
            "category": self.category.value,
            "source": self.source,
            "session_id": self.session_id,
            "timestamp": self.timestamp.isoformat(),
            "stack_trace": self.stack_trace,
            "context_data": self.context_data,
        }


class ErrorTracker:
    """
    Records recovered runtime errors.

    Keeps a bounded history for inspection and a list of occurrence times
    used to decide whether the recent error rate is abnormally high.
    """

    def __init__(self, max_history: int = 100, window_seconds: float = 60.0,
                 threshold: int = 10, clock: Callable[[], float] = time.time):
        self.max_history = max_history
        self.window_seconds = window_seconds
        self.threshold = threshold
        self._clock = clock

        self._history: Deque[ErrorInfo] = deque(maxlen=max_history)
        self._occurrences: Deque[float] = deque()
        self._counts: Counter = Counter()

    def record(self, error: Exception, source: str,
               category: ErrorCategory = ErrorCategory.UNKNOWN,
               severity: ErrorSeverity = ErrorSeverity.MEDIUM,
               session_id: Optional[str] = None,
               **context: Any) -> ErrorInfo:
        """Record an error that was handled without propagating."""
        info = ErrorInfo(
            error_id=str(uuid.uuid4()),
            error_type=type(error).__name__,
            error_message=str(error),
            severity=severity,
            category=category,
            source=source,
            session_id=session_id,
            stack_trace="".join(traceback.format_exception(type(error), error, error.__traceback__)),
            context_data=dict(context),
        )

        self._history.append(info)
        self._counts[info.error_type] += 1
        self._occurrences.append(self._clock())
        self._prune()

        logger.warning(f"Recovered {info.error_type} in {source}: {info.error_message}")
        return info

    def _prune(self) -> None:
        cutoff = self._clock() - self.window_seconds
        while self._occurrences and self._occurrences[0] < cutoff:
            self._occurrences.popleft()

    def get_error_statistics(self) -> Dict[str, int]:
        """Get number of recorded errors per exception type."""
        return dict(self._counts)

    def recent_errors(self, limit: int = 10) -> List[ErrorInfo]:
        """Get the most recent errors, newest last."""
        if limit <= 0:
            return []
        return list(self._history)[-limit:]

    def errors_by_category(self, category: ErrorCategory) -> List[ErrorInfo]:
        """Get recorded errors for a category."""
        return [info for info in self._history if info.category == category]

    def is_error_rate_high(self) -> bool:
        """Check whether more than `threshold` errors happened inside the window."""
        self._prune()
        return len(self._occurrences) > self.threshold

    def clear(self) -> None:
        """Clear error history and statistics."""
        self._history.clear()
        self._occurrences.clear()
        self._counts.clear()

    def __len__(self) -> int:
        return len(self._history)


__all__ = [
    'DialogCoreError',
    'ConfigurationError',
    'RegistryError',
    'PatternCompileError',
    'TransitionConflictError',
    'ErrorSeverity',
    'ErrorCategory',
    'ErrorInfo',
    'ErrorTracker',
]
