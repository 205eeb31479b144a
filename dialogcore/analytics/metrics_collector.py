"""
Metrics Collection System
========================

In-process conversation analytics.

Features:
- Counters with optional dimensions
- Point-in-time gauges
- Turn timing
- Bounded conversation event log
"""

import logging
import statistics
import time
from collections import Counter, defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)


@dataclass
class ConversationEvent:
    """Conversation analytics event."""
    event_type: str
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary."""
        return {
            "event_type": self.event_type,
            "details": dict(self.details),
            "timestamp": self.timestamp.isoformat()
        }


def _counter_key(name: str, dimensions: Optional[Dict[str, str]]) -> Tuple[str, Tuple[Tuple[str, str], ...]]:
    return name, tuple(sorted((dimensions or {}).items()))


class MetricsCollector:
    """Central metrics collection service."""

    def __init__(self, enabled: bool = True, max_events: int = 1000):
        self.enabled = enabled
        self.max_events = max_events

        self._counters: Dict[Tuple[str, tuple], float] = defaultdict(float)
        self._gauges: Dict[str, float] = {}
        self._timers: Dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=max_events))
        self._events: Deque[ConversationEvent] = deque(maxlen=max_events)
        self._intents: Counter = Counter()
        self._states: Counter = Counter()

        # Statistics
        self.metrics_collected = 0

    def increment_counter(self, name: str, value: Union[int, float] = 1,
                          dimensions: Optional[Dict[str, str]] = None):
        """Increment counter metric."""
        if not self.enabled:
            return
        self._counters[_counter_key(name, dimensions)] += value
        self.metrics_collected += 1

    def set_gauge(self, name: str, value: Union[int, float]):
        """Set gauge metric value."""
        if not self.enabled:
            return
        self._gauges[name] = value
        self.metrics_collected += 1

    def record_timer(self, name: str, duration_ms: float):
        """Record timer metric."""
        if not self.enabled:
            return
        self._timers[name].append(duration_ms)
        self.metrics_collected += 1

    def timer(self, name: str, clock: Callable[[], float] = time.perf_counter) -> 'MetricTimer':
        """Timer context manager."""
        return MetricTimer(self, name, clock)

    def track_conversation_event(self, event_type: str, details: Optional[Dict[str, Any]] = None):
        """Record a conversation lifecycle event."""
        if not self.enabled:
            return
        self._events.append(ConversationEvent(event_type, dict(details or {})))
        self.increment_counter("conversation_events", dimensions={"event_type": event_type})

    def track_interaction(self, intent: str, state: str):
        """Record the intent and resulting state of one turn."""
        if not self.enabled:
            return
        self._intents[intent] += 1
        self._states[state] += 1
        self.increment_counter("interactions")

    def get_counter(self, name: str, dimensions: Optional[Dict[str, str]] = None) -> float:
        """Get counter value; without dimensions the total over all dimensions."""
        if dimensions is not None:
            return self._counters.get(_counter_key(name, dimensions), 0)
        return sum(value for (key, _), value in self._counters.items() if key == name)

    def get_gauge(self, name: str) -> Optional[float]:
        return self._gauges.get(name)

    def get_events(self, event_type: Optional[str] = None, limit: Optional[int] = None) -> List[ConversationEvent]:
        """Get recorded events, oldest first."""
        events = [e for e in self._events if event_type is None or e.event_type == event_type]
        if limit:
            events = events[-limit:]
        return events

    def get_summary(self) -> Dict[str, Any]:
        """Get analytics summary."""
        timers = {
            name: {
                "count": len(values),
                "avg_ms": statistics.mean(values),
                "max_ms": max(values)
            }
            for name, values in self._timers.items() if values
        }
        return {
            "enabled": self.enabled,
            "metrics_collected": self.metrics_collected,
            "total_interactions": sum(self._intents.values()),
            "intent_distribution": dict(self._intents),
            "state_distribution": dict(self._states),
            "most_common_intent": self._intents.most_common(1)[0][0] if self._intents else None,
            "gauges": dict(self._gauges),
            "timers": timers,
            "event_count": len(self._events),
        }

    def reset(self):
        """Drop every collected value."""
        self._counters.clear()
        self._gauges.clear()
        self._timers.clear()
        self._events.clear()
        self._intents.clear()
        self._states.clear()
        self.metrics_collected = 0
        logger.info("Metrics collector reset")


class MetricTimer:
    """Context manager for timing operations."""

    def __init__(self, collector: MetricsCollector, metric_name: str,
                 clock: Callable[[], float] = time.perf_counter):
        self.collector = collector
        self.metric_name = metric_name
        self.clock = clock
        self.start_time = None

    def __enter__(self):
        self.start_time = self.clock()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            duration_ms = (self.clock() - self.start_time) * 1000
            self.collector.record_timer(self.metric_name, duration_ms)
