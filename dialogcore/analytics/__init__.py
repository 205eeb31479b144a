"""
Analytics Module
===============

Conversation analytics collected in process.

Components:
- MetricsCollector: counters, gauges, timers and conversation events
"""

from .metrics_collector import (
    ConversationEvent,
    MetricsCollector,
    MetricTimer,
)

__all__ = [
    'ConversationEvent',
    'MetricsCollector',
    'MetricTimer',
]
