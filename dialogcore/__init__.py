"""
DialogCore
==========

Rule-based dialogue engine: intent and emotion classification, a
conversation state machine and topic relevance tracking.
"""

__version__ = "1.0.0"
