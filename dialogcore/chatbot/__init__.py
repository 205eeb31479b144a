"""
Chatbot Core Module
==================

Rule-based dialogue core: pattern classification of intents and emotions,
the conversation state machine and topic relevance tracking.
"""

from .base_core import DialogueEngine, DialogueSession, TurnResult
from .dialog_state import (
    ConversationState, DialogueStateMachine, StateChange, TransitionTable,
    default_transition_table
)
from .emotion_detector import EmotionDetector, EmotionHistory, EmotionResult, EmotionType
from .intent_recognizer import IntentRecognizer, IntentResult, default_intent_registry
from .memory import ChatMessage, ConversationMemory, ConversationSession
from .pattern_classifier import ClassificationResult, ConfidenceLevel, PatternRegistry, PatternRule, classify
from .topic_clusters import (
    ClusterStats, TopicCatalog, TopicCluster, TopicRelevanceTracker, TopicTransition,
    default_topic_catalog
)

__version__ = "1.0.0"

__all__ = [
    'DialogueEngine',
    'DialogueSession',
    'TurnResult',
    'ConversationState',
    'DialogueStateMachine',
    'StateChange',
    'TransitionTable',
    'default_transition_table',
    'EmotionDetector',
    'EmotionHistory',
    'EmotionResult',
    'EmotionType',
    'IntentRecognizer',
    'IntentResult',
    'default_intent_registry',
    'ChatMessage',
    'ConversationMemory',
    'ConversationSession',
    'ClassificationResult',
    'ConfidenceLevel',
    'PatternRegistry',
    'PatternRule',
    'classify',
    'ClusterStats',
    'TopicCatalog',
    'TopicCluster',
    'TopicRelevanceTracker',
    'TopicTransition',
    'default_topic_catalog',
]
