"""
Dialogue Engine
===============

Per-turn orchestration of intent and emotion classification, the
conversation state machine and topic relevance tracking.

The engine owns the shared read-only registries and topic catalog; every
session gets its own state machine, topic tracker and emotion history.
"""

import logging
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional

from ..analytics import MetricsCollector
from ..config import Settings
from ..error_handling import ErrorTracker
from .dialog_state import ConversationState, DialogueStateMachine, StateChange, default_transition_table
from .emotion_detector import EmotionDetector, EmotionHistory, EmotionType
from .intent_recognizer import IntentRecognizer
from .memory import ConversationMemory
from .topic_clusters import TopicCatalog, TopicRelevanceTracker, default_topic_catalog

logger = logging.getLogger(__name__)


@dataclass
class TurnResult:
    """Outcome of one processed user message."""
    session_id: str
    state: ConversationState
    intent: str
    intent_confidence: float
    emotion: EmotionType
    emotion_confidence: float
    topics: List[str] = field(default_factory=list)
    active_topics: List[str] = field(default_factory=list)
    entities: Dict[str, List[str]] = field(default_factory=dict)
    state_changed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for the response layer."""
        return {
            'session_id': self.session_id,
            'state': self.state.display_name,
            'intent': self.intent,
            'intent_confidence': self.intent_confidence,
            'emotion': self.emotion.label,
            'emotion_confidence': self.emotion_confidence,
            'topics': list(self.topics),
            'active_topics': list(self.active_topics),
            'entities': {k: list(v) for k, v in self.entities.items()},
            'state_changed': self.state_changed,
        }


class DialogueSession:
    """Mutable per-session conversation state."""

    def __init__(self, session_id: str, state_machine: DialogueStateMachine,
                 topics: TopicRelevanceTracker, emotions: EmotionHistory,
                 started_at: float, max_history: int = 50):
        self.session_id = session_id
        self.state_machine = state_machine
        self.topics = topics
        self.emotions = emotions
        self.started_at = started_at
        self.last_activity = started_at
        self.turn_count = 0
        self.intent_history: Deque[str] = deque(maxlen=max_history)

    @property
    def state(self) -> ConversationState:
        return self.state_machine.state


class DialogueEngine:
    """
    Rule-based dialogue engine.

    Hands each turn's (state, intent, emotion, active topics) to the
    caller; wording of replies is left to the response layer.
    """

    def __init__(self, settings: Optional[Settings] = None,
                 clock: Callable[[], float] = time.time,
                 metrics: Optional[MetricsCollector] = None,
                 error_tracker: Optional[ErrorTracker] = None,
                 catalog: Optional[TopicCatalog] = None,
                 intent_recognizer: Optional[IntentRecognizer] = None):
        """
        Initialize the engine.

        Args:
            settings: Application settings, defaults when omitted
            clock: Returns the current time in seconds
            metrics: Analytics collector, built from settings when omitted
            error_tracker: Tracker for recovered runtime errors
            catalog: Topic catalog shared by all sessions
            intent_recognizer: Recognizer shared by all sessions
        """
        self.settings = settings or Settings()
        self._clock = clock
        self.metrics = metrics or MetricsCollector(
            enabled=self.settings.analytics.enabled,
            max_events=self.settings.analytics.max_events
        )
        self.error_tracker = error_tracker or ErrorTracker(clock=clock)

        self.intent_recognizer = intent_recognizer or IntentRecognizer()
        self.emotion_detector = EmotionDetector(
            detection_enabled=self.settings.emotion.detection_enabled,
            min_confidence_threshold=self.settings.emotion.min_confidence_threshold
        )
        self.catalog = catalog or default_topic_catalog()
        self.transition_table = default_transition_table()

        self.memory = ConversationMemory(
            max_messages_per_session=self.settings.conversation.max_history_size,
            clock=clock
        )
        self.sessions: Dict[str, DialogueSession] = {}

        logger.info(f"{self.settings.app_name} dialogue engine initialized")

    def create_session(self, session_id: Optional[str] = None) -> DialogueSession:
        """Create a session with its own state machine and topic tracker."""
        session_id = session_id or str(uuid.uuid4())
        now = self._clock()

        state_machine = DialogueStateMachine(
            table=self.transition_table,
            error_tracker=self.error_tracker
        )
        state_machine.add_listener(self._state_change_listener(session_id))

        session = DialogueSession(
            session_id=session_id,
            state_machine=state_machine,
            topics=TopicRelevanceTracker(
                self.catalog,
                decay_minutes=self.settings.topics.relevance_decay_minutes,
                max_active=self.settings.topics.max_active_clusters,
                clock=self._clock
            ),
            emotions=EmotionHistory(self.settings.emotion.history_size),
            started_at=now,
            max_history=self.settings.conversation.max_history_size
        )
        self.sessions[session_id] = session
        self.memory.create_session(session_id, session_id)

        if self.settings.analytics.session_tracking:
            self.metrics.track_conversation_event("session_started", {"session_id": session_id})
        self.metrics.set_gauge("active_sessions", len(self.sessions))
        logger.info(f"Session {session_id} created")
        return session

    def get_session(self, session_id: str) -> Optional[DialogueSession]:
        return self.sessions.get(session_id)

    def get_or_create_session(self, session_id: str) -> DialogueSession:
        session = self.sessions.get(session_id)
        if session is None:
            session = self.create_session(session_id)
        return session

    def end_session(self, session_id: str) -> bool:
        """Forget a session and its history."""
        session = self.sessions.pop(session_id, None)
        if session is None:
            return False
        self.memory.remove_session(session_id)

        if self.settings.analytics.session_tracking:
            self.metrics.track_conversation_event("session_ended", {
                "session_id": session_id,
                "turns": session.turn_count,
                "duration_seconds": self._clock() - session.started_at
            })
        self.metrics.set_gauge("active_sessions", len(self.sessions))
        logger.info(f"Session {session_id} ended after {session.turn_count} turns")
        return True

    def reset_session(self, session_id: str) -> bool:
        """Return a session to IDLE with empty topics, emotions and history."""
        session = self.sessions.get(session_id)
        if session is None:
            return False
        session.state_machine.reset()
        session.topics.reset()
        session.emotions.clear()
        session.intent_history.clear()
        self.memory.clear_session(session_id)
        logger.info(f"Session {session_id} reset")
        return True

    def cleanup_expired_sessions(self) -> int:
        """End sessions idle for longer than the context timeout."""
        timeout = self.settings.conversation.context_timeout_minutes * 60
        now = self._clock()
        expired = [
            session_id for session_id, session in self.sessions.items()
            if now - session.last_activity > timeout
        ]
        for session_id in expired:
            self.end_session(session_id)
        if expired:
            logger.info(f"Cleaned up {len(expired)} expired sessions")
        return len(expired)

    def process_message(self, session_id: str, text: Optional[str]) -> TurnResult:
        """
        Process one user message.

        Args:
            session_id: Session the message belongs to, created on first use
            text: Raw user text

        Returns:
            TurnResult with the new state, labels and topics
        """
        session = self.get_or_create_session(session_id)

        with self.metrics.timer("turn_duration"):
            intent = self.intent_recognizer.recognize_intent(text)
            emotion = self.emotion_detector.detect_emotion(text)
            session.emotions.add(emotion)

            previous_state = session.state
            state = session.state_machine.process_intent(intent.intent)

            topics: List[str] = []
            if self.settings.topics.clustering_enabled:
                topics = session.topics.identify_topics(text)
                to_activate = topics if self.settings.topics.activate_all else topics[:1]
                for cluster_id in to_activate:
                    session.topics.activate(cluster_id)

            if state == ConversationState.CLOSING and self.settings.conversation.auto_reset_enabled:
                session.topics.reset()

        session.turn_count += 1
        session.last_activity = self._clock()
        session.intent_history.append(intent.intent)
        self.memory.add_message(
            session_id, text or "",
            intent=intent.intent, emotion=emotion.emotion.label, state=state.display_name
        )
        self.metrics.track_interaction(intent.intent, state.display_name)

        result = TurnResult(
            session_id=session_id,
            state=state,
            intent=intent.intent,
            intent_confidence=intent.confidence,
            emotion=emotion.emotion,
            emotion_confidence=emotion.confidence,
            topics=topics,
            active_topics=session.topics.active_clusters(),
            entities=intent.entities,
            state_changed=state != previous_state,
        )
        logger.debug(
            f"Session {session_id} turn {session.turn_count}: "
            f"intent={result.intent} emotion={result.emotion.label} state={state.display_name}"
        )
        return result

    def record_response(self, session_id: str, text: str) -> None:
        """Store the response layer's reply in the session history."""
        self.memory.add_message(session_id, text, is_user=False)

    def get_session_summary(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Get a summary of one session."""
        session = self.sessions.get(session_id)
        if session is None:
            return None

        messages = self.memory.user_messages(session_id)
        return {
            'session_id': session_id,
            'state': session.state.display_name,
            'state_description': session.state_machine.state_description,
            'should_continue': session.state_machine.should_continue(),
            'is_supportive': session.state_machine.is_supportive(),
            'turn_count': session.turn_count,
            'history_size': len(self.memory.get_conversation_history(session_id)),
            'recent_intents': list(session.intent_history)[-5:],
            'active_topics': session.topics.active_clusters(),
            'dominant_topic': session.topics.dominant_cluster(messages),
            'emotion_trend': session.emotions.trend(),
            'started_at': session.started_at,
            'last_activity': session.last_activity,
        }

    def get_metrics(self) -> Dict[str, Any]:
        """Get engine-wide statistics."""
        return {
            'active_sessions': len(self.sessions),
            'analytics': self.metrics.get_summary(),
            'errors': self.error_tracker.get_error_statistics(),
            'error_rate_high': self.error_tracker.is_error_rate_high(),
        }

    def _state_change_listener(self, session_id: str) -> Callable[[StateChange], None]:
        def listener(change: StateChange) -> None:
            self.metrics.track_conversation_event("state_change", {
                "session_id": session_id,
                "from": change.previous.display_name,
                "to": change.current.display_name,
                "trigger": change.trigger,
            })
        return listener
