"""
Dialog State Management
=======================

Table-driven conversation state machine.

Each (state, intent) pair maps to a next state. Pairs missing from the table
are resolved by a fixed policy: farewell closes the conversation, unknown
goes to UNKNOWN, anything else keeps the current state.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..error_handling import ErrorCategory, ErrorTracker, TransitionConflictError
from .intent_recognizer import FAREWELL_INTENT, UNKNOWN_INTENT

logger = logging.getLogger(__name__)

RESET_TRIGGER = "reset"


class ConversationState(Enum):
    """Conversation states with display name and description."""
    IDLE = ("idle", "Waiting for user input")
    GREETING = ("greeting", "Processing greeting")
    GENERAL_CHAT = ("general_chat", "Having general conversation")
    HOMEWORK_HELP = ("homework_help", "Providing homework assistance")
    MENTAL_HEALTH_SUPPORT = ("mental_health_support", "Offering mental health support")
    ENTERTAINMENT = ("entertainment", "Discussing entertainment topics")
    CREATIVE_WRITING = ("creative_writing", "Helping with creative writing")
    GAMING = ("gaming", "Discussing gaming")
    ADVICE = ("advice", "Providing advice")
    CLOSING = ("closing", "Ending conversation")
    UNKNOWN = ("unknown", "Processing unknown input")

    def __init__(self, display_name: str, description: str):
        self.display_name = display_name
        self.description = description


S = ConversationState

DEFAULT_TRANSITIONS: List[Tuple[ConversationState, str, ConversationState]] = [
    (S.IDLE, "greeting", S.GREETING),
    (S.IDLE, "wellbeing_how", S.GREETING),
    (S.IDLE, "wellbeing_positive", S.GREETING),
    (S.IDLE, "wellbeing_negative", S.GENERAL_CHAT),
    (S.IDLE, "activity", S.GENERAL_CHAT),
    (S.IDLE, "homework_help", S.HOMEWORK_HELP),
    (S.IDLE, "mental_health_support", S.MENTAL_HEALTH_SUPPORT),
    (S.IDLE, "mental_health_positive", S.GENERAL_CHAT),
    (S.IDLE, "gaming", S.GAMING),
    (S.IDLE, "creative_writing", S.CREATIVE_WRITING),
    (S.IDLE, "entertainment", S.ENTERTAINMENT),
    (S.IDLE, "advice", S.ADVICE),
    (S.IDLE, "help_request", S.GENERAL_CHAT),
    (S.IDLE, "farewell", S.CLOSING),
    (S.IDLE, "identity", S.GREETING),
    (S.IDLE, "philosophical", S.GENERAL_CHAT),
    (S.IDLE, "creative_project", S.GENERAL_CHAT),

    (S.GREETING, "wellbeing_response", S.GENERAL_CHAT),
    (S.GREETING, "continue", S.GENERAL_CHAT),
    (S.GREETING, "homework_help", S.HOMEWORK_HELP),
    (S.GREETING, "farewell", S.CLOSING),

    (S.GENERAL_CHAT, "homework_help", S.HOMEWORK_HELP),
    (S.GENERAL_CHAT, "mental_health_support", S.MENTAL_HEALTH_SUPPORT),
    (S.GENERAL_CHAT, "gaming", S.GAMING),
    (S.GENERAL_CHAT, "creative_writing", S.CREATIVE_WRITING),
    (S.GENERAL_CHAT, "entertainment", S.ENTERTAINMENT),
    (S.GENERAL_CHAT, "advice", S.ADVICE),
    (S.GENERAL_CHAT, "farewell", S.CLOSING),
    (S.GENERAL_CHAT, "continue", S.GENERAL_CHAT),

    (S.HOMEWORK_HELP, "homework_subject", S.HOMEWORK_HELP),
    (S.HOMEWORK_HELP, "continue", S.GENERAL_CHAT),
    (S.HOMEWORK_HELP, "farewell", S.CLOSING),

    (S.MENTAL_HEALTH_SUPPORT, "mental_health_positive", S.GENERAL_CHAT),
    (S.MENTAL_HEALTH_SUPPORT, "continue", S.MENTAL_HEALTH_SUPPORT),
    (S.MENTAL_HEALTH_SUPPORT, "advice", S.ADVICE),
    (S.MENTAL_HEALTH_SUPPORT, "farewell", S.CLOSING),

    (S.GAMING, "continue", S.GENERAL_CHAT),
    (S.GAMING, "gaming", S.GAMING),
    (S.GAMING, "farewell", S.CLOSING),

    (S.ENTERTAINMENT, "continue", S.GENERAL_CHAT),
    (S.ENTERTAINMENT, "farewell", S.CLOSING),

    (S.CREATIVE_WRITING, "continue", S.GENERAL_CHAT),
    (S.CREATIVE_WRITING, "creative_writing", S.CREATIVE_WRITING),
    (S.CREATIVE_WRITING, "farewell", S.CLOSING),

    (S.ADVICE, "continue", S.GENERAL_CHAT),
    (S.ADVICE, "farewell", S.CLOSING),

    (S.CLOSING, "farewell", S.IDLE),
    (S.CLOSING, "greeting", S.GREETING),
]

# States that own an explicit farewell row and are skipped by the farewell wildcard
FAREWELL_EXEMPT_STATES = frozenset({S.CLOSING, S.IDLE})
TERMINAL_LIKE_STATES = frozenset({S.CLOSING, S.IDLE})
SUPPORTIVE_STATES = frozenset({S.MENTAL_HEALTH_SUPPORT, S.HOMEWORK_HELP})


class TransitionTable:
    """Immutable (state, intent) -> state lookup."""

    def __init__(self, transitions: Iterable[Tuple[ConversationState, str, ConversationState]]):
        table: Dict[Tuple[ConversationState, str], ConversationState] = {}
        for from_state, intent, to_state in transitions:
            key = (from_state, intent)
            if key in table:
                raise TransitionConflictError(
                    f"Duplicate transition for ({from_state.display_name}, {intent}): "
                    f"{table[key].display_name} and {to_state.display_name}",
                    from_state=from_state, intent=intent
                )
            table[key] = to_state
        self._table = table

    def get(self, state: ConversationState, intent: str) -> Optional[ConversationState]:
        return self._table.get((state, intent))

    def intents_from(self, state: ConversationState) -> List[str]:
        """Intents with an explicit row from a state, in table order."""
        return [intent for (from_state, intent) in self._table if from_state == state]

    def __contains__(self, key: Tuple[ConversationState, str]) -> bool:
        return key in self._table

    def __len__(self) -> int:
        return len(self._table)


_default_table: Optional[TransitionTable] = None


def default_transition_table() -> TransitionTable:
    """Get the shared default transition table."""
    global _default_table
    if _default_table is None:
        _default_table = TransitionTable(DEFAULT_TRANSITIONS)
    return _default_table


@dataclass(frozen=True)
class StateChange:
    """State change notification."""
    previous: ConversationState
    current: ConversationState
    trigger: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


StateChangeListener = Callable[[StateChange], None]


class DialogueStateMachine:
    """Per-session conversation state machine."""

    def __init__(self, table: Optional[TransitionTable] = None,
                 farewell_intent: str = FAREWELL_INTENT,
                 unknown_intent: str = UNKNOWN_INTENT,
                 error_tracker: Optional[ErrorTracker] = None):
        self.table = table or default_transition_table()
        self.farewell_intent = farewell_intent
        self.unknown_intent = unknown_intent
        self.error_tracker = error_tracker

        self._state = ConversationState.IDLE
        self._state_data: Dict[str, Any] = {}
        self._listeners: List[StateChangeListener] = []

    @property
    def state(self) -> ConversationState:
        return self._state

    @property
    def state_name(self) -> str:
        return self._state.display_name

    @property
    def state_description(self) -> str:
        return self._state.description

    def resolve(self, intent: str) -> ConversationState:
        """Work out the next state for an intent without committing it."""
        next_state = self.table.get(self._state, intent)
        if next_state is not None:
            return next_state

        if intent == self.farewell_intent and self._state not in FAREWELL_EXEMPT_STATES:
            return ConversationState.CLOSING
        if intent == self.unknown_intent:
            return ConversationState.UNKNOWN
        return self._state

    def process_intent(self, intent: str) -> ConversationState:
        """
        Advance the machine with a recognized intent.

        Args:
            intent: Intent label; unrecognized labels keep the current state

        Returns:
            The current state after the transition
        """
        next_state = self.resolve(intent)

        if next_state != self._state:
            previous = self._state
            self._state = next_state
            logger.debug(f"State {previous.display_name} -> {next_state.display_name} on '{intent}'")
            self._notify(StateChange(previous, next_state, intent))

        return self._state

    def reset(self) -> None:
        """Return to IDLE, clear state data and always notify listeners."""
        self._state = ConversationState.IDLE
        self._state_data.clear()
        self._notify(StateChange(ConversationState.IDLE, ConversationState.IDLE, RESET_TRIGGER))

    def should_continue(self) -> bool:
        """Check if the conversation flow is still open."""
        return self._state not in TERMINAL_LIKE_STATES

    def is_supportive(self) -> bool:
        """Check if the conversation is in a supportive state."""
        return self._state in SUPPORTIVE_STATES

    def available_transitions(self) -> List[str]:
        """Get intents with an explicit transition from the current state."""
        return self.table.intents_from(self._state)

    def is_valid_transition(self, intent: str) -> bool:
        """Check if an explicit transition exists for the intent."""
        return (self._state, intent) in self.table

    def set_state_data(self, key: str, value: Any) -> None:
        self._state_data[key] = value

    def get_state_data(self, key: str, default: Any = None) -> Any:
        return self._state_data.get(key, default)

    def clear_state_data(self) -> None:
        self._state_data.clear()

    def add_listener(self, listener: StateChangeListener) -> None:
        """Register a state change callback."""
        self._listeners.append(listener)

    def remove_listener(self, listener: StateChangeListener) -> None:
        """Remove a state change callback if registered."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, change: StateChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception as e:
                logger.error(f"State change listener failed: {e}")
                if self.error_tracker is not None:
                    self.error_tracker.record(
                        e, source="DialogueStateMachine.listener",
                        category=ErrorCategory.LISTENER,
                        previous=change.previous.display_name,
                        current=change.current.display_name,
                        trigger=change.trigger,
                    )
